"""
Casino Game Engine — Data Model

Bets, outcomes and play results shared by every game.

Bets and outcomes are tagged unions discriminated on `game_type`. Bet field
types are loose; stake bounds, enum membership and value shapes are checked
in game_engine.validators.

Usage:
    from game_engine.models import RouletteBet, parse_bet
    bet = RouletteBet(user_id="u1", amount=100, bet_type="number", bet_value=17)
    bet = parse_bet({"game_type": "plinko", "user_id": "u1", "amount": 5,
                     "risk_level": "high"})
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class GameType(str, Enum):
    ROULETTE = "roulette"
    BLACKJACK = "blackjack"
    PLINKO = "plinko"
    CASE_OPENING = "case_opening"


class RouletteBetType(str, Enum):
    NUMBER = "number"
    RED = "red"
    BLACK = "black"
    ODD = "odd"
    EVEN = "even"
    LOW = "low"
    HIGH = "high"
    DOZEN = "dozen"
    COLUMN = "column"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BlackjackResult(str, Enum):
    PLAYER_WIN = "player_win"
    DEALER_WIN = "dealer_win"
    PUSH = "push"
    BLACKJACK = "blackjack"
    BUST = "bust"


class BlackjackAction(str, Enum):
    HIT = "hit"
    STAND = "stand"
    DOUBLE = "double"
    SPLIT = "split"


class Phase(str, Enum):
    PLAYER_TURN = "player_turn"
    DEALER_TURN = "dealer_turn"
    RESOLVED = "resolved"


class HandStatus(str, Enum):
    PLAYING = "playing"
    STAND = "stand"
    BUST = "bust"
    BLACKJACK = "blackjack"


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


# ═══════════════════════════════════════════════════════════════
# Bets
# ═══════════════════════════════════════════════════════════════

class _BetBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    user_id: str
    amount: float


class RouletteBet(_BetBase):
    game_type: Literal["roulette"] = "roulette"
    bet_type: str
    bet_value: Union[int, str, None] = None


class BlackjackBet(_BetBase):
    game_type: Literal["blackjack"] = "blackjack"


class PlinkoBet(_BetBase):
    game_type: Literal["plinko"] = "plinko"
    risk_level: Optional[str] = None


class CaseOpeningBet(_BetBase):
    game_type: Literal["case_opening"] = "case_opening"
    case_id: str


Bet = Annotated[
    Union[RouletteBet, BlackjackBet, PlinkoBet, CaseOpeningBet],
    Field(discriminator="game_type"),
]

_bet_adapter = TypeAdapter(Bet)


def parse_bet(data: dict):
    """Build a Bet from a plain mapping.

    Raises pydantic.ValidationError when the mapping is not bet-shaped
    (unknown game_type, missing or mistyped fields).
    """
    return _bet_adapter.validate_python(data)


# ═══════════════════════════════════════════════════════════════
# Outcomes
# ═══════════════════════════════════════════════════════════════

class Card(BaseModel):
    model_config = ConfigDict(frozen=True)

    suit: str   # hearts | diamonds | clubs | spades
    rank: str   # A, 2-10, J, Q, K

    def __str__(self) -> str:
        return f"{self.rank}{self.suit[0].upper()}"


class Item(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    rarity: Rarity
    base_value: float
    category: str
    description: str = ""


class RouletteOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_type: Literal["roulette"] = "roulette"
    winning_number: int = Field(ge=0, le=36)
    color: str
    bet_type: str
    bet_value: Union[int, str, None] = None
    multiplier: float = 0


class PlinkoOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_type: Literal["plinko"] = "plinko"
    risk_level: str
    ball_path: list[int]
    landing_slot: int
    multiplier: float


class BlackjackOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_type: Literal["blackjack"] = "blackjack"
    player_hand: list[Card]
    dealer_hand: list[Card]
    player_value: int
    dealer_value: int
    result: Optional[BlackjackResult] = None
    phase: Phase
    hands: list[list[Card]] = Field(default_factory=list)
    hand_statuses: list[HandStatus] = Field(default_factory=list)
    hand_bets: list[float] = Field(default_factory=list)


class CaseOpeningOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_type: Literal["case_opening"] = "case_opening"
    case_id: str
    item_won: Item
    rarity: Rarity
    value_multiplier: float
    currency_awarded: float


Outcome = Annotated[
    Union[RouletteOutcome, PlinkoOutcome, BlackjackOutcome, CaseOpeningOutcome],
    Field(discriminator="game_type"),
]


# ═══════════════════════════════════════════════════════════════
# Blackjack in-progress state
# ═══════════════════════════════════════════════════════════════

class BlackjackState(BaseModel):
    """Everything needed to continue a blackjack round.

    Held by the caller between actions; transitions never mutate it in place.
    """
    game_id: str
    user_id: str
    bet_amount: float
    deck: list[Card]
    player_hands: list[list[Card]]
    hand_bets: list[float]
    hand_statuses: list[HandStatus]
    can_double: list[bool]
    dealer_hand: list[Card]
    current_hand_index: int = 0
    splits_used: int = 0
    phase: Phase = Phase.PLAYER_TURN
    created_at: float = Field(default_factory=time.time)

    @property
    def total_bet(self) -> float:
        return sum(self.hand_bets)


# ═══════════════════════════════════════════════════════════════
# Play result
# ═══════════════════════════════════════════════════════════════

class PayResult(BaseModel):
    success: bool
    win_amount: float = Field(default=0, ge=0)
    result_data: Optional[Outcome] = None
    error: Optional[str] = None
    game_id: Optional[str] = None
    bet_amount: Optional[float] = None
    state: Optional[BlackjackState] = None

    @model_validator(mode="after")
    def _failure_carries_nothing(self):
        if not self.success and (self.win_amount != 0 or self.result_data is not None):
            raise ValueError("a failed play must have win_amount 0 and no result_data")
        return self

    @classmethod
    def rejected(cls, error: str) -> "PayResult":
        return cls(success=False, win_amount=0, result_data=None, error=error)

    def ledger_entry(self, bet) -> dict:
        """Record handed to the ledger collaborator after a successful play."""
        return {
            "user_id": bet.user_id,
            "game_type": bet.game_type,
            "bet_amount": self.bet_amount if self.bet_amount is not None else bet.amount,
            "win_amount": self.win_amount,
            "result_data": self.result_data.model_dump(mode="json") if self.result_data else None,
        }
