"""
Casino Game Engine — Bet Validation

Global checks (stake bounds, user id, game-type tag) followed by a per-game
shape check chosen by the bet's tag. Validators are plain functions; a
rejected bet is always reported to callers as the single reason "Invalid bet",
while the specific reason is kept in `detail` and logged at DEBUG.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Optional

from config.settings import BetLimits
from game_engine.case_opening import get_case
from game_engine.errors import INVALID_BET, INVALID_ACTION, InvalidBet
from game_engine.models import BlackjackAction, GameType, Phase, RiskLevel, RouletteBetType
from game_engine.roulette import OUTSIDE_BETS

logger = logging.getLogger("casino.validators")

RISK_LEVELS = tuple(r.value for r in RiskLevel)
ROULETTE_BET_TYPES = tuple(t.value for t in RouletteBetType)
BLACKJACK_ACTIONS = tuple(a.value for a in BlackjackAction)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None
    detail: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


_OK = ValidationResult(True)


def _reject(detail: str, reason: str = INVALID_BET) -> ValidationResult:
    logger.debug(f"Rejected: {detail}")
    return ValidationResult(False, reason, detail)


def _as_int(value) -> Optional[int]:
    """Integer view of a bet value; None when it is not a whole number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        # isdigit() alone admits superscripts and non-ASCII digits
        if text.isascii() and text.isdecimal():
            return int(text)
    return None


# ── Global ────────────────────────────────────────────────────

def check_amount(amount) -> Optional[str]:
    """Return a rejection detail for a bad stake, or None."""
    if isinstance(amount, bool) or not isinstance(amount, Real):
        return f"amount {amount!r} is not a number"
    if not math.isfinite(amount):
        return f"amount {amount!r} is not finite"
    if amount <= 0:
        return f"amount {amount} must be positive"
    if amount < BetLimits.MIN_BET_AMOUNT:
        return f"amount {amount} below minimum {BetLimits.MIN_BET_AMOUNT}"
    if amount > BetLimits.MAX_BET_AMOUNT:
        return f"amount {amount} above maximum {BetLimits.MAX_BET_AMOUNT}"
    return None


def _check_common(bet) -> Optional[str]:
    user_id = getattr(bet, "user_id", None)
    if not isinstance(user_id, str) or not user_id.strip():
        return "user_id is empty"
    return check_amount(getattr(bet, "amount", None))


# ── Per game ──────────────────────────────────────────────────

def _check_roulette(bet) -> Optional[str]:
    bet_type = getattr(bet, "bet_type", None)
    value = getattr(bet, "bet_value", None)
    if bet_type not in ROULETTE_BET_TYPES:
        return f"unknown roulette bet_type {bet_type!r}"
    if bet_type == "number":
        number = _as_int(value)
        if number is None or not 0 <= number <= 36:
            return f"number bet_value {value!r} outside 0-36"
        return None
    if bet_type in ("dozen", "column"):
        if _as_int(value) not in (1, 2, 3):
            return f"{bet_type} bet_value {value!r} not in 1-3"
        return None
    # Outside bets carry their own name as value
    if bet_type in OUTSIDE_BETS and value != bet_type:
        return f"{bet_type} bet_value {value!r} must equal {bet_type!r}"
    return None


def _check_blackjack(bet) -> Optional[str]:
    return None


def _check_plinko(bet) -> Optional[str]:
    risk = getattr(bet, "risk_level", None)
    if risk is None:
        return "risk_level is required"
    if risk not in RISK_LEVELS:
        return f"unknown risk_level {risk!r}"
    return None


def _check_case_opening(bet) -> Optional[str]:
    case = get_case(getattr(bet, "case_id", None))
    if case is None:
        return f"unknown or inactive case {getattr(bet, 'case_id', None)!r}"
    if bet.amount != case.price:
        return f"amount {bet.amount} does not match case price {case.price}"
    return None


GAME_CHECKS = {
    GameType.ROULETTE.value: _check_roulette,
    GameType.BLACKJACK.value: _check_blackjack,
    GameType.PLINKO.value: _check_plinko,
    GameType.CASE_OPENING.value: _check_case_opening,
}


def validate_bet(bet, expected_game_type: str = None) -> ValidationResult:
    """Validate a bet for the game it is tagged with.

    If `expected_game_type` is given (the validator of a specific game is
    being invoked), a bet tagged for any other game is rejected.
    """
    game_type = getattr(bet, "game_type", None)
    if hasattr(game_type, "value"):
        game_type = game_type.value
    if expected_game_type is not None and game_type != expected_game_type:
        return _reject(f"game_type {game_type!r} sent to {expected_game_type} validator")
    check = GAME_CHECKS.get(game_type)
    if check is None:
        return _reject(f"unknown game_type {game_type!r}")

    problem = _check_common(bet) or check(bet)
    if problem:
        return _reject(f"{game_type}: {problem}")
    return _OK


def require_valid_bet(bet, expected_game_type: str = None):
    """validate_bet() for callers outside the play path; raises InvalidBet."""
    check = validate_bet(bet, expected_game_type)
    if not check:
        raise InvalidBet(check.detail)
    return bet


# ── Blackjack actions ─────────────────────────────────────────

def validate_action(state, action, hand_index: int = None) -> ValidationResult:
    """Check that `action` may be applied to `state` at `hand_index`."""
    action = getattr(action, "value", action)
    if action not in BLACKJACK_ACTIONS:
        return _reject(f"unknown action {action!r}", INVALID_ACTION)
    if state.phase != Phase.PLAYER_TURN:
        return _reject(f"action {action} on a {state.phase.value} hand", INVALID_ACTION)
    if hand_index is not None:
        if isinstance(hand_index, bool) or not isinstance(hand_index, int):
            return _reject(f"hand_index {hand_index!r} is not an int", INVALID_ACTION)
        if not 0 <= hand_index < len(state.player_hands):
            return _reject(f"hand_index {hand_index} outside {len(state.player_hands)} hand(s)",
                           INVALID_ACTION)
    return _OK
