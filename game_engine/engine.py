"""
Casino Game Engine — Play Façade

GameEngine.play() is the single entry point for a wager:

    validate_bet  ->  generate_outcome  ->  compute_payout  ->  PayResult

A rejected bet fails fast: no randomness is consumed and no generator runs.
Blackjack rounds are dealt by play() and continued with act(); the state
travels in PayResult.state and is never kept here.
"""

import logging
import math

from pydantic import BaseModel, TypeAdapter, ValidationError

from game_engine import GAME_TYPES, get_game_engine
from game_engine.blackjack import RANKS, SUITS, hand_value
from game_engine.case_opening import ITEMS, get_case, get_case_types
from game_engine.errors import INVALID_ACTION, INVALID_BET, IllegalStateTransition
from game_engine.models import Outcome, PayResult, parse_bet
from game_engine.plinko import (
    MULTIPLIER_TABLES, get_board_config, get_multiplier_table, get_peg_positions,
    validate_ball_path,
)
from game_engine.rng import SystemRandomSource
from game_engine.roulette import RouletteEngine, color_of
from game_engine.validators import validate_bet

logger = logging.getLogger("casino.engine")

_outcome_adapter = TypeAdapter(Outcome)

# Recomputed payouts may differ from stored ones by rounding only
PAYOUT_TOLERANCE = 0.01


class GameEngine:
    """Validates bets, draws outcomes and computes payouts for every game."""

    def __init__(self, rng=None):
        self.rng = rng or SystemRandomSource()
        self.engines = {game_type: get_game_engine(game_type) for game_type in GAME_TYPES}

    # ── Play ──────────────────────────────────────────────────

    def play(self, bet) -> PayResult:
        if not isinstance(bet, BaseModel):
            try:
                bet = parse_bet(bet)
            except (ValidationError, TypeError, ValueError) as e:
                logger.debug(f"Rejected unparseable bet: {e}")
                return PayResult.rejected(INVALID_BET)

        check = validate_bet(bet)
        if not check:
            return PayResult.rejected(check.reason)

        engine = self.engines[bet.game_type]
        if bet.game_type == "blackjack":
            return self._blackjack_result(engine.deal(bet, self.rng))

        outcome = engine.generate_outcome(bet, self.rng)
        win_amount = engine.compute_payout(bet, outcome)
        logger.debug(f"{bet.game_type} play by {bet.user_id}: bet {bet.amount}, won {win_amount}")
        return PayResult(success=True, win_amount=win_amount, result_data=outcome,
                         bet_amount=bet.amount)

    def act(self, state, action, hand_index: int = None) -> PayResult:
        """Apply a blackjack action to an open round."""
        try:
            new_state = self.engines["blackjack"].apply_action(state, action, hand_index)
        except IllegalStateTransition as e:
            logger.debug(f"Rejected action {action!r} on {state.game_id}: {e.detail}")
            return PayResult.rejected(INVALID_ACTION)
        return self._blackjack_result(new_state)

    def _blackjack_result(self, state) -> PayResult:
        engine = self.engines["blackjack"]
        return PayResult(
            success=True,
            win_amount=engine.settle(state),
            result_data=engine.to_outcome(state),
            game_id=state.game_id,
            bet_amount=state.total_bet,
            state=state,
        )

    # ── Re-validation of stored results ───────────────────────

    def validate_outcome(self, game_type: str, outcome) -> bool:
        """Structural sanity check of a stored outcome."""
        if isinstance(outcome, dict):
            try:
                outcome = _outcome_adapter.validate_python(outcome)
            except ValidationError:
                return False
        if getattr(outcome, "game_type", None) != game_type:
            return False

        if game_type == "roulette":
            return outcome.color == color_of(outcome.winning_number)

        if game_type == "plinko":
            table = MULTIPLIER_TABLES.get(outcome.risk_level)
            return (table is not None
                    and validate_ball_path(outcome.ball_path, outcome.landing_slot)
                    and table[outcome.landing_slot] == outcome.multiplier)

        if game_type == "blackjack":
            hands = outcome.hands or [outcome.player_hand]
            cards = [c for hand in hands for c in hand] + list(outcome.dealer_hand)
            if not all(c.suit in SUITS and c.rank in RANKS for c in cards):
                return False
            if any(len(hand) < 2 for hand in hands) or not outcome.dealer_hand:
                return False
            return (outcome.dealer_value == hand_value(outcome.dealer_hand)
                    and outcome.player_value in [hand_value(h) for h in hands])

        if game_type == "case_opening":
            case = get_case(outcome.case_id)
            item = ITEMS.get(outcome.item_won.id)
            if case is None or item is None or item.rarity != outcome.rarity:
                return False
            return outcome.currency_awarded == math.floor(
                item.base_value * case.value_multipliers[item.rarity])

        return False

    def validate_payout(self, bet, outcome, payout: float) -> bool:
        """Recompute the payout for `outcome` and compare it with `payout`."""
        if not validate_bet(bet):
            return False
        expected = self.engines[bet.game_type].compute_payout(bet, outcome)
        return abs(expected - payout) < PAYOUT_TOLERANCE

    # ── Static configuration ──────────────────────────────────

    def list_games(self) -> list:
        return list(GAME_TYPES)

    def get_board_config(self) -> dict:
        return {**get_board_config(), "pegs": get_peg_positions()}

    def get_multiplier_table(self) -> dict:
        return get_multiplier_table()

    def get_risk_level_info(self) -> dict:
        return self.engines["plinko"].get_risk_level_info()

    def get_bet_types(self) -> dict:
        return RouletteEngine.get_bet_types()

    def get_wheel_layout(self) -> list:
        return RouletteEngine.get_wheel_layout()

    def get_case_types(self) -> list:
        return [case.model_dump(mode="json") for case in get_case_types()]

    def get_game_info(self, game_type: str = None) -> dict:
        if game_type is not None:
            return self.engines[game_type].get_metadata()
        return {gt: engine.get_metadata() for gt, engine in self.engines.items()}
