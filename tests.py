#!/usr/bin/env python3
"""
Casino Game Engine — Unit & Integration Test Suite

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestRoulette    # run specific class

Test categories:
  TestBetValidation  — stake bounds, user id, per-game bet shapes
  TestRoulette       — colour table, win rules, payouts, exact RTP
  TestPlinko         — path replay, payouts, risk tables, exact RTP
  TestGameEngine     — fail-fast play, static config, re-validation
  TestErrors         — public error text
"""

import math
import sys
import unittest
from itertools import product
from pathlib import Path
from unittest.mock import MagicMock

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from config.settings import BetLimits
from game_engine import GameEngine, get_game_engine
from game_engine.errors import INVALID_BET, IllegalStateTransition, InvalidBet
from game_engine.models import (
    BlackjackBet, CaseOpeningBet, PayResult, PlinkoBet, RouletteBet,
)
from game_engine.plinko import (
    MULTIPLIER_TABLES, get_multiplier_table, landing_slot, slot_probabilities,
    validate_ball_path,
)
from game_engine.rng import RandomOutcomeSource, SeededRandomSource
from game_engine.roulette import BLACK_NUMBERS, RED_NUMBERS, color_of
from game_engine.validators import check_amount, require_valid_bet, validate_bet


class ScriptedRandom(RandomOutcomeSource):
    """Returns a fixed sequence of floats; fails loudly when exhausted."""

    def __init__(self, values=()):
        self.values = list(values)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if not self.values:
            raise AssertionError("ScriptedRandom exhausted")
        return self.values.pop(0)


def _pocket(n: int) -> float:
    """Float that randint(0, 36) maps to pocket n."""
    return (n + 0.5) / 37


# ============================================================
# Bet Validation
# ============================================================

class TestBetValidation(unittest.TestCase):

    def _roulette(self, **kw):
        data = {"user_id": "u1", "amount": 10, "bet_type": "red", "bet_value": "red"}
        data.update(kw)
        return RouletteBet(**data)

    def test_amount_boundaries(self):
        self.assertFalse(validate_bet(self._roulette(amount=0)))
        self.assertTrue(validate_bet(self._roulette(amount=BetLimits.MAX_BET_AMOUNT)))
        self.assertFalse(validate_bet(self._roulette(amount=BetLimits.MAX_BET_AMOUNT + 1)))
        self.assertTrue(validate_bet(self._roulette(amount=BetLimits.MIN_BET_AMOUNT)))
        self.assertFalse(validate_bet(self._roulette(amount=-5)))

    def test_non_finite_and_bool_amounts(self):
        self.assertFalse(validate_bet(self._roulette(amount=float("nan"))))
        self.assertFalse(validate_bet(self._roulette(amount=float("inf"))))
        self.assertIsNotNone(check_amount(True))
        self.assertIsNotNone(check_amount("10"))

    def test_empty_user_id(self):
        self.assertFalse(validate_bet(self._roulette(user_id="")))
        self.assertFalse(validate_bet(self._roulette(user_id="   ")))

    def test_reason_is_always_invalid_bet(self):
        for bet in (self._roulette(amount=0), self._roulette(bet_type="corner"),
                    PlinkoBet(user_id="u1", amount=5)):
            result = validate_bet(bet)
            self.assertFalse(result.valid)
            self.assertEqual(result.reason, INVALID_BET)

    def test_cross_game_mismatch(self):
        self.assertFalse(validate_bet(self._roulette(), expected_game_type="plinko"))
        self.assertTrue(validate_bet(self._roulette(), expected_game_type="roulette"))

    def test_roulette_shapes(self):
        self.assertTrue(validate_bet(self._roulette(bet_type="number", bet_value=0)))
        self.assertTrue(validate_bet(self._roulette(bet_type="number", bet_value=36)))
        self.assertFalse(validate_bet(self._roulette(bet_type="number", bet_value=37)))
        self.assertFalse(validate_bet(self._roulette(bet_type="number", bet_value="seven")))
        self.assertTrue(validate_bet(self._roulette(bet_type="dozen", bet_value=3)))
        self.assertFalse(validate_bet(self._roulette(bet_type="dozen", bet_value=4)))
        self.assertFalse(validate_bet(self._roulette(bet_type="column", bet_value=0)))
        self.assertFalse(validate_bet(self._roulette(bet_type="red", bet_value="black")))
        self.assertFalse(validate_bet(self._roulette(bet_type="corner", bet_value="corner")))

    def test_non_ascii_digits_rejected(self):
        for value in ("\u00b2", "\u00b9", "\u0663", "1\u00b2"):
            self.assertFalse(validate_bet(self._roulette(bet_type="number", bet_value=value)))
            self.assertFalse(validate_bet(self._roulette(bet_type="dozen", bet_value=value)))
        self.assertTrue(validate_bet(self._roulette(bet_type="number", bet_value=" 17 ")))

    def test_superscript_number_fails_play(self):
        result = GameEngine().play({"game_type": "roulette", "user_id": "u1", "amount": 10,
                                    "bet_type": "number", "bet_value": "\u00b2"})
        self.assertFalse(result.success)
        self.assertEqual(result.error, INVALID_BET)
        self.assertIsNone(result.result_data)

    def test_require_valid_bet_raises(self):
        bet = self._roulette()
        self.assertIs(require_valid_bet(bet), bet)
        with self.assertRaises(InvalidBet) as ctx:
            require_valid_bet(self._roulette(amount=0))
        self.assertEqual(str(ctx.exception), INVALID_BET)
        self.assertIn("positive", ctx.exception.detail)
        with self.assertRaises(InvalidBet):
            require_valid_bet(bet, expected_game_type="plinko")

    def test_plinko_risk_required(self):
        self.assertFalse(validate_bet(PlinkoBet(user_id="u1", amount=5)))
        self.assertFalse(validate_bet(PlinkoBet(user_id="u1", amount=5, risk_level="extreme")))
        self.assertTrue(validate_bet(PlinkoBet(user_id="u1", amount=5, risk_level="high")))

    def test_case_price_must_match(self):
        self.assertTrue(validate_bet(CaseOpeningBet(user_id="u1", amount=500, case_id="scav")))
        self.assertFalse(validate_bet(CaseOpeningBet(user_id="u1", amount=400, case_id="scav")))
        self.assertFalse(validate_bet(CaseOpeningBet(user_id="u1", amount=500, case_id="nope")))

    def test_blackjack_needs_only_common_fields(self):
        self.assertTrue(validate_bet(BlackjackBet(user_id="u1", amount=25)))


# ============================================================
# Roulette
# ============================================================

class TestRoulette(unittest.TestCase):

    def setUp(self):
        self.engine = get_game_engine("roulette")

    def test_colour_table_is_canonical(self):
        self.assertEqual(RED_NUMBERS, {1, 3, 5, 7, 9, 12, 14, 16, 18,
                                       19, 21, 23, 25, 27, 30, 32, 34, 36})
        self.assertEqual(len(BLACK_NUMBERS), 18)
        self.assertFalse(RED_NUMBERS & BLACK_NUMBERS)
        self.assertEqual(RED_NUMBERS | BLACK_NUMBERS, set(range(1, 37)))
        self.assertEqual(color_of(0), "green")

    def test_number_payout(self):
        bet = RouletteBet(user_id="u1", amount=100, bet_type="number", bet_value=17)
        self.assertEqual(self.engine.compute_payout(bet, {"winning_number": 17}), 3500)
        self.assertEqual(self.engine.compute_payout(bet, {"winning_number": 18}), 0)

    def test_zero_loses_every_outside_bet(self):
        for bet_type in ("red", "black", "odd", "even", "low", "high"):
            bet = RouletteBet(user_id="u1", amount=100, bet_type=bet_type, bet_value=bet_type)
            self.assertEqual(self.engine.compute_payout(bet, {"winning_number": 0}), 0, bet_type)
        for bet_type in ("dozen", "column"):
            for k in (1, 2, 3):
                bet = RouletteBet(user_id="u1", amount=100, bet_type=bet_type, bet_value=k)
                self.assertEqual(self.engine.compute_payout(bet, {"winning_number": 0}), 0)

    def test_range_boundaries(self):
        low = RouletteBet(user_id="u1", amount=10, bet_type="low", bet_value="low")
        high = RouletteBet(user_id="u1", amount=10, bet_type="high", bet_value="high")
        self.assertEqual(self.engine.compute_payout(low, {"winning_number": 18}), 10)
        self.assertEqual(self.engine.compute_payout(low, {"winning_number": 19}), 0)
        self.assertEqual(self.engine.compute_payout(high, {"winning_number": 19}), 10)

    def test_dozens_and_columns(self):
        self.assertEqual(self.engine.winning_numbers("dozen", 2), list(range(13, 25)))
        self.assertEqual(self.engine.winning_numbers("column", 1), list(range(1, 35, 3)))
        self.assertEqual(self.engine.winning_numbers("column", 2), list(range(2, 36, 3)))
        self.assertEqual(self.engine.winning_numbers("column", 3), list(range(3, 37, 3)))
        bet = RouletteBet(user_id="u1", amount=10, bet_type="dozen", bet_value=3)
        self.assertEqual(self.engine.compute_payout(bet, {"winning_number": 30}), 20)

    def test_winning_number_range(self):
        rng = SeededRandomSource(3)
        bet = self.engine.sample_bet()
        seen = set()
        for _ in range(2000):
            outcome = self.engine.generate_outcome(bet, rng)
            self.assertIsInstance(outcome.winning_number, int)
            self.assertTrue(0 <= outcome.winning_number <= 36)
            seen.add(outcome.winning_number)
        self.assertEqual(seen, set(range(37)))

    def test_scripted_spin(self):
        bet = RouletteBet(user_id="u1", amount=100, bet_type="number", bet_value=17)
        outcome = self.engine.generate_outcome(bet, ScriptedRandom([_pocket(17)]))
        self.assertEqual(outcome.winning_number, 17)
        self.assertEqual(outcome.color, "black")
        self.assertEqual(outcome.multiplier, 35)

    def test_exact_rtp_is_36_over_37(self):
        for bet_type, rtp in self.engine.rtp_table().items():
            self.assertAlmostEqual(rtp, 36 / 37, places=6, msg=bet_type)

    def test_static_queries(self):
        layout = self.engine.get_wheel_layout()
        self.assertEqual(len(layout), 37)
        self.assertEqual(layout[0], {"number": 0, "color": "green"})
        self.assertEqual(self.engine.get_bet_types()["number"]["payout"], "35:1")


# ============================================================
# Plinko
# ============================================================

class TestPlinko(unittest.TestCase):

    def setUp(self):
        self.engine = get_game_engine("plinko")

    def test_literal_paths(self):
        self.assertTrue(validate_ball_path([0, 0, 0, 0], 0))
        self.assertTrue(validate_ball_path([1, 1, 1, 1], 8))
        self.assertFalse(validate_ball_path([0, 1], 2))
        self.assertFalse(validate_ball_path([0, 0, 0, 0], 5))

    def test_every_path_replays(self):
        for path in product((0, 1), repeat=4):
            slot = landing_slot(path)
            self.assertTrue(validate_ball_path(list(path), slot))
            for other in range(9):
                if other != slot:
                    self.assertFalse(validate_ball_path(list(path), other))

    def test_bool_and_out_of_range_steps_rejected(self):
        self.assertFalse(validate_ball_path([True, True, True, True], 8))
        self.assertFalse(validate_ball_path([0, 2, 0, 0], 2))

    def test_non_sequence_paths_rejected(self):
        for path in (None, 1010, "0000", {0: 0}, iter([0, 0, 0, 0])):
            self.assertFalse(validate_ball_path(path, 0))
        self.assertTrue(validate_ball_path((0, 0, 0, 0), 0))

    def test_payout_from_stored_outcome(self):
        bet = PlinkoBet(user_id="u1", amount=100, risk_level="high")
        self.assertEqual(self.engine.compute_payout(bet, {"landing_slot": 0, "multiplier": 29}), 2900)
        self.assertAlmostEqual(self.engine.compute_payout(bet, {"landing_slot": 4}), 20)

    def test_risk_ordering(self):
        self.assertGreater(max(MULTIPLIER_TABLES["high"]), max(MULTIPLIER_TABLES["low"]))
        centre = [MULTIPLIER_TABLES[r][4] for r in ("low", "medium", "high")]
        self.assertEqual(centre, sorted(centre, reverse=True))
        for table in MULTIPLIER_TABLES.values():
            self.assertEqual(len(table), 9)
            self.assertTrue(all(m >= 0 for m in table))

    def test_exact_rtp(self):
        self.assertEqual(sum(slot_probabilities()), 1)
        expected = {"low": 0.925, "medium": 1.4375, "high": 4.45}
        for risk, rtp in expected.items():
            self.assertAlmostEqual(self.engine.compute_rtp(self.engine.sample_bet(risk)), rtp)

    def test_multiplier_table_is_fresh_copy(self):
        first = get_multiplier_table()
        first["low"][0] = 999
        self.assertEqual(get_multiplier_table()["low"][0], 1.5)
        self.assertEqual(get_multiplier_table(), get_multiplier_table())

    def test_scripted_drop(self):
        bet = PlinkoBet(user_id="u1", amount=10, risk_level="medium")
        outcome = self.engine.generate_outcome(bet, ScriptedRandom([0.9, 0.9, 0.9, 0.9]))
        self.assertEqual(outcome.ball_path, [1, 1, 1, 1])
        self.assertEqual(outcome.landing_slot, 8)
        self.assertAlmostEqual(self.engine.compute_payout(bet, outcome), 56)

    def test_simulation_matches_exact_rtp(self):
        result = self.engine.simulate(rounds=20_000, seed=1)
        self.assertTrue(math.isclose(result.rtp_theoretical, 1.4375))
        self.assertLess(abs(result.rtp_measured - result.rtp_theoretical), 0.1)


# ============================================================
# Game Engine Façade
# ============================================================

class TestGameEngine(unittest.TestCase):

    def test_invalid_bet_never_reaches_generator(self):
        rng = ScriptedRandom()
        engine = GameEngine(rng=rng)
        for game_type in engine.engines:
            engine.engines[game_type].generate_outcome = MagicMock()
        engine.engines["blackjack"].deal = MagicMock()

        bad = [
            RouletteBet(user_id="u1", amount=0, bet_type="red", bet_value="red"),
            PlinkoBet(user_id="u1", amount=10),
            BlackjackBet(user_id="", amount=10),
            CaseOpeningBet(user_id="u1", amount=1, case_id="scav"),
            {"game_type": "poker", "user_id": "u1", "amount": 10},
            {"game_type": "roulette", "user_id": "u1"},
        ]
        for bet in bad:
            result = engine.play(bet)
            self.assertFalse(result.success)
            self.assertEqual(result.error, "Invalid bet")
            self.assertEqual(result.win_amount, 0)
            self.assertIsNone(result.result_data)

        for eng in engine.engines.values():
            eng.generate_outcome.assert_not_called()
        engine.engines["blackjack"].deal.assert_not_called()
        self.assertEqual(rng.calls, 0)

    def test_play_roulette_from_mapping(self):
        engine = GameEngine(rng=ScriptedRandom([_pocket(17)]))
        result = engine.play({"game_type": "roulette", "user_id": "u1", "amount": 100,
                              "bet_type": "number", "bet_value": 17})
        self.assertTrue(result.success)
        self.assertEqual(result.win_amount, 3500)
        self.assertEqual(result.result_data.winning_number, 17)
        self.assertEqual(result.bet_amount, 100)

    def test_valid_bets_always_succeed(self):
        engine = GameEngine(rng=SeededRandomSource(11))
        bets = [
            RouletteBet(user_id="u1", amount=5, bet_type="odd", bet_value="odd"),
            PlinkoBet(user_id="u1", amount=5, risk_level="low"),
            BlackjackBet(user_id="u1", amount=5),
            CaseOpeningBet(user_id="u1", amount=1500, case_id="pmc"),
        ]
        for _ in range(25):
            for bet in bets:
                result = engine.play(bet)
                self.assertTrue(result.success)
                self.assertGreaterEqual(result.win_amount, 0)

    def test_failed_pay_result_cannot_carry_winnings(self):
        with self.assertRaises(ValidationError):
            PayResult(success=False, win_amount=5)
        self.assertEqual(PayResult.rejected("Invalid bet").win_amount, 0)

    def test_static_config_idempotent(self):
        engine = GameEngine()
        self.assertEqual(engine.get_board_config(), engine.get_board_config())
        self.assertEqual(engine.get_multiplier_table(), engine.get_multiplier_table())
        self.assertEqual(engine.get_wheel_layout(), engine.get_wheel_layout())
        self.assertEqual(engine.get_case_types(), engine.get_case_types())
        self.assertEqual(engine.list_games(), ["roulette", "blackjack", "plinko", "case_opening"])
        self.assertEqual(engine.get_board_config()["rows"], 4)

    def test_game_info(self):
        info = GameEngine().get_game_info()
        self.assertEqual(set(info), {"roulette", "blackjack", "plinko", "case_opening"})
        self.assertTrue(info["blackjack"]["rules"]["dealer_hits_soft_17"])

    def test_revalidate_played_results(self):
        engine = GameEngine(rng=SeededRandomSource(5))
        bets = [
            RouletteBet(user_id="u1", amount=10, bet_type="column", bet_value=2),
            PlinkoBet(user_id="u1", amount=10, risk_level="high"),
            CaseOpeningBet(user_id="u1", amount=5000, case_id="labs"),
        ]
        for bet in bets:
            result = engine.play(bet)
            stored = result.result_data.model_dump(mode="json")
            self.assertTrue(engine.validate_outcome(bet.game_type, stored))
            self.assertTrue(engine.validate_payout(bet, stored, result.win_amount))
            self.assertFalse(engine.validate_payout(bet, stored, result.win_amount + 1))

    def test_tampered_outcomes_rejected(self):
        engine = GameEngine()
        self.assertFalse(engine.validate_outcome("roulette", {
            "game_type": "roulette", "winning_number": 1, "color": "black",
            "bet_type": "red", "bet_value": "red"}))
        self.assertFalse(engine.validate_outcome("plinko", {
            "game_type": "plinko", "risk_level": "high", "ball_path": [0, 0, 0, 0],
            "landing_slot": 0, "multiplier": 100}))
        self.assertFalse(engine.validate_outcome("roulette", {"game_type": "roulette"}))

    def test_ledger_entry(self):
        bet = RouletteBet(user_id="u1", amount=100, bet_type="number", bet_value=17)
        result = GameEngine(rng=ScriptedRandom([_pocket(17)])).play(bet)
        entry = result.ledger_entry(bet)
        self.assertEqual(entry["user_id"], "u1")
        self.assertEqual(entry["game_type"], "roulette")
        self.assertEqual(entry["win_amount"], 3500)
        self.assertEqual(entry["result_data"]["winning_number"], 17)

    def test_unknown_game_engine(self):
        with self.assertRaises(ValueError):
            get_game_engine("poker")


# ============================================================
# Errors
# ============================================================

class TestErrors(unittest.TestCase):

    def test_public_text_hides_detail(self):
        err = InvalidBet("amount 0 must be positive")
        self.assertEqual(str(err), "Invalid bet")
        self.assertEqual(err.detail, "amount 0 must be positive")
        self.assertIsInstance(err, ValueError)
        self.assertEqual(str(IllegalStateTransition("resolved")), "Invalid action")


# ============================================================
# Main
# ============================================================

if __name__ == "__main__":
    # Configure logging to suppress noise during tests
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
