#!/usr/bin/env python3
"""
Tests for case opening

Validates:
1.  Every case covers all five rarities and every rarity has items
2.  Rarity draw checks legendary first, common last
3.  Awarded currency is floor(base_value * value_multiplier)
4.  Bets must pay exactly the case price
5.  Exact RTP is deterministic and agrees with simulation
"""

import math
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from game_engine import GameEngine, get_game_engine
from game_engine.case_opening import (
    CASE_TYPES, ITEMS, calculate_item_value, get_case, get_case_types, select_rarity,
)
from game_engine.models import CaseOpeningBet, Rarity
from game_engine.rng import RandomOutcomeSource, SeededRandomSource


class FixedRandom(RandomOutcomeSource):
    def __init__(self, *values):
        self.values = list(values)

    def random(self) -> float:
        return self.values.pop(0)


@pytest.fixture
def engine():
    return get_game_engine("case_opening")


def test_catalog_shape():
    assert [c.id for c in get_case_types()] == ["scav", "pmc", "labs"]
    for case in CASE_TYPES.values():
        for table in (case.rarity_distribution, case.pool_weights, case.value_multipliers):
            assert set(table) == set(Rarity)
        assert sum(case.rarity_distribution.values()) == 100
    for rarity in Rarity:
        assert any(item.rarity == rarity for item in ITEMS.values())


def test_get_case_tolerates_unknown_ids():
    assert get_case("scav").price == 500
    assert get_case("nope") is None
    assert get_case(None) is None


def test_rarity_draw_order():
    scav = CASE_TYPES["scav"].rarity_distribution
    assert select_rarity(scav, FixedRandom(0.0)) == Rarity.LEGENDARY
    assert select_rarity(scav, FixedRandom(0.005)) == Rarity.LEGENDARY
    assert select_rarity(scav, FixedRandom(0.02)) == Rarity.EPIC
    assert select_rarity(scav, FixedRandom(0.12)) == Rarity.RARE
    assert select_rarity(scav, FixedRandom(0.30)) == Rarity.UNCOMMON
    assert select_rarity(scav, FixedRandom(0.99)) == Rarity.COMMON


def test_award_is_floored(engine):
    bet = CaseOpeningBet(user_id="u1", amount=500, case_id="scav")
    outcome = engine.generate_outcome(bet, FixedRandom(0.0, 0.0))
    assert outcome.rarity == Rarity.LEGENDARY
    assert outcome.item_won.id == "ledx-skin-transilluminator"
    assert outcome.currency_awarded == 15000
    assert engine.compute_payout(bet, outcome) == 15000

    salewa = ITEMS["salewa-first-aid-kit"]
    assert calculate_item_value(salewa, 1.5) == 300
    assert calculate_item_value(ITEMS["matches"], 1.2) == math.floor(15 * 1.2)


def test_play_requires_case_price():
    engine = GameEngine(rng=SeededRandomSource(2))
    assert not engine.play(CaseOpeningBet(user_id="u1", amount=1000, case_id="pmc")).success
    result = engine.play(CaseOpeningBet(user_id="u1", amount=1500, case_id="pmc"))
    assert result.success
    assert result.win_amount == result.result_data.currency_awarded
    assert result.result_data.item_won.id in ITEMS


def test_items_by_rarity(engine):
    grouped = engine.items_by_rarity("labs")
    assert list(grouped) == ["legendary", "epic", "rare", "uncommon", "common"]
    assert {entry["item"]["id"] for entry in grouped["legendary"]} >= {"bitcoin", "defibrillator"}
    with pytest.raises(ValueError):
        engine.items_by_rarity("nope")


@pytest.mark.parametrize("case_id", ["scav", "pmc", "labs"])
def test_exact_rtp_matches_simulation(engine, case_id):
    bet = engine.sample_bet(case_id=case_id)
    rtp = engine.compute_rtp(bet)
    assert rtp == engine.compute_rtp(bet)
    assert rtp > 0

    result = engine.simulate(bet, rounds=20_000, seed=4)
    std_err = result.std_dev / math.sqrt(result.rounds)
    assert abs(result.rtp_measured - rtp) <= 5 * std_err


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
