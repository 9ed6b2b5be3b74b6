#!/usr/bin/env python3
"""
Tests for the Monte Carlo RTP validator and developer CLI

Validates:
1.  Measured RTP lands within tolerance of the exact RTP
2.  Report serialises to JSON with the documented keys; validate_all covers every game
3.  CLI config/rtp/simulate/play commands run end to end; invalid bets exit 1
4.  Invalid bets raise InvalidBet before any round is simulated
"""

import json
import math
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from game_engine import InvalidBet, get_game_engine
from tools import casino_cli
from tools.rtp_validator import RtpValidator


@pytest.fixture
def validator():
    return RtpValidator()


def test_roulette_within_tolerance(validator):
    report = validator.validate("roulette", rounds=50_000, seed=1, tolerance=0.03)
    assert report.within_tolerance
    assert report.status == "PASS"
    assert math.isclose(report.theoretical_rtp, 36 / 37)
    assert 0.45 < report.hit_frequency < 0.52


def test_plinko_low_within_tolerance(validator):
    bet = get_game_engine("plinko").sample_bet(risk_level="low")
    report = validator.validate("plinko", bet=bet, rounds=50_000, seed=2)
    assert report.within_tolerance
    assert report.max_mult == 1.5
    assert report.ci_lower < report.measured_rtp < report.ci_upper


def test_case_opening_within_statistical_error(validator):
    report = validator.validate("case_opening", rounds=20_000, seed=3)
    assert report.deviation <= 5 * report.std_dev / math.sqrt(report.rounds)


def test_report_serialises(validator):
    report = validator.validate("plinko", rounds=2_000, seed=4)
    data = json.loads(report.to_json())
    assert data["game_type"] == "plinko"
    assert data["rounds"] == 2_000
    assert data["parameters"]["risk_level"] == "medium"
    assert "user_id" not in data["parameters"]
    assert abs(sum(data["histogram"].values()) - 100) < 0.1


def test_validate_all_covers_every_game(validator):
    reports = validator.validate_all(rounds=300, seed=5)
    assert set(reports) == {"roulette", "blackjack", "plinko", "case_opening"}
    for game_type, report in reports.items():
        assert report.game_type == game_type
        assert report.rounds == 300


def test_unknown_game_rejected(validator):
    with pytest.raises(ValueError):
        validator.validate("poker", rounds=10)


def test_invalid_bet_refused_before_simulation(validator):
    bet = get_game_engine("roulette").sample_bet(bet_type="number", bet_value=37)
    with pytest.raises(InvalidBet) as exc:
        validator.validate("roulette", bet=bet, rounds=10)
    assert str(exc.value) == "Invalid bet"
    with pytest.raises(InvalidBet):
        validator.validate("plinko", bet=bet, rounds=10)


# ============================================================
# CLI
# ============================================================

@pytest.mark.parametrize("argv", [
    ["config"],
    ["simulate", "plinko", "--risk", "high", "--rounds", "2000"],
    ["simulate", "roulette", "--bet-type", "number", "--bet-value", "17", "--rounds", "2000", "--json"],
    ["play", "roulette", "--bet-type", "dozen", "--bet-value", "2", "--amount", "50"],
    ["play", "blackjack", "--amount", "25", "--reveal"],
    ["play", "case_opening", "--case", "labs"],
])
def test_cli_commands(argv):
    with patch.object(sys, "argv", ["casino_cli", *argv]):
        assert casino_cli.main() == 0


@pytest.mark.parametrize("argv", [
    ["play", "roulette", "--bet-type", "number", "--bet-value", "\u00b2"],
    ["play", "plinko", "--amount", "0"],
    ["simulate", "case_opening", "--case", "missing", "--rounds", "10"],
])
def test_cli_rejects_invalid_bets(argv):
    with patch.object(sys, "argv", ["casino_cli", *argv]):
        assert casino_cli.main() == 1


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
