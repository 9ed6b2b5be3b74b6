"""
Casino Game Engine — Monte Carlo RTP Validator

Plays many rounds of a game through its engine and compares the measured
return-to-player with the exact value from compute_rtp().

Usage:
    from tools.rtp_validator import RtpValidator
    validator = RtpValidator()

    report = validator.validate("plinko", rounds=200_000)
    print(f"Theoretical: {report.theoretical_rtp:.4%}")
    print(f"Measured:    {report.measured_rtp:.4%}")
    print(f"Status:      {report.status}")

    reports = validator.validate_all(rounds=50_000)
"""

from __future__ import annotations

import json
import logging
import math
import statistics
import time
from dataclasses import dataclass, field

from game_engine import GAME_TYPES, get_game_engine
from game_engine.base import return_bucket
from game_engine.rng import SeededRandomSource
from game_engine.validators import require_valid_bet

logger = logging.getLogger("casino.rtp_validator")


# ═══════════════════════════════════════════════════════════════
# Validation Report
# ═══════════════════════════════════════════════════════════════

@dataclass
class ValidationReport:
    """Results of a Monte Carlo validation run."""
    game_type: str
    rounds: int
    theoretical_rtp: float
    measured_rtp: float
    deviation: float             # |measured - theoretical|
    within_tolerance: bool
    tolerance: float

    hit_frequency: float         # P(return > 0)
    std_dev: float
    max_mult: float

    ci_lower: float              # 95% CI of the measured RTP
    ci_upper: float

    histogram: dict = field(default_factory=dict)
    duration_seconds: float = 0
    parameters: dict = field(default_factory=dict)

    @property
    def status(self) -> str:
        return "PASS" if self.within_tolerance else "FAIL"

    @property
    def theoretical_in_ci(self) -> bool:
        return self.ci_lower <= self.theoretical_rtp <= self.ci_upper

    def to_dict(self) -> dict:
        return {
            "report_type": "Monte Carlo RTP Validation",
            "game_type": self.game_type,
            "status": self.status,
            "rounds": self.rounds,
            "theoretical_rtp_pct": round(self.theoretical_rtp * 100, 4),
            "measured_rtp_pct": round(self.measured_rtp * 100, 4),
            "deviation_pct": round(self.deviation * 100, 4),
            "tolerance_pct": round(self.tolerance * 100, 4),
            "within_tolerance": self.within_tolerance,
            "confidence_interval_95": {
                "lower_pct": round(self.ci_lower * 100, 4),
                "upper_pct": round(self.ci_upper * 100, 4),
            },
            "distribution": {
                "hit_frequency_pct": round(self.hit_frequency * 100, 2),
                "std_dev": round(self.std_dev, 4),
                "max_mult": self.max_mult,
            },
            "duration_seconds": round(self.duration_seconds, 2),
            "parameters": self.parameters,
            "histogram": self.histogram,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


# ═══════════════════════════════════════════════════════════════
# Validator
# ═══════════════════════════════════════════════════════════════

class RtpValidator:
    """Compare simulated RTP against each engine's exact RTP."""

    DEFAULT_ROUNDS = 100_000
    DEFAULT_TOLERANCE = 0.02

    def validate(self, game_type: str, bet=None, rounds: int = None,
                 seed: int = 42, tolerance: float = None) -> ValidationReport:
        engine = get_game_engine(game_type)
        bet = require_valid_bet(bet or engine.sample_bet(), game_type)
        n = rounds or self.DEFAULT_ROUNDS
        tol = tolerance if tolerance is not None else self.DEFAULT_TOLERANCE

        rng = SeededRandomSource(seed)
        start = time.time()
        returns = [engine.simulate_round(bet, rng) for _ in range(n)]
        duration = time.time() - start

        report = self._build_report(
            game_type, returns, engine.compute_rtp(bet), tol, duration,
            params=bet.model_dump(exclude={"user_id"}) | {"seed": seed},
        )
        logger.info(f"{game_type}: measured {report.measured_rtp:.4%} vs "
                    f"theoretical {report.theoretical_rtp:.4%} [{report.status}]")
        return report

    def validate_all(self, rounds: int = None, seed: int = 42) -> dict:
        return {gt: self.validate(gt, rounds=rounds, seed=seed) for gt in GAME_TYPES}

    def _build_report(self, game_type: str, returns: list, theoretical: float,
                      tolerance: float, duration: float, params: dict) -> ValidationReport:
        n = len(returns)
        measured = sum(returns) / n if n else 0
        deviation = abs(measured - theoretical)

        std_dev = statistics.stdev(returns) if n > 1 else 0
        se = std_dev / math.sqrt(n) if n else 0

        buckets = {}
        for r in returns:
            bucket = return_bucket(r)
            buckets[bucket] = buckets.get(bucket, 0) + 1

        return ValidationReport(
            game_type=game_type,
            rounds=n,
            theoretical_rtp=theoretical,
            measured_rtp=measured,
            deviation=deviation,
            within_tolerance=deviation <= tolerance,
            tolerance=tolerance,
            hit_frequency=sum(1 for r in returns if r > 0) / n if n else 0,
            std_dev=std_dev,
            max_mult=max(returns) if returns else 0,
            ci_lower=measured - 1.96 * se,
            ci_upper=measured + 1.96 * se,
            histogram={k: round(v / n * 100, 2) for k, v in sorted(buckets.items())},
            duration_seconds=duration,
            parameters=params,
        )
