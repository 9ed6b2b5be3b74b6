"""
Casino Game Engine — Base Game Engine

Common contract for the per-game outcome generators and payout calculators.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class SimResult:
    """Monte Carlo results for one game/bet shape."""
    game_type: str
    rounds: int
    rtp_theoretical: float
    rtp_measured: float
    avg_return: float
    max_return_hit: float
    hit_rate: float  # share of rounds that returned > 0
    total_wagered: float
    total_returned: float
    std_dev: float = 0.0
    confidence_95: tuple = (0.0, 0.0)
    distribution: dict = field(default_factory=dict)

    @property
    def house_edge_measured(self) -> float:
        return 1 - self.rtp_measured

    def to_dict(self) -> dict:
        return {
            "game_type": self.game_type,
            "rounds": self.rounds,
            "rtp_theoretical": round(self.rtp_theoretical, 6),
            "rtp_measured": round(self.rtp_measured, 6),
            "house_edge_measured": round(self.house_edge_measured, 6),
            "avg_return": round(self.avg_return, 4),
            "max_return_hit": round(self.max_return_hit, 2),
            "hit_rate": round(self.hit_rate, 4),
            "std_dev": round(self.std_dev, 4),
            "total_wagered": round(self.total_wagered, 2),
            "total_returned": round(self.total_returned, 2),
            "confidence_95": [round(x, 6) for x in self.confidence_95],
            "distribution": self.distribution,
        }


def outcome_field(outcome, name: str, default=None):
    """Read a field from an outcome model or from its stored dict form."""
    if isinstance(outcome, dict):
        return outcome.get(name, default)
    return getattr(outcome, name, default)


def return_bucket(mult: float) -> str:
    """Histogram bucket for a total-return multiple."""
    if mult == 0:
        return "0x"
    if mult < 1:
        return "0-1x"
    if mult < 2:
        return "1-2x"
    if mult < 5:
        return "2-5x"
    if mult < 10:
        return "5-10x"
    if mult < 50:
        return "10-50x"
    return "50x+"


class BaseGameEngine(ABC):
    """Abstract base for the game outcome/payout engines.

    Payouts follow each game's own convention (roulette pays winnings,
    the other games pay the total return); `returned_multiple` normalises
    both to "amount handed back per unit staked" for RTP work.
    """

    game_type: str = "base"
    display_name: str = "Base Game"

    @abstractmethod
    def generate_outcome(self, bet, rng):
        """Draw an outcome for a validated bet."""
        ...

    @abstractmethod
    def compute_payout(self, bet, outcome) -> float:
        """Amount paid for `bet` given `outcome` (0 on a loss)."""
        ...

    @abstractmethod
    def compute_rtp(self, bet=None) -> float:
        """Expected total return per unit staked."""
        ...

    @abstractmethod
    def sample_bet(self, **kw):
        """A representative valid bet, used by simulations and the CLI."""
        ...

    def returned_multiple(self, bet, outcome) -> float:
        return self.compute_payout(bet, outcome) / bet.amount

    def simulate_round(self, bet, rng) -> float:
        """Play one round and return the total-return multiple."""
        return self.returned_multiple(bet, self.generate_outcome(bet, rng))

    def simulate(self, bet=None, rounds: int = 100_000, seed: int = 42) -> SimResult:
        """Run a Monte Carlo simulation."""
        from game_engine.rng import SeededRandomSource
        rng = SeededRandomSource(seed)
        bet = bet or self.sample_bet()

        total = 0.0
        total_sq = 0.0
        wins = 0
        max_mult = 0.0
        buckets = {}

        for _ in range(rounds):
            mult = self.simulate_round(bet, rng)
            total += mult
            total_sq += mult * mult
            if mult > 0:
                wins += 1
            if mult > max_mult:
                max_mult = mult
            bucket = return_bucket(mult)
            buckets[bucket] = buckets.get(bucket, 0) + 1

        mean = total / rounds if rounds else 0.0
        variance = max(0.0, total_sq / rounds - mean * mean) if rounds else 0.0
        std_err = math.sqrt(variance / rounds) if rounds else 0.0

        return SimResult(
            game_type=self.game_type,
            rounds=rounds,
            rtp_theoretical=self.compute_rtp(bet),
            rtp_measured=mean,
            avg_return=mean,
            max_return_hit=max_mult,
            hit_rate=wins / rounds if rounds else 0.0,
            total_wagered=rounds * bet.amount,
            total_returned=total * bet.amount,
            std_dev=math.sqrt(variance),
            confidence_95=(mean - 1.96 * std_err, mean + 1.96 * std_err),
            distribution={k: round(v / rounds, 4) for k, v in sorted(buckets.items())},
        )

    def get_metadata(self) -> dict:
        """Game metadata for the UI/API."""
        return {
            "game_type": self.game_type,
            "display_name": self.display_name,
        }
