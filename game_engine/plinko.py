"""Plinko: a ball drops through peg rows on a bounded 1-D walk."""
from fractions import Fraction
from itertools import product

from game_engine.base import BaseGameEngine, outcome_field
from game_engine.models import PlinkoBet, PlinkoOutcome

BOARD_ROWS = 4          # peg rows = steps in a ball path
SLOTS = 9               # landing slots 0..8
STARTING_POSITION = 4   # centre slot

# Total-return multipliers per landing slot, one table per risk tier
MULTIPLIER_TABLES = {
    "low":    (1.5, 1.2, 1.1, 1.0, 0.5, 1.0, 1.1, 1.2, 1.5),
    "medium": (5.6, 2.1, 1.1, 1.0, 0.5, 1.0, 1.1, 2.1, 5.6),
    "high":   (29, 4, 1.5, 0.3, 0.2, 0.3, 1.5, 4, 29),
}

RISK_DESCRIPTIONS = {
    "low": "Lower risk with consistent smaller wins",
    "medium": "Balanced risk with moderate potential wins",
    "high": "High risk with potential for massive wins",
}


def step(position: int, move: int) -> int:
    """Apply one move; a move off the board is absorbed at the edge."""
    if move == 0:
        return max(0, position - 1)
    return min(SLOTS - 1, position + 1)


def landing_slot(ball_path) -> int:
    position = STARTING_POSITION
    for move in ball_path:
        position = step(position, move)
    return position


def validate_ball_path(ball_path, expected_slot: int) -> bool:
    """Replay a claimed path and check it lands in `expected_slot`.

    Used to self-check generated outcomes and to verify client-reported paths.
    """
    if not isinstance(ball_path, (list, tuple)) or len(ball_path) != BOARD_ROWS:
        return False
    # bool is an int subclass; True/False are not valid moves
    if not all(type(move) is int and move in (0, 1) for move in ball_path):
        return False
    return landing_slot(ball_path) == expected_slot


def slot_probabilities() -> list:
    """Exact landing distribution over all 2**BOARD_ROWS equally likely paths."""
    counts = [0] * SLOTS
    for path in product((0, 1), repeat=BOARD_ROWS):
        counts[landing_slot(path)] += 1
    total = 2 ** BOARD_ROWS
    return [Fraction(c, total) for c in counts]


def get_multiplier_table() -> dict:
    """Fresh copy of every risk tier's multipliers."""
    return {risk: list(mults) for risk, mults in MULTIPLIER_TABLES.items()}


def get_board_config() -> dict:
    return {
        "rows": BOARD_ROWS,
        "slots": SLOTS,
        "starting_position": STARTING_POSITION,
        "multipliers": get_multiplier_table(),
    }


def get_peg_positions() -> list:
    """Peg layout for display: row r has r + 2 pegs, centred on the board."""
    pegs = []
    for row in range(BOARD_ROWS):
        pegs_in_row = row + 2
        start = (SLOTS - pegs_in_row) / 2
        for peg in range(pegs_in_row):
            pegs.append({"row": row, "position": start + peg})
    return pegs


class PlinkoEngine(BaseGameEngine):
    game_type = "plinko"
    display_name = "Plinko"

    def generate_path(self, rng) -> list:
        return [rng.bit() for _ in range(BOARD_ROWS)]

    def generate_outcome(self, bet, rng) -> PlinkoOutcome:
        path = self.generate_path(rng)
        slot = landing_slot(path)
        if not validate_ball_path(path, slot):
            raise RuntimeError(f"Generated plinko path {path} failed replay")
        return PlinkoOutcome(
            risk_level=bet.risk_level,
            ball_path=path,
            landing_slot=slot,
            multiplier=self.get_multiplier(bet.risk_level, slot),
        )

    @staticmethod
    def get_multiplier(risk_level: str, slot: int) -> float:
        table = MULTIPLIER_TABLES[risk_level]
        if not 0 <= slot < len(table):
            return 0
        return table[slot]

    def compute_payout(self, bet, outcome) -> float:
        mult = outcome_field(outcome, "multiplier")
        if mult is None:
            mult = self.get_multiplier(bet.risk_level, outcome_field(outcome, "landing_slot"))
        if mult < 0:
            return 0
        return bet.amount * mult

    def compute_rtp(self, bet=None) -> float:
        risk = bet.risk_level if bet is not None else "medium"
        table = MULTIPLIER_TABLES[risk]
        return float(sum(p * Fraction(str(m)) for p, m in zip(slot_probabilities(), table)))

    def sample_bet(self, risk_level: str = "medium", amount: float = 1,
                   user_id: str = "simulation", **kw) -> PlinkoBet:
        return PlinkoBet(user_id=user_id, amount=amount, risk_level=risk_level)

    def get_risk_level_info(self) -> dict:
        info = {}
        for risk, table in MULTIPLIER_TABLES.items():
            info[risk] = {
                "description": RISK_DESCRIPTIONS[risk],
                "max_multiplier": max(table),
                "min_multiplier": min(table),
                "expected_return": round(self.compute_rtp(self.sample_bet(risk)), 6),
            }
        return info

    def get_metadata(self) -> dict:
        return {
            **super().get_metadata(),
            "rows": BOARD_ROWS,
            "slots": SLOTS,
            "risk_levels": list(MULTIPLIER_TABLES),
        }
