"""European roulette: single zero, 37 pockets."""

from fractions import Fraction

from game_engine.base import BaseGameEngine, outcome_field
from game_engine.models import RouletteBet, RouletteOutcome

POCKETS = tuple(range(37))

# Standard wheel colouring; not derivable from parity.
RED_NUMBERS = frozenset({1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36})
BLACK_NUMBERS = frozenset({2, 4, 6, 8, 10, 11, 13, 15, 17, 20, 22, 24, 26, 28, 29, 31, 33, 35})

# Winnings per unit staked (the stake itself is settled by the ledger)
PAYOUT_MULTIPLIERS = {
    "number": 35,
    "red": 1,
    "black": 1,
    "odd": 1,
    "even": 1,
    "low": 1,
    "high": 1,
    "dozen": 2,
    "column": 2,
}

OUTSIDE_BETS = frozenset({"red", "black", "odd", "even", "low", "high"})

BET_TYPES = {
    "number": {"description": "Bet on a specific number (0-36)", "payout": "35:1",
               "example": "Bet on number 17"},
    "red": {"description": "Bet on red numbers", "payout": "1:1",
            "example": "All red numbers win"},
    "black": {"description": "Bet on black numbers", "payout": "1:1",
              "example": "All black numbers win"},
    "odd": {"description": "Bet on odd numbers (1-35)", "payout": "1:1",
            "example": "1, 3, 5, 7, etc."},
    "even": {"description": "Bet on even numbers (2-36)", "payout": "1:1",
             "example": "2, 4, 6, 8, etc."},
    "low": {"description": "Bet on low numbers (1-18)", "payout": "1:1",
            "example": "Numbers 1 through 18"},
    "high": {"description": "Bet on high numbers (19-36)", "payout": "1:1",
             "example": "Numbers 19 through 36"},
    "dozen": {"description": "Bet on dozens (1st: 1-12, 2nd: 13-24, 3rd: 25-36)",
              "payout": "2:1", "example": "Bet on 1st dozen (1-12)"},
    "column": {"description": "Bet on columns (1st, 2nd, or 3rd column)", "payout": "2:1",
               "example": "Bet on 1st column"},
}


def color_of(number: int) -> str:
    if number == 0:
        return "green"
    if number in RED_NUMBERS:
        return "red"
    if number in BLACK_NUMBERS:
        return "black"
    raise ValueError(f"Not a roulette number: {number}")


def is_winning_bet(bet_type: str, bet_value, winning_number: int) -> bool:
    """Whether a bet of `bet_type`/`bet_value` wins on `winning_number`."""
    if bet_type == "number":
        return int(bet_value) == winning_number

    # Zero loses every outside bet, dozen and column included
    if winning_number == 0:
        return False

    if bet_type == "red":
        return winning_number in RED_NUMBERS
    if bet_type == "black":
        return winning_number in BLACK_NUMBERS
    if bet_type == "odd":
        return winning_number % 2 == 1
    if bet_type == "even":
        return winning_number % 2 == 0
    if bet_type == "low":
        return 1 <= winning_number <= 18
    if bet_type == "high":
        return 19 <= winning_number <= 36
    if bet_type == "dozen":
        dozen = int(bet_value)
        return 12 * (dozen - 1) + 1 <= winning_number <= 12 * dozen
    if bet_type == "column":
        # Column 1 = 1, 4, ..., 34; column 3 = 3, 6, ..., 36
        return winning_number % 3 == int(bet_value) % 3
    return False


def multiplier_for(bet_type: str, bet_value, winning_number: int) -> int:
    if not is_winning_bet(bet_type, bet_value, winning_number):
        return 0
    return PAYOUT_MULTIPLIERS[bet_type]


class RouletteEngine(BaseGameEngine):
    game_type = "roulette"
    display_name = "Roulette"

    def generate_outcome(self, bet, rng) -> RouletteOutcome:
        winning_number = rng.randint(0, 36)
        return RouletteOutcome(
            winning_number=winning_number,
            color=color_of(winning_number),
            bet_type=bet.bet_type,
            bet_value=bet.bet_value,
            multiplier=multiplier_for(bet.bet_type, bet.bet_value, winning_number),
        )

    def compute_payout(self, bet, outcome) -> float:
        mult = multiplier_for(bet.bet_type, bet.bet_value, outcome_field(outcome, "winning_number"))
        return bet.amount * mult if mult else 0

    def returned_multiple(self, bet, outcome) -> float:
        mult = multiplier_for(bet.bet_type, bet.bet_value, outcome_field(outcome, "winning_number"))
        return mult + 1 if mult else 0.0

    def winning_numbers(self, bet_type: str, bet_value) -> list:
        return [n for n in POCKETS if is_winning_bet(bet_type, bet_value, n)]

    def compute_rtp(self, bet=None) -> float:
        """Exact return per unit staked: P(win) x (winnings + stake)."""
        bet = bet or self.sample_bet()
        hits = len(self.winning_numbers(bet.bet_type, bet.bet_value))
        return float(Fraction(hits, 37) * (PAYOUT_MULTIPLIERS[bet.bet_type] + 1))

    def sample_bet(self, bet_type: str = "red", bet_value=None, amount: float = 1,
                   user_id: str = "simulation", **kw) -> RouletteBet:
        if bet_value is None:
            bet_value = {"number": 17, "dozen": 1, "column": 1}.get(bet_type, bet_type)
        return RouletteBet(user_id=user_id, amount=amount,
                           bet_type=bet_type, bet_value=bet_value)

    def rtp_table(self) -> dict:
        """Exact RTP for a representative bet of every type."""
        return {bt: round(self.compute_rtp(self.sample_bet(bt)), 6) for bt in PAYOUT_MULTIPLIERS}

    @staticmethod
    def get_bet_types() -> dict:
        return {k: dict(v) for k, v in BET_TYPES.items()}

    @staticmethod
    def get_wheel_layout() -> list:
        return [{"number": n, "color": color_of(n)} for n in POCKETS]

    def get_metadata(self) -> dict:
        return {
            **super().get_metadata(),
            "pockets": len(POCKETS),
            "wheel": "european",
            "bet_types": list(PAYOUT_MULTIPLIERS),
        }
