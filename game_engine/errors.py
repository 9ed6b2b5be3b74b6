"""Error types raised by the game engine."""

INVALID_BET = "Invalid bet"
INVALID_ACTION = "Invalid action"


class GameEngineError(Exception):
    """Base class for engine errors.

    `str(err)` is always the public reason; `detail` holds the internal
    reason, which is logged but never returned to callers.
    """
    public_reason = "Game error"

    def __init__(self, detail: str = ""):
        super().__init__(self.public_reason)
        self.detail = detail


class InvalidBet(GameEngineError, ValueError):
    """A bet failed a precondition (amount, enum, game-type mismatch, missing field)."""
    public_reason = INVALID_BET


class IllegalStateTransition(GameEngineError):
    """A blackjack action that the current hand state does not allow."""
    public_reason = INVALID_ACTION
