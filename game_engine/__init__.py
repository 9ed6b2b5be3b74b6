"""
Casino Game Engine

Outcome generation and payout calculation for roulette, blackjack, plinko
and case opening. Every game exposes generate_outcome(), compute_payout(),
compute_rtp() and simulate(); GameEngine wraps them behind play().

Usage:
    from game_engine import GameEngine, get_game_engine
    result = GameEngine().play({"game_type": "roulette", "user_id": "u1",
                                "amount": 100, "bet_type": "red", "bet_value": "red"})
    rtp = get_game_engine("plinko").compute_rtp()
"""

from game_engine.roulette import RouletteEngine
from game_engine.blackjack import BlackjackEngine
from game_engine.plinko import PlinkoEngine
from game_engine.case_opening import CaseOpeningEngine

GAME_ENGINES = {
    "roulette": RouletteEngine,
    "blackjack": BlackjackEngine,
    "plinko": PlinkoEngine,
    "case_opening": CaseOpeningEngine,
}

GAME_TYPES = list(GAME_ENGINES.keys())


def get_game_engine(game_type: str):
    """Get the outcome/payout engine for a game type."""
    cls = GAME_ENGINES.get(str(game_type).lower())
    if cls is None:
        raise ValueError(f"Unknown game type: {game_type}. Available: {GAME_TYPES}")
    return cls()


from game_engine.engine import GameEngine  # noqa: E402
from game_engine.errors import GameEngineError, IllegalStateTransition, InvalidBet  # noqa: E402
from game_engine.rng import (  # noqa: E402
    ProvablyFairSource, RandomOutcomeSource, SeededRandomSource, SystemRandomSource,
)
from game_engine.sessions import BlackjackSessionStore  # noqa: E402

__all__ = [
    "GAME_ENGINES", "GAME_TYPES", "get_game_engine", "GameEngine",
    "GameEngineError", "InvalidBet", "IllegalStateTransition",
    "RandomOutcomeSource", "SystemRandomSource", "SeededRandomSource", "ProvablyFairSource",
    "BlackjackSessionStore",
]
