"""In-memory store for open blackjack rounds, keyed by game id."""

import logging
import threading
import time

from config.settings import SessionConfig
from game_engine.models import BlackjackState, Phase

logger = logging.getLogger("casino.sessions")


class BlackjackSessionStore:
    """Thread-safe holder for in-progress BlackjackState objects.

    Resolved rounds are dropped on save. Entries older than `ttl_seconds`
    are treated as missing and removed by purge_expired().
    """

    def __init__(self, ttl_seconds: int = None, clock=time.time):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else SessionConfig.TTL_SECONDS
        self._clock = clock
        self._games = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)

    def _expired(self, state: BlackjackState) -> bool:
        return self._clock() - state.created_at > self.ttl_seconds

    def save(self, state: BlackjackState):
        with self._lock:
            if state.phase == Phase.RESOLVED:
                self._games.pop(state.game_id, None)
            else:
                self._games[state.game_id] = state

    def get(self, game_id: str, user_id: str):
        """The open round, or None if unknown, expired or owned by someone else."""
        with self._lock:
            state = self._games.get(game_id)
            if state is None:
                return None
            if self._expired(state):
                del self._games[game_id]
                logger.info(f"Expired blackjack game {game_id}")
                return None
        if state.user_id != user_id:
            logger.warning(f"User {user_id} asked for game {game_id} owned by {state.user_id}")
            return None
        return state

    def discard(self, game_id: str) -> bool:
        with self._lock:
            return self._games.pop(game_id, None) is not None

    def purge_expired(self) -> int:
        with self._lock:
            stale = [gid for gid, state in self._games.items() if self._expired(state)]
            for gid in stale:
                del self._games[gid]
        if stale:
            logger.info(f"Purged {len(stale)} expired blackjack game(s)")
        return len(stale)
