"""
Casino Game Engine — Random Outcome Sources

Every outcome generator draws its randomness from a RandomOutcomeSource that
the caller injects, so tests can script exact sequences and the server can
swap in a provably fair stream without touching game code.

Provably fair scheme:
    Server commits to server_seed_hash = SHA-256(server_seed) before play.
    Client provides client_seed (or one is generated).
    Draw n of a round uses:
        combined = HMAC-SHA256(server_seed, client_seed + ":" + nonce)
        value    = int(combined[:8], 16) / 2**32
    and the nonce advances by one per draw.
    After the session the server seed is revealed and every draw can be
    recomputed with verify_round().

Usage:
    from game_engine.rng import ProvablyFairSource, SeededRandomSource

    rng = ProvablyFairSource.new(client_seed="player-chosen")
    print(rng.server_seed_hash)        # share with the player
    engine = GameEngine(rng=rng)
    ...
    audit = rng.audit(drain=True)      # hand draws off to storage periodically
"""

from __future__ import annotations

import hashlib
import hmac
import os
import random as _random
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class RandomOutcomeSource(ABC):
    """Uniform randomness used by every outcome generator."""

    @abstractmethod
    def random(self) -> float:
        """Return a float uniformly distributed in [0, 1)."""
        ...

    def randint(self, low: int, high: int) -> int:
        """Return an int in [low, high], both inclusive."""
        if low > high:
            raise ValueError(f"randint bounds reversed: {low} > {high}")
        span = high - low + 1
        return min(low + int(self.random() * span), high)

    def bit(self) -> int:
        """Return 0 or 1 with equal probability."""
        return 0 if self.random() < 0.5 else 1


class SystemRandomSource(RandomOutcomeSource):
    """OS-backed CSPRNG. Thread-safe; the default for live play."""

    def __init__(self):
        self._rng = secrets.SystemRandom()

    def random(self) -> float:
        return self._rng.random()


class SeededRandomSource(RandomOutcomeSource):
    """Reproducible Mersenne Twister stream for tests and simulations."""

    def __init__(self, seed: int = 42):
        self.seed = seed
        self._rng = _random.Random(seed)
        self._lock = threading.Lock()

    def random(self) -> float:
        with self._lock:
            return self._rng.random()


# ═══════════════════════════════════════════════════════════════
# Provably fair stream
# ═══════════════════════════════════════════════════════════════

def new_seed(n_bytes: int = 32) -> str:
    """Fresh hex seed from the OS entropy pool."""
    return os.urandom(n_bytes).hex()


def hash_server_seed(server_seed: str) -> str:
    return hashlib.sha256(server_seed.encode()).hexdigest()


def derive_hash(server_seed: str, client_seed: str, nonce: int) -> str:
    """HMAC-SHA256(server_seed, client_seed:nonce) as hex."""
    return hmac.new(
        server_seed.encode(),
        f"{client_seed}:{nonce}".encode(),
        hashlib.sha256,
    ).hexdigest()


def hash_to_float(hex_hash: str, offset: int = 0) -> float:
    """Convert 8 hex characters to a float in [0, 1)."""
    return int(hex_hash[offset:offset + 8], 16) / 0x100000000


def verify_round(server_seed: str, client_seed: str,
                 nonce: int, expected_hash: str) -> bool:
    """Recompute one draw's hash after the server seed is revealed."""
    return hmac.compare_digest(derive_hash(server_seed, client_seed, nonce), expected_hash)


def verify_server_seed(server_seed: str, expected_hash: str) -> bool:
    """Check the revealed seed against the commitment shared before play."""
    return hmac.compare_digest(hash_server_seed(server_seed), expected_hash)


@dataclass
class FairDraw:
    """Audit record for one value taken from a ProvablyFairSource."""
    nonce: int
    combined_hash: str
    value: float

    def to_dict(self) -> dict:
        return {"nonce": self.nonce, "combined_hash": self.combined_hash,
                "value": self.value}


@dataclass
class ProvablyFairSource(RandomOutcomeSource):
    """HMAC-SHA256 seeded stream; every draw can be verified after reveal."""
    server_seed: str
    client_seed: str
    nonce: int = 0
    draws: list = field(default_factory=list)

    def __post_init__(self):
        self._lock = threading.Lock()

    @classmethod
    def new(cls, client_seed: str = None, nonce: int = 0) -> "ProvablyFairSource":
        return cls(server_seed=new_seed(),
                   client_seed=client_seed or new_seed(16),
                   nonce=nonce)

    @property
    def server_seed_hash(self) -> str:
        return hash_server_seed(self.server_seed)

    def random(self) -> float:
        with self._lock:
            combined = derive_hash(self.server_seed, self.client_seed, self.nonce)
            value = hash_to_float(combined)
            self.draws.append(FairDraw(self.nonce, combined, value))
            self.nonce += 1
        return value

    def audit(self, reveal: bool = False, drain: bool = False) -> dict:
        """Commitment plus every draw logged so far.

        The server seed is only included when `reveal` is set, i.e. after
        the session is closed. With `drain` the exported draws are dropped
        from the log, which otherwise grows by one record per draw.
        """
        with self._lock:
            draws = list(self.draws)
            next_nonce = self.nonce
            if drain:
                self.draws.clear()
        log = {
            "server_seed_hash": self.server_seed_hash,
            "client_seed": self.client_seed,
            "next_nonce": next_nonce,
            "draws": [d.to_dict() for d in draws],
            "verification_steps": [
                "1. Check SHA-256(server_seed) == server_seed_hash",
                "2. For each draw: HMAC-SHA256(server_seed, client_seed + ':' + nonce) == combined_hash",
                "3. value = int(combined_hash[:8], 16) / 2**32",
            ],
        }
        if reveal:
            log["server_seed"] = self.server_seed
        return log
