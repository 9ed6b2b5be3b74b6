#!/usr/bin/env python3
"""
Tests for randomness sources and the blackjack session store

Validates:
1.  randint stays inside inclusive bounds and rejects reversed bounds
2.  SeededRandomSource is reproducible
3.  ProvablyFairSource draws verify after the server seed is revealed; audit can drain the log
4.  The same seeds replay the same roulette spin
5.  BlackjackSessionStore ownership, expiry and purge
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from game_engine import BlackjackSessionStore, GameEngine, get_game_engine
from game_engine.models import BlackjackBet, Phase, RouletteBet
from game_engine.rng import (
    ProvablyFairSource, SeededRandomSource, SystemRandomSource, derive_hash,
    hash_server_seed, hash_to_float, verify_round, verify_server_seed,
)


# ============================================================
# Sources
# ============================================================

def test_randint_bounds():
    rng = SeededRandomSource(0)
    values = {rng.randint(3, 7) for _ in range(500)}
    assert values == {3, 4, 5, 6, 7}
    assert rng.randint(4, 4) == 4
    with pytest.raises(ValueError):
        rng.randint(5, 1)


def test_bit_and_system_source():
    rng = SystemRandomSource()
    assert {rng.bit() for _ in range(200)} == {0, 1}
    assert all(0 <= rng.random() < 1 for _ in range(100))


def test_seeded_source_is_reproducible():
    a, b = SeededRandomSource(99), SeededRandomSource(99)
    assert [a.random() for _ in range(10)] == [b.random() for _ in range(10)]


# ============================================================
# Provably fair
# ============================================================

def test_provably_fair_draws_verify():
    rng = ProvablyFairSource(server_seed="server", client_seed="client")
    commitment = rng.server_seed_hash
    values = [rng.random() for _ in range(5)]

    assert rng.nonce == 5
    assert verify_server_seed("server", commitment)
    assert not verify_server_seed("other", commitment)
    for nonce, draw in enumerate(rng.draws):
        assert draw.nonce == nonce
        assert verify_round("server", "client", nonce, draw.combined_hash)
        assert draw.value == values[nonce]
        assert 0 <= draw.value < 1
    assert not verify_round("server", "client", 0, rng.draws[1].combined_hash)


def test_audit_reveals_seed_only_on_request():
    rng = ProvablyFairSource.new(client_seed="mine")
    rng.random()
    sealed = rng.audit()
    assert "server_seed" not in sealed
    assert sealed["server_seed_hash"] == hash_server_seed(rng.server_seed)
    assert sealed["next_nonce"] == 1
    assert rng.audit(reveal=True)["server_seed"] == rng.server_seed


def test_audit_drain_hands_off_logged_draws():
    rng = ProvablyFairSource(server_seed="server", client_seed="client")
    for _ in range(51):
        rng.random()
    batch = rng.audit(drain=True)
    assert [d["nonce"] for d in batch["draws"]] == list(range(51))
    assert rng.draws == []

    rng.random()
    later = rng.audit()
    assert later["next_nonce"] == 52
    assert [d["nonce"] for d in later["draws"]] == [51]
    assert verify_round("server", "client", 51, later["draws"][0]["combined_hash"])
    assert len(rng.audit()["draws"]) == 1


def test_roulette_spin_replays_from_seeds():
    bet = RouletteBet(user_id="u1", amount=10, bet_type="red", bet_value="red")
    first = GameEngine(rng=ProvablyFairSource("s3cret", "c1", nonce=7)).play(bet)
    second = GameEngine(rng=ProvablyFairSource("s3cret", "c1", nonce=7)).play(bet)
    assert first.result_data == second.result_data

    expected = min(int(hash_to_float(derive_hash("s3cret", "c1", 7)) * 37), 36)
    assert first.result_data.winning_number == expected


# ============================================================
# Session store
# ============================================================

class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _open_round(user_id="u1", rng_seed=1):
    engine = get_game_engine("blackjack")
    rng = SeededRandomSource(rng_seed)
    while True:
        state = engine.deal(BlackjackBet(user_id=user_id, amount=10), rng)
        if state.phase == Phase.PLAYER_TURN:
            return state


def test_store_save_and_get():
    store = BlackjackSessionStore(ttl_seconds=60)
    state = _open_round()
    store.save(state)
    assert len(store) == 1
    assert store.get(state.game_id, "u1") is state
    assert store.get(state.game_id, "intruder") is None
    assert store.get("missing", "u1") is None


def test_store_drops_resolved_rounds():
    store = BlackjackSessionStore(ttl_seconds=60)
    state = _open_round()
    store.save(state)
    resolved = get_game_engine("blackjack").play_out(state)
    store.save(resolved)
    assert store.get(state.game_id, "u1") is None
    assert len(store) == 0


def test_store_expiry_and_purge():
    state = _open_round()
    clock = FakeClock(state.created_at)
    store = BlackjackSessionStore(ttl_seconds=30, clock=clock)
    store.save(state)
    other = _open_round(rng_seed=2)
    store.save(other)

    clock.now += 10
    assert store.get(state.game_id, "u1") is state
    clock.now += 60
    assert store.get(state.game_id, "u1") is None
    assert store.purge_expired() == 1
    assert len(store) == 0


def test_store_discard():
    store = BlackjackSessionStore()
    state = _open_round()
    store.save(state)
    assert store.discard(state.game_id)
    assert not store.discard(state.game_id)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
