#!/usr/bin/env python3
"""
Tests for blackjack

Validates:
1.  Hand values with soft and hard aces
2.  Dealer hits soft 17, stands on hard 17
3.  Shuffled shoe is a permutation of full decks
4.  Push returns exactly the wager
5.  apply_action never mutates its input
6.  Hit, stand, double and split transitions; doubles may exceed the table limit
7.  Resolved rounds are terminal
8.  Naturals at the deal
9.  Engine play/act round trip and stored-result payouts
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import BetLimits
from game_engine import GameEngine, get_game_engine
from game_engine.blackjack import (
    can_split_hand, create_shuffled_deck, dealer_should_hit, hand_value, is_soft,
)
from game_engine.errors import IllegalStateTransition
from game_engine.models import (
    BlackjackBet, BlackjackResult, BlackjackState, Card, HandStatus, Phase,
)
from game_engine.rng import SeededRandomSource


def c(rank: str, suit: str = "spades") -> Card:
    return Card(suit=suit, rank=rank)


def hand(*ranks):
    return [c(r) for r in ranks]


def make_state(player, dealer, deck=(), amount=10) -> BlackjackState:
    """Open round; the next card drawn is the LAST element of `deck`."""
    return BlackjackState(
        game_id="blackjack-test", user_id="u1", bet_amount=amount,
        deck=list(deck), player_hands=[list(player)], hand_bets=[amount],
        hand_statuses=[HandStatus.PLAYING], can_double=[True], dealer_hand=list(dealer),
    )


@pytest.fixture
def engine():
    return get_game_engine("blackjack")


# ============================================================
# Hands
# ============================================================

def test_hand_values():
    assert hand_value(hand("A", "K")) == 21
    assert hand_value(hand("A", "A", "9")) == 21
    assert hand_value(hand("A", "K", "5")) == 16
    assert hand_value(hand("K", "Q", "5")) == 25
    assert hand_value(hand("7", "J")) == 17


def test_soft_hands():
    assert is_soft(hand("A", "6"))
    assert not is_soft(hand("A", "6", "K"))
    assert not is_soft(hand("10", "7"))


def test_dealer_hits_soft_17_only():
    assert dealer_should_hit(hand("A", "6"))
    assert not dealer_should_hit(hand("10", "7"))
    assert dealer_should_hit(hand("10", "6"))
    assert not dealer_should_hit(hand("A", "7"))


def test_split_requires_equal_values():
    assert can_split_hand(hand("8", "8"))
    assert can_split_hand(hand("K", "10"))
    assert not can_split_hand(hand("8", "9"))
    assert not can_split_hand(hand("8", "8", "2"))


def test_shuffled_shoe_is_full_permutation():
    deck = create_shuffled_deck(SeededRandomSource(1))
    assert len(deck) == 52
    assert len({(card.suit, card.rank) for card in deck}) == 52
    assert len(create_shuffled_deck(SeededRandomSource(1), decks=2)) == 104
    assert deck == create_shuffled_deck(SeededRandomSource(1))


# ============================================================
# Transitions
# ============================================================

def test_push_pays_exactly_the_wager(engine):
    state = engine.apply_action(make_state(hand("K", "7"), hand("Q", "7"), amount=40), "stand")
    assert state.phase == Phase.RESOLVED
    assert engine.hand_results(state) == [BlackjackResult.PUSH]
    assert engine.settle(state) == 40


def test_apply_action_is_pure(engine):
    state = make_state(hand("K", "6"), hand("10", "7"), deck=hand("2", "3"))
    before = state.model_dump()
    new = engine.apply_action(state, "hit")
    assert state.model_dump() == before
    assert new is not state
    assert len(new.player_hands[0]) == 3


def test_hit_to_bust_loses(engine):
    state = engine.apply_action(make_state(hand("K", "6"), hand("10", "7"), deck=hand("K")), "hit")
    assert state.hand_statuses == [HandStatus.BUST]
    assert state.phase == Phase.RESOLVED
    assert engine.to_outcome(state).result == BlackjackResult.BUST
    assert engine.settle(state) == 0


def test_hit_to_21_stands_automatically(engine):
    state = engine.apply_action(make_state(hand("K", "6"), hand("10", "7"), deck=hand("5")), "hit")
    assert state.hand_statuses == [HandStatus.STAND]
    assert state.phase == Phase.RESOLVED
    assert engine.settle(state) == 20


def test_hit_below_21_keeps_player_turn(engine):
    state = engine.apply_action(make_state(hand("5", "6"), hand("10", "7"), deck=hand("2")), "hit")
    assert state.phase == Phase.PLAYER_TURN
    assert state.can_double == [False]
    with pytest.raises(IllegalStateTransition):
        engine.apply_action(state, "double")


def test_double_doubles_stake_and_draws_one(engine):
    state = engine.apply_action(make_state(hand("5", "6"), hand("10", "8"), deck=hand("K")), "double")
    assert state.hand_bets == [20]
    assert state.total_bet == 20
    assert len(state.player_hands[0]) == 3
    assert state.phase == Phase.RESOLVED
    assert engine.settle(state) == 40


def test_double_on_max_bet_exceeds_table_limit(engine):
    # The table limit bounds the opening stake; a double adds to it
    opening = BetLimits.MAX_BET_AMOUNT
    state = make_state(hand("5", "6"), hand("10", "8"), deck=hand("K"), amount=opening)
    state = engine.apply_action(state, "double")
    assert state.total_bet == 2 * opening
    assert engine.settle(state) == 4 * opening


def test_split_plays_two_hands(engine):
    # hand 0 draws the 3, hand 1 draws the 9
    state = make_state(hand("8", "8"), hand("10", "7"), deck=hand("9", "3"))
    state = engine.apply_action(state, "split")
    assert [hand_value(h) for h in state.player_hands] == [11, 17]
    assert state.hand_bets == [10, 10]
    assert state.splits_used == 1
    assert state.current_hand_index == 0

    state = engine.apply_action(state, "stand")
    assert state.phase == Phase.PLAYER_TURN
    assert state.current_hand_index == 1
    state = engine.apply_action(state, "stand", hand_index=1)

    assert state.phase == Phase.RESOLVED
    assert engine.hand_results(state) == [BlackjackResult.DEALER_WIN, BlackjackResult.PUSH]
    assert engine.to_outcome(state).result == BlackjackResult.PUSH
    assert engine.settle(state) == 10


def test_split_not_allowed_on_mixed_pair(engine):
    with pytest.raises(IllegalStateTransition):
        engine.apply_action(make_state(hand("8", "9"), hand("10", "7"), deck=hand("2", "3")), "split")


def test_bad_actions_rejected(engine):
    state = make_state(hand("8", "9"), hand("10", "7"), deck=hand("2"))
    with pytest.raises(IllegalStateTransition):
        engine.apply_action(state, "surrender")
    with pytest.raises(IllegalStateTransition):
        engine.apply_action(state, "hit", hand_index=1)
    with pytest.raises(IllegalStateTransition):
        engine.apply_action(state, "hit", hand_index=-1)


def test_resolved_round_is_terminal(engine):
    state = engine.apply_action(make_state(hand("K", "9"), hand("10", "7")), "stand")
    assert state.phase == Phase.RESOLVED
    for action in ("hit", "stand", "double", "split"):
        with pytest.raises(IllegalStateTransition):
            engine.apply_action(state, action)
    result = GameEngine().act(state, "hit")
    assert not result.success
    assert result.error == "Invalid action"
    assert result.win_amount == 0


def test_dealer_hole_card_hidden_until_resolved(engine):
    state = make_state(hand("5", "6"), hand("10", "7"))
    outcome = engine.to_outcome(state)
    assert outcome.result is None
    assert outcome.dealer_hand == [c("10")]
    assert outcome.dealer_value == 10


# ============================================================
# Deal
# ============================================================

def _rigged(player, dealer, rest=()):
    """Shoe that deals `player` then `dealer` and continues with `rest`."""
    return list(reversed(list(rest))) + [dealer[1], dealer[0], player[1], player[0]]


def test_player_natural_pays_three_to_two():
    deck = _rigged(hand("A", "K"), hand("9", "7"), rest=hand("5"))
    with patch("game_engine.blackjack.create_shuffled_deck", return_value=deck):
        result = GameEngine(rng=SeededRandomSource(1)).play(BlackjackBet(user_id="u1", amount=100))
    assert result.success
    assert result.result_data.phase == Phase.RESOLVED
    assert result.result_data.result == BlackjackResult.BLACKJACK
    assert result.result_data.dealer_value == 21
    assert result.win_amount == 250


def test_both_naturals_push():
    deck = _rigged(hand("A", "K"), hand("Q", "A"))
    with patch("game_engine.blackjack.create_shuffled_deck", return_value=deck):
        result = GameEngine().play(BlackjackBet(user_id="u1", amount=100))
    assert result.result_data.result == BlackjackResult.PUSH
    assert result.win_amount == 100


def test_dealer_natural_resolves_at_deal():
    deck = _rigged(hand("K", "9"), hand("A", "Q"))
    with patch("game_engine.blackjack.create_shuffled_deck", return_value=deck):
        result = GameEngine().play(BlackjackBet(user_id="u1", amount=100))
    assert result.result_data.result == BlackjackResult.DEALER_WIN
    assert result.win_amount == 0


def test_play_then_act_round_trip():
    deck = _rigged(hand("10", "6"), hand("10", "7"), rest=hand("5"))
    engine = GameEngine()
    with patch("game_engine.blackjack.create_shuffled_deck", return_value=deck):
        dealt = engine.play(BlackjackBet(user_id="u1", amount=50))
    assert dealt.success
    assert dealt.win_amount == 0
    assert dealt.game_id == dealt.state.game_id
    assert dealt.result_data.phase == Phase.PLAYER_TURN
    assert dealt.result_data.result is None

    done = engine.act(dealt.state, "hit")
    assert done.success
    assert done.result_data.result == BlackjackResult.PLAYER_WIN
    assert done.win_amount == 100
    assert dealt.state.phase == Phase.PLAYER_TURN


def test_stored_outcome_payout_matches_settlement(engine):
    rng = SeededRandomSource(9)
    for _ in range(200):
        state = engine.play_out(engine.deal(BlackjackBet(user_id="u1", amount=10), rng))
        stored = engine.to_outcome(state).model_dump(mode="json")
        assert engine.compute_payout(BlackjackBet(user_id="u1", amount=10), stored) == engine.settle(state)
        assert GameEngine().validate_outcome("blackjack", stored)


def test_estimated_rtp_is_plausible(engine):
    rtp = engine.compute_rtp(rounds=3000, seed=3)
    assert 0.8 < rtp < 1.1
    assert engine.compute_rtp(rounds=3000, seed=3) == rtp


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
