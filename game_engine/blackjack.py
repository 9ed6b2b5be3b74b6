"""
Casino Game Engine — Blackjack

A round is an explicit BlackjackState moved along by apply_action(), which is
pure: it validates the action, copies the state and returns the next one.
Storage between actions belongs to the caller (see game_engine.sessions).

Phases:
    player_turn  ->  dealer_turn  ->  resolved
A natural on either side at the deal goes straight to resolved.

Payouts are total return per hand: blackjack 2.5x, win 2x, push 1x, loss 0.
"""

import logging
import uuid

from config.settings import BlackjackRules
from game_engine.base import BaseGameEngine, outcome_field
from game_engine.errors import IllegalStateTransition
from game_engine.models import (
    BlackjackAction, BlackjackBet, BlackjackOutcome, BlackjackResult,
    BlackjackState, Card, HandStatus, Phase,
)
from game_engine.rng import SeededRandomSource
from game_engine.validators import validate_action

logger = logging.getLogger("casino.blackjack")

SUITS = ("hearts", "diamonds", "clubs", "spades")
RANKS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")

PAYOUT_MULTIPLIERS = {
    BlackjackResult.BLACKJACK: 2.5,
    BlackjackResult.PLAYER_WIN: 2,
    BlackjackResult.PUSH: 1,
    BlackjackResult.DEALER_WIN: 0,
    BlackjackResult.BUST: 0,
}


# ── Cards and hands ───────────────────────────────────────────

def card_value(card: Card) -> int:
    if card.rank == "A":
        return 11
    if card.rank in ("J", "Q", "K"):
        return 10
    return int(card.rank)


def _total_and_soft_aces(hand) -> tuple:
    total = sum(card_value(c) for c in hand)
    aces = sum(1 for c in hand if c.rank == "A")
    while total > 21 and aces:
        total -= 10
        aces -= 1
    return total, aces


def hand_value(hand) -> int:
    """Best total: aces count 11, dropping to 1 while the hand is over 21."""
    return _total_and_soft_aces(hand)[0]


def is_soft(hand) -> bool:
    """True while an ace is still counted as 11."""
    total, aces = _total_and_soft_aces(hand)
    return aces > 0 and total <= 21


def is_natural(hand) -> bool:
    return len(hand) == 2 and hand_value(hand) == 21


def can_split_hand(hand) -> bool:
    return len(hand) == 2 and card_value(hand[0]) == card_value(hand[1])


def create_shuffled_deck(rng, decks: int = 1) -> list:
    """`decks` standard 52-card decks, Fisher-Yates shuffled with `rng`."""
    deck = [Card(suit=s, rank=r) for _ in range(decks) for s in SUITS for r in RANKS]
    for i in range(len(deck) - 1, 0, -1):
        j = rng.randint(0, i)
        deck[i], deck[j] = deck[j], deck[i]
    return deck


def dealer_should_hit(hand) -> bool:
    value = hand_value(hand)
    if value < BlackjackRules.DEALER_STAND_VALUE:
        return True
    return (value == BlackjackRules.DEALER_STAND_VALUE
            and BlackjackRules.DEALER_HITS_SOFT_17
            and is_soft(hand))


def hand_result(hand, status: HandStatus, dealer_hand) -> BlackjackResult:
    """Result of one finished player hand against the dealer's final hand."""
    dealer_value = hand_value(dealer_hand)
    if status == HandStatus.BUST or hand_value(hand) > 21:
        return BlackjackResult.BUST
    if status == HandStatus.BLACKJACK and not is_natural(dealer_hand):
        return BlackjackResult.BLACKJACK
    if dealer_value > 21:
        return BlackjackResult.PLAYER_WIN
    value = hand_value(hand)
    if value > dealer_value:
        return BlackjackResult.PLAYER_WIN
    if value == dealer_value:
        return BlackjackResult.PUSH
    return BlackjackResult.DEALER_WIN


def headline_result(results: list) -> BlackjackResult:
    """Collapse per-hand results into the single result shown for the round."""
    if BlackjackResult.BLACKJACK in results:
        return BlackjackResult.BLACKJACK
    if BlackjackResult.PLAYER_WIN in results:
        return BlackjackResult.PLAYER_WIN
    if BlackjackResult.PUSH in results:
        return BlackjackResult.PUSH
    if results and results[0] == BlackjackResult.BUST:
        return BlackjackResult.BUST
    return BlackjackResult.DEALER_WIN


def _copy_state(state: BlackjackState) -> BlackjackState:
    # Cards are frozen; only the containers need fresh copies.
    return state.model_copy(update={
        "deck": list(state.deck),
        "player_hands": [list(hand) for hand in state.player_hands],
        "hand_bets": list(state.hand_bets),
        "hand_statuses": list(state.hand_statuses),
        "can_double": list(state.can_double),
        "dealer_hand": list(state.dealer_hand),
    })


def _draw(state: BlackjackState) -> Card:
    if not state.deck:
        raise RuntimeError(f"Shoe exhausted in game {state.game_id}")
    return state.deck.pop()


# ── Engine ────────────────────────────────────────────────────

class BlackjackEngine(BaseGameEngine):
    game_type = "blackjack"
    display_name = "Blackjack"

    # Simple strategy used for simulations: draw below this total
    SIM_STAND_ON = 17

    def __init__(self):
        self._rtp_cache = {}

    # ── Round lifecycle ───────────────────────────────────────

    def deal(self, bet, rng) -> BlackjackState:
        """Shuffle a shoe and deal a new round."""
        deck = create_shuffled_deck(rng, BlackjackRules.DECK_COUNT)
        player = [deck.pop(), deck.pop()]
        dealer = [deck.pop(), deck.pop()]
        state = BlackjackState(
            game_id=f"blackjack-{uuid.uuid4().hex}",
            user_id=bet.user_id,
            bet_amount=bet.amount,
            deck=deck,
            player_hands=[player],
            hand_bets=[bet.amount],
            hand_statuses=[HandStatus.PLAYING],
            can_double=[True],
            dealer_hand=dealer,
        )
        logger.debug(f"Dealt {state.game_id}: player {[str(c) for c in player]}, "
                     f"dealer up {dealer[0]}")

        if is_natural(player):
            state.hand_statuses[0] = HandStatus.BLACKJACK
            self._finish(state)
        elif is_natural(dealer):
            state.hand_statuses[0] = HandStatus.STAND
            self._finish(state)
        return state

    def apply_action(self, state: BlackjackState, action, hand_index: int = None) -> BlackjackState:
        """Return the state after `action`; `state` itself is left untouched.

        Raises IllegalStateTransition when the action is not allowed.
        """
        check = validate_action(state, action, hand_index)
        if not check:
            raise IllegalStateTransition(check.detail)
        action = BlackjackAction(getattr(action, "value", action))

        new = _copy_state(state)
        idx = new.current_hand_index if hand_index is None else hand_index
        if new.hand_statuses[idx] != HandStatus.PLAYING:
            raise IllegalStateTransition(f"hand {idx} is already {new.hand_statuses[idx].value}")
        hand = new.player_hands[idx]

        if action == BlackjackAction.HIT:
            hand.append(_draw(new))
            new.can_double[idx] = False
            value = hand_value(hand)
            if value > 21:
                new.hand_statuses[idx] = HandStatus.BUST
            elif value == 21:
                new.hand_statuses[idx] = HandStatus.STAND

        elif action == BlackjackAction.STAND:
            new.hand_statuses[idx] = HandStatus.STAND

        elif action == BlackjackAction.DOUBLE:
            if not new.can_double[idx] or len(hand) != 2:
                raise IllegalStateTransition(f"cannot double hand {idx}")
            new.hand_bets[idx] *= 2
            hand.append(_draw(new))
            new.hand_statuses[idx] = HandStatus.BUST if hand_value(hand) > 21 else HandStatus.STAND
            new.can_double[idx] = False

        elif action == BlackjackAction.SPLIT:
            if new.splits_used >= BlackjackRules.MAX_SPLITS or not can_split_hand(hand):
                raise IllegalStateTransition(f"cannot split hand {idx}")
            first, second = hand
            new.player_hands[idx] = [first, _draw(new)]
            new.player_hands.insert(idx + 1, [second, _draw(new)])
            new.hand_bets.insert(idx + 1, new.hand_bets[idx])
            new.hand_statuses.insert(idx + 1, HandStatus.PLAYING)
            new.can_double[idx] = BlackjackRules.DOUBLE_AFTER_SPLIT
            new.can_double.insert(idx + 1, BlackjackRules.DOUBLE_AFTER_SPLIT)
            new.splits_used += 1
            for i in (idx, idx + 1):
                if hand_value(new.player_hands[i]) == 21:
                    new.hand_statuses[i] = HandStatus.STAND

        self._advance(new)
        return new

    def _advance(self, state: BlackjackState):
        for i, status in enumerate(state.hand_statuses):
            if status == HandStatus.PLAYING:
                state.current_hand_index = i
                return
        self._finish(state)

    def _finish(self, state: BlackjackState):
        state.phase = Phase.DEALER_TURN
        while dealer_should_hit(state.dealer_hand):
            state.dealer_hand.append(_draw(state))
        state.phase = Phase.RESOLVED
        logger.debug(f"Resolved {state.game_id}: dealer {hand_value(state.dealer_hand)}, "
                     f"hands {[hand_value(h) for h in state.player_hands]}")

    # ── Settlement ────────────────────────────────────────────

    def hand_results(self, state: BlackjackState) -> list:
        return [hand_result(hand, status, state.dealer_hand)
                for hand, status in zip(state.player_hands, state.hand_statuses)]

    def settle(self, state: BlackjackState) -> float:
        """Total returned across every hand; 0 until the round is resolved."""
        if state.phase != Phase.RESOLVED:
            return 0
        return sum(bet * PAYOUT_MULTIPLIERS[result]
                   for bet, result in zip(state.hand_bets, self.hand_results(state)))

    def to_outcome(self, state: BlackjackState) -> BlackjackOutcome:
        """Public view of a round; the dealer's hole card stays hidden until resolved."""
        resolved = state.phase == Phase.RESOLVED
        dealer = list(state.dealer_hand) if resolved else state.dealer_hand[:1]
        return BlackjackOutcome(
            player_hand=state.player_hands[0],
            dealer_hand=dealer,
            player_value=hand_value(state.player_hands[state.current_hand_index]),
            dealer_value=hand_value(dealer),
            result=headline_result(self.hand_results(state)) if resolved else None,
            phase=state.phase,
            hands=state.player_hands,
            hand_statuses=state.hand_statuses,
            hand_bets=state.hand_bets,
        )

    # ── BaseGameEngine contract ───────────────────────────────

    def play_out(self, state: BlackjackState) -> BlackjackState:
        """Finish a round with the simulation strategy."""
        while state.phase == Phase.PLAYER_TURN:
            hand = state.player_hands[state.current_hand_index]
            action = "hit" if hand_value(hand) < self.SIM_STAND_ON else "stand"
            state = self.apply_action(state, action)
        return state

    def generate_outcome(self, bet, rng) -> BlackjackOutcome:
        """Deal and auto-play a full round. Live play uses deal()/apply_action()."""
        return self.to_outcome(self.play_out(self.deal(bet, rng)))

    def compute_payout(self, bet, outcome) -> float:
        if outcome_field(outcome, "result") is None:
            return 0
        dealer = outcome_field(outcome, "dealer_hand")
        hands = outcome_field(outcome, "hands") or [outcome_field(outcome, "player_hand")]
        statuses = outcome_field(outcome, "hand_statuses") or [HandStatus.STAND] * len(hands)
        bets = outcome_field(outcome, "hand_bets") or [bet.amount] * len(hands)

        def _cards(cards):
            return [c if isinstance(c, Card) else Card(**c) for c in cards]

        dealer = _cards(dealer)
        total = 0
        for hand, status, stake in zip(hands, statuses, bets):
            result = hand_result(_cards(hand), HandStatus(status), dealer)
            total += stake * PAYOUT_MULTIPLIERS[result]
        return total

    def compute_rtp(self, bet=None, rounds: int = 20_000, seed: int = 7) -> float:
        """Estimated return per unit staked under the simulation strategy.

        Blackjack has no closed form here; the estimate is deterministic for
        a given (rounds, seed) and cached.
        """
        key = (rounds, seed)
        if key not in self._rtp_cache:
            rng = SeededRandomSource(seed)
            bet = bet or self.sample_bet()
            returned = sum(self.simulate_round(bet, rng) for _ in range(rounds))
            self._rtp_cache[key] = returned / rounds
        return self._rtp_cache[key]

    def sample_bet(self, amount: float = 1, user_id: str = "simulation", **kw) -> BlackjackBet:
        return BlackjackBet(user_id=user_id, amount=amount)

    def get_game_info(self) -> dict:
        return {
            "name": "Blackjack",
            "description": "Classic blackjack: get as close to 21 as possible without going over.",
            "rules": {
                "decks": BlackjackRules.DECK_COUNT,
                "dealer_hits_soft_17": BlackjackRules.DEALER_HITS_SOFT_17,
                "blackjack_pays": BlackjackRules.BLACKJACK_PAYS,
                "double_after_split": BlackjackRules.DOUBLE_AFTER_SPLIT,
                "max_splits": BlackjackRules.MAX_SPLITS,
            },
            "actions": [a.value for a in BlackjackAction],
            "payouts": {r.value: m for r, m in PAYOUT_MULTIPLIERS.items()},
        }

    def get_metadata(self) -> dict:
        return {**super().get_metadata(), **self.get_game_info()}
