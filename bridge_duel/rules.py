# bridge_duel/rules.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .cards import Card, SUIT_SYMBOLS, HAND_SIZE
from .errors import InvariantViolation
from .state import Bid, GameState, NO_TRUMP, PlayerId, TrickPlay

BASE_TRICK_TARGET = 9
TOTAL_TRICKS = HAND_SIZE


@dataclass(frozen=True)
class PlayVerdict:
    valid: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


LEGAL = PlayVerdict(True)


def is_trump_suit(suit: str, trump: Optional[str]) -> bool:
    """True if `suit` is the trump suit of a suit contract (never under NT)."""
    return trump is not None and trump != NO_TRUMP and suit == trump


def is_valid_bid(current_bid: Optional[Bid], new_bid: Bid) -> bool:
    """
    A bid may supersede the outstanding one only if it is strictly higher.

    Ordering is lexicographic on (level, suit rank) with C < D < H < S < NT.
    Any bid is valid when nothing has been bid yet.
    """
    if current_bid is None:
        return True
    return new_bid.order_key > current_bid.order_key


def contract_target(bid: Bid) -> int:
    return BASE_TRICK_TARGET + bid.level


def can_play_card(
    card: Card,
    hand: Sequence[Card],
    state: GameState,
    player: PlayerId,
) -> PlayVerdict:
    """
    Decide whether `player` may play `card` from `hand` into the current trick.

    Rules implemented:
    - Leading: a trump may not be led until trump is broken, unless the hand
      holds nothing but trumps. Under NT any lead is legal.
    - Following: must follow the led suit if the hand holds any card of it;
      otherwise anything (discard or ruff) is legal.

    `player` is accepted so callers can pass the acting seat; turn order is
    enforced by the engine, not here.
    """
    plays = state.current_trick.plays
    trump = state.trump

    if not plays:
        if is_trump_suit(card.suit, trump):
            if state.trump_broken:
                return LEGAL
            has_non_trump = any(c.suit != trump for c in hand)
            if not has_non_trump:
                return LEGAL
            return PlayVerdict(False, "Cannot lead trump until broken.")
        return LEGAL

    if len(plays) >= 2:
        return PlayVerdict(False, "Trick is already complete.")

    led_suit = plays[0].card.suit
    if card.suit == led_suit:
        return LEGAL

    if any(c.suit == led_suit for c in hand):
        return PlayVerdict(
            False, f"Must follow suit ({SUIT_SYMBOLS.get(led_suit, led_suit)})"
        )

    return LEGAL


def legal_cards(hand: Sequence[Card], state: GameState, player: PlayerId) -> List[Card]:
    """Return the cards in `hand` that `can_play_card` accepts, in hand order."""
    return [c for c in hand if can_play_card(c, hand, state, player)]


def winner_of_trick(plays: Sequence[TrickPlay], trump: Optional[str]) -> PlayerId:
    """
    Determine the winner of a completed two-card trick.

    Priority:
    1. Follow card is trump and lead is not: follow wins.
    2. Lead card is trump and follow is not: lead wins.
    3. Same suit (both trump, or the follow followed suit): higher value wins.
    4. Otherwise the lead wins; an off-suit discard never beats it.
    """
    if len(plays) != 2:
        raise InvariantViolation(
            f"Trick must have exactly 2 cards, got {len(plays)}"
        )

    lead, follow = plays[0], plays[1]
    lead_trump = is_trump_suit(lead.card.suit, trump)
    follow_trump = is_trump_suit(follow.card.suit, trump)

    if follow_trump and not lead_trump:
        return follow.player
    if lead_trump and not follow_trump:
        return lead.player
    if lead.card.suit == follow.card.suit:
        return lead.player if lead.card.value > follow.card.value else follow.player
    return lead.player


def is_deal_decided(state: GameState) -> bool:
    """
    True once the outcome of the contract can no longer change.

    The deal stops when the declarer has made the contract, can no longer
    reach it even by winning every remaining trick, or no tricks remain.
    """
    if state.declarer is None:
        raise InvariantViolation("Deal has no declarer")
    remaining = TOTAL_TRICKS - state.tricks_played
    declarer_wins = state.tricks[state.declarer]
    target = state.contract_target
    if declarer_wins >= target:
        return True
    if declarer_wins + remaining < target:
        return True
    return remaining == 0


def contract_succeeded(state: GameState) -> bool:
    if state.declarer is None:
        raise InvariantViolation("Deal has no declarer")
    return state.tricks[state.declarer] >= state.contract_target


def player_won_round(state: GameState, player: PlayerId) -> bool:
    """
    Declarer wins the round by making the contract; the defender wins by
    setting it.
    """
    succeeded = contract_succeeded(state)
    is_declarer = player == state.declarer
    return (is_declarer and succeeded) or (not is_declarer and not succeeded)


def round_winner(state: GameState) -> PlayerId:
    return next(pid for pid in PlayerId if player_won_round(state, pid))
