# bridge_duel/agents/heuristic_agent.py
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import random

from ..cards import Card, dict_to_card
from ..rules import BASE_TRICK_TARGET, is_trump_suit
from ..state import NO_TRUMP, Bid
from .base import DuelAgent
from .random_agent import DEFAULT_MAX_LEVEL, candidate_bids

_HONOR_POINTS = {14: 4, 13: 3, 12: 2, 11: 1}
# A random 19-card hand holds 19/52 of the pack's 40 honor points.
_AVERAGE_HONOR_POINTS = 40 * 19 / 52
_TRICKS_PER_HONOR_POINT = 0.35
_TRICKS_PER_EXTRA_TRUMP = 0.5
_AVERAGE_SUIT_LENGTH = 19 / 4
_BALANCED_MAX_LENGTH = 5


def _hand_cards(observation: Dict[str, Any]) -> List[Card]:
    return [dict_to_card(c) for c in observation["hand"]]


def estimate_tricks(hand: List[Card], trump: Optional[str]) -> float:
    """Rough count of tricks `hand` should take with `trump` as trumps."""
    honors = sum(_HONOR_POINTS.get(c.value, 0) for c in hand)
    expected = 19 / 2 + (honors - _AVERAGE_HONOR_POINTS) * _TRICKS_PER_HONOR_POINT
    if trump is not None and trump != NO_TRUMP:
        trump_length = sum(1 for c in hand if c.suit == trump)
        expected += (trump_length - _AVERAGE_SUIT_LENGTH) * _TRICKS_PER_EXTRA_TRUMP
    return expected


def preferred_strain(hand: List[Card]) -> str:
    """Longest suit (ties broken by honor strength); NT for a flat hand."""
    lengths = Counter(c.suit for c in hand)
    strength = Counter()
    for c in hand:
        strength[c.suit] += _HONOR_POINTS.get(c.value, 0)
    best = max(lengths, key=lambda s: (lengths[s], strength[s]))
    if lengths[best] <= _BALANCED_MAX_LENGTH and len(lengths) == 4:
        return NO_TRUMP
    return best


@dataclass
class HeuristicDuelAgent(DuelAgent):
    """
    A simple card-sense agent:

    - choose_bid: estimate tricks in the preferred strain and make the lowest
      bid in that strain whose target the estimate still covers.
    - choose_card: when following, win as cheaply as possible or throw the
      lowest card; when leading, cash an ace or lead low from the longest
      suit.
    """

    rng: random.Random
    max_level: int = DEFAULT_MAX_LEVEL

    def choose_bid(self, observation: Dict[str, Any]) -> Optional[Bid]:
        hand = _hand_cards(observation)
        strain = preferred_strain(hand)
        affordable = int(estimate_tricks(hand, strain)) - BASE_TRICK_TARGET
        for bid in candidate_bids(observation, self.max_level):
            if bid.suit == strain and bid.level <= affordable:
                return bid
        return None

    def choose_card(self, observation: Dict[str, Any]) -> str:
        legal_ids = set(observation["legal_card_ids"])
        legal = [c for c in _hand_cards(observation) if c.id in legal_ids]
        trump = observation.get("trump")
        plays = observation["current_trick"]["plays"]

        if plays:
            return self._follow(legal, dict_to_card(plays[0]["card"]), trump).id
        return self._lead(legal, trump).id

    def _follow(self, legal: List[Card], lead: Card, trump: Optional[str]) -> Card:
        same_suit = [c for c in legal if c.suit == lead.suit]
        if same_suit:
            winners = [c for c in same_suit if c.value > lead.value]
            if winners:
                return min(winners, key=lambda c: c.value)
            return min(same_suit, key=lambda c: c.value)

        trumps = [c for c in legal if is_trump_suit(c.suit, trump)]
        if trumps and not is_trump_suit(lead.suit, trump):
            return min(trumps, key=lambda c: c.value)
        return self._lowest(legal, trump)

    def _lead(self, legal: List[Card], trump: Optional[str]) -> Card:
        aces = [c for c in legal if c.value == 14]
        if aces:
            return self.rng.choice(aces)
        lengths = Counter(c.suit for c in legal)
        longest = max(lengths.values())
        suits = sorted(s for s, n in lengths.items() if n == longest)
        suit = self.rng.choice(suits)
        return min((c for c in legal if c.suit == suit), key=lambda c: c.value)

    def _lowest(self, legal: List[Card], trump: Optional[str]) -> Card:
        non_trumps = [c for c in legal if not is_trump_suit(c.suit, trump)]
        pool = non_trumps or legal
        return min(pool, key=lambda c: c.value)
