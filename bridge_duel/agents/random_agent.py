# bridge_duel/agents/random_agent.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import random

from ..rules import is_valid_bid
from ..state import BID_SUITS, Bid, PlayerId, dict_to_bid
from .base import DuelAgent

DEFAULT_MAX_LEVEL = 5


def candidate_bids(
    observation: Dict[str, Any], max_level: int = DEFAULT_MAX_LEVEL
) -> List[Bid]:
    """Every bid up to `max_level` that beats the current bid, lowest first."""
    player = PlayerId(observation["player"])
    current = observation.get("current_bid")
    current_bid = dict_to_bid(current) if current else None
    return [
        bid
        for bid in (
            Bid(level, suit, player)
            for level in range(1, max_level + 1)
            for suit in BID_SUITS
        )
        if is_valid_bid(current_bid, bid)
    ]


@dataclass
class RandomDuelAgent(DuelAgent):
    """
    A baseline agent:

    - choose_bid: with probability `bid_probability`, one of the two lowest
      bids that beat the current one; otherwise pass.
    - choose_card: pick uniformly among legal cards.
    """

    rng: random.Random
    bid_probability: float = 0.4
    max_level: int = DEFAULT_MAX_LEVEL

    def choose_bid(self, observation: Dict[str, Any]) -> Optional[Bid]:
        options = candidate_bids(observation, self.max_level)
        if not options or self.rng.random() >= self.bid_probability:
            return None
        return self.rng.choice(options[:2])

    def choose_card(self, observation: Dict[str, Any]) -> str:
        return self.rng.choice(observation["legal_card_ids"])
