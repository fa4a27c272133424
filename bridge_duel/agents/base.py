# bridge_duel/agents/base.py
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..state import Bid


@runtime_checkable
class DuelAgent(Protocol):
    """
    Interface that all automated players must implement.

    `observation` is the JSON-like dict from `engine.build_observation`:
      - phase, seat ("player"), dealer, turn
      - the player's hand and, during play, "legal_card_ids"
      - current bid / contract, trump, trick in progress and trick counts
    """

    def choose_bid(self, observation: Dict[str, Any]) -> Optional[Bid]:
        """Return a Bid that beats the current one, or None to pass."""

        raise NotImplementedError

    def choose_card(self, observation: Dict[str, Any]) -> str:
        """
        Return the id of the card to play.

        Must be one of observation["legal_card_ids"].
        """
        raise NotImplementedError
