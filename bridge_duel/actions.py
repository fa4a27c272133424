# bridge_duel/actions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import enum

from .errors import ProtocolError
from .state import Bid, bid_to_dict, dict_to_bid


class ActionType(enum.Enum):
    BID = "BID"
    PASS = "PASS"
    PLAY_CARD = "PLAY_CARD"
    READY_NEXT = "READY_NEXT"


@dataclass(frozen=True)
class PlayerAction:
    """
    A move made by one player.

    BID carries a Bid, PLAY_CARD carries a card id; PASS and READY_NEXT carry
    nothing. An action missing its payload cannot be constructed.
    """
    type: ActionType
    bid: Optional[Bid] = None
    card_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type == ActionType.BID and self.bid is None:
            raise ValueError("BID action requires a bid")
        if self.type == ActionType.PLAY_CARD and not self.card_id:
            raise ValueError("PLAY_CARD action requires a card id")

    @classmethod
    def make_bid(cls, bid: Bid) -> "PlayerAction":
        return cls(ActionType.BID, bid=bid)

    @classmethod
    def make_pass(cls) -> "PlayerAction":
        return cls(ActionType.PASS)

    @classmethod
    def play_card(cls, card_id: str) -> "PlayerAction":
        return cls(ActionType.PLAY_CARD, card_id=card_id)

    @classmethod
    def ready_next(cls) -> "PlayerAction":
        return cls(ActionType.READY_NEXT)

    def __str__(self) -> str:
        if self.bid is not None:
            return f"{self.type.value}({self.bid})"
        if self.card_id is not None:
            return f"{self.type.value}({self.card_id})"
        return self.type.value


def action_to_dict(action: PlayerAction) -> Dict[str, Any]:
    """Convert to the wire shape {type, payload?: {bid?, cardId?}}."""
    data: Dict[str, Any] = {"type": action.type.value}
    payload: Dict[str, Any] = {}
    if action.bid is not None:
        payload["bid"] = bid_to_dict(action.bid)
    if action.card_id is not None:
        payload["cardId"] = action.card_id
    if payload:
        data["payload"] = payload
    return data


def dict_to_action(data: Dict[str, Any]) -> PlayerAction:
    """Parse the wire shape. Raises ProtocolError on anything malformed."""
    if not isinstance(data, dict):
        raise ProtocolError(f"Player action must be an object, got {data!r}")
    payload = data.get("payload") or {}
    if not isinstance(payload, dict):
        raise ProtocolError(f"Player action payload must be an object, got {payload!r}")
    try:
        action_type = ActionType(data["type"])
        bid = dict_to_bid(payload["bid"]) if payload.get("bid") else None
        return PlayerAction(
            type=action_type,
            bid=bid,
            card_id=payload.get("cardId"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ProtocolError(f"Malformed player action {data!r}: {exc}") from exc
