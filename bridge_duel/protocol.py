# bridge_duel/protocol.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Protocol, Union
import enum

from .actions import PlayerAction, action_to_dict, dict_to_action
from .errors import ProtocolError
from .state import GameState, PlayerId, state_from_dict, state_to_dict


class MessageType(enum.Enum):
    ROLE_ASSIGNED = "role_assigned"
    GAME_ACTION = "game_action"
    SYNC_STATE = "sync_state"
    SYNC_REQUEST = "sync_request"
    # Relay notifications
    PLAYER_CONNECTED = "player_connected"
    PLAYER_DISCONNECTED = "player_disconnected"
    ERROR_MESSAGE = "error_message"


_PAYLOAD_REQUIRED = {
    MessageType.ROLE_ASSIGNED,
    MessageType.GAME_ACTION,
    MessageType.SYNC_STATE,
    MessageType.ERROR_MESSAGE,
}


@dataclass(frozen=True)
class Message:
    type: MessageType
    payload: Any = None

    def role(self) -> PlayerId:
        try:
            return PlayerId(self.payload)
        except ValueError as exc:
            raise ProtocolError(f"Unknown role {self.payload!r}") from exc

    def action(self) -> PlayerAction:
        if not isinstance(self.payload, dict):
            raise ProtocolError("game_action payload must be an object")
        return dict_to_action(self.payload)

    def state(self) -> GameState:
        if not isinstance(self.payload, dict):
            raise ProtocolError("sync_state payload must be an object")
        return state_from_dict(self.payload)


def role_assigned(role: PlayerId) -> Message:
    return Message(MessageType.ROLE_ASSIGNED, role.value)


def game_action(action: PlayerAction) -> Message:
    return Message(MessageType.GAME_ACTION, action_to_dict(action))


def sync_state(state: GameState) -> Message:
    return Message(MessageType.SYNC_STATE, state_to_dict(state))


def sync_request() -> Message:
    return Message(MessageType.SYNC_REQUEST)


def player_connected() -> Message:
    return Message(MessageType.PLAYER_CONNECTED)


def player_disconnected() -> Message:
    return Message(MessageType.PLAYER_DISCONNECTED)


def error_message(text: str) -> Message:
    return Message(MessageType.ERROR_MESSAGE, text)


def message_to_dict(message: Message) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": message.type.value}
    if message.payload is not None:
        data["payload"] = message.payload
    return data


def dict_to_message(data: Dict[str, Any]) -> Message:
    if not isinstance(data, dict):
        raise ProtocolError(f"Message must be an object, got {type(data).__name__}")
    try:
        msg_type = MessageType(data["type"])
    except (KeyError, ValueError) as exc:
        raise ProtocolError(f"Unknown message type in {data!r}") from exc
    payload = data.get("payload")
    if msg_type in _PAYLOAD_REQUIRED and payload is None:
        raise ProtocolError(f"{msg_type.value} message requires a payload")
    return Message(msg_type, payload)


def encode_message(message: Message) -> str:
    return json.dumps(message_to_dict(message), separators=(",", ":"))


def decode_message(raw: Union[str, bytes, Dict[str, Any]]) -> Message:
    """Accept a JSON text frame or an already-parsed dict."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors.
        except ValueError as exc:
            raise ProtocolError(f"Message is not valid JSON: {exc}") from exc
    return dict_to_message(raw)


MessageHandler = Callable[[Message], None]
MembershipHandler = Callable[[], None]


class Channel(Protocol):
    """
    Transport seen by a DuelSession.

    `send` is fire-and-forget to the other member of the room. Inbound
    messages arrive in per-sender order through the `on_message` handler.
    """

    def send(self, room_id: str, message: Message) -> None:
        ...

    def on_message(self, handler: MessageHandler) -> None:
        ...

    def on_peer_joined(self, handler: MembershipHandler) -> None:
        ...

    def on_peer_left(self, handler: MembershipHandler) -> None:
        ...
