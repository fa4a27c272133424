# bridge_duel/relay.py
from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional, Tuple

from .protocol import (
    MembershipHandler,
    Message,
    MessageHandler,
    MessageType,
    decode_message,
    encode_message,
    error_message,
    player_connected,
    player_disconnected,
    role_assigned,
)
from .state import PlayerId

logger = logging.getLogger(__name__)

DropFilter = Callable[["RelayEndpoint", Message], bool]


class RelayEndpoint:
    """One client's connection to a LocalRelay; implements the Channel contract."""

    def __init__(self, relay: "LocalRelay", name: Optional[str] = None) -> None:
        self.relay = relay
        self.name = name or f"client-{id(self):x}"
        self.room_id: Optional[str] = None
        self.role: Optional[PlayerId] = None
        self._message_handlers: List[MessageHandler] = []
        self._joined_handlers: List[MembershipHandler] = []
        self._left_handlers: List[MembershipHandler] = []

    # Channel contract

    def send(self, room_id: str, message: Message) -> None:
        self.relay.send(room_id, self, message)

    def on_message(self, handler: MessageHandler) -> None:
        self._message_handlers.append(handler)

    def on_peer_joined(self, handler: MembershipHandler) -> None:
        self._joined_handlers.append(handler)

    def on_peer_left(self, handler: MembershipHandler) -> None:
        self._left_handlers.append(handler)

    # Room membership

    def join(self, room_id: str) -> None:
        self.relay.join(room_id, self)

    def leave(self) -> None:
        if self.room_id is not None:
            self.relay.leave(self.room_id, self)

    def _deliver(self, message: Message) -> None:
        if message.type == MessageType.PLAYER_CONNECTED:
            for handler in list(self._joined_handlers):
                handler()
        elif message.type == MessageType.PLAYER_DISCONNECTED:
            for handler in list(self._left_handlers):
                handler()
        else:
            for handler in list(self._message_handlers):
                handler(message)

    def __repr__(self) -> str:
        return f"RelayEndpoint({self.name!r}, role={self.role})"


@dataclass
class Room:
    host: Optional[RelayEndpoint] = None
    peer: Optional[RelayEndpoint] = None

    def members(self) -> List[RelayEndpoint]:
        return [m for m in (self.host, self.peer) if m is not None]

    def other(self, endpoint: RelayEndpoint) -> Optional[RelayEndpoint]:
        if endpoint is self.host:
            return self.peer
        if endpoint is self.peer:
            return self.host
        return None

    @property
    def is_empty(self) -> bool:
        return self.host is None and self.peer is None


class LocalRelay:
    """
    In-process stand-in for the signalling server.

    Rooms hold at most two members: the first to join is the host, the second
    the peer. Messages are JSON-encoded on send and decoded on delivery, and
    are delivered strictly in FIFO order from a single queue. Without a loop
    the queue is drained synchronously (never re-entrantly); with a loop each
    drain is scheduled with `call_soon`.
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        drop_filter: Optional[DropFilter] = None,
    ) -> None:
        self.loop = loop
        self.drop_filter = drop_filter
        self.rooms: Dict[str, Room] = {}
        self.messages_relayed = 0
        self.messages_dropped = 0
        self._queue: Deque[Tuple[RelayEndpoint, str]] = deque()
        self._draining = False
        self._drain_scheduled = False

    def endpoint(self, name: Optional[str] = None) -> RelayEndpoint:
        return RelayEndpoint(self, name)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def join(self, room_id: str, endpoint: RelayEndpoint) -> Optional[PlayerId]:
        """Admit `endpoint` to `room_id` and return its role (None if full)."""
        room = self.rooms.setdefault(room_id, Room())

        if room.host is None:
            room.host = endpoint
            role = PlayerId.HOST
        elif room.peer is None:
            room.peer = endpoint
            role = PlayerId.PEER
        else:
            logger.info("Room %s is full, rejecting %s", room_id, endpoint.name)
            self._enqueue(endpoint, error_message("Room is full"))
            return None

        endpoint.room_id = room_id
        endpoint.role = role
        logger.info("%s assigned as %s in %s", endpoint.name, role.value, room_id)
        self._enqueue(endpoint, role_assigned(role))

        if room.host is not None and room.peer is not None:
            for member in room.members():
                self._enqueue(member, player_connected())
        return role

    def leave(self, room_id: str, endpoint: RelayEndpoint) -> None:
        room = self.rooms.get(room_id)
        if room is None:
            return
        other = room.other(endpoint)
        if endpoint is room.host:
            room.host = None
        elif endpoint is room.peer:
            room.peer = None
        else:
            return

        endpoint.room_id = None
        endpoint.role = None
        logger.info("%s left %s", endpoint.name, room_id)
        if other is not None:
            self._enqueue(other, player_disconnected())
        if room.is_empty:
            del self.rooms[room_id]
            logger.info("Room %s deleted (empty)", room_id)

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def send(self, room_id: str, sender: RelayEndpoint, message: Message) -> None:
        room = self.rooms.get(room_id)
        target = room.other(sender) if room is not None else None
        if target is None:
            logger.debug("No recipient for %s in %s", message.type.value, room_id)
            return
        if self.drop_filter is not None and self.drop_filter(target, message):
            self.messages_dropped += 1
            logger.debug("Dropped %s to %s", message.type.value, target.name)
            return
        self.messages_relayed += 1
        self._enqueue(target, message)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def _enqueue(self, target: RelayEndpoint, message: Message) -> None:
        self._queue.append((target, encode_message(message)))
        if self.loop is not None:
            if not self._drain_scheduled:
                self._drain_scheduled = True
                self.loop.call_soon(self._drain)
        else:
            self._drain()

    def _drain(self) -> None:
        self._drain_scheduled = False
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                target, raw = self._queue.popleft()
                target._deliver(decode_message(raw))
        finally:
            self._draining = False
