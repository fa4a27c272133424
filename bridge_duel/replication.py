# bridge_duel/replication.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from .actions import PlayerAction
from .engine import ActionResult, GameEngine, Scheduler
from .errors import NotAuthoritativeError, ProtocolError
from .protocol import (
    Channel,
    Message,
    MessageType,
    game_action,
    sync_request,
    sync_state,
)
from .state import GameState, Phase, PlayerId

logger = logging.getLogger(__name__)

AUTHORITATIVE_ROLE = PlayerId.HOST


class DuelSession:
    """
    One peer's side of a two-player game, kept in step with the other side.

    Local moves go through `submit`: they are applied to the local engine
    first and only broadcast if the engine accepts them. Remote moves are
    re-validated against the local engine; a rejection means the two copies
    have diverged, so the session asks the host for a snapshot. The host
    answers snapshot requests, and also pushes a snapshot whenever the
    opponent joins and after every new deal.
    """

    def __init__(
        self,
        channel: Channel,
        room_id: str,
        *,
        role: Optional[PlayerId] = None,
        engine: Optional[GameEngine] = None,
        rng_seed: Optional[int] = None,
        scheduler: Optional[Scheduler] = None,
        trick_pause: Optional[float] = None,
        on_state_change: Optional[Callable[[GameState], None]] = None,
        on_rejected: Optional[Callable[[PlayerAction, str], None]] = None,
    ) -> None:
        self.channel = channel
        self.room_id = room_id
        self.role = role
        if engine is None:
            engine = GameEngine(rng_seed=rng_seed, scheduler=scheduler)
            if trick_pause is not None:
                engine.trick_pause = trick_pause
        self.engine = engine
        self.engine.on_change = self._on_engine_change
        self.on_state_change = on_state_change
        self.on_rejected = on_rejected

        self.opponent_connected = False
        self.last_error: Optional[str] = None
        self.sync_requests_sent = 0
        self.snapshots_sent = 0
        self.snapshots_adopted = 0

        channel.on_message(self.handle_message)
        channel.on_peer_joined(self.handle_peer_joined)
        channel.on_peer_left(self.handle_peer_left)

    @property
    def state(self) -> GameState:
        return self.engine.state

    @property
    def is_authoritative(self) -> bool:
        return self.role == AUTHORITATIVE_ROLE

    @property
    def opponent(self) -> Optional[PlayerId]:
        return self.role.other if self.role is not None else None

    @property
    def parked(self) -> bool:
        """True while the game cannot progress because the opponent is away."""
        return not self.opponent_connected

    # -------------------------------------------------------------------------
    # Local input
    # -------------------------------------------------------------------------

    def submit(self, action: PlayerAction) -> ActionResult:
        """Apply a local move and, if accepted, broadcast it."""
        if self.role is None:
            return self._reject_local(action, "No role assigned yet.")
        if self.parked:
            logger.warning("[%s] %s while opponent is away", self._label, action)
            return self._reject_local(action, "Opponent is not connected.")

        result = self.engine.apply_action(action, self.role)
        if not result.ok:
            return self._reject_local(action, result.reason or "Illegal action.")

        self.channel.send(self.room_id, game_action(action))
        if result.redeal:
            self._redeal()
        return result

    def start_deal(self) -> GameState:
        """Deal a new hand and push it to the opponent. Host only."""
        if not self.is_authoritative:
            raise NotAuthoritativeError(
                role=self.role.value if self.role else "unassigned",
                operation="start_deal",
            )
        state = self.engine.reset_deal()
        self.push_snapshot()
        return state

    def push_snapshot(self) -> None:
        self.snapshots_sent += 1
        self.channel.send(self.room_id, sync_state(self.engine.snapshot()))

    def request_sync(self) -> None:
        self.sync_requests_sent += 1
        self.channel.send(self.room_id, sync_request())

    # -------------------------------------------------------------------------
    # Channel callbacks
    # -------------------------------------------------------------------------

    def handle_message(self, message: Message) -> None:
        logger.debug("[%s] received %s", self._label, message.type.value)
        try:
            if message.type == MessageType.ROLE_ASSIGNED:
                self._handle_role_assigned(message.role())
            elif message.type == MessageType.GAME_ACTION:
                self._handle_remote_action(message.action())
            elif message.type == MessageType.SYNC_STATE:
                self._adopt_snapshot(message.state())
            elif message.type == MessageType.SYNC_REQUEST:
                self._handle_sync_request()
            elif message.type == MessageType.ERROR_MESSAGE:
                self.last_error = str(message.payload)
                logger.warning("[%s] relay error: %s", self._label, self.last_error)
            else:
                logger.warning(
                    "[%s] ignoring unexpected %s", self._label, message.type.value
                )
        except ProtocolError as exc:
            logger.warning("[%s] dropping malformed message: %s", self._label, exc)

    def handle_peer_joined(self) -> None:
        logger.info("[%s] opponent connected", self._label)
        self.opponent_connected = True
        self.engine.resume_pending_trick()
        if self.is_authoritative:
            if self.state.phase == Phase.LOBBY:
                self.engine.reset_deal()
            self.push_snapshot()

    def handle_peer_left(self) -> None:
        logger.info("[%s] opponent disconnected; parking game", self._label)
        self.opponent_connected = False
        self.engine.cancel_pending_trick()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _handle_role_assigned(self, role: PlayerId) -> None:
        logger.info("[%s] role assigned: %s", self._label, role.value)
        self.role = role
        if self.is_authoritative and self.state.phase == Phase.LOBBY:
            self.engine.reset_deal()

    def _handle_remote_action(self, action: PlayerAction) -> None:
        if self.role is None:
            logger.warning("[%s] action before role assignment: %s", self._label, action)
            return
        actor = self.role.other
        result = self.engine.apply_action(action, actor)
        if not result.ok:
            logger.warning(
                "[%s] remote %s by %s rejected (%s); re-syncing",
                self._label,
                action,
                actor.value,
                result.reason,
            )
            # The host is the baseline, so it pushes instead of asking.
            if self.is_authoritative:
                self.push_snapshot()
            else:
                self.request_sync()
            return
        if result.redeal:
            self._redeal()

    def _handle_sync_request(self) -> None:
        if not self.is_authoritative:
            logger.info("[%s] ignoring sync request; not authoritative", self._label)
            return
        self.push_snapshot()

    def _adopt_snapshot(self, state: GameState) -> None:
        self.engine.load_state(state)
        self.snapshots_adopted += 1
        self.opponent_connected = True
        logger.debug("[%s] adopted snapshot in %s", self._label, state.phase.value)

    def _redeal(self) -> None:
        # The other side waits for the snapshot that follows the new deal.
        if self.is_authoritative:
            self.start_deal()

    def _reject_local(self, action: PlayerAction, reason: str) -> ActionResult:
        logger.debug("[%s] local %s rejected: %s", self._label, action, reason)
        if self.on_rejected is not None:
            self.on_rejected(action, reason)
        return ActionResult.reject(self.engine.state, reason)

    def _on_engine_change(self, state: GameState) -> None:
        if self.on_state_change is not None:
            self.on_state_change(state)

    @property
    def _label(self) -> str:
        return self.role.value if self.role is not None else "unassigned"
