# bridge_duel/engine.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

from .actions import ActionType, PlayerAction
from .cards import Deck, card_to_dict
from .config import DEFAULT_TRICK_PAUSE
from .errors import InvariantViolation
from .rules import (
    can_play_card,
    contract_target,
    is_deal_decided,
    is_trump_suit,
    is_valid_bid,
    legal_cards,
    round_winner,
    winner_of_trick,
)
from .state import (
    GameState,
    Phase,
    PlayerId,
    Trick,
    TrickPlay,
    bid_to_dict,
    copy_state,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    """
    Outcome of applying one PlayerAction.

    On rejection `state` is the untouched input and `reason` says why. `redeal`
    asks the authoritative side to start a new deal; `trick_complete` means
    the action put the second card on the trick.
    """
    ok: bool
    state: GameState
    reason: Optional[str] = None
    redeal: bool = False
    trick_complete: bool = False

    @classmethod
    def reject(cls, state: GameState, reason: str) -> "ActionResult":
        return cls(ok=False, state=state, reason=reason)


# -----------------------------------------------------------------------------
# Pure transitions
# -----------------------------------------------------------------------------


def initial_state() -> GameState:
    """The LOBBY state produced when a connection is established."""
    return GameState()


def new_deal(previous: GameState, rng: Optional[random.Random] = None) -> GameState:
    """
    Deal a fresh hand. The dealer alternates from `previous`.

    Every container in the returned state is newly built; nothing is shared
    with `previous`.
    """
    deck = Deck()
    deck.shuffle(rng)
    host_hand, peer_hand = deck.deal()

    dealer = previous.dealer.other
    return GameState(
        phase=Phase.BIDDING,
        hands={PlayerId.HOST: host_hand, PlayerId.PEER: peer_hand},
        dealer=dealer,
        turn=dealer,
        current_trick=Trick(leader=dealer),
    )


def apply_action(
    state: GameState,
    action: PlayerAction,
    actor: PlayerId,
) -> ActionResult:
    """
    Apply `action` by `actor` to `state` and return the result.

    `state` is never mutated. Every legality failure comes back as a rejected
    ActionResult rather than an exception.
    """
    if state.phase == Phase.LOBBY:
        return ActionResult.reject(state, "Game has not started.")

    if action.type == ActionType.READY_NEXT:
        return _apply_ready_next(state, actor)

    if actor != state.turn:
        return ActionResult.reject(state, "Not your turn.")

    if action.type == ActionType.BID:
        return _apply_bid(state, action, actor)
    if action.type == ActionType.PASS:
        return _apply_pass(state, actor)
    if action.type == ActionType.PLAY_CARD:
        return _apply_play_card(state, action, actor)

    raise InvariantViolation(f"Unhandled action type {action.type}")


def _bidding_open(state: GameState) -> Optional[str]:
    if state.phase != Phase.BIDDING:
        return "Bidding is over."
    if state.current_bid is None and state.pass_count >= 2:
        return "Both players passed; waiting for a new deal."
    return None


def _apply_bid(state: GameState, action: PlayerAction, actor: PlayerId) -> ActionResult:
    closed = _bidding_open(state)
    if closed:
        return ActionResult.reject(state, closed)

    bid = action.bid
    if bid.bidder != actor:
        return ActionResult.reject(state, "Bid must be made by the acting player.")
    if not is_valid_bid(state.current_bid, bid):
        return ActionResult.reject(
            state, f"Bid {bid} does not beat {state.current_bid}."
        )

    new_state = copy_state(state)
    new_state.current_bid = bid
    new_state.pass_count = 0
    new_state.turn = actor.other
    return ActionResult(ok=True, state=new_state)


def _apply_pass(state: GameState, actor: PlayerId) -> ActionResult:
    closed = _bidding_open(state)
    if closed:
        return ActionResult.reject(state, closed)

    new_state = copy_state(state)
    new_state.pass_count += 1

    bid = new_state.current_bid
    if bid is not None:
        # A pass over a standing bid ends the auction.
        declarer = bid.bidder
        new_state.phase = Phase.PLAYING
        new_state.declarer = declarer
        new_state.trump = bid.suit
        new_state.contract_target = contract_target(bid)
        new_state.turn = declarer
        new_state.current_trick = Trick(leader=declarer)
        logger.info(
            "Contract %s by %s (target %d)",
            bid,
            declarer.value,
            new_state.contract_target,
        )
        return ActionResult(ok=True, state=new_state)

    if new_state.pass_count >= 2:
        logger.info("Both players passed without a bid; deal abandoned")
        return ActionResult(ok=True, state=new_state, redeal=True)

    new_state.turn = actor.other
    return ActionResult(ok=True, state=new_state)


def _apply_play_card(
    state: GameState, action: PlayerAction, actor: PlayerId
) -> ActionResult:
    if state.phase != Phase.PLAYING:
        return ActionResult.reject(state, "Cards can only be played during play.")
    if len(state.current_trick.plays) >= 2:
        return ActionResult.reject(state, "Trick is waiting to be resolved.")

    hand = state.hands[actor]
    card = next((c for c in hand if c.id == action.card_id), None)
    if card is None:
        return ActionResult.reject(state, f"Card {action.card_id} is not in hand.")

    verdict = can_play_card(card, hand, state, actor)
    if not verdict.valid:
        return ActionResult.reject(state, verdict.reason or "Illegal play.")

    new_state = copy_state(state)
    new_state.hands[actor] = [c for c in hand if c.id != card.id]
    new_state.current_trick.plays.append(TrickPlay(actor, card))
    if is_trump_suit(card.suit, new_state.trump):
        new_state.trump_broken = True

    if len(new_state.current_trick.plays) < 2:
        new_state.turn = actor.other
        return ActionResult(ok=True, state=new_state)

    # Turn is assigned by trick resolution, not flipped here.
    return ActionResult(ok=True, state=new_state, trick_complete=True)


def _apply_ready_next(state: GameState, actor: PlayerId) -> ActionResult:
    if state.phase != Phase.GAME_OVER:
        return ActionResult.reject(state, "Deal is not over yet.")
    new_state = copy_state(state)
    new_state.ready_for_next[actor] = True
    both_ready = all(new_state.ready_for_next.values())
    return ActionResult(ok=True, state=new_state, redeal=both_ready)


def resolve_trick(state: GameState) -> GameState:
    """
    Score the completed trick in `state` and return the next state.

    Raises InvariantViolation unless the state is PLAYING with exactly two
    cards on the trick.
    """
    if state.phase != Phase.PLAYING:
        raise InvariantViolation(f"Cannot resolve a trick in {state.phase.value}")

    plays = state.current_trick.plays
    winner = winner_of_trick(plays, state.trump)

    new_state = copy_state(state)
    new_state.tricks[winner] += 1
    new_state.won_cards[winner].extend(play.card for play in plays)
    new_state.turn = winner
    new_state.last_winner = winner
    new_state.current_trick = Trick(leader=winner)

    logger.info(
        "Trick %d won by %s (%s)",
        new_state.tricks_played,
        winner.value,
        ", ".join(f"{p.player.value}:{p.card}" for p in plays),
    )

    if is_deal_decided(new_state):
        new_state.phase = Phase.GAME_OVER
        logger.info(
            "Deal over after %d tricks; declarer %s took %d of %d, %s wins",
            new_state.tricks_played,
            new_state.declarer.value if new_state.declarer else None,
            new_state.tricks[new_state.declarer] if new_state.declarer else 0,
            new_state.contract_target,
            round_winner(new_state).value,
        )
    return new_state


def trick_ready_to_resolve(state: GameState) -> bool:
    return state.phase == Phase.PLAYING and len(state.current_trick.plays) == 2


# -----------------------------------------------------------------------------
# Observations for automated players
# -----------------------------------------------------------------------------


def build_observation(state: GameState, player: PlayerId) -> Dict[str, Any]:
    """JSON-like view of the deal from `player`'s seat."""
    hand = state.hands[player]
    is_my_turn = state.turn == player
    legal = (
        [c.id for c in legal_cards(hand, state, player)]
        if state.phase == Phase.PLAYING and is_my_turn
        and len(state.current_trick.plays) < 2
        else []
    )
    return {
        "phase": state.phase.value,
        "player": player.value,
        "dealer": state.dealer.value,
        "turn": state.turn.value,
        "is_my_turn": is_my_turn,
        "hand": [card_to_dict(c) for c in hand],
        "legal_card_ids": legal,
        "current_bid": (
            bid_to_dict(state.current_bid) if state.current_bid else None
        ),
        "pass_count": state.pass_count,
        "declarer": state.declarer.value if state.declarer else None,
        "trump": state.trump,
        "trump_broken": state.trump_broken,
        "contract_target": state.contract_target,
        "current_trick": {
            "leader": state.current_trick.leader.value,
            "plays": [
                {"player": p.player.value, "card": card_to_dict(p.card)}
                for p in state.current_trick.plays
            ],
        },
        "tricks": {pid.value: state.tricks[pid] for pid in PlayerId},
        "opponent_hand_size": len(state.hands[player.other]),
    }


# -----------------------------------------------------------------------------
# Stateful engine
# -----------------------------------------------------------------------------


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Anything with asyncio's `loop.call_later` signature."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


class GameEngine:
    """
    Owns one peer's copy of the GameState.

    All mutation goes through `apply_action`, `reset_deal`, `load_state` and
    trick resolution. When a scheduler is supplied, a completed trick is
    resolved after `trick_pause` seconds; the callback is keyed by a trick
    sequence number and re-checks the state when it fires, so a reset or an
    adopted snapshot in between turns it into a no-op. Without a scheduler
    the caller resolves with `resolve_pending_trick()`.
    """

    def __init__(
        self,
        state: Optional[GameState] = None,
        *,
        rng: Optional[random.Random] = None,
        rng_seed: Optional[int] = None,
        scheduler: Optional[Scheduler] = None,
        trick_pause: float = DEFAULT_TRICK_PAUSE,
        on_change: Optional[Callable[[GameState], None]] = None,
    ) -> None:
        self._state = copy_state(state) if state is not None else initial_state()
        self.rng = rng if rng is not None else random.Random(rng_seed)
        self.scheduler = scheduler
        self.trick_pause = trick_pause
        self.on_change = on_change

        self._trick_seq = 0
        self._pending_seq: Optional[int] = None
        self._timer: Optional[TimerHandle] = None

    @property
    def state(self) -> GameState:
        return self._state

    def snapshot(self) -> GameState:
        """An independent copy of the current state."""
        return copy_state(self._state)

    @property
    def has_pending_trick(self) -> bool:
        return self._pending_seq is not None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def apply_action(self, action: PlayerAction, actor: PlayerId) -> ActionResult:
        # A resolution that is due but has not fired yet is deterministic, so
        # run it now rather than reject a move that follows it.
        self.flush_pending_trick()

        result = apply_action(self._state, action, actor)
        if not result.ok:
            logger.debug("Rejected %s by %s: %s", action, actor.value, result.reason)
            return result

        logger.debug("Applied %s by %s", action, actor.value)
        self._set_state(result.state)
        if result.trick_complete:
            self._schedule_resolution()
        return result

    def reset_deal(self) -> GameState:
        """Throw away the current deal and deal a new one."""
        self.cancel_pending_trick()
        self._set_state(new_deal(self._state, self.rng))
        logger.info("New deal; dealer is %s", self._state.dealer.value)
        return self._state

    def load_state(self, state: GameState) -> None:
        """Adopt a snapshot verbatim (re-sync)."""
        self.cancel_pending_trick()
        self._set_state(copy_state(state))
        if trick_ready_to_resolve(self._state):
            self._schedule_resolution()

    def resolve_pending_trick(self, seq: Optional[int] = None) -> bool:
        """
        Resolve the pending trick. Returns False (and changes nothing) if the
        trick identified by `seq` is no longer the one waiting.
        """
        if self._pending_seq is None:
            return False
        if seq is not None and seq != self._pending_seq:
            logger.debug("Ignoring stale trick resolution %d", seq)
            return False
        self._pending_seq = None
        self._timer = None
        if not trick_ready_to_resolve(self._state):
            logger.debug("Trick resolution fired but trick is no longer complete")
            return False
        self._set_state(resolve_trick(self._state))
        return True

    def flush_pending_trick(self) -> bool:
        if self._pending_seq is None:
            return False
        if self._timer is not None:
            self._timer.cancel()
        return self.resolve_pending_trick()

    def resume_pending_trick(self) -> bool:
        """Re-arm resolution for a complete trick whose timer was cancelled."""
        if self._pending_seq is not None or not trick_ready_to_resolve(self._state):
            return False
        self._schedule_resolution()
        return True

    def cancel_pending_trick(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending_seq = None
        self._trick_seq += 1

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _schedule_resolution(self) -> None:
        self._trick_seq += 1
        seq = self._trick_seq
        self._pending_seq = seq
        if self.scheduler is not None:
            self._timer = self.scheduler.call_later(
                self.trick_pause, self.resolve_pending_trick, seq
            )

    def _set_state(self, state: GameState) -> None:
        self._state = state
        if self.on_change is not None:
            self.on_change(state)
