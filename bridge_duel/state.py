# bridge_duel/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional
import enum

from .cards import Card, card_to_dict, dict_to_card
from .errors import ProtocolError


class PlayerId(enum.Enum):
    HOST = "host"
    PEER = "peer"

    @property
    def other(self) -> "PlayerId":
        return PlayerId.PEER if self is PlayerId.HOST else PlayerId.HOST


class Phase(enum.Enum):
    LOBBY = "LOBBY"
    BIDDING = "BIDDING"
    PLAYING = "PLAYING"
    GAME_OVER = "GAME_OVER"


NO_TRUMP = "NT"
BID_SUITS = ("C", "D", "H", "S", NO_TRUMP)
BID_SUIT_ORDER: Dict[str, int] = {suit: i for i, suit in enumerate(BID_SUITS)}
MIN_BID_LEVEL = 1
MAX_BID_LEVEL = 7


@dataclass(frozen=True)
class Bid:
    level: int
    suit: str
    bidder: PlayerId

    def __post_init__(self) -> None:
        if not MIN_BID_LEVEL <= self.level <= MAX_BID_LEVEL:
            raise ValueError(
                f"Bid level must be between {MIN_BID_LEVEL} and {MAX_BID_LEVEL}"
            )
        if self.suit not in BID_SUIT_ORDER:
            raise ValueError(f"Unknown bid suit {self.suit!r}")

    @property
    def order_key(self) -> tuple[int, int]:
        return (self.level, BID_SUIT_ORDER[self.suit])

    def __str__(self) -> str:
        return f"{self.level}{self.suit}"


class TrickPlay(NamedTuple):
    player: PlayerId
    card: Card


@dataclass
class Trick:
    leader: PlayerId
    # (player, card) pairs in play order; at most two.
    plays: List[TrickPlay] = field(default_factory=list)

    @property
    def led_suit(self) -> Optional[str]:
        return self.plays[0].card.suit if self.plays else None


def _per_player(value_factory) -> Dict[PlayerId, Any]:
    return {pid: value_factory() for pid in PlayerId}


@dataclass
class GameState:
    """
    The replicated aggregate. Each peer holds a full copy.

    Containers are never shared between two GameState instances: use
    `copy_state` rather than `dataclasses.replace` when deriving a new state.
    """
    phase: Phase = Phase.LOBBY
    hands: Dict[PlayerId, List[Card]] = field(
        default_factory=lambda: _per_player(list)
    )
    dealer: PlayerId = PlayerId.HOST
    turn: PlayerId = PlayerId.HOST
    declarer: Optional[PlayerId] = None
    current_bid: Optional[Bid] = None
    pass_count: int = 0
    trump: Optional[str] = None
    contract_target: int = 0
    trump_broken: bool = False
    tricks: Dict[PlayerId, int] = field(default_factory=lambda: _per_player(int))
    won_cards: Dict[PlayerId, List[Card]] = field(
        default_factory=lambda: _per_player(list)
    )
    current_trick: Trick = field(default_factory=lambda: Trick(PlayerId.HOST))
    ready_for_next: Dict[PlayerId, bool] = field(
        default_factory=lambda: _per_player(bool)
    )
    last_winner: Optional[PlayerId] = None

    @property
    def tricks_played(self) -> int:
        return sum(self.tricks.values())

    def all_cards(self) -> List[Card]:
        """Every card currently in play for the deal, in any container."""
        cards: List[Card] = []
        for pid in PlayerId:
            cards.extend(self.hands[pid])
            cards.extend(self.won_cards[pid])
        cards.extend(play.card for play in self.current_trick.plays)
        return cards


def copy_state(state: GameState) -> GameState:
    """Return a copy with freshly built containers (cards are immutable)."""
    return GameState(
        phase=state.phase,
        hands={pid: list(state.hands[pid]) for pid in PlayerId},
        dealer=state.dealer,
        turn=state.turn,
        declarer=state.declarer,
        current_bid=state.current_bid,
        pass_count=state.pass_count,
        trump=state.trump,
        contract_target=state.contract_target,
        trump_broken=state.trump_broken,
        tricks={pid: state.tricks[pid] for pid in PlayerId},
        won_cards={pid: list(state.won_cards[pid]) for pid in PlayerId},
        current_trick=Trick(
            leader=state.current_trick.leader,
            plays=list(state.current_trick.plays),
        ),
        ready_for_next={pid: state.ready_for_next[pid] for pid in PlayerId},
        last_winner=state.last_winner,
    )


# ---------------------------------------------------------------------------
# Snapshot codec (wire format uses the camelCase field names)
# ---------------------------------------------------------------------------


def bid_to_dict(bid: Bid) -> Dict[str, Any]:
    return {"level": bid.level, "suit": bid.suit, "bidder": bid.bidder.value}


def dict_to_bid(data: Dict[str, Any]) -> Bid:
    return Bid(
        level=int(data["level"]),
        suit=str(data["suit"]),
        bidder=PlayerId(data["bidder"]),
    )


def _optional_player(value: Optional[str]) -> Optional[PlayerId]:
    return PlayerId(value) if value is not None else None


def _optional_trump(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in BID_SUIT_ORDER:
        raise ValueError(f"Unknown trump {value!r}")
    return value


def state_to_dict(state: GameState) -> Dict[str, Any]:
    """Convert a GameState to a JSON-serializable snapshot."""
    return {
        "phase": state.phase.value,
        "hands": {
            pid.value: [card_to_dict(c) for c in state.hands[pid]]
            for pid in PlayerId
        },
        "dealer": state.dealer.value,
        "turn": state.turn.value,
        "currentBid": (
            bid_to_dict(state.current_bid)
            if state.current_bid is not None
            else None
        ),
        "passCount": state.pass_count,
        "declarer": state.declarer.value if state.declarer else None,
        "trump": state.trump,
        "contractTarget": state.contract_target,
        "tricks": {pid.value: state.tricks[pid] for pid in PlayerId},
        "wonCards": {
            pid.value: [card_to_dict(c) for c in state.won_cards[pid]]
            for pid in PlayerId
        },
        "currentTrick": {
            "leader": state.current_trick.leader.value,
            "cards": [
                {"player": play.player.value, "card": card_to_dict(play.card)}
                for play in state.current_trick.plays
            ],
        },
        "trumpBroken": state.trump_broken,
        "readyForNext": {
            pid.value: state.ready_for_next[pid] for pid in PlayerId
        },
        "lastWinner": state.last_winner.value if state.last_winner else None,
    }


def state_from_dict(data: Dict[str, Any]) -> GameState:
    """
    Rebuild a GameState from a snapshot dict.

    Raises ProtocolError if the snapshot is missing fields or holds values
    outside the data model.
    """
    try:
        trick = data["currentTrick"]
        current_bid = data.get("currentBid")
        return GameState(
            phase=Phase(data["phase"]),
            hands={
                pid: [dict_to_card(c) for c in data["hands"][pid.value]]
                for pid in PlayerId
            },
            dealer=PlayerId(data["dealer"]),
            turn=PlayerId(data["turn"]),
            declarer=_optional_player(data.get("declarer")),
            current_bid=dict_to_bid(current_bid) if current_bid else None,
            pass_count=int(data["passCount"]),
            trump=_optional_trump(data.get("trump")),
            contract_target=int(data["contractTarget"]),
            trump_broken=bool(data["trumpBroken"]),
            tricks={pid: int(data["tricks"][pid.value]) for pid in PlayerId},
            won_cards={
                pid: [dict_to_card(c) for c in data["wonCards"][pid.value]]
                for pid in PlayerId
            },
            current_trick=Trick(
                leader=PlayerId(trick["leader"]),
                plays=[
                    TrickPlay(PlayerId(p["player"]), dict_to_card(p["card"]))
                    for p in trick["cards"]
                ],
            ),
            ready_for_next={
                pid: bool(data["readyForNext"][pid.value]) for pid in PlayerId
            },
            last_winner=_optional_player(data.get("lastWinner")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ProtocolError(f"Malformed game state snapshot: {exc}") from exc
