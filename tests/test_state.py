# tests/test_state.py
import random

import pytest

from bridge_duel.cards import card_from_id
from bridge_duel.engine import new_deal
from bridge_duel.errors import ProtocolError
from bridge_duel.state import (
    Bid,
    GameState,
    Phase,
    PlayerId,
    Trick,
    TrickPlay,
    copy_state,
    state_from_dict,
    state_to_dict,
)

HOST = PlayerId.HOST
PEER = PlayerId.PEER


def _mid_play_state() -> GameState:
    state = new_deal(GameState(), random.Random(3))
    lead = state.hands[PEER].pop(0)
    state.phase = Phase.PLAYING
    state.current_bid = Bid(2, "S", PEER)
    state.declarer = PEER
    state.trump = "S"
    state.contract_target = 11
    state.current_trick = Trick(leader=PEER, plays=[TrickPlay(PEER, lead)])
    state.turn = HOST
    state.last_winner = HOST
    return state


def test_player_id_other():
    assert HOST.other == PEER
    assert PEER.other == HOST


def test_default_state_is_lobby():
    state = GameState()
    assert state.phase == Phase.LOBBY
    assert state.hands == {HOST: [], PEER: []}
    assert state.tricks == {HOST: 0, PEER: 0}
    assert state.ready_for_next == {HOST: False, PEER: False}
    assert state.current_bid is None


def test_default_states_do_not_share_containers():
    a = GameState()
    b = GameState()
    a.hands[HOST].append(card_from_id("S-A"))
    a.tricks[HOST] = 3
    assert b.hands[HOST] == []
    assert b.tricks[HOST] == 0


def test_snapshot_uses_wire_field_names():
    data = state_to_dict(_mid_play_state())
    assert data["phase"] == "PLAYING"
    assert data["currentBid"] == {"level": 2, "suit": "S", "bidder": "peer"}
    assert data["contractTarget"] == 11
    assert data["currentTrick"]["leader"] == "peer"
    assert data["currentTrick"]["cards"][0]["player"] == "peer"
    assert set(data["hands"]) == {"host", "peer"}
    assert data["readyForNext"] == {"host": False, "peer": False}
    assert data["lastWinner"] == "host"


def test_snapshot_rebuilds_identical_state():
    state = _mid_play_state()
    rebuilt = state_from_dict(state_to_dict(state))
    assert rebuilt == state
    assert rebuilt.hands[HOST] is not state.hands[HOST]
    assert rebuilt.current_trick is not state.current_trick


def test_malformed_snapshot_raises_protocol_error():
    data = state_to_dict(_mid_play_state())
    del data["currentTrick"]
    with pytest.raises(ProtocolError):
        state_from_dict(data)

    data = state_to_dict(_mid_play_state())
    data["phase"] = "SHOPPING"
    with pytest.raises(ProtocolError):
        state_from_dict(data)


@pytest.mark.parametrize("trump", ["X", ["S"]])
def test_snapshot_with_unknown_trump_is_rejected(trump):
    data = state_to_dict(_mid_play_state())
    data["trump"] = trump
    with pytest.raises(ProtocolError):
        state_from_dict(data)


def test_snapshot_without_trump_is_accepted():
    data = state_to_dict(GameState())
    assert data["trump"] is None
    assert state_from_dict(data).trump is None


def test_copy_state_builds_fresh_containers():
    state = _mid_play_state()
    copied = copy_state(state)
    assert copied == state

    copied.hands[HOST].pop()
    copied.tricks[PEER] += 1
    copied.won_cards[HOST].append(card_from_id("C-2"))
    copied.current_trick.plays.clear()
    copied.ready_for_next[HOST] = True

    assert copied != state
    assert len(state.hands[HOST]) == 19
    assert state.tricks[PEER] == 0
    assert state.won_cards[HOST] == []
    assert len(state.current_trick.plays) == 1
    assert state.ready_for_next[HOST] is False


def test_all_cards_covers_every_container():
    state = _mid_play_state()
    assert len(state.all_cards()) == 38
    assert len({c.id for c in state.all_cards()}) == 38
