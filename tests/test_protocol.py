# tests/test_protocol.py
import json
import random

import pytest

from bridge_duel.actions import ActionType, PlayerAction, action_to_dict, dict_to_action
from bridge_duel.engine import new_deal
from bridge_duel.errors import ProtocolError
from bridge_duel.protocol import (
    Message,
    MessageType,
    decode_message,
    encode_message,
    error_message,
    game_action,
    role_assigned,
    sync_request,
    sync_state,
)
from bridge_duel.state import Bid, GameState, PlayerId


def test_action_wire_shapes():
    assert action_to_dict(PlayerAction.make_pass()) == {"type": "PASS"}
    assert action_to_dict(PlayerAction.ready_next()) == {"type": "READY_NEXT"}
    assert action_to_dict(PlayerAction.play_card("H-10")) == {
        "type": "PLAY_CARD",
        "payload": {"cardId": "H-10"},
    }
    assert action_to_dict(PlayerAction.make_bid(Bid(2, "NT", PlayerId.PEER))) == {
        "type": "BID",
        "payload": {"bid": {"level": 2, "suit": "NT", "bidder": "peer"}},
    }


def test_actions_require_their_payload():
    with pytest.raises(ValueError):
        PlayerAction(ActionType.BID)
    with pytest.raises(ValueError):
        PlayerAction(ActionType.PLAY_CARD)


@pytest.mark.parametrize(
    "data",
    [
        {"type": "SHUFFLE"},
        {"payload": {}},
        {"type": "BID"},
        {"type": "BID", "payload": {"bid": {"level": 9, "suit": "S", "bidder": "host"}}},
        {"type": "BID", "payload": {"bid": {"level": 1, "suit": "X", "bidder": "host"}}},
        {"type": "PLAY_CARD", "payload": {}},
        {"type": "PASS", "payload": ["x"]},
        {"type": "PLAY_CARD", "payload": "S-A"},
        ["PASS"],
    ],
)
def test_malformed_actions_raise_protocol_error(data):
    with pytest.raises(ProtocolError):
        dict_to_action(data)


def test_message_text_frame():
    raw = encode_message(game_action(PlayerAction.play_card("S-A")))
    assert json.loads(raw) == {
        "type": "game_action",
        "payload": {"type": "PLAY_CARD", "payload": {"cardId": "S-A"}},
    }
    assert encode_message(sync_request()) == '{"type":"sync_request"}'


def test_decode_accepts_text_bytes_and_dicts():
    raw = encode_message(role_assigned(PlayerId.PEER))
    for frame in (raw, raw.encode("utf-8"), json.loads(raw)):
        message = decode_message(frame)
        assert message.type == MessageType.ROLE_ASSIGNED
        assert message.role() == PlayerId.PEER


def test_sync_state_carries_a_full_snapshot():
    state = new_deal(GameState(), random.Random(8))
    message = decode_message(encode_message(sync_state(state)))
    assert message.type == MessageType.SYNC_STATE
    assert message.state() == state


def test_error_message_payload_is_text():
    message = decode_message(encode_message(error_message("Room is full")))
    assert message.type == MessageType.ERROR_MESSAGE
    assert message.payload == "Room is full"


@pytest.mark.parametrize(
    "frame",
    [
        "not json",
        "[1, 2]",
        '{"type": "hello"}',
        '{"payload": 1}',
        '{"type": "game_action"}',
        '{"type": "sync_state"}',
        '{"type": "role_assigned"}',
        b'\xff\xfe',
    ],
)
def test_malformed_frames_raise_protocol_error(frame):
    with pytest.raises(ProtocolError):
        decode_message(frame)


def test_payload_accessors_validate():
    with pytest.raises(ProtocolError):
        Message(MessageType.ROLE_ASSIGNED, "spectator").role()
    with pytest.raises(ProtocolError):
        Message(MessageType.GAME_ACTION, "PASS").action()
    with pytest.raises(ProtocolError):
        Message(MessageType.SYNC_STATE, {"phase": "BIDDING"}).state()
