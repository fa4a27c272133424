# tests/test_relay.py
import asyncio

from bridge_duel.actions import PlayerAction
from bridge_duel.protocol import MessageType, game_action, sync_request
from bridge_duel.relay import LocalRelay
from bridge_duel.state import PlayerId


class Recorder:
    """Collects everything an endpoint sees, membership events included."""

    def __init__(self, endpoint):
        self.events = []
        endpoint.on_message(lambda m: self.events.append(m.type.value))
        endpoint.on_peer_joined(lambda: self.events.append("joined"))
        endpoint.on_peer_left(lambda: self.events.append("left"))


def test_first_member_is_host_second_is_peer():
    relay = LocalRelay()
    a, b = relay.endpoint("a"), relay.endpoint("b")
    seen_a, seen_b = Recorder(a), Recorder(b)

    assert relay.join("room", a) == PlayerId.HOST
    assert seen_a.events == ["role_assigned"]

    assert relay.join("room", b) == PlayerId.PEER
    assert a.role == PlayerId.HOST and b.role == PlayerId.PEER
    assert seen_a.events == ["role_assigned", "joined"]
    assert seen_b.events == ["role_assigned", "joined"]


def test_third_member_is_turned_away():
    relay = LocalRelay()
    endpoints = [relay.endpoint(name) for name in "abc"]
    recorders = [Recorder(ep) for ep in endpoints]
    for ep in endpoints:
        ep.join("room")

    assert endpoints[2].role is None
    assert endpoints[2].room_id is None
    assert recorders[2].events == ["error_message"]
    assert "joined" in recorders[0].events


def test_messages_go_only_to_the_other_member():
    relay = LocalRelay()
    a, b = relay.endpoint("a"), relay.endpoint("b")
    seen_a, seen_b = Recorder(a), Recorder(b)
    a.join("room")
    b.join("room")

    a.send("room", sync_request())
    assert seen_b.events[-1] == "sync_request"
    assert "sync_request" not in seen_a.events
    assert relay.messages_relayed == 1


def test_send_without_a_recipient_is_discarded():
    relay = LocalRelay()
    a = relay.endpoint("a")
    a.join("room")
    a.send("room", sync_request())
    a.send("elsewhere", sync_request())
    assert relay.messages_relayed == 0
    assert relay.pending == 0


def test_leaving_notifies_the_other_member_and_empties_the_room():
    relay = LocalRelay()
    a, b = relay.endpoint("a"), relay.endpoint("b")
    seen_a = Recorder(a)
    a.join("room")
    b.join("room")

    b.leave()
    assert seen_a.events[-1] == "left"
    assert b.role is None
    assert "room" in relay.rooms

    a.leave()
    assert "room" not in relay.rooms


def test_seat_is_reused_after_leaving():
    relay = LocalRelay()
    a, b, c = relay.endpoint("a"), relay.endpoint("b"), relay.endpoint("c")
    a.join("room")
    b.join("room")
    b.leave()
    assert relay.join("room", c) == PlayerId.PEER


def test_messages_sent_from_handlers_are_delivered_in_order():
    relay = LocalRelay()
    a, b = relay.endpoint("a"), relay.endpoint("b")
    order = []

    def on_a(message):
        order.append(("a", message.type.value))

    def on_b(message):
        order.append(("b", message.type.value))
        if message.type == MessageType.SYNC_REQUEST:
            # Replying from inside a handler must not be delivered re-entrantly.
            b.send("room", game_action(PlayerAction.make_pass()))
            order.append(("b", "handler-done"))

    a.on_message(on_a)
    b.on_message(on_b)
    a.join("room")
    b.join("room")
    order.clear()

    a.send("room", sync_request())
    a.send("room", sync_request())

    assert order == [
        ("b", "sync_request"),
        ("b", "handler-done"),
        ("a", "game_action"),
        ("b", "sync_request"),
        ("b", "handler-done"),
        ("a", "game_action"),
    ]


def test_drop_filter_loses_matching_messages():
    relay = LocalRelay(
        drop_filter=lambda target, message: message.type == MessageType.GAME_ACTION
    )
    a, b = relay.endpoint("a"), relay.endpoint("b")
    seen_b = Recorder(b)
    a.join("room")
    b.join("room")

    a.send("room", game_action(PlayerAction.make_pass()))
    a.send("room", sync_request())

    assert "game_action" not in seen_b.events
    assert seen_b.events[-1] == "sync_request"
    assert relay.messages_dropped == 1
    assert relay.messages_relayed == 1


def test_loop_defers_delivery_until_the_loop_runs():
    async def scenario():
        relay = LocalRelay(loop=asyncio.get_running_loop())
        a, b = relay.endpoint("a"), relay.endpoint("b")
        seen_b = Recorder(b)
        a.join("room")
        b.join("room")
        assert seen_b.events == []
        assert relay.pending > 0

        await asyncio.sleep(0)
        assert seen_b.events == ["role_assigned", "joined"]

        a.send("room", sync_request())
        assert seen_b.events[-1] == "joined"
        await asyncio.sleep(0)
        assert seen_b.events[-1] == "sync_request"
        assert relay.pending == 0

    asyncio.run(scenario())
