import asyncio
from unittest.mock import Mock

import pytest
from starlette.websockets import WebSocketDisconnect

from ridedispatch.api.websocket import WebSocketObserver, parse_subscribe
from tests.factories import DROPOFF, PICKUP


@pytest.fixture
def ride(dispatch_service, seeded_driver):
    return dispatch_service.request_ride("user-alice", PICKUP, DROPOFF)


@pytest.mark.unit
class TestWebSocketFeed:
    def test_rejects_missing_token(self, client):
        with pytest.raises(WebSocketDisconnect), client.websocket_connect("/ws"):
            pass

    def test_rejects_invalid_token(self, client):
        with pytest.raises(WebSocketDisconnect), client.websocket_connect("/ws?token=wrong"):
            pass

    def test_subscribe_sends_current_snapshot(self, client, ride):
        with client.websocket_connect("/ws?token=token-alice") as websocket:
            websocket.send_json({"type": "subscribe", "rideId": ride.id})
            snapshot = websocket.receive_json()

        assert snapshot["id"] == ride.id
        assert snapshot["status"] == "assigned"

    def test_published_updates_are_forwarded(self, client, ride, dispatch_service):
        with client.websocket_connect("/ws?token=token-alice") as websocket:
            websocket.send_json({"type": "subscribe", "rideId": ride.id})
            websocket.receive_json()

            dispatch_service.cancel(ride.id, "user-alice")
            update = websocket.receive_json()

        assert update["id"] == ride.id
        assert update["status"] == "cancelled"

    def test_scheduler_ticks_reach_subscriber(self, client, ride, scheduler):
        with client.websocket_connect("/ws?token=token-alice") as websocket:
            websocket.send_json({"type": "subscribe", "rideId": ride.id})
            websocket.receive_json()

            result = scheduler.tick()
            update = websocket.receive_json()

        assert result.advanced == 1
        assert update["status"] == "enroute"
        assert update["meta"]["phase"] == "to_pickup"

    def test_malformed_messages_are_ignored(self, client, ride):
        with client.websocket_connect("/ws?token=token-alice") as websocket:
            websocket.send_text("not json")
            websocket.send_json({"type": "unsubscribe", "rideId": ride.id})
            websocket.send_json({"type": "subscribe"})
            websocket.send_json({"type": "subscribe", "rideId": ride.id})
            snapshot = websocket.receive_json()

        assert snapshot["id"] == ride.id

    def test_other_riders_ride_is_not_found(self, client, ride, update_bus):
        with client.websocket_connect("/ws?token=token-bob") as websocket:
            websocket.send_json({"type": "subscribe", "rideId": ride.id})
            message = websocket.receive_json()

        assert message == {"type": "error", "error": "Ride not found", "rideId": ride.id}
        assert update_bus.subscriber_count(ride.id) == 0

    def test_disconnect_unsubscribes(self, client, ride, update_bus):
        with client.websocket_connect("/ws?token=token-alice") as websocket:
            websocket.send_json({"type": "subscribe", "rideId": ride.id})
            websocket.receive_json()
            assert update_bus.subscriber_count(ride.id) == 1

        assert update_bus.subscriber_count(ride.id) == 0
        assert update_bus.active_ride_ids() == []


@pytest.mark.unit
class TestParseSubscribe:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ('{"type": "subscribe", "rideId": "R-1000"}', "R-1000"),
            (b'{"type": "subscribe", "rideId": "R-1000", "extra": 1}', "R-1000"),
            ('{"type": "subscribe", "rideId": ""}', None),
            ('{"type": "subscribe", "rideId": 1000}', None),
            ('{"type": "ping"}', None),
            ("[]", None),
            ("{", None),
        ],
    )
    def test_parse(self, raw, expected):
        assert parse_subscribe(raw) == expected


@pytest.mark.unit
class TestWebSocketObserver:
    def test_slow_client_is_closed_when_queue_overflows(self):
        async def scenario():
            observer = WebSocketObserver(Mock(), asyncio.get_running_loop(), max_pending=2)
            for n in range(3):
                observer.push({"n": n})
            return observer

        observer = asyncio.run(scenario())

        assert observer.overflowed is True
        assert observer.is_open is False

    def test_deliver_hands_off_to_loop_in_order(self):
        sent: list[dict] = []

        class FakeSocket:
            async def send_json(self, message):
                sent.append(message)

        async def scenario():
            observer = WebSocketObserver(FakeSocket(), asyncio.get_running_loop(), max_pending=10)
            pump = asyncio.create_task(observer.pump())
            observer.deliver({"n": 1})
            observer.deliver({"n": 2})
            await asyncio.sleep(0.01)
            observer.close()
            await pump

        asyncio.run(scenario())

        assert sent == [{"n": 1}, {"n": 2}]

    def test_pump_stops_when_client_is_gone(self):
        class GoneSocket:
            async def send_json(self, message):
                raise WebSocketDisconnect(code=1006)

        async def scenario():
            observer = WebSocketObserver(GoneSocket(), asyncio.get_running_loop(), max_pending=10)
            observer.push({"n": 1})
            await observer.pump()
            return observer

        observer = asyncio.run(scenario())

        assert observer.is_open is False


@pytest.mark.unit
def test_reconnecting_client_gets_a_fresh_subscription(client, ride, update_bus):
    for _ in range(2):
        with client.websocket_connect("/ws?token=token-alice") as websocket:
            websocket.send_json({"type": "subscribe", "rideId": ride.id})
            assert websocket.receive_json()["id"] == ride.id
            assert update_bus.subscriber_count(ride.id) == 1

    assert update_bus.subscriber_count(ride.id) == 0
