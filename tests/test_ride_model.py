import pytest

from ridedispatch.db.ride_store import RideStore
from ridedispatch.geo.distance import Coordinate
from ridedispatch.ride import TERMINAL_STATUSES, RidePhase, RideStatus


@pytest.mark.unit
def test_terminal_statuses():
    assert TERMINAL_STATUSES == {RideStatus.COMPLETED, RideStatus.CANCELLED}
    assert RideStatus.CANCELLED.is_terminal
    assert not RideStatus.ARRIVED.is_terminal


@pytest.mark.unit
def test_snapshot_uses_camel_case_json():
    ride = RideStore().save(
        {
            "user_id": "u1",
            "pickup": {"lat": 1.0, "lng": 2.0, "address": "A"},
            "driver_id": "D-1",
            "meta": {"phase": "to_pickup"},
        }
    )

    snapshot = ride.to_snapshot()

    assert set(snapshot) == {
        "id",
        "userId",
        "pickup",
        "dropoff",
        "driverId",
        "status",
        "price",
        "meta",
        "createdAt",
        "updatedAt",
    }
    assert snapshot["status"] == "requested"
    assert snapshot["pickup"] == {"lat": 1.0, "lng": 2.0, "address": "A"}
    assert isinstance(snapshot["createdAt"], str)


@pytest.mark.unit
def test_phase_and_driver_position_from_meta():
    ride = RideStore().save(
        {"user_id": "u1", "meta": {"phase": "to_dropoff", "driverPos": {"lat": 1.0, "lng": 2.0}}}
    )

    assert ride.phase == RidePhase.TO_DROPOFF
    assert ride.driver_position == Coordinate(lat=1.0, lng=2.0)


@pytest.mark.unit
def test_unknown_phase_reads_as_none():
    ride = RideStore().save({"user_id": "u1", "meta": {"phase": "teleport"}})

    assert ride.phase is None
    assert ride.driver_position is None
