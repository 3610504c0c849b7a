"""Ride lifecycle model and snapshot serialization."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .geo.distance import Coordinate


class RideStatus(str, Enum):
    """Ride lifecycle states."""

    REQUESTED = "requested"
    ASSIGNED = "assigned"
    ENROUTE = "enroute"
    ARRIVED = "arrived"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({RideStatus.COMPLETED, RideStatus.CANCELLED})


class RidePhase(str, Enum):
    """Simulation sub-state stored in ``meta.phase``."""

    TO_PICKUP = "to_pickup"
    PICKUP = "pickup"
    TO_DROPOFF = "to_dropoff"


# Keys the simulation and dispatch write into Ride.meta.
META_DRIVER_POS = "driverPos"
META_PHASE = "phase"
META_COMPLETED_AT = "completedAt"
META_DISTANCE_KM = "distanceKm"
META_DRIVER_RELEASED = "driverReleased"


class Location(Coordinate):
    """Coordinate with an optional human-readable address."""

    address: str | None = None


class Ride(BaseModel):
    """A ride record as held by the RideStore.

    Serialized snapshots use camelCase keys (``userId``, ``driverId``,
    ``createdAt`` ...) for live-update consumers.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    id: str
    user_id: str = Field(min_length=1)
    pickup: Location | None = None
    dropoff: Location | None = None
    driver_id: str | None = None
    status: RideStatus = RideStatus.REQUESTED
    price: float | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @property
    def phase(self) -> RidePhase | None:
        try:
            return RidePhase(self.meta.get(META_PHASE))
        except ValueError:
            return None

    @property
    def driver_position(self) -> Coordinate | None:
        value = self.meta.get(META_DRIVER_POS)
        if value is None:
            return None
        return Coordinate.model_validate(value)

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-serializable copy of this ride for external consumers."""
        return self.model_dump(mode="json", by_alias=True)
