import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from ..geo.distance import Coordinate, distance_km, parse_coordinate

logger = logging.getLogger(__name__)


@dataclass
class Driver:
    id: str
    name: str
    vehicle_type: str
    position: Coordinate
    available: bool = True

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "vehicleType": self.vehicle_type,
            "position": self.position.model_dump(),
            "available": self.available,
        }


class DriverRegistry:
    """Registry holding driver availability and last reported position.

    Thread-safe: all methods are protected by a lock for concurrent access
    from the simulation scheduler thread and API worker threads. Reads hand
    back copies of the stored records.

    Drivers are kept in registration order, which is also the tie-break for
    find_nearest_available: among equally distant drivers the one registered
    first wins.
    """

    def __init__(self, drivers: Iterable[Driver] = ()) -> None:
        self._lock = threading.Lock()
        self._drivers: dict[str, Driver] = {}
        for driver in drivers:
            self.register(driver)

    def register(self, driver: Driver) -> Driver:
        position = parse_coordinate(driver.position)
        with self._lock:
            record = replace(driver, position=position, available=bool(driver.available))
            self._drivers[record.id] = record
            return replace(record)

    def get(self, driver_id: str) -> Driver | None:
        with self._lock:
            record = self._drivers.get(driver_id)
            return replace(record) if record else None

    def list_drivers(self) -> list[Driver]:
        with self._lock:
            return [replace(record) for record in self._drivers.values()]

    def find_nearest_available(self, origin: Coordinate | Any) -> tuple[Driver, float] | None:
        """Return the closest available driver and its distance in km, or None."""
        origin = parse_coordinate(origin)
        with self._lock:
            best: tuple[Driver, float] | None = None
            for record in self._drivers.values():
                if not record.available:
                    continue
                dist = distance_km(origin, record.position)
                if best is None or dist < best[1]:
                    best = (record, dist)
            if best is None:
                return None
            return replace(best[0]), best[1]

    def set_availability(self, driver_id: str, available: bool) -> Driver | None:
        with self._lock:
            record = self._drivers.get(driver_id)
            if record is None:
                return None
            record.available = bool(available)
            logger.debug("Driver %s availability set to %s", driver_id, record.available)
            return replace(record)

    def update_position(self, driver_id: str, position: Coordinate | Any) -> Driver | None:
        position = parse_coordinate(position)
        with self._lock:
            record = self._drivers.get(driver_id)
            if record is None:
                return None
            record.position = position
            return replace(record)

    def available_count(self) -> int:
        with self._lock:
            return sum(1 for record in self._drivers.values() if record.available)
