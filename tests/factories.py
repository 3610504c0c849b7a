"""Test factories and doubles with deterministic Faker data."""

from __future__ import annotations

import random
import threading
from typing import Any

from faker import Faker

from ridedispatch.geo.distance import Coordinate
from ridedispatch.matching.driver_registry import Driver

VEHICLE_TYPES = ("Sedan", "SUV", "Hatchback", "Minivan")

# Reference points around San Francisco used across the suite.
DRIVER_START = {"lat": 37.7749, "lng": -122.4194}
PICKUP = {"lat": 37.776, "lng": -122.417}
DROPOFF = {"lat": 37.784, "lng": -122.409}


class DriverFactory:
    """Factory for creating Driver records with deterministic Faker data."""

    DEFAULT_SEED = 42

    def __init__(self, seed: int = DEFAULT_SEED):
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self._rng = random.Random(seed)
        self._counter = 0

    def driver(self, **overrides: Any) -> Driver:
        """Create a Driver; ``position`` may be a mapping or Coordinate."""
        self._counter += 1
        defaults: dict[str, Any] = {
            "id": f"D-{self._counter:04d}",
            "name": self.fake.name(),
            "vehicle_type": self._rng.choice(VEHICLE_TYPES),
            "position": DRIVER_START,
            "available": True,
        }
        defaults.update(overrides)
        position = defaults["position"]
        if not isinstance(position, Coordinate):
            defaults["position"] = Coordinate(**position)
        return Driver(**defaults)


class RecordingObserver:
    """UpdateBus observer that keeps every delivered snapshot."""

    def __init__(self, fail: bool = False) -> None:
        self.snapshots: list[dict[str, Any]] = []
        self.open = True
        self.fail = fail
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self.open

    def deliver(self, snapshot: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        with self._lock:
            self.snapshots.append(snapshot)

    @property
    def statuses(self) -> list[str]:
        return [s["status"] for s in self.snapshots]

    @property
    def last(self) -> dict[str, Any]:
        return self.snapshots[-1]
