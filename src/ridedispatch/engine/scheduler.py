"""Periodic simulation of assigned rides.

Each tick advances every ride that has at least one live observer: the
simulated driver steps toward pickup, then toward dropoff, and the ride
status follows. Rides nobody watches are not advanced; they resume from
their stored state once someone subscribes again.
"""

import logging
import random
import threading
from dataclasses import dataclass
from datetime import UTC, datetime

from ..core.exceptions import AlreadyFinishedError
from ..db.ride_store import RideStore
from ..geo.distance import Coordinate, is_near, step_toward
from ..matching.driver_registry import DriverRegistry
from ..pubsub.update_bus import UpdateBus
from ..ride import (
    META_COMPLETED_AT,
    META_DRIVER_POS,
    META_DRIVER_RELEASED,
    META_PHASE,
    Ride,
    RidePhase,
    RideStatus,
)
from ..settings import SimulationSettings
from ..sim_logging import log_ride_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationConfig:
    """Tunable simulation constants."""

    tick_interval_seconds: float = 1.5
    step_km: float = 0.2
    arrival_threshold_deg: float = 0.0005
    start_jitter_deg: float = 0.005

    @classmethod
    def from_settings(cls, settings: SimulationSettings) -> "SimulationConfig":
        return cls(
            tick_interval_seconds=settings.tick_interval_ms / 1000.0,
            step_km=settings.step_km,
            arrival_threshold_deg=settings.arrival_threshold_deg,
            start_jitter_deg=settings.start_jitter_deg,
        )


@dataclass(frozen=True)
class TickResult:
    """Outcome of one tick."""

    skipped: bool
    advanced: int = 0
    failed: int = 0


class SimulationScheduler:
    """Runs simulation ticks on a background thread at a fixed period.

    Ticks never overlap: ``tick()`` returns a skipped result when another
    tick is still running, whether it was started by the timer thread or
    called directly.
    """

    def __init__(
        self,
        ride_store: RideStore,
        driver_registry: DriverRegistry,
        update_bus: UpdateBus,
        config: SimulationConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._ride_store = ride_store
        self._driver_registry = driver_registry
        self._update_bus = update_bus
        self._config = config or SimulationConfig()
        self._rng = rng or random.Random()
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start ticking in a background thread."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop, name="simulation-scheduler", daemon=True
        )
        self._thread.start()
        logger.info(
            "Simulation scheduler started (interval %.2fs)", self._config.tick_interval_seconds
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the background thread, waiting for an in-flight tick."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Simulation scheduler stopped")

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self._config.tick_interval_seconds):
            try:
                self.tick()
            except Exception:
                logger.exception("Simulation tick failed")

    def tick(self) -> TickResult:
        """Advance every subscribed ride once."""
        if not self._tick_lock.acquire(blocking=False):
            logger.debug("Previous tick still running, skipping")
            return TickResult(skipped=True)

        try:
            advanced = 0
            failed = 0
            for ride_id in self._update_bus.active_ride_ids():
                with log_ride_context(ride_id):
                    try:
                        if self.advance_ride(ride_id) is not None:
                            advanced += 1
                    except AlreadyFinishedError:
                        logger.info("Ride %s finished during tick, not advancing", ride_id)
                    except Exception:
                        failed += 1
                        logger.exception("Failed to advance ride %s", ride_id)
            return TickResult(skipped=False, advanced=advanced, failed=failed)
        finally:
            self._tick_lock.release()

    def advance_ride(self, ride_id: str) -> Ride | None:
        """Apply one transition to ``ride_id``; returns the latest ride if it moved."""
        ride = self._ride_store.get(ride_id)
        if ride is None or not ride.driver_id:
            return None

        if ride.status.is_terminal:
            if not ride.meta.get(META_DRIVER_RELEASED):
                self._release_driver(ride)
            return None
        if ride.status == RideStatus.REQUESTED:
            return None
        if ride.pickup is None or ride.dropoff is None:
            logger.warning("Ride %s has no pickup or dropoff, not simulating", ride_id)
            return None

        position = ride.driver_position or self._initial_position(ride.pickup)

        if ride.status == RideStatus.ASSIGNED:
            target = ride.pickup
            next_status, phase = RideStatus.ENROUTE, RidePhase.TO_PICKUP
        elif ride.status == RideStatus.ARRIVED:
            target = ride.dropoff
            next_status, phase = RideStatus.ENROUTE, RidePhase.TO_DROPOFF
        elif ride.phase == RidePhase.TO_DROPOFF:
            target = ride.dropoff
            next_status, phase = RideStatus.ENROUTE, RidePhase.TO_DROPOFF
        else:
            target = ride.pickup
            next_status, phase = RideStatus.ENROUTE, RidePhase.TO_PICKUP

        next_position = step_toward(position, target, self._config.step_km)
        reached = is_near(next_position, target, self._config.arrival_threshold_deg)
        if phase == RidePhase.TO_PICKUP and ride.status == RideStatus.ENROUTE and reached:
            next_status, phase = RideStatus.ARRIVED, RidePhase.PICKUP

        self._driver_registry.update_position(ride.driver_id, next_position)
        updated = self._ride_store.update_status(
            ride_id,
            next_status,
            {
                "meta": {
                    **ride.meta,
                    META_DRIVER_POS: next_position.model_dump(),
                    META_PHASE: phase.value,
                }
            },
        )
        if updated is None:
            return None
        self._update_bus.publish(ride_id, updated.to_snapshot())

        if phase == RidePhase.TO_DROPOFF and reached:
            updated = self._complete(updated)
        return updated

    def _complete(self, ride: Ride) -> Ride:
        completed = self._ride_store.update_status(
            ride.id,
            RideStatus.COMPLETED,
            {
                "meta": {
                    **ride.meta,
                    META_COMPLETED_AT: datetime.now(UTC).isoformat(),
                    META_DRIVER_RELEASED: True,
                }
            },
        )
        if completed is None:
            return ride
        if completed.driver_id:
            self._driver_registry.set_availability(completed.driver_id, True)
        logger.info("Ride %s completed", ride.id)
        self._update_bus.publish(ride.id, completed.to_snapshot())
        return completed

    def _release_driver(self, ride: Ride) -> None:
        """Free the driver of a ride that ended without releasing it."""
        self._ride_store.update_status(
            ride.id, ride.status, {"meta": {**ride.meta, META_DRIVER_RELEASED: True}}
        )
        if ride.driver_id:
            self._driver_registry.set_availability(ride.driver_id, True)
        logger.info("Released driver %s of finished ride %s", ride.driver_id, ride.id)

    def _initial_position(self, pickup: Coordinate) -> Coordinate:
        jitter = self._config.start_jitter_deg
        return Coordinate(
            lat=pickup.lat + self._rng.uniform(-jitter, jitter),
            lng=pickup.lng + self._rng.uniform(-jitter, jitter),
        )
