"""Ride creation, cancellation and owner-scoped reads."""

import logging
import threading
from typing import Any

from ..core.exceptions import (
    AlreadyFinishedError,
    NoDriversAvailableError,
    NotFoundError,
    ValidationError,
)
from ..db.ride_store import RideStore
from ..geo.distance import parse_coordinate
from ..pubsub.update_bus import UpdateBus
from ..ride import META_DISTANCE_KM, META_DRIVER_RELEASED, Location, Ride, RideStatus
from ..sim_logging import log_ride_context
from .driver_registry import Driver, DriverRegistry
from .pricing import FareCalculator

logger = logging.getLogger(__name__)


class DispatchService:
    """Matches riders to drivers and keeps ride, driver and subscribers in step.

    Finding the nearest driver and marking it unavailable happen under one
    reservation lock, so concurrent requests can never book the same driver.
    The remaining steps (save, publish) run outside it and are not rolled
    back: if saving fails after a reservation the driver stays unavailable.
    """

    def __init__(
        self,
        ride_store: RideStore,
        driver_registry: DriverRegistry,
        update_bus: UpdateBus,
        fare_calculator: FareCalculator | None = None,
    ) -> None:
        self._ride_store = ride_store
        self._driver_registry = driver_registry
        self._update_bus = update_bus
        self._fare_calculator = fare_calculator or FareCalculator()
        self._reservation_lock = threading.Lock()

    def request_ride(self, user_id: str, pickup: Any, dropoff: Any) -> Ride:
        """Reserve the nearest available driver and create an assigned ride.

        Raises:
            ValidationError: missing user_id, or pickup/dropoff lack numeric lat/lng.
            NoDriversAvailableError: every driver is busy.
        """
        if not user_id:
            raise ValidationError("user_id is required")
        pickup_location = parse_coordinate(pickup, Location)
        dropoff_location = parse_coordinate(dropoff, Location)

        with self._reservation_lock:
            match = self._driver_registry.find_nearest_available(pickup_location)
            if match is None:
                logger.info("No drivers available for user %s", user_id)
                raise NoDriversAvailableError(details={"user_id": user_id})
            driver, distance_km = match
            self._driver_registry.set_availability(driver.id, False)

        price = self._fare_calculator.estimate(pickup_location, dropoff_location, distance_km)

        try:
            ride = self._ride_store.save(
                {
                    "user_id": user_id,
                    "pickup": pickup_location,
                    "dropoff": dropoff_location,
                    "driver_id": driver.id,
                    "status": RideStatus.ASSIGNED,
                    "price": price,
                    "meta": {META_DISTANCE_KM: distance_km},
                }
            )
        except Exception:
            logger.exception(
                "Saving ride failed after reserving driver %s; driver stays unavailable",
                driver.id,
            )
            raise

        with log_ride_context(ride.id, driver_id=driver.id, user_id=user_id):
            logger.info(
                "Ride %s assigned to driver %s (%.2f km away, price %.2f)",
                ride.id,
                driver.id,
                distance_km,
                price,
            )
            self._update_bus.publish(ride.id, ride.to_snapshot())
        return ride

    def cancel(self, ride_id: str, user_id: str) -> Ride:
        """Cancel a rider's ride and release its driver.

        Raises:
            NotFoundError: the ride does not exist or belongs to someone else.
            AlreadyFinishedError: the ride is already completed or cancelled.
        """
        ride = self.get_ride(ride_id, user_id)
        if ride.status.is_terminal:
            raise AlreadyFinishedError(
                "Ride already finished",
                details={"ride_id": ride_id, "status": ride.status.value},
            )

        updated = self._ride_store.update_status(
            ride_id,
            RideStatus.CANCELLED,
            {"meta": {**ride.meta, META_DRIVER_RELEASED: bool(ride.driver_id)}},
        )
        if updated is None:
            raise NotFoundError("Ride not found", details={"ride_id": ride_id})

        with log_ride_context(ride_id, driver_id=updated.driver_id, user_id=user_id):
            if updated.driver_id:
                self._driver_registry.set_availability(updated.driver_id, True)
            logger.info("Ride %s cancelled by user %s", ride_id, user_id)
            self._update_bus.publish(updated.id, updated.to_snapshot())
        return updated

    def get_ride(self, ride_id: str, user_id: str) -> Ride:
        """Fetch a ride owned by ``user_id``; other riders' rides are not found."""
        ride = self._ride_store.get(ride_id)
        if ride is None or ride.user_id != user_id:
            raise NotFoundError("Ride not found", details={"ride_id": ride_id})
        return ride

    def list_rides(self, user_id: str, limit: int = 50, offset: int = 0) -> list[Ride]:
        return self._ride_store.list_by_user(user_id, limit=limit, offset=offset)

    def list_drivers(self) -> list[Driver]:
        return self._driver_registry.list_drivers()

    def get_driver(self, driver_id: str) -> Driver:
        driver = self._driver_registry.get(driver_id)
        if driver is None:
            raise NotFoundError("Driver not found", details={"driver_id": driver_id})
        return driver
