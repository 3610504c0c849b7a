"""Startup driver fleet around San Francisco."""

from ..geo.distance import Coordinate
from .driver_registry import Driver, DriverRegistry

SEED_DRIVERS: tuple[Driver, ...] = (
    Driver("D-1001", "Alex Parker", "Sedan", Coordinate(lat=37.7749, lng=-122.4194), True),
    Driver("D-1002", "Briana Lee", "SUV", Coordinate(lat=37.784, lng=-122.409), True),
    Driver("D-1003", "Carlos Diaz", "Hatchback", Coordinate(lat=37.768, lng=-122.431), True),
    Driver("D-1004", "Dana Kapoor", "Minivan", Coordinate(lat=37.781, lng=-122.418), False),
    Driver("D-1005", "Ethan Wright", "Sedan", Coordinate(lat=37.771, lng=-122.405), True),
)


def seed_drivers(registry: DriverRegistry) -> int:
    """Register the startup fleet; returns the number of drivers added."""
    for driver in SEED_DRIVERS:
        registry.register(driver)
    return len(SEED_DRIVERS)
