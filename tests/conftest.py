import os

# Credential fields have no defaults (the service must fail without them).
# Provide test values so Settings() can be constructed in tests.
os.environ.setdefault("API_TOKENS", "token-alice:user-alice,token-bob:user-bob")

import random

import pytest

from ridedispatch.db.ride_store import RideStore
from ridedispatch.engine.scheduler import SimulationConfig, SimulationScheduler
from ridedispatch.matching.dispatch_service import DispatchService
from ridedispatch.matching.driver_registry import DriverRegistry
from ridedispatch.pubsub.update_bus import UpdateBus
from ridedispatch.sim_logging import LogContext
from tests.factories import DRIVER_START, DriverFactory, RecordingObserver


@pytest.fixture(autouse=True)
def reset_log_context():
    """Keep thread-local log fields from leaking between tests."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def driver_factory() -> DriverFactory:
    """Factory for creating drivers with seeded Faker data."""
    return DriverFactory(seed=42)


@pytest.fixture
def ride_store() -> RideStore:
    return RideStore()


@pytest.fixture
def driver_registry() -> DriverRegistry:
    return DriverRegistry()


@pytest.fixture
def update_bus() -> UpdateBus:
    return UpdateBus()


@pytest.fixture
def dispatch_service(ride_store, driver_registry, update_bus) -> DispatchService:
    return DispatchService(ride_store, driver_registry, update_bus)


@pytest.fixture
def scheduler(ride_store, driver_registry, update_bus) -> SimulationScheduler:
    """Scheduler with a seeded RNG so start positions are reproducible."""
    return SimulationScheduler(
        ride_store,
        driver_registry,
        update_bus,
        config=SimulationConfig(tick_interval_seconds=0.05),
        rng=random.Random(7),
    )


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def seeded_driver(driver_registry, driver_factory):
    """One available driver at the reference start point."""
    return driver_registry.register(driver_factory.driver(id="D-1", position=DRIVER_START))
