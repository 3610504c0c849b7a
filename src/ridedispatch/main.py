"""Ride dispatch service entry point.

Runs the simulation scheduler in a background thread while uvicorn serves
the HTTP API and WebSocket feed on the main thread.
"""

import logging
import os

import uvicorn

from .api.app import create_app
from .api.auth import StaticTokenIdentity
from .db.ride_store import RideStore
from .engine.scheduler import SimulationConfig, SimulationScheduler
from .matching.dispatch_service import DispatchService
from .matching.driver_registry import DriverRegistry
from .matching.pricing import FareCalculator
from .matching.seed import seed_drivers
from .pubsub.update_bus import UpdateBus
from .settings import get_settings
from .sim_logging import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point - builds the components and runs the service."""
    settings = get_settings()

    log_format = os.environ.get("LOG_FORMAT") or settings.simulation.log_format
    setup_logging(
        level=settings.simulation.log_level,
        json_output=log_format == "json",
        environment=os.environ.get("ENVIRONMENT", "development"),
    )

    ride_store = RideStore()
    driver_registry = DriverRegistry()
    seeded = seed_drivers(driver_registry)
    update_bus = UpdateBus()
    logger.info("Seeded %d drivers (%d available)", seeded, driver_registry.available_count())

    dispatch_service = DispatchService(
        ride_store,
        driver_registry,
        update_bus,
        fare_calculator=FareCalculator.from_settings(settings.pricing),
    )
    scheduler = SimulationScheduler(
        ride_store,
        driver_registry,
        update_bus,
        config=SimulationConfig.from_settings(settings.simulation),
    )

    app = create_app(
        dispatch_service,
        update_bus,
        StaticTokenIdentity.from_settings(settings.api),
        settings=settings,
    )

    scheduler.start()
    try:
        logger.info(
            "Starting ride dispatch service on %s:%d (WebSocket path %s)",
            settings.api.host,
            settings.api.port,
            settings.api.ws_path,
        )
        uvicorn.run(
            app,
            host=settings.api.host,
            port=settings.api.port,
            ws_ping_interval=settings.api.keepalive_interval_seconds,
            log_level=settings.simulation.log_level.lower(),
        )
    finally:
        scheduler.stop()


if __name__ == "__main__":
    main()
