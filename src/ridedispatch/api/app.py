"""FastAPI application factory for the ride dispatch API."""

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..core.exceptions import (
    DispatchError,
    NotFoundError,
    ServiceUnavailableError,
    StateError,
    ValidationError,
)
from ..matching.dispatch_service import DispatchService
from ..pubsub.update_bus import UpdateBus
from ..settings import Settings, get_settings
from .auth import Identity
from .routes import drivers, rides
from .websocket import websocket_endpoint

logger = logging.getLogger(__name__)

# First match wins, so subclasses come before their bases.
ERROR_STATUS_CODES: tuple[tuple[type[DispatchError], int], ...] = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (StateError, 400),
    (ServiceUnavailableError, 503),
)


def status_code_for(exc: DispatchError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code == 500:
        logger.error("Unhandled dispatch error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"error": exc.message})


def create_app(
    dispatch_service: DispatchService,
    update_bus: UpdateBus,
    identity: Identity,
    settings: Settings | None = None,
) -> FastAPI:
    """Create FastAPI application with injected dependencies.

    Args:
        dispatch_service: DispatchService handling ride requests
        update_bus: UpdateBus the WebSocket feed subscribes to
        identity: Resolves bearer tokens to riders
        settings: Loaded from the environment when omitted
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Ride Dispatch API",
        version=__version__,
        description="Ride requests, cancellation and live trip updates",
    )

    app.state.dispatch_service = dispatch_service
    app.state.update_bus = update_bus
    app.state.identity = identity
    app.state.settings = settings

    app.add_exception_handler(DispatchError, dispatch_error_handler)  # type: ignore[arg-type]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors.origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rides.router, prefix="/rides", tags=["rides"])
    app.include_router(drivers.router, prefix="/drivers", tags=["drivers"])
    app.add_api_websocket_route(settings.api.ws_path, websocket_endpoint)

    @app.get("/healthz")
    async def health_check() -> dict[str, str]:
        """Health check endpoint for monitoring (unauthenticated)."""
        return {
            "status": "ok",
            "time": datetime.now(UTC).isoformat(),
            "wsPath": settings.api.ws_path,
        }

    return app
