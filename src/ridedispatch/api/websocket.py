"""Live ride updates over WebSocket.

Clients connect with ``?token=<bearer token>`` and send
``{"type": "subscribe", "rideId": "R-1000"}``. The server answers with the
ride's current snapshot and then forwards every snapshot published for it.
Anything else the client sends is ignored.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, Literal

import anyio
import anyio.abc
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from ..core.exceptions import NotFoundError
from .auth import Identity

logger = logging.getLogger(__name__)

# Close code for clients that cannot keep up with their ride's updates.
CLOSE_TRY_AGAIN_LATER = 1013
CLOSE_POLICY_VIOLATION = 1008


class SubscribeMessage(BaseModel):
    type: Literal["subscribe"]
    ride_id: str = Field(alias="rideId", min_length=1)


def parse_subscribe(raw: str | bytes) -> str | None:
    """Ride id of a subscribe message, or None for anything else."""
    try:
        return SubscribeMessage.model_validate_json(raw).ride_id
    except SchemaError:
        return None


class WebSocketObserver:
    """Adapts one WebSocket connection to the UpdateBus observer interface.

    ``deliver`` may be called from any thread; snapshots are handed to the
    connection's event loop and written by ``pump`` in publish order. When
    more than ``max_pending`` messages are waiting the client is considered
    too slow and the observer closes itself.
    """

    def __init__(
        self, websocket: WebSocket, loop: asyncio.AbstractEventLoop, max_pending: int
    ) -> None:
        self._websocket = websocket
        self._loop = loop
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(maxsize=max_pending)
        self._open = True
        self.overflowed = False

    @property
    def is_open(self) -> bool:
        return self._open

    def deliver(self, snapshot: dict[str, Any]) -> None:
        if not self._open:
            return
        self._loop.call_soon_threadsafe(self.push, snapshot)

    def push(self, message: dict[str, Any]) -> None:
        """Queue ``message`` for sending. Must run on the connection's loop."""
        if not self._open:
            return
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("WebSocket client fell %d messages behind, closing", self._queue.qsize())
            self.overflowed = True
            self.close()

    def close(self) -> None:
        self._open = False
        with contextlib.suppress(asyncio.QueueFull):
            self._queue.put_nowait(None)

    async def pump(self) -> None:
        while True:
            message = await self._queue.get()
            if message is None or not self._open:
                return
            try:
                await self._websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug("WebSocket send failed, client gone: %r", e)
                self._open = False
                return


async def _receive_loop(websocket: WebSocket, observer: WebSocketObserver, user_id: str) -> None:
    dispatch = websocket.app.state.dispatch_service
    update_bus = websocket.app.state.update_bus

    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return

        ride_id = parse_subscribe(message.get("text") or message.get("bytes") or b"")
        if ride_id is None:
            logger.debug("Ignoring malformed WebSocket message")
            continue

        try:
            ride = dispatch.get_ride(ride_id, user_id)
        except NotFoundError as e:
            observer.push({"type": "error", "error": e.message, "rideId": ride_id})
            continue

        # Queue the current state before subscribing so it is never sent
        # after a newer published snapshot.
        observer.push(ride.to_snapshot())
        update_bus.subscribe(ride_id, observer)
        logger.debug("WebSocket subscribed to ride %s", ride_id)


async def _run_until_done(
    group: anyio.abc.TaskGroup, side: Callable[[], Awaitable[None]]
) -> None:
    """Run one side of the connection; whichever side ends first ends both."""
    try:
        await side()
    finally:
        group.cancel_scope.cancel()


async def websocket_endpoint(websocket: WebSocket) -> None:
    identity: Identity = websocket.app.state.identity
    token = websocket.query_params.get("token")
    principal = identity.verify(token) if token else None
    if principal is None:
        await websocket.close(code=CLOSE_POLICY_VIOLATION)
        return

    await websocket.accept()

    update_bus = websocket.app.state.update_bus
    max_pending = websocket.app.state.settings.api.ws_send_queue_size
    observer = WebSocketObserver(websocket, asyncio.get_running_loop(), max_pending)

    try:
        async with anyio.create_task_group() as group:
            group.start_soon(_run_until_done, group, observer.pump)
            group.start_soon(
                _run_until_done,
                group,
                partial(_receive_loop, websocket, observer, principal.user_id),
            )
    finally:
        observer.close()
        update_bus.unsubscribe(observer)

    if observer.overflowed and websocket.client_state == WebSocketState.CONNECTED:
        with contextlib.suppress(RuntimeError):
            await websocket.close(code=CLOSE_TRY_AGAIN_LATER)
