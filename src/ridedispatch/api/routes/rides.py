import re
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..auth import PrincipalDep, require_principal
from ..dependencies import DispatchServiceDep

router = APIRouter(dependencies=[Depends(require_principal)])

DEFAULT_LIMIT = 50
MAX_LIMIT = 200
MAX_OFFSET = 10_000

LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class RideRequestBody(BaseModel):
    """Pickup and dropoff as ``{lat, lng, address?}`` objects.

    Coordinates are validated by the dispatch service so that bad values
    surface as a 400 with the domain's message.
    """

    pickup: dict[str, Any]
    dropoff: dict[str, Any]


def clamp_int(value: str | None, default: int, minimum: int, maximum: int) -> int:
    """Leading integer of ``value`` clamped to [minimum, maximum].

    Trailing characters are ignored, so ``"20.5"`` and ``"20abc"`` both read
    as 20. No leading digits at all gives ``default``.
    """
    match = LEADING_INT.match(value) if value is not None else None
    if match is None:
        return default
    return min(max(int(match.group(1)), minimum), maximum)


@router.post("", status_code=201)
def create_ride(
    body: RideRequestBody,
    principal: PrincipalDep,
    dispatch: DispatchServiceDep,
) -> dict[str, Any]:
    ride = dispatch.request_ride(principal.user_id, body.pickup, body.dropoff)
    return ride.to_snapshot()


@router.get("")
def list_rides(
    principal: PrincipalDep,
    dispatch: DispatchServiceDep,
    limit: str | None = None,
    offset: str | None = None,
) -> list[dict[str, Any]]:
    """Rides of the authenticated rider, newest first."""
    rides = dispatch.list_rides(
        principal.user_id,
        limit=clamp_int(limit, DEFAULT_LIMIT, 1, MAX_LIMIT),
        offset=clamp_int(offset, 0, 0, MAX_OFFSET),
    )
    return [ride.to_snapshot() for ride in rides]


@router.get("/{ride_id}")
def get_ride(ride_id: str, principal: PrincipalDep, dispatch: DispatchServiceDep) -> dict[str, Any]:
    return dispatch.get_ride(ride_id, principal.user_id).to_snapshot()


@router.post("/{ride_id}/cancel")
def cancel_ride(
    ride_id: str, principal: PrincipalDep, dispatch: DispatchServiceDep
) -> dict[str, Any]:
    return dispatch.cancel(ride_id, principal.user_id).to_snapshot()
