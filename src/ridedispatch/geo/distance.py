"""Centralized geographic distance calculations.

Haversine distance is used for driver matching. Driver movement in the
simulation uses a flat-earth step with fixed km-per-degree factors, which
holds near the deployment's reference latitude (San Francisco).
"""

from math import atan2, copysign, cos, radians, sin, sqrt
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from ..core.exceptions import ValidationError

EARTH_RADIUS_KM = 6371.0

# Regional flat approximations used for stepping and fare distance.
KM_PER_DEGREE_LAT = 111.0
KM_PER_DEGREE_LNG = 85.0

# Below this per-axis delta a step snaps onto the target.
SNAP_EPSILON_DEG = 1e-6

DEFAULT_STEP_KM = 0.2


class Coordinate(BaseModel):
    """Latitude/longitude pair in degrees.

    Strict validation rejects strings and booleans; ranges are not enforced.
    """

    model_config = ConfigDict(frozen=True)

    lat: float = Field(strict=True, allow_inf_nan=False)
    lng: float = Field(strict=True, allow_inf_nan=False)


C = TypeVar("C", bound=Coordinate)


def parse_coordinate(value: Any, model: type[C] = Coordinate) -> C:  # type: ignore[assignment]
    """Validate a coordinate-like value (mapping or object with lat/lng).

    Raises ValidationError when either axis is missing or not a finite number.
    """
    if type(value) is model:
        return value
    if isinstance(value, Coordinate):
        value = value.model_dump()
    try:
        return model.model_validate(value, from_attributes=True)
    except pydantic.ValidationError as e:
        raise ValidationError(
            "lat and lng must be numbers",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e


def haversine_distance_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the great-circle distance between two points in kilometers.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance between the two points in kilometers
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in kilometers."""
    return haversine_distance_km(a.lat, a.lng, b.lat, b.lng)


def flat_distance_km(a: Coordinate, b: Coordinate) -> float:
    """Straight-line distance using the regional km-per-degree factors."""
    dy = (b.lat - a.lat) * KM_PER_DEGREE_LAT
    dx = (b.lng - a.lng) * KM_PER_DEGREE_LNG
    return sqrt(dx * dx + dy * dy)


def step_toward(
    pos: Coordinate,
    target: Coordinate,
    step_km: float = DEFAULT_STEP_KM,
) -> Coordinate:
    """Move ``pos`` toward ``target`` by at most ``step_km`` per axis.

    Each axis moves independently and is clamped so it never passes the
    target. When both axes are within SNAP_EPSILON_DEG the target itself is
    returned, so repeated stepping terminates exactly on the target.
    """
    max_dlat = step_km / KM_PER_DEGREE_LAT
    max_dlng = step_km / KM_PER_DEGREE_LNG

    dlat = target.lat - pos.lat
    dlng = target.lng - pos.lng

    if max(abs(dlat), abs(dlng)) < SNAP_EPSILON_DEG:
        return Coordinate(lat=target.lat, lng=target.lng)

    step_lat = copysign(min(abs(dlat), max_dlat), dlat)
    step_lng = copysign(min(abs(dlng), max_dlng), dlng)
    return Coordinate(lat=pos.lat + step_lat, lng=pos.lng + step_lng)


def is_near(a: Coordinate, b: Coordinate, threshold_deg: float) -> bool:
    """Check whether both axis deltas are strictly below ``threshold_deg``."""
    return abs(a.lat - b.lat) < threshold_deg and abs(a.lng - b.lng) < threshold_deg
