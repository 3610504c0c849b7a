from .distance import (
    Coordinate,
    distance_km,
    flat_distance_km,
    haversine_distance_km,
    is_near,
    parse_coordinate,
    step_toward,
)

__all__ = [
    "Coordinate",
    "distance_km",
    "flat_distance_km",
    "haversine_distance_km",
    "is_near",
    "parse_coordinate",
    "step_toward",
]
