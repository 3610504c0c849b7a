from pydantic import BaseModel, Field

from ..geo.distance import Coordinate, flat_distance_km
from ..settings import PricingSettings


class FareBreakdown(BaseModel):
    """Detailed breakdown of fare components."""

    base_fee: float = Field(ge=0)
    trip_distance_km: float = Field(ge=0)
    driver_distance_km: float = Field(ge=0)
    distance_charge: float = Field(ge=0)
    surge_multiplier: float = Field(ge=1.0)
    total_fare: float = Field(ge=0)


class FareCalculator:
    """Estimates ride prices from trip length and the driver's approach.

    total = round2((base + (trip_km + driver_km * weight) * per_km) * surge)

    The trip length is the straight line between pickup and dropoff using the
    regional km-per-degree factors. Surge is a fixed multiplier for now.
    """

    BASE_FEE = 3.00
    PER_KM_RATE = 1.80
    DRIVER_DISTANCE_WEIGHT = 0.3
    SURGE_MULTIPLIER = 1.0

    def __init__(
        self,
        base_fee: float = BASE_FEE,
        per_km_rate: float = PER_KM_RATE,
        driver_distance_weight: float = DRIVER_DISTANCE_WEIGHT,
        surge_multiplier: float = SURGE_MULTIPLIER,
    ) -> None:
        self.base_fee = base_fee
        self.per_km_rate = per_km_rate
        self.driver_distance_weight = driver_distance_weight
        self.surge_multiplier = surge_multiplier

    @classmethod
    def from_settings(cls, settings: PricingSettings) -> "FareCalculator":
        return cls(
            base_fee=settings.base_fare,
            per_km_rate=settings.per_km_rate,
            driver_distance_weight=settings.driver_distance_weight,
            surge_multiplier=settings.surge_multiplier,
        )

    def calculate(
        self,
        pickup: Coordinate,
        dropoff: Coordinate,
        driver_distance_km: float = 0.0,
    ) -> FareBreakdown:
        if driver_distance_km < 0:
            raise ValueError("Driver distance must be non-negative")

        trip_km = flat_distance_km(pickup, dropoff)
        billable_km = trip_km + driver_distance_km * self.driver_distance_weight
        distance_charge = billable_km * self.per_km_rate
        total_fare = round((self.base_fee + distance_charge) * self.surge_multiplier, 2)

        return FareBreakdown(
            base_fee=self.base_fee,
            trip_distance_km=trip_km,
            driver_distance_km=driver_distance_km,
            distance_charge=distance_charge,
            surge_multiplier=self.surge_multiplier,
            total_fare=total_fare,
        )

    def estimate(
        self,
        pickup: Coordinate,
        dropoff: Coordinate,
        driver_distance_km: float = 0.0,
    ) -> float:
        """Total fare only, rounded to cents."""
        return self.calculate(pickup, dropoff, driver_distance_km).total_fare
