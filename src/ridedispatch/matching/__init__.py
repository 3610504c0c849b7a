from .dispatch_service import DispatchService
from .driver_registry import Driver, DriverRegistry
from .pricing import FareBreakdown, FareCalculator

__all__ = [
    "DispatchService",
    "Driver",
    "DriverRegistry",
    "FareBreakdown",
    "FareCalculator",
]
