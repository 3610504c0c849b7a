from .ride_store import RideStore

__all__ = ["RideStore"]
