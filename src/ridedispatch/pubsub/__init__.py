from .update_bus import Observer, UpdateBus

__all__ = ["Observer", "UpdateBus"]
