"""Core utilities shared across the dispatch service."""

from .exceptions import (
    AlreadyFinishedError,
    DispatchError,
    InvalidStatusError,
    NoDriversAvailableError,
    NotFoundError,
    PermanentError,
    ServiceUnavailableError,
    StateError,
    TransientError,
    ValidationError,
)

__all__ = [
    "DispatchError",
    "TransientError",
    "ServiceUnavailableError",
    "NoDriversAvailableError",
    "PermanentError",
    "ValidationError",
    "NotFoundError",
    "StateError",
    "InvalidStatusError",
    "AlreadyFinishedError",
]
