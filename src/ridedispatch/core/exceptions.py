"""Standardized exception hierarchy for the dispatch service."""

from typing import Any


class DispatchError(Exception):
    """Base exception for all dispatch errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(DispatchError):
    """Errors that may succeed on retry."""

    pass


class ServiceUnavailableError(TransientError):
    """A required resource is temporarily unavailable."""

    pass


class NoDriversAvailableError(ServiceUnavailableError):
    """No available driver could be reserved for a ride request.

    A normal business outcome rather than a fault: callers may retry later.
    """

    def __init__(
        self,
        message: str = "No drivers available",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)


class PermanentError(DispatchError):
    """Errors that will not succeed on retry."""

    pass


class ValidationError(PermanentError):
    """Invalid input or data format."""

    pass


class NotFoundError(PermanentError):
    """Requested entity does not exist or is not visible to the requester."""

    pass


class StateError(PermanentError):
    """Invalid state transition."""

    pass


class InvalidStatusError(StateError):
    """Status value outside the ride status enumeration."""

    pass


class AlreadyFinishedError(StateError):
    """Attempt to move a ride out of a terminal status."""

    pass
