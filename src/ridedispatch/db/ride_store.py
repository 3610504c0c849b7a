"""In-memory ride store with a per-rider index.

Every public method takes the store lock for its whole duration and hands
back deep copies, so callers never hold a live reference into the tables.
"""

import copy
import itertools
import logging
import threading
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

import pydantic
from pydantic.alias_generators import to_camel

from ..core.exceptions import AlreadyFinishedError, InvalidStatusError, ValidationError
from ..ride import Ride, RideStatus
from .utils import utc_now

logger = logging.getLogger(__name__)

RIDE_ID_PREFIX = "R-"
FIRST_RIDE_NUMBER = 1000

# Accept both snake_case field names and their camelCase snapshot aliases.
_FIELD_NAMES: dict[str, str] = {}
for _name in Ride.model_fields:
    _FIELD_NAMES[_name] = _name
    _FIELD_NAMES[to_camel(_name)] = _name

# Fields a write may never change on an existing record.
_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def coerce_status(status: Any) -> RideStatus:
    """Convert a raw value into a RideStatus or raise InvalidStatusError."""
    try:
        return RideStatus(status)
    except (ValueError, TypeError) as e:
        raise InvalidStatusError(
            f"Invalid status: {status!r}",
            details={"allowed": [s.value for s in RideStatus]},
        ) from e


class RideStore:
    """Authoritative ride records keyed by id and indexed by owning user."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._rides: dict[str, Ride] = {}
        self._by_user: dict[str, list[str]] = {}
        self._ids = itertools.count(FIRST_RIDE_NUMBER)

    def save(self, ride: Mapping[str, Any]) -> Ride:
        """Create a ride, or shallow-merge ``ride`` over an existing record.

        Without an ``id`` a new one is allocated. An unknown ``id`` is created
        as given. For an existing ``id`` the supplied fields replace the stored
        ones wholesale (``meta`` included) and a changed ``user_id`` moves the
        ride to the head of the new owner's index.
        """
        fields = self._normalize(ride)
        with self._lock:
            ride_id = fields.get("id")
            existing = self._rides.get(ride_id) if ride_id else None
            if existing is None:
                record = self._create(fields)
            else:
                record = self._merge(existing, fields)
            return record.model_copy(deep=True)

    def get(self, ride_id: str) -> Ride | None:
        if not ride_id:
            return None
        with self._lock:
            record = self._rides.get(ride_id)
            return record.model_copy(deep=True) if record else None

    def list_by_user(self, user_id: str, limit: int = 50, offset: int = 0) -> list[Ride]:
        """List a user's rides newest first, sliced by ``offset``/``limit``."""
        if limit < 0 or offset < 0:
            raise ValidationError(
                "limit and offset must be non-negative",
                details={"limit": limit, "offset": offset},
            )
        with self._lock:
            ids = self._by_user.get(user_id, [])[offset : offset + limit]
            return [self._rides[rid].model_copy(deep=True) for rid in ids]

    def update_status(
        self,
        ride_id: str,
        status: RideStatus | str,
        extra: Mapping[str, Any] | None = None,
    ) -> Ride | None:
        """Set ``status`` and merge ``extra`` fields; None if the ride is unknown.

        A terminal ride accepts its own status again (refreshing updated_at)
        but refuses any other status with AlreadyFinishedError.
        """
        new_status = coerce_status(status)
        fields = self._normalize(extra or {})
        fields["status"] = new_status
        with self._lock:
            existing = self._rides.get(ride_id) if ride_id else None
            if existing is None:
                return None
            record = self._merge(existing, fields)
            return record.model_copy(deep=True)

    def count(self) -> int:
        with self._lock:
            return len(self._rides)

    def clear(self) -> None:
        """Drop all rides and restart id allocation."""
        with self._lock:
            self._rides.clear()
            self._by_user.clear()
            self._ids = itertools.count(FIRST_RIDE_NUMBER)

    def _normalize(self, ride: Mapping[str, Any]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        unknown: list[str] = []
        for key, value in ride.items():
            name = _FIELD_NAMES.get(key)
            if name is None:
                unknown.append(key)
            else:
                fields[name] = copy.deepcopy(value)
        if unknown:
            raise ValidationError(
                f"Unknown ride fields: {', '.join(sorted(unknown))}",
                details={"fields": unknown},
            )
        return fields

    def _next_id(self) -> str:
        while True:
            ride_id = f"{RIDE_ID_PREFIX}{next(self._ids)}"
            if ride_id not in self._rides:
                return ride_id

    def _timestamp(self, previous: datetime | None = None) -> datetime:
        now = self._clock()
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def _create(self, fields: dict[str, Any]) -> Ride:
        if not fields.get("user_id"):
            raise ValidationError("ride.user_id is required")

        if "status" in fields and fields["status"] is not None:
            fields["status"] = coerce_status(fields["status"])

        now = self._timestamp()
        data = {
            "id": fields.get("id") or self._next_id(),
            "user_id": fields["user_id"],
            "pickup": fields.get("pickup"),
            "dropoff": fields.get("dropoff"),
            "driver_id": fields.get("driver_id"),
            "status": fields.get("status") or RideStatus.REQUESTED,
            "price": fields.get("price"),
            "meta": fields.get("meta") or {},
            "created_at": now,
            "updated_at": now,
        }
        record = self._validate(data)

        self._rides[record.id] = record
        self._by_user.setdefault(record.user_id, []).insert(0, record.id)
        logger.debug("Created ride %s for user %s", record.id, record.user_id)
        return record

    def _merge(self, existing: Ride, fields: dict[str, Any]) -> Ride:
        if "status" in fields:
            new_status = coerce_status(fields["status"])
            if existing.status.is_terminal and new_status != existing.status:
                raise AlreadyFinishedError(
                    f"Ride {existing.id} is already {existing.status.value}",
                    details={"ride_id": existing.id, "requested": new_status.value},
                )
            fields["status"] = new_status

        data = existing.model_dump()
        data.update({k: v for k, v in fields.items() if k not in _IMMUTABLE_FIELDS})
        data["updated_at"] = self._timestamp(existing.updated_at)
        record = self._validate(data)

        self._rides[record.id] = record
        if record.user_id != existing.user_id:
            old_ids = self._by_user.get(existing.user_id, [])
            self._by_user[existing.user_id] = [rid for rid in old_ids if rid != record.id]
            self._by_user.setdefault(record.user_id, []).insert(0, record.id)
        return record

    @staticmethod
    def _validate(data: dict[str, Any]) -> Ride:
        try:
            return Ride.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Invalid ride data",
                details={"errors": e.errors(include_url=False)},
            ) from e
