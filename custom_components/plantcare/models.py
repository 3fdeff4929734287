"""Plant records tracked by the integration."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from typing import Any

from homeassistant.util import dt as dt_util

from .const import MAX_INTERVAL_DAYS
from .watering import compute_next_due

__all__ = [
    "InvalidPlantError",
    "Plant",
    "SyncState",
    "coerce_interval",
    "coerce_timestamp",
]


class InvalidPlantError(ValueError):
    """Raised when a plant would violate the name or interval invariants."""


class SyncState(StrEnum):
    """Outcome of the last remote call made on behalf of a plant."""

    SYNCED = "synced"
    LOCAL_ONLY = "local_only"
    SYNC_FAILED = "sync_failed"


def coerce_interval(value: Any) -> int:
    """Return ``value`` as a whole number of days between 1 and ``MAX_INTERVAL_DAYS``."""

    if isinstance(value, bool):
        raise InvalidPlantError(f"interval must be a positive integer, got {value!r}")
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError) as err:
        raise InvalidPlantError(f"interval must be a positive integer, got {value!r}") from err
    if not number.is_integer() or number <= 0:
        raise InvalidPlantError(f"interval must be a positive integer, got {value!r}")
    if number > MAX_INTERVAL_DAYS:
        raise InvalidPlantError(f"interval must be at most {MAX_INTERVAL_DAYS} days, got {value!r}")
    return int(number)


def coerce_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 string or datetime into a datetime in the local zone.

    Serialised timestamps only carry a fixed UTC offset. Converting them back
    to Home Assistant's time zone lets day arithmetic follow daylight-saving
    changes again.
    """

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        parsed = dt_util.parse_datetime(value.strip().replace("Z", "+00:00"))
    else:
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_util.UTC)
    return dt_util.as_local(parsed)


@dataclass(frozen=True, slots=True)
class Plant:
    """A houseplant with its watering interval and sync bookkeeping."""

    plant_id: str
    name: str
    interval_days: int
    last_watered_at: datetime
    remote_id: str | None = None
    sync_state: SyncState = SyncState.LOCAL_ONLY
    sync_error: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidPlantError("plant name must be a non-empty string")
        if isinstance(self.interval_days, bool) or not isinstance(self.interval_days, int) or self.interval_days <= 0:
            raise InvalidPlantError(f"interval must be a positive integer, got {self.interval_days!r}")
        if self.interval_days > MAX_INTERVAL_DAYS:
            raise InvalidPlantError(f"interval must be at most {MAX_INTERVAL_DAYS} days, got {self.interval_days!r}")
        if not isinstance(self.last_watered_at, datetime):
            raise InvalidPlantError("last watered timestamp must be a datetime")

    @classmethod
    def new(
        cls,
        name: str,
        interval_days: Any,
        *,
        last_watered_at: datetime,
        remote_id: str | None = None,
        sync_state: SyncState = SyncState.LOCAL_ONLY,
    ) -> Plant:
        """Build a plant with a freshly generated local id."""

        if not isinstance(name, str):
            raise InvalidPlantError("plant name must be a non-empty string")
        return cls(
            plant_id=uuid.uuid4().hex,
            name=name.strip(),
            interval_days=coerce_interval(interval_days),
            last_watered_at=last_watered_at,
            remote_id=remote_id,
            sync_state=sync_state,
        )

    @property
    def next_due(self) -> datetime:
        return compute_next_due(self.last_watered_at, self.interval_days)

    def watered(self, now: datetime) -> Plant:
        """Return a copy watered at ``now``; the timestamp never moves backwards."""

        return replace(self, last_watered_at=max(now, self.last_watered_at))

    def with_sync(self, state: SyncState, error: str | None = None) -> Plant:
        return replace(self, sync_state=state, sync_error=error if state is SyncState.SYNC_FAILED else None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "plant_id": self.plant_id,
            "remote_id": self.remote_id,
            "name": self.name,
            "interval_days": self.interval_days,
            "last_watered_at": self.last_watered_at.isoformat(),
            "sync_state": self.sync_state.value,
            "sync_error": self.sync_error,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Plant:
        """Rebuild a plant from :meth:`to_dict` output."""

        if not isinstance(payload, Mapping):
            raise InvalidPlantError("plant record must be a mapping")
        last_watered = coerce_timestamp(payload.get("last_watered_at"))
        if last_watered is None:
            raise InvalidPlantError("plant record has no valid last watered timestamp")
        try:
            sync_state = SyncState(payload.get("sync_state") or SyncState.LOCAL_ONLY)
        except ValueError:
            sync_state = SyncState.LOCAL_ONLY
        remote_id = payload.get("remote_id")
        plant_id = str(payload.get("plant_id") or "").strip() or uuid.uuid4().hex
        name = payload.get("name")
        return cls(
            plant_id=plant_id,
            name=name.strip() if isinstance(name, str) else name,
            interval_days=coerce_interval(payload.get("interval_days")),
            last_watered_at=last_watered,
            remote_id=str(remote_id) if remote_id not in (None, "") else None,
            sync_state=sync_state,
            sync_error=payload.get("sync_error") if sync_state is SyncState.SYNC_FAILED else None,
        )
