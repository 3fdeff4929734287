"""Watering date arithmetic.

All helpers work on calendar dates rather than elapsed seconds. Adding a
``timedelta`` of whole days to an aware datetime whose ``tzinfo`` is a
:class:`zoneinfo.ZoneInfo` keeps the wall-clock time and recomputes the UTC
offset, so a plant watered at 09:00 the day before a daylight-saving switch
is still due at 09:00 local time.
"""

from __future__ import annotations

from datetime import datetime, timedelta

__all__ = ["compute_next_due", "days_until_due", "is_due"]


def compute_next_due(last_watered_at: datetime, interval_days: int) -> datetime:
    """Return ``last_watered_at`` moved forward by ``interval_days`` calendar days."""

    return last_watered_at + timedelta(days=int(interval_days))


def days_until_due(last_watered_at: datetime, interval_days: int, now: datetime) -> int:
    """Return whole days from ``now``'s date to the due date, negative when overdue."""

    due = compute_next_due(last_watered_at, interval_days)
    if due.tzinfo is not None and now.tzinfo is not None:
        due = due.astimezone(now.tzinfo)
    return (due.date() - now.date()).days


def is_due(last_watered_at: datetime, interval_days: int, now: datetime) -> bool:
    """Return ``True`` once ``now`` has reached the due instant."""

    return now >= compute_next_due(last_watered_at, interval_days)
