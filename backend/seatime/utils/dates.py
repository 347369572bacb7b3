"""Clock and calendar-day helpers.

Timestamps are stored as naive UTC. Which calendar day a timestamp belongs
to is a policy decision kept behind a single function so it can be swapped
without touching the entry manager.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable

CalendarDayFn = Callable[[datetime], date]


def utcnow() -> datetime:
    """Current time as naive UTC, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_aware_utc(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


def local_calendar_day(ts: datetime) -> date:
    """Calendar day on the server's wall clock."""
    return _as_aware_utc(ts).astimezone().date()


def utc_calendar_day(ts: datetime) -> date:
    """Calendar day in UTC."""
    return _as_aware_utc(ts).astimezone(timezone.utc).date()


_POLICIES: dict[str, CalendarDayFn] = {
    "local": local_calendar_day,
    "utc": utc_calendar_day,
}


def get_calendar_day_fn(policy: str) -> CalendarDayFn:
    """Resolve a CALENDAR_DAY_POLICY name to its day function."""
    try:
        return _POLICIES[policy.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown calendar day policy {policy!r} (expected one of {sorted(_POLICIES)})"
        ) from None
