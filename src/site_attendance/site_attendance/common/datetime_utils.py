from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Protocol

import pytz


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant, timezone-aware (UTC)."""

        raise NotImplementedError


class SystemClock:
    """Wall clock.

    Note: Wrapped so tests can inject a fixed clock instead.
    """

    def now(self) -> datetime:
        return datetime.now(pytz.UTC)


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hhmm(value: str) -> time:
    """Parse HH:MM or HH:MM:SS into a time of day."""
    v = (value or "").strip()
    return datetime.strptime(v[:5], "%H:%M").time()


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the backend.

    Naive values are taken as UTC, matching how the check-in/out calls send them.
    """

    if not value:
        return None
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return ensure_utc(dt)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_local(dt: datetime, tz) -> datetime:
    """Convert an instant to the configured local timezone."""
    return ensure_utc(dt).astimezone(tz)


def local_date(dt: datetime, tz) -> date:
    """Local calendar date of an instant (records are keyed by this, never the UTC date)."""
    return to_local(dt, tz).date()


def local_combine(day: date, at: time, tz) -> datetime:
    """Local wall-clock ``day at`` as an aware datetime in ``tz``."""
    return tz.localize(datetime.combine(day, at))


def minutes_of_day(value: datetime | time) -> int:
    return value.hour * 60 + value.minute


def get_timezone(name: str):
    return pytz.timezone(name)
