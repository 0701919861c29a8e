"""Half-open booking windows [starts_at, ends_at) in UTC, at most max_booking_days long."""
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

from kindling.config import settings
from kindling.core.errors import InvalidInput


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC (SQLite hands them back naive)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _too_long() -> InvalidInput:
    return InvalidInput(
        f"Duration must be at most {settings.max_booking_days} days",
        field="window",
        max_days=settings.max_booking_days,
    )


class Window(NamedTuple):
    starts_at: datetime
    ends_at: datetime

    @classmethod
    def of(cls, starts_at: datetime, ends_at: datetime) -> "Window":
        try:
            start, end = as_utc(starts_at), as_utc(ends_at)
        except OverflowError:
            raise InvalidInput("window is outside the supported date range", field="window") from None
        if start >= end:
            raise InvalidInput("window start must be before its end", field="window")
        if end - start > timedelta(days=settings.max_booking_days):
            raise _too_long()
        return cls(start, end)

    @classmethod
    def from_days(cls, days: int, start: datetime | None = None) -> "Window":
        """`days` whole days starting at `start` (default now)."""
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise InvalidInput("Duration must be at least 1 day", field="days")
        if days > settings.max_booking_days:
            raise _too_long()
        try:
            start = as_utc(start) if start is not None else utcnow()
            return cls(start, start + timedelta(days=days))
        except OverflowError:
            raise InvalidInput("window is outside the supported date range", field="window") from None

    def overlaps(self, starts_at: datetime, ends_at: datetime) -> bool:
        """Half-open overlap: touching at a boundary is not overlap."""
        return as_utc(starts_at) < self.ends_at and as_utc(ends_at) > self.starts_at

    def contains(self, at: datetime) -> bool:
        at = as_utc(at)
        return self.starts_at <= at < self.ends_at
