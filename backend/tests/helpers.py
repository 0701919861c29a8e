from datetime import datetime, timedelta, timezone

from kindling.services.windows import Window

# Day 0 of every test timeline
T0 = datetime(2030, 1, 1, tzinfo=timezone.utc)


def day(n: float) -> datetime:
    return T0 + timedelta(days=n)


def days(start: float, end: float) -> Window:
    """Window [day(start), day(end))."""
    return Window.of(day(start), day(end))
