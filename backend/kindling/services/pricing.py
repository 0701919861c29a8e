"""
Pricing: base daily price for 100% share -> total charge in cents for a share and whole-day duration.

Rounded once, half-up, on the final product (not per day) so multi-day bookings do not accumulate rounding error.
"""
import math
from datetime import datetime

from kindling.core.constants import BILLING_DAY, MAX_SHARE_PCT, MIN_SHARE_PCT
from kindling.core.errors import InvalidInput


def _is_int(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def price(base_cents_per_day: int, share_pct: int, days: int) -> int:
    """
    Total price in cents: round_half_up(base_cents_per_day * share_pct / 100 * days).

    >>> price(1000, 50, 7)
    3500
    >>> price(999, 33, 1)
    330
    """
    if not _is_int(base_cents_per_day) or base_cents_per_day <= 0:
        raise InvalidInput("base price must be a positive integer number of cents", field="base_cents_per_day")
    if not _is_int(share_pct) or not MIN_SHARE_PCT <= share_pct <= MAX_SHARE_PCT:
        raise InvalidInput(
            f"share must be an integer between {MIN_SHARE_PCT} and {MAX_SHARE_PCT}", field="share_pct"
        )
    if not _is_int(days) or days < 1:
        raise InvalidInput("duration must be at least 1 whole day", field="days")
    # share_pct / 100 kept as integer arithmetic: exact, then half-up on hundredths of a cent
    hundredths = base_cents_per_day * share_pct * days
    return (hundredths + 50) // 100


def billable_days(starts_at: datetime, ends_at: datetime) -> int:
    """Whole days billed for [starts_at, ends_at): partial days round up."""
    if starts_at >= ends_at:
        raise InvalidInput("window start must be before its end", field="window")
    return math.ceil((ends_at - starts_at) / BILLING_DAY)
