from datetime import timedelta

import pytest

from kindling.core.errors import InvalidInput
from kindling.services.pricing import billable_days, price
from tests.helpers import day


def test_price_half_share_for_a_week():
    assert price(1000, 50, 7) == 3500


def test_price_rounds_half_up_once_on_total():
    # 999 * 0.33 = 329.67
    assert price(999, 33, 1) == 330
    # 1 * 0.5 = 0.5 -> 1
    assert price(1, 50, 1) == 1
    # per-day rounding would give 3 * round(3.33) = 9; rounding the total gives round(9.99) = 10
    assert price(333, 1, 3) == 10


def test_price_full_share_is_base_times_days():
    assert price(2500, 100, 30) == 75_000


@pytest.mark.parametrize(
    "base, share, days",
    [
        (0, 50, 1),
        (-5, 50, 1),
        (1000, 0, 1),
        (1000, 101, 1),
        (1000, 50, 0),
        (1000, 50.5, 1),
        (True, 50, 1),
    ],
)
def test_price_rejects_out_of_range_input(base, share, days):
    with pytest.raises(InvalidInput):
        price(base, share, days)


def test_billable_days_rounds_partial_days_up():
    assert billable_days(day(0), day(1)) == 1
    assert billable_days(day(0), day(1) + timedelta(seconds=1)) == 2
    assert billable_days(day(0), day(0) + timedelta(hours=36)) == 2
    assert billable_days(day(0), day(0) + timedelta(minutes=5)) == 1


def test_billable_days_rejects_empty_window():
    with pytest.raises(InvalidInput):
        billable_days(day(3), day(3))
