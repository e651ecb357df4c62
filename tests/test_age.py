from datetime import date, datetime

import pytest

from vacinaos.eligibility.age import compute_age, days_in_previous_month
from vacinaos.eligibility.model import AgeBreakdown


def _ymd(age):
    return (age.years, age.months, age.days)


def test_borrow_across_february():
    assert _ymd(compute_age(date(2020, 1, 31), date(2020, 3, 1))) == (0, 1, 1)


def test_same_day_is_zero():
    assert _ymd(compute_age(date(2024, 7, 9), date(2024, 7, 9))) == (0, 0, 0)


def test_exact_birthday():
    assert _ymd(compute_age(date(2024, 5, 15), date(2025, 5, 15))) == (1, 0, 0)


def test_day_and_month_borrow():
    # April has 30 days
    assert _ymd(compute_age(date(2024, 5, 20), date(2025, 5, 15))) == (0, 11, 25)


def test_borrow_uses_previous_month_length():
    assert _ymd(compute_age(date(2021, 1, 31), date(2021, 3, 30))) == (0, 1, 27)
    assert _ymd(compute_age(date(2020, 1, 30), date(2020, 3, 1))) == (0, 1, 0)


def test_anchor_day_past_end_of_borrowed_month():
    # Feb 2021 has 28 days; 31 - 28 leaves the plain borrow negative
    assert _ymd(compute_age(date(2021, 1, 31), date(2021, 3, 2))) == (0, 1, 2)


def test_accepts_datetimes():
    age = compute_age(datetime(2024, 1, 1, 23, 59), datetime(2024, 2, 1, 0, 1))
    assert _ymd(age) == (0, 1, 0)


@pytest.mark.parametrize(
    "anchor,now",
    [
        (date(2019, 12, 31), date(2020, 2, 29)),
        (date(2020, 2, 29), date(2021, 2, 28)),
        (date(2023, 8, 31), date(2024, 9, 30)),
        (date(2010, 10, 15), date(2025, 3, 1)),
        (date(2024, 12, 31), date(2025, 1, 1)),
    ],
)
def test_breakdown_bounds(anchor, now):
    age = compute_age(anchor, now)
    assert age.years >= 0
    assert 0 <= age.months <= 11
    assert 0 <= age.days <= 30
    assert age.days < days_in_previous_month(now)


def test_derived_totals_are_approximate():
    age = AgeBreakdown(years=1, months=2, days=15)
    assert age.total_months == 14
    assert age.approx_total_days == 14 * 30 + 15
    assert age.approx_weeks == 52 + 8 + 2


def test_days_in_previous_month():
    assert days_in_previous_month(date(2024, 3, 10)) == 29
    assert days_in_previous_month(date(2025, 3, 10)) == 28
    assert days_in_previous_month(date(2025, 1, 5)) == 31
