#!/usr/bin/env python3
"""
VacinaOS — Age / Interval Calculator

Converts an anchor date (birth date, delivery date) and the evaluation date
into a calendar-aware AgeBreakdown.

Borrowing:
- Negative day difference borrows one month and adds the length of the
  month immediately preceding `now`'s month. If the day count is still
  negative (anchor day past the end of that month), it restarts from the
  last day of the borrowed month.
- Negative month difference borrows one year and adds 12.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Union

from vacinaos.eligibility.model import AgeBreakdown

DateLike = Union[date, datetime]


def as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_in_previous_month(d: date) -> int:
    """Length of the calendar month immediately preceding d's month."""
    return (d.replace(day=1) - timedelta(days=1)).day


def compute_age(anchor: DateLike, now: DateLike) -> AgeBreakdown:
    """Years, months and days elapsed from `anchor` to `now`.

    `anchor` must not be later than `now`; this is not checked.

    Examples:
        2020-01-31 -> 2020-03-01 is 0y 1m 1d
        2020-05-10 -> 2020-05-10 is 0y 0m 0d
    """
    a = as_date(anchor)
    n = as_date(now)

    years = n.year - a.year
    months = n.month - a.month
    days = n.day - a.day

    if days < 0:
        months -= 1
        days += days_in_previous_month(n)
        if days < 0:
            # Anchor day past the end of the borrowed month: count from its last day
            days = n.day

    if months < 0:
        years -= 1
        months += 12

    return AgeBreakdown(years=years, months=months, days=days)
