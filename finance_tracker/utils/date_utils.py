"""Date manipulation utilities"""

from datetime import date
from typing import Tuple
from dateutil.relativedelta import relativedelta


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month"""
    return (date(year, month, 1) + relativedelta(day=31)).day


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    """First and last calendar day of a month (both inclusive)"""
    first_day = date(year, month, 1)
    return first_day, first_day + relativedelta(day=31)


def add_months(from_date: date, months: int, day: int | None = None) -> date:
    """
    Shift a date by whole months and force the day component.

    A day past the end of the target month is clamped to its last day,
    so day=31 lands on Feb 28/29 instead of rolling into March.
    """
    return from_date + relativedelta(months=months, day=day)


def shift_period(month: int, year: int, months: int) -> Tuple[int, int]:
    """(month, year) moved by whole months"""
    shifted = date(year, month, 1) + relativedelta(months=months)
    return shifted.month, shifted.year
