from __future__ import annotations

import calendar
import datetime as dt
from typing import Tuple


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(int(year), int(month))[1]


def current_year_month() -> Tuple[int, int]:
    today = dt.date.today()
    return today.year, today.month


def validate_day(year: int, month: int, day: int) -> None:
    """Raise ValueError unless (year, month, day) is a real calendar date."""
    dt.date(int(year), int(month), int(day))
