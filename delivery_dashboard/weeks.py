"""ISO-8601 week numbering."""

import math
from datetime import date, datetime, timedelta

import pandas as pd


def iso_week_number(d: date | datetime | pd.Timestamp) -> int:
    """Return the ISO-8601 week number (1-53) of a calendar date.

    The date is moved to the Thursday of its Monday-start week; the week
    number is then counted from January 1 of that Thursday's year. Late
    December can therefore land in week 1 and early January in week 52/53.
    """
    if isinstance(d, pd.Timestamp):
        d = d.date()
    elif isinstance(d, datetime):
        d = d.date()

    thursday = d + timedelta(days=3 - d.weekday())
    year_start = date(thursday.year, 1, 1)
    return math.ceil(((thursday - year_start).days + 1) / 7)


def iso_week_numbers(dates: pd.Series) -> pd.Series:
    """Vectorised iso_week_number for a Series of dates."""
    weeks = pd.to_datetime(dates).dt.isocalendar().week
    return weeks.astype("int64")
