"""Calendar rules for choosing inclusive CTO dates."""

from __future__ import annotations

import math
from datetime import date, timedelta

DEFAULT_LEAD_WORKING_DAYS = 5
DEFAULT_HOURS_PER_DAY = 8.0


def is_working_day(day: date) -> bool:
    # Monday=0 .. Friday=4
    return day.weekday() < 5


def min_selectable_date(today: date, lead_working_days: int = DEFAULT_LEAD_WORKING_DAYS) -> date:
    """Return the first date an application filed ``today`` may cover.

    Counts forward from tomorrow, skipping Saturdays and Sundays, until
    ``lead_working_days`` working days have passed.
    """

    current = today
    counted = 0
    while counted < lead_working_days:
        current += timedelta(days=1)
        if is_working_day(current):
            counted += 1
    return current


def max_selectable_dates(requested_hours: float, hours_per_day: float = DEFAULT_HOURS_PER_DAY) -> int:
    if requested_hours <= 0:
        return 0
    return math.ceil(requested_hours / hours_per_day)
