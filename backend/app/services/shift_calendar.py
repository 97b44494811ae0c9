from __future__ import annotations

import calendar
from datetime import date, timedelta
from enum import Enum

from app.core.exceptions import InvalidInputError

MAX_SHIFTS_PER_REQUEST = 120


class RepeatCadence(str, Enum):
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"


def _add_month(anchor_day: int, current: date) -> date:
    year = current.year + (1 if current.month == 12 else 0)
    month = 1 if current.month == 12 else current.month + 1
    # Keep the original day of month, clamped for shorter months (Jan 31 -> Feb 28).
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor_day, last_day))


def recurring_dates(start: date, cadence: RepeatCadence, until: date) -> list[date]:
    if until < start:
        raise InvalidInputError("repeat_until must be on or after the first shift date", field="repeat_until")
    dates: list[date] = []
    current = start
    while current <= until:
        dates.append(current)
        if len(dates) > MAX_SHIFTS_PER_REQUEST:
            raise InvalidInputError(
                f"A recurring series may create at most {MAX_SHIFTS_PER_REQUEST} shifts",
                field="repeat_until",
            )
        if cadence is RepeatCadence.weekly:
            current += timedelta(days=7)
        elif cadence is RepeatCadence.biweekly:
            current += timedelta(days=14)
        else:
            current = _add_month(start.day, current)
    return dates


def expand_shift_dates(
    *,
    single_date: date | None,
    dates: list[date] | None,
    repeat: RepeatCadence | None,
    repeat_until: date | None,
) -> list[date]:
    """Resolve the dates a create-shift request covers.

    An explicit ``dates`` list wins, then a ``repeat`` series anchored on
    ``single_date``, then ``single_date`` alone.
    """
    if dates:
        unique = sorted(set(dates))
        if len(unique) > MAX_SHIFTS_PER_REQUEST:
            raise InvalidInputError(f"At most {MAX_SHIFTS_PER_REQUEST} dates can be submitted at once", field="dates")
        return unique
    if single_date is None:
        raise InvalidInputError("Either date or dates is required", field="date")
    if repeat is not None:
        if repeat_until is None:
            raise InvalidInputError("repeat_until is required for recurring shifts", field="repeat_until")
        return recurring_dates(single_date, repeat, repeat_until)
    return [single_date]
