"""Forward search for the next bookable date."""

import logging
from datetime import date, timedelta

from pydantic import BaseModel

from opd_backend.scheduling.slots import enabled_periods, generate_slots
from opd_backend.scheduling.visiting_hours import DoctorSchedule
from opd_backend.scheduling.weekly_calendar import is_date_available

SEARCH_HORIZON_DAYS = 60

logger = logging.getLogger(__name__)


class TimeRange(BaseModel):
    start: str
    end: str


class NextAvailableDate(BaseModel):
    date: date
    slots: list[str]
    time_range: TimeRange | None = None


def first_period_range(schedule: DoctorSchedule | None) -> TimeRange | None:
    periods = enabled_periods(schedule)
    if not periods:
        return None

    _, period = periods[0]
    return TimeRange(start=period.start, end=period.end)


def get_next_available_date(schedule: DoctorSchedule | None, today: date | None = None) -> NextAvailableDate | None:
    """Return the first open date from tomorrow through the search horizon, or ``None``.

    Today is never returned, even when it is open.
    """
    current_day = today or date.today()

    for offset in range(1, SEARCH_HORIZON_DAYS + 1):
        candidate = current_day + timedelta(days=offset)
        if is_date_available(candidate, schedule):
            return NextAvailableDate(
                date=candidate,
                slots=generate_slots(candidate, schedule),
                time_range=first_period_range(schedule),
            )

    logger.debug('No open day within %s days after %s', SEARCH_HORIZON_DAYS, current_day)
    return None
