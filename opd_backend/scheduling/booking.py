"""Validation and auto-correction of proposed appointment date/time pairs."""

from datetime import date
from enum import Enum

from pydantic import BaseModel

from opd_backend.scheduling.availability import get_available_time_slots, is_time_available
from opd_backend.scheduling.formatting import format_weekday_list
from opd_backend.scheduling.next_available import SEARCH_HORIZON_DAYS, get_next_available_date
from opd_backend.scheduling.visiting_hours import DoctorSchedule
from opd_backend.scheduling.weekly_calendar import enabled_weekdays, is_date_available


class BookingStatus(str, Enum):
    VALID = 'valid'
    CORRECTED = 'corrected'
    REJECTED = 'rejected'


class BookingDecision(BaseModel):
    date: date
    time: str | None
    status: BookingStatus
    corrected: bool = False
    reason: str | None = None


def _rejection_reason(schedule: DoctorSchedule | None) -> str:
    open_days = format_weekday_list(enabled_weekdays(schedule)) or 'none'
    return (
        f'Doctor has no available day in the next {SEARCH_HORIZON_DAYS} days. '
        f'Available days: {open_days}.'
    )


def validate_and_correct(
    schedule: DoctorSchedule | None,
    proposed_date: date,
    proposed_time: str | None,
    today: date | None = None,
) -> BookingDecision:
    """Accept the proposal, move it to the nearest valid slot, or reject it with a reason.

    An unavailable date is moved to the next open day (its first slot, or the start of
    the first enabled visiting period). A time off the slot grid on an open day is moved
    to that day's first slot. Rejection only happens when no day opens within the
    search horizon.
    """
    if not is_date_available(proposed_date, schedule):
        next_available = get_next_available_date(schedule, today=today)
        if next_available is None:
            return BookingDecision(
                date=proposed_date,
                time=proposed_time,
                status=BookingStatus.REJECTED,
                reason=_rejection_reason(schedule),
            )

        if next_available.slots:
            corrected_time = next_available.slots[0]
        elif next_available.time_range is not None:
            corrected_time = next_available.time_range.start
        else:
            corrected_time = proposed_time

        return BookingDecision(
            date=next_available.date,
            time=corrected_time,
            status=BookingStatus.CORRECTED,
            corrected=True,
            reason='Requested day is not available; moved to next open day.',
        )

    if not is_time_available(proposed_time, schedule, proposed_date):
        slots = get_available_time_slots(schedule, proposed_date)
        if slots:
            return BookingDecision(
                date=proposed_date,
                time=slots[0],
                status=BookingStatus.CORRECTED,
                corrected=True,
                reason='Requested time is outside visiting hours; moved to first available slot.',
            )

    return BookingDecision(date=proposed_date, time=proposed_time, status=BookingStatus.VALID)
