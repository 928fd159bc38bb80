"""Date and time bookability checks for a doctor's schedule."""

from datetime import date

from pydantic import BaseModel

from opd_backend.scheduling.slots import generate_slots, parse_clock
from opd_backend.scheduling.visiting_hours import DoctorSchedule
from opd_backend.scheduling.weekly_calendar import is_date_available

TIME_MATCH_TOLERANCE_MINUTES = 30

# Older doctor records carry no visiting hours; on an open day they accept any time.
NO_CONFIGURED_HOURS_MEANS_UNRESTRICTED = True


class AvailabilityResult(BaseModel):
    date: date
    bookable: bool
    slots: list[str]


def get_available_time_slots(schedule: DoctorSchedule | None, slot_date: date) -> list[str]:
    if not is_date_available(slot_date, schedule):
        return []

    return generate_slots(slot_date, schedule)


def is_time_available(time_value: str | None, schedule: DoctorSchedule | None, slot_date: date) -> bool:
    if not is_date_available(slot_date, schedule):
        return False

    slots = get_available_time_slots(schedule, slot_date)
    if not slots:
        return NO_CONFIGURED_HOURS_MEANS_UNRESTRICTED

    candidate = parse_clock(time_value)
    if candidate is None:
        return False

    # Exclusive bound: 11:00 does not match a 10:30 slot.
    return any(
        abs(candidate - parse_clock(slot)) < TIME_MATCH_TOLERANCE_MINUTES
        for slot in slots
    )


def get_availability(schedule: DoctorSchedule | None, slot_date: date) -> AvailabilityResult:
    return AvailabilityResult(
        date=slot_date,
        bookable=is_date_available(slot_date, schedule),
        slots=get_available_time_slots(schedule, slot_date),
    )
