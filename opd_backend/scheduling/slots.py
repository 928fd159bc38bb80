"""Expansion of visiting windows into fixed-width appointment slots."""

import re
from datetime import date

from opd_backend.scheduling.visiting_hours import PERIOD_NAMES, DoctorSchedule, VisitingPeriod

SLOT_INCREMENT_MINUTES = 30
MINUTES_PER_HOUR = 60

_CLOCK_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')


def parse_clock(value: str | None) -> int | None:
    """Convert ``HH:MM`` to minutes since midnight, or ``None`` if it is not a valid clock time."""
    if not isinstance(value, str):
        return None

    match = _CLOCK_PATTERN.match(value.strip())
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None

    return hours * MINUTES_PER_HOUR + minutes


def format_clock(minutes: int) -> str:
    hours, remainder = divmod(minutes, MINUTES_PER_HOUR)
    return f'{hours:02d}:{remainder:02d}'


def iterate_period_slots(start_minutes: int, end_minutes: int) -> list[int]:
    slots: list[int] = []
    current = start_minutes

    while current < end_minutes:
        slots.append(current)
        current += SLOT_INCREMENT_MINUTES

    return slots


def enabled_periods(schedule: DoctorSchedule | None) -> list[tuple[str, VisitingPeriod]]:
    if schedule is None or schedule.visiting_hours is None:
        return []

    periods: list[tuple[str, VisitingPeriod]] = []
    for name in PERIOD_NAMES:
        period = schedule.visiting_hours.period(name)
        if period is not None and period.enabled and period.start and period.end:
            periods.append((name, period))

    return periods


def generate_slots(slot_date: date, schedule: DoctorSchedule | None) -> list[str]:
    # slot_date is unused: visiting hours repeat daily and callers check the weekly calendar.
    slot_minutes: set[int] = set()
    for _, period in enabled_periods(schedule):
        start_minutes = parse_clock(period.start)
        end_minutes = parse_clock(period.end)
        if start_minutes is None or end_minutes is None:
            continue
        slot_minutes.update(iterate_period_slots(start_minutes, end_minutes))

    return [format_clock(minutes) for minutes in sorted(slot_minutes)]
