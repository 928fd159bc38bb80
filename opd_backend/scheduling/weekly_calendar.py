"""Weekday enable map resolution."""

from collections.abc import Mapping
from datetime import date

from opd_backend.scheduling.visiting_hours import DoctorSchedule

# Indexed by date.weekday().
WEEKDAY_NAMES = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def resolve_weekly_schedule(weekly_schedule: Mapping[str, bool | None] | None) -> dict[str, bool]:
    """Return all seven weekdays with the open-unless-explicitly-False default applied.

    Records created before weekly schedules existed have no entries at all, so a
    missing key or a ``None`` value means the doctor is open that day.
    """
    stored = {str(key).strip().lower(): value for key, value in (weekly_schedule or {}).items()}
    return {name: stored.get(name) is not False for name in WEEKDAY_NAMES}


def is_date_available(day: date, schedule: DoctorSchedule | None) -> bool:
    if schedule is None:
        return True

    return resolve_weekly_schedule(schedule.weekly_schedule)[weekday_name(day)]


def enabled_weekdays(schedule: DoctorSchedule | None) -> list[str]:
    if schedule is None:
        return list(WEEKDAY_NAMES)

    resolved = resolve_weekly_schedule(schedule.weekly_schedule)
    return [name for name in WEEKDAY_NAMES if resolved[name]]
