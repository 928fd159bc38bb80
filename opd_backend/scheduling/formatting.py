"""Human-readable labels for schedule values."""

from opd_backend.scheduling.next_available import TimeRange
from opd_backend.scheduling.slots import parse_clock


def format_clock_label(value: str) -> str:
    minutes = parse_clock(value)
    if minutes is None:
        return value

    hour, minute = divmod(minutes, 60)
    period = 'PM' if hour >= 12 else 'AM'
    return f'{hour % 12 or 12}:{minute:02d} {period}'


def format_time_range(time_range: TimeRange | None) -> str:
    if time_range is None:
        return ''

    return f'{format_clock_label(time_range.start)} - {format_clock_label(time_range.end)}'


def format_weekday_list(weekdays: list[str]) -> str:
    return ', '.join(name.capitalize() for name in weekdays)
