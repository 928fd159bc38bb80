"""Doctor schedule value types consumed by the scheduling engine."""

from pydantic import BaseModel, Field, field_validator

PERIOD_NAMES = ('morning', 'afternoon', 'evening')


class VisitingPeriod(BaseModel):
    """One named time-of-day window. Bounds are stored as-is; bad values yield no slots."""

    enabled: bool = False
    start: str | None = None
    end: str | None = None

    @field_validator('enabled', mode='before')
    @classmethod
    def treat_unknown_flag_as_disabled(cls, value):
        return value if isinstance(value, bool) else False

    @field_validator('start', 'end', mode='before')
    @classmethod
    def drop_non_text_bounds(cls, value):
        return value if isinstance(value, str) else None


class VisitingHours(BaseModel):
    morning: VisitingPeriod | None = None
    afternoon: VisitingPeriod | None = None
    evening: VisitingPeriod | None = None

    @field_validator(*PERIOD_NAMES, mode='before')
    @classmethod
    def drop_malformed_periods(cls, value):
        return value if isinstance(value, (dict, VisitingPeriod)) else None

    def period(self, name: str) -> VisitingPeriod | None:
        return getattr(self, name, None)


class DoctorSchedule(BaseModel):
    """Read-only snapshot of a doctor's weekly on/off map and visiting hours."""

    weekly_schedule: dict[str, bool | None] = Field(default_factory=dict, alias='weeklySchedule')
    visiting_hours: VisitingHours | None = Field(default=None, alias='visitingHours')

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator('weekly_schedule', mode='before')
    @classmethod
    def keep_boolean_days(cls, value):
        # Only a stored boolean counts; anything else leaves the day at its default.
        if not isinstance(value, dict):
            return {}
        return {
            day: flag if isinstance(flag, bool) else None
            for day, flag in value.items()
            if isinstance(day, str)
        }

    @classmethod
    def from_record(cls, weekly_schedule, visiting_hours) -> 'DoctorSchedule':
        return cls(
            weekly_schedule=weekly_schedule or {},
            visiting_hours=VisitingHours.model_validate(visiting_hours) if isinstance(visiting_hours, dict) else None,
        )
