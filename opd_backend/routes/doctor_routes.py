import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opd_backend.auth.dependencies import require_roles
from opd_backend.database import ensure_appointment_schema, ensure_doctor_schema, get_db
from opd_backend.models.doctor import Doctor
from opd_backend.models.user import User
from opd_backend.scheduling.availability import AvailabilityResult, get_availability
from opd_backend.scheduling.formatting import format_time_range, format_weekday_list
from opd_backend.scheduling.next_available import SEARCH_HORIZON_DAYS, TimeRange, get_next_available_date
from opd_backend.scheduling.slots import format_clock, parse_clock
from opd_backend.scheduling.visiting_hours import PERIOD_NAMES, DoctorSchedule, VisitingPeriod
from opd_backend.scheduling.weekly_calendar import WEEKDAY_NAMES, enabled_weekdays, resolve_weekly_schedule

router = APIRouter(tags=['doctors'])

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

# Shown in the schedule editor for periods a doctor has never configured.
DEFAULT_VISITING_HOURS = {
    'morning': {'enabled': False, 'start': '09:00', 'end': '12:00'},
    'afternoon': {'enabled': False, 'start': '13:00', 'end': '16:00'},
    'evening': {'enabled': False, 'start': '18:00', 'end': '21:00'},
}


class VisitingPeriodRequest(BaseModel):
    enabled: bool = False
    start: str | None = None
    end: str | None = None

    @field_validator('start', 'end')
    @classmethod
    def validate_clock(cls, value: str | None) -> str | None:
        if value is None:
            return None

        minutes = parse_clock(value)
        if minutes is None:
            raise ValueError('Times must use the 24-hour HH:MM format.')

        return format_clock(minutes)

    @model_validator(mode='after')
    def validate_bounds(self) -> 'VisitingPeriodRequest':
        if not self.enabled:
            return self

        if self.start is None or self.end is None:
            raise ValueError('Enabled visiting periods need a start and an end time.')

        if parse_clock(self.start) >= parse_clock(self.end):
            raise ValueError('Visiting period start must be before its end.')

        return self


class VisitingHoursRequest(BaseModel):
    morning: VisitingPeriodRequest = Field(default_factory=VisitingPeriodRequest)
    afternoon: VisitingPeriodRequest = Field(default_factory=VisitingPeriodRequest)
    evening: VisitingPeriodRequest = Field(default_factory=VisitingPeriodRequest)


class UpdateScheduleRequest(BaseModel):
    weekly_schedule: dict[str, bool] = Field(default_factory=dict, alias='weeklySchedule')
    visiting_hours: VisitingHoursRequest = Field(default_factory=VisitingHoursRequest, alias='visitingHours')

    class Config:
        populate_by_name = True

    @field_validator('weekly_schedule')
    @classmethod
    def validate_weekdays(cls, value: dict[str, bool]) -> dict[str, bool]:
        normalized = {key.strip().lower(): enabled for key, enabled in value.items()}
        unknown = sorted(set(normalized) - set(WEEKDAY_NAMES))
        if unknown:
            raise ValueError(f'Unknown weekday: {", ".join(unknown)}.')

        return normalized


class DoctorResponse(BaseModel):
    id: int
    name: str
    specialization: str | None = None
    fees: int | None = None

    class Config:
        from_attributes = True


class DoctorScheduleResponse(BaseModel):
    doctor_id: int
    weekly_schedule: dict[str, bool]
    visiting_hours: dict[str, VisitingPeriod]


class NextAvailableResponse(BaseModel):
    date: date
    slots: list[str]
    time_range: TimeRange | None = None
    time_range_label: str = ''


def ensure_database_ready() -> None:
    try:
        ensure_doctor_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_doctor_or_404(db: Session, doctor_id: int) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
    if not doctor:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Doctor not found.',
        )

    return doctor


def doctor_schedule(doctor: Doctor) -> DoctorSchedule:
    return DoctorSchedule.from_record(doctor.weekly_schedule, doctor.visiting_hours)


def visiting_hours_with_defaults(stored: dict | None) -> dict[str, VisitingPeriod]:
    stored = stored if isinstance(stored, dict) else {}
    periods: dict[str, VisitingPeriod] = {}

    for name in PERIOD_NAMES:
        default = DEFAULT_VISITING_HOURS[name]
        period = stored.get(name)
        if not isinstance(period, dict):
            period = {}
        periods[name] = VisitingPeriod(
            enabled=period.get('enabled') is True,
            start=period.get('start') or default['start'],
            end=period.get('end') or default['end'],
        )

    return periods


def build_schedule_response(doctor: Doctor) -> DoctorScheduleResponse:
    return DoctorScheduleResponse(
        doctor_id=doctor.id,
        weekly_schedule=resolve_weekly_schedule(doctor_schedule(doctor).weekly_schedule),
        visiting_hours=visiting_hours_with_defaults(doctor.visiting_hours),
    )


@router.get('', response_model=list[DoctorResponse])
def list_doctors(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return db.query(Doctor).order_by(Doctor.name.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/{doctor_id}/schedule', response_model=DoctorScheduleResponse)
def get_doctor_schedule(doctor_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return build_schedule_response(get_doctor_or_404(db, doctor_id))
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.put('/{doctor_id}/schedule', response_model=DoctorScheduleResponse)
def update_doctor_schedule(
    doctor_id: int,
    data: UpdateScheduleRequest,
    current_user: User = Depends(require_roles('admin', 'doctor')),
    db: Session = Depends(get_db),
):
    if current_user.role == 'doctor' and current_user.doctor_id != doctor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Doctors can only edit their own schedule.',
        )

    ensure_database_ready()

    try:
        doctor = get_doctor_or_404(db, doctor_id)
        doctor.weekly_schedule = resolve_weekly_schedule(data.weekly_schedule)
        doctor.visiting_hours = data.visiting_hours.model_dump()
        db.commit()
        db.refresh(doctor)

        logger.info('Schedule updated for doctor %s by %s', doctor_id, current_user.email)
        return build_schedule_response(doctor)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/{doctor_id}/availability', response_model=AvailabilityResult)
def get_doctor_availability(
    doctor_id: int,
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        doctor = get_doctor_or_404(db, doctor_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    return get_availability(doctor_schedule(doctor), slot_date)


@router.get('/{doctor_id}/next-available', response_model=NextAvailableResponse)
def get_doctor_next_available(doctor_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        doctor = get_doctor_or_404(db, doctor_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    schedule = doctor_schedule(doctor)
    next_available = get_next_available_date(schedule)
    if next_available is None:
        open_days = format_weekday_list(enabled_weekdays(schedule)) or 'none'
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f'No available date in the next {SEARCH_HORIZON_DAYS} days. Available days: {open_days}.',
        )

    return NextAvailableResponse(
        date=next_available.date,
        slots=next_available.slots,
        time_range=next_available.time_range,
        time_range_label=format_time_range(next_available.time_range),
    )
