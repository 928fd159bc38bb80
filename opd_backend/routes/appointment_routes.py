import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opd_backend.auth.dependencies import require_roles
from opd_backend.database import get_db
from opd_backend.models.appointment import Appointment
from opd_backend.models.user import User
from opd_backend.routes.doctor_routes import (
    DATABASE_UNAVAILABLE_DETAIL,
    doctor_schedule,
    ensure_database_ready,
    get_doctor_or_404,
)
from opd_backend.scheduling.booking import BookingDecision, BookingStatus, validate_and_correct
from opd_backend.scheduling.slots import format_clock, parse_clock

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600
SCHEDULED_STATUS = 'scheduled'
CANCELLED_STATUS = 'cancelled'
PAST_DATE_DETAIL = 'Appointments cannot be scheduled in the past.'


class BookingProposal(BaseModel):
    doctor_id: int
    appointment_date: date
    appointment_time: str

    @field_validator('appointment_time')
    @classmethod
    def validate_appointment_time(cls, value: str) -> str:
        minutes = parse_clock(value)
        if minutes is None:
            raise ValueError('Appointment time must use the 24-hour HH:MM format.')
        return format_clock(minutes)


class CreateAppointmentRequest(BookingProposal):
    patient_name: str
    mobile_number: str
    email: str | None = None
    reason: str | None = None
    notes: str | None = None

    @field_validator('patient_name', 'mobile_number')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Please fill all required fields.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip().lower()
        return normalized or None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class CancelAppointmentRequest(BaseModel):
    reason: str | None = None


class AppointmentResponse(BaseModel):
    id: int
    doctor_id: int
    patient_name: str
    mobile_number: str
    email: str | None = None
    appointment_date: date
    appointment_time: str
    reason: str | None = None
    notes: str | None = None
    status: str
    cancel_reason: str | None = None
    corrected: bool = False
    correction_reason: str | None = None

    class Config:
        from_attributes = True


def build_appointment_response(appointment: Appointment, decision: BookingDecision | None = None) -> AppointmentResponse:
    response = AppointmentResponse.model_validate(appointment)
    if decision is not None and decision.corrected:
        response.corrected = True
        response.correction_reason = decision.reason
    return response


@router.post('/validate', response_model=BookingDecision)
def validate_booking(data: BookingProposal, db: Session = Depends(get_db)):
    if data.appointment_date < date.today():
        return BookingDecision(
            date=data.appointment_date,
            time=data.appointment_time,
            status=BookingStatus.REJECTED,
            reason=PAST_DATE_DETAIL,
        )

    ensure_database_ready()

    try:
        doctor = get_doctor_or_404(db, data.doctor_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    return validate_and_correct(doctor_schedule(doctor), data.appointment_date, data.appointment_time)


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(require_roles('admin', 'receptionist')),
    db: Session = Depends(get_db),
):
    if data.appointment_date < date.today():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=PAST_DATE_DETAIL,
        )

    ensure_database_ready()

    try:
        doctor = get_doctor_or_404(db, data.doctor_id)
        decision = validate_and_correct(doctor_schedule(doctor), data.appointment_date, data.appointment_time)

        if decision.status == BookingStatus.REJECTED:
            logger.info('Rejected booking for doctor %s on %s: %s', doctor.id, data.appointment_date, decision.reason)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=decision.reason,
            )

        if decision.corrected:
            logger.info(
                'Corrected booking for doctor %s from %s %s to %s %s',
                doctor.id,
                data.appointment_date,
                data.appointment_time,
                decision.date,
                decision.time,
            )

        appointment = Appointment(
            doctor_id=doctor.id,
            patient_name=data.patient_name,
            mobile_number=data.mobile_number,
            email=data.email,
            appointment_date=decision.date,
            appointment_time=decision.time,
            reason=data.reason,
            notes=data.notes,
            status=SCHEDULED_STATUS,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        logger.info('Appointment %s booked by %s', appointment.id, current_user.email)
        return build_appointment_response(appointment, decision)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    doctor_id: int | None = Query(default=None),
    appointment_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Appointment)
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if appointment_date is not None:
            query = query.filter(Appointment.appointment_date == appointment_date)

        appointments = query.order_by(
            Appointment.appointment_date.asc(),
            Appointment.appointment_time.asc(),
        ).all()

        return [build_appointment_response(appointment) for appointment in appointments]
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    current_user: User = Depends(require_roles('admin', 'receptionist')),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found.',
            )

        if appointment.status == CANCELLED_STATUS:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Appointment is already cancelled.',
            )

        appointment.status = CANCELLED_STATUS
        appointment.cancel_reason = (data.reason or '').strip() or None
        db.commit()
        db.refresh(appointment)

        logger.info('Appointment %s cancelled by %s', appointment_id, current_user.email)
        return build_appointment_response(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
