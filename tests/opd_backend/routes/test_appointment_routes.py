import os
from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from opd_backend.routes.appointment_routes import (  # noqa: E402
    BookingProposal,
    CancelAppointmentRequest,
    CreateAppointmentRequest,
    cancel_appointment,
    create_appointment,
    list_appointments,
    validate_booking,
)
from opd_backend.database import Base  # noqa: E402
from opd_backend.models.appointment import Appointment  # noqa: E402
from opd_backend.models.doctor import Doctor  # noqa: E402
from opd_backend.models.user import User  # noqa: E402
from opd_backend.scheduling.booking import BookingStatus  # noqa: E402
from opd_backend.scheduling.weekly_calendar import WEEKDAY_NAMES  # noqa: E402

RECEPTIONIST = SimpleNamespace(email='desk@hospital.test', role='receptionist', doctor_id=None)


def _next_weekday(start: date, weekday: int) -> date:
    return start + timedelta(days=(weekday - start.weekday()) % 7)


def _first_open_day_after(today: date, closed_weekday: int) -> date:
    candidate = today + timedelta(days=1)
    while candidate.weekday() == closed_weekday:
        candidate += timedelta(days=1)
    return candidate


@pytest.fixture
def appointment_db(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('opd_backend.routes.appointment_routes.ensure_database_ready', lambda: None)

    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[Doctor.__table__, User.__table__, Appointment.__table__])

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=[Appointment.__table__, User.__table__, Doctor.__table__])


@pytest.fixture
def morning_doctor(appointment_db) -> Doctor:
    doctor = Doctor(
        name='Dr. Mehta',
        weekly_schedule={'sunday': False},
        visiting_hours={
            'morning': {'enabled': True, 'start': '09:00', 'end': '11:00'},
            'afternoon': {'enabled': False, 'start': '13:00', 'end': '16:00'},
            'evening': {'enabled': False, 'start': '18:00', 'end': '21:00'},
        },
    )
    appointment_db.add(doctor)
    appointment_db.commit()
    appointment_db.refresh(doctor)
    return doctor


def _request(doctor_id: int, appointment_date: date, appointment_time: str) -> CreateAppointmentRequest:
    return CreateAppointmentRequest(
        doctor_id=doctor_id,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        patient_name=' Asha Patel ',
        mobile_number=' 9876543210 ',
        email=' ASHA@EXAMPLE.COM ',
    )


def test_booking_proposal_normalizes_time() -> None:
    proposal = BookingProposal(doctor_id=1, appointment_date=date(2026, 1, 5), appointment_time=' 9:30 ')

    assert proposal.appointment_time == '09:30'


@pytest.mark.parametrize('appointment_time', ['', 'half past nine', '25:00'])
def test_booking_proposal_rejects_malformed_time(appointment_time: str) -> None:
    with pytest.raises(ValidationError):
        BookingProposal(doctor_id=1, appointment_date=date(2026, 1, 5), appointment_time=appointment_time)


def test_create_appointment_request_normalizes_fields() -> None:
    request = _request(1, date(2026, 1, 5), '09:00')

    assert request.patient_name == 'Asha Patel'
    assert request.mobile_number == '9876543210'
    assert request.email == 'asha@example.com'


def test_create_appointment_request_requires_patient_name() -> None:
    with pytest.raises(ValidationError):
        CreateAppointmentRequest(
            doctor_id=1,
            appointment_date=date(2026, 1, 5),
            appointment_time='09:00',
            patient_name='   ',
            mobile_number='9876543210',
        )


def test_validate_booking_corrects_closed_day(appointment_db, morning_doctor: Doctor) -> None:
    sunday = _next_weekday(date.today() + timedelta(days=1), 6)

    decision = validate_booking(
        BookingProposal(doctor_id=morning_doctor.id, appointment_date=sunday, appointment_time='10:00'),
        db=appointment_db,
    )

    assert decision.corrected is True
    assert decision.date == _first_open_day_after(date.today(), 6)
    assert decision.time == '09:00'


def test_validate_booking_returns_not_found_for_unknown_doctor(appointment_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        validate_booking(
            BookingProposal(doctor_id=404, appointment_date=date.today() + timedelta(days=1), appointment_time='09:00'),
            db=appointment_db,
        )

    assert exception_info.value.status_code == 404


def test_validate_booking_rejects_past_open_day(appointment_db, morning_doctor: Doctor) -> None:
    past_monday = _next_weekday(date.today() - timedelta(days=13), 0)

    decision = validate_booking(
        BookingProposal(doctor_id=morning_doctor.id, appointment_date=past_monday, appointment_time='09:00'),
        db=appointment_db,
    )

    assert decision.status == BookingStatus.REJECTED
    assert decision.corrected is False
    assert decision.reason == 'Appointments cannot be scheduled in the past.'

    with pytest.raises(HTTPException) as exception_info:
        create_appointment(
            data=_request(morning_doctor.id, past_monday, '09:00'),
            current_user=RECEPTIONIST,
            db=appointment_db,
        )

    assert exception_info.value.detail == decision.reason


def test_create_appointment_rejects_past_dates(appointment_db, morning_doctor: Doctor) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment(
            data=_request(morning_doctor.id, date.today() - timedelta(days=1), '09:00'),
            current_user=RECEPTIONIST,
            db=appointment_db,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Appointments cannot be scheduled in the past.'


def test_create_appointment_stores_valid_booking(appointment_db, morning_doctor: Doctor) -> None:
    monday = _next_weekday(date.today() + timedelta(days=1), 0)

    response = create_appointment(
        data=_request(morning_doctor.id, monday, '10:30'),
        current_user=RECEPTIONIST,
        db=appointment_db,
    )

    assert response.corrected is False
    assert response.appointment_date == monday
    assert response.appointment_time == '10:30'
    assert response.status == 'scheduled'
    assert appointment_db.query(Appointment).count() == 1


def test_create_appointment_stores_corrected_time(appointment_db, morning_doctor: Doctor) -> None:
    monday = _next_weekday(date.today() + timedelta(days=1), 0)

    response = create_appointment(
        data=_request(morning_doctor.id, monday, '17:00'),
        current_user=RECEPTIONIST,
        db=appointment_db,
    )

    stored = appointment_db.query(Appointment).filter(Appointment.id == response.id).first()
    assert response.corrected is True
    assert response.correction_reason == 'Requested time is outside visiting hours; moved to first available slot.'
    assert stored.appointment_date == monday
    assert stored.appointment_time == '09:00'


def test_create_appointment_stores_corrected_date(appointment_db, morning_doctor: Doctor) -> None:
    sunday = _next_weekday(date.today() + timedelta(days=1), 6)
    expected_date = _first_open_day_after(date.today(), 6)

    response = create_appointment(
        data=_request(morning_doctor.id, sunday, '10:00'),
        current_user=RECEPTIONIST,
        db=appointment_db,
    )

    stored = appointment_db.query(Appointment).filter(Appointment.id == response.id).first()
    assert response.corrected is True
    assert response.correction_reason == 'Requested day is not available; moved to next open day.'
    assert response.appointment_date == expected_date
    assert stored.appointment_date == expected_date
    assert stored.appointment_time == '09:00'


def test_create_appointment_rejects_doctor_without_open_days(appointment_db) -> None:
    doctor = Doctor(name='Dr. Away', weekly_schedule={day: False for day in WEEKDAY_NAMES})
    appointment_db.add(doctor)
    appointment_db.commit()
    appointment_db.refresh(doctor)

    with pytest.raises(HTTPException) as exception_info:
        create_appointment(
            data=_request(doctor.id, date.today() + timedelta(days=2), '09:00'),
            current_user=RECEPTIONIST,
            db=appointment_db,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Doctor has no available day in the next 60 days. Available days: none.'
    assert appointment_db.query(Appointment).count() == 0


def test_list_appointments_filters_by_doctor_and_date(appointment_db, morning_doctor: Doctor) -> None:
    first_day = date(2026, 1, 5)
    for appointment_date, appointment_time, doctor_id in [
        (first_day, '10:00', morning_doctor.id),
        (first_day, '09:00', morning_doctor.id),
        (first_day + timedelta(days=1), '09:00', morning_doctor.id),
        (first_day, '09:30', morning_doctor.id + 1),
    ]:
        appointment_db.add(
            Appointment(
                doctor_id=doctor_id,
                patient_name='Patient',
                mobile_number='9000000000',
                appointment_date=appointment_date,
                appointment_time=appointment_time,
                status='scheduled',
            )
        )
    appointment_db.commit()

    appointments = list_appointments(doctor_id=morning_doctor.id, appointment_date=first_day, db=appointment_db)

    assert [appointment.appointment_time for appointment in appointments] == ['09:00', '10:00']


def test_cancel_appointment_returns_not_found_when_missing(appointment_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(
            appointment_id=999,
            data=CancelAppointmentRequest(),
            current_user=RECEPTIONIST,
            db=appointment_db,
        )

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Appointment not found.'


def test_cancel_appointment_marks_cancelled_once(appointment_db, morning_doctor: Doctor) -> None:
    appointment = Appointment(
        doctor_id=morning_doctor.id,
        patient_name='Patient',
        mobile_number='9000000000',
        appointment_date=date(2026, 1, 5),
        appointment_time='09:00',
        status='scheduled',
    )
    appointment_db.add(appointment)
    appointment_db.commit()
    appointment_db.refresh(appointment)

    response = cancel_appointment(
        appointment_id=appointment.id,
        data=CancelAppointmentRequest(reason=' Patient travelling '),
        current_user=RECEPTIONIST,
        db=appointment_db,
    )

    assert response.status == 'cancelled'
    assert response.cancel_reason == 'Patient travelling'

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(
            appointment_id=appointment.id,
            data=CancelAppointmentRequest(),
            current_user=RECEPTIONIST,
            db=appointment_db,
        )

    assert exception_info.value.status_code == 409
