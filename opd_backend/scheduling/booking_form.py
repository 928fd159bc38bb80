"""Per-session booking form state.

A form moves Idle -> DoctorSelected -> DateChosen -> {Valid, AutoCorrected, Rejected}
-> Submitted. Every date/time edit re-enters DateChosen and is validated again, so a
rejected pair only blocks submission until another pair is chosen.
"""

from datetime import date
from enum import Enum

from opd_backend.scheduling.booking import BookingDecision, BookingStatus, validate_and_correct
from opd_backend.scheduling.visiting_hours import DoctorSchedule


class BookingFormState(str, Enum):
    IDLE = 'idle'
    DOCTOR_SELECTED = 'doctor_selected'
    DATE_CHOSEN = 'date_chosen'
    VALID = 'valid'
    AUTO_CORRECTED = 'auto_corrected'
    REJECTED = 'rejected'
    SUBMITTED = 'submitted'


_OUTCOMES = (BookingFormState.VALID, BookingFormState.AUTO_CORRECTED, BookingFormState.REJECTED)

VALID_TRANSITIONS: dict[BookingFormState, set[BookingFormState]] = {
    BookingFormState.IDLE: {BookingFormState.DOCTOR_SELECTED},
    BookingFormState.DOCTOR_SELECTED: {BookingFormState.DOCTOR_SELECTED, BookingFormState.DATE_CHOSEN},
    BookingFormState.DATE_CHOSEN: set(_OUTCOMES),
    BookingFormState.VALID: {
        BookingFormState.DOCTOR_SELECTED,
        BookingFormState.DATE_CHOSEN,
        BookingFormState.SUBMITTED,
    },
    BookingFormState.AUTO_CORRECTED: {
        BookingFormState.DOCTOR_SELECTED,
        BookingFormState.DATE_CHOSEN,
        BookingFormState.SUBMITTED,
    },
    BookingFormState.REJECTED: {BookingFormState.DOCTOR_SELECTED, BookingFormState.DATE_CHOSEN},
    BookingFormState.SUBMITTED: set(),
}

_STATUS_TO_STATE = {
    BookingStatus.VALID: BookingFormState.VALID,
    BookingStatus.CORRECTED: BookingFormState.AUTO_CORRECTED,
    BookingStatus.REJECTED: BookingFormState.REJECTED,
}


class BookingFormError(ValueError):
    """Raised when a form action is not allowed in the current state."""


class BookingForm:
    def __init__(self, today: date | None = None) -> None:
        self.state = BookingFormState.IDLE
        self.schedule: DoctorSchedule | None = None
        self.decision: BookingDecision | None = None
        self.today = today

    def _move(self, target: BookingFormState) -> None:
        if target not in VALID_TRANSITIONS[self.state]:
            raise BookingFormError(f'Cannot move booking form from {self.state.value} to {target.value}.')
        self.state = target

    def select_doctor(self, schedule: DoctorSchedule | None) -> None:
        self._move(BookingFormState.DOCTOR_SELECTED)
        self.schedule = schedule
        self.decision = None

    def choose(self, proposed_date: date, proposed_time: str | None) -> BookingDecision:
        self._move(BookingFormState.DATE_CHOSEN)
        self.decision = validate_and_correct(self.schedule, proposed_date, proposed_time, today=self.today)
        self._move(_STATUS_TO_STATE[self.decision.status])
        return self.decision

    def submit(self) -> BookingDecision:
        self._move(BookingFormState.SUBMITTED)
        return self.decision
