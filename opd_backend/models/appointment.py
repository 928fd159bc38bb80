"""Appointment model definitions."""

from sqlalchemy import Column, Date, Integer, ForeignKey, String
from opd_backend.database import Base


class Appointment(Base):
    """Represents a scheduled OPD appointment."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    patient_name = Column(String, nullable=False)
    mobile_number = Column(String, nullable=False)
    email = Column(String)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(String(5), nullable=False)
    reason = Column(String)
    notes = Column(String)
    status = Column(String, default="scheduled")
    cancel_reason = Column(String)
