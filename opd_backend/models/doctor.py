"""Doctor model definitions."""

from sqlalchemy import Column, Integer, JSON, String
from opd_backend.database import Base


class Doctor(Base):
    """Represents a doctor with a weekly schedule and visiting hours."""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    specialization = Column(String)
    fees = Column(Integer, default=0)
    weekly_schedule = Column(JSON)  # {"monday": true, ...}
    visiting_hours = Column(JSON)  # {"morning": {"enabled": true, "start": "09:00", "end": "12:00"}, ...}
