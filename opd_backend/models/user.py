"""User model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from opd_backend.database import Base


class User(Base):
    """Represents a staff account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    role = Column(String)  # admin/doctor/receptionist/medical
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=True)
