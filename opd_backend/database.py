import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from opd_backend.core import config


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL")

engine = create_engine(DATABASE_URL, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_doctor_schema_checked = False
_appointment_schema_checked = False


def _add_missing_columns(table_name: str, migration_steps: list[tuple[str, str]], indexes: list[str]) -> None:
    inspector = inspect(engine)

    if table_name not in inspector.get_table_names():
        return

    existing_columns = {column['name'] for column in inspector.get_columns(table_name)}

    with engine.begin() as connection:
        for column_name, statement in migration_steps:
            if column_name not in existing_columns:
                connection.execute(text(statement))
        for statement in indexes:
            connection.execute(text(statement))


def ensure_doctor_schema() -> None:
    """Add schedule columns to doctor tables created before weekly schedules existed.

    Existing rows keep NULL schedules, which the scheduling engine treats as open
    every day with unrestricted hours.
    """
    global _doctor_schema_checked

    if _doctor_schema_checked:
        return

    with _schema_lock:
        if _doctor_schema_checked:
            return

        _add_missing_columns(
            'doctors',
            [
                ('specialization', 'ALTER TABLE doctors ADD COLUMN specialization VARCHAR'),
                ('fees', 'ALTER TABLE doctors ADD COLUMN fees INTEGER'),
                ('weekly_schedule', 'ALTER TABLE doctors ADD COLUMN weekly_schedule JSON'),
                ('visiting_hours', 'ALTER TABLE doctors ADD COLUMN visiting_hours JSON'),
            ],
            [],
        )

        _doctor_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        _add_missing_columns(
            'appointments',
            [
                ('email', 'ALTER TABLE appointments ADD COLUMN email VARCHAR'),
                ('reason', 'ALTER TABLE appointments ADD COLUMN reason VARCHAR'),
                ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
                ('cancel_reason', 'ALTER TABLE appointments ADD COLUMN cancel_reason VARCHAR'),
            ],
            [
                'CREATE INDEX IF NOT EXISTS idx_appointments_doctor_date '
                'ON appointments(doctor_id, appointment_date)',
            ],
        )

        _appointment_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
