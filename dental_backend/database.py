from threading import Lock

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker

from dental_backend.core import config


connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(config.DATABASE_URL, connect_args=connect_args)


def configure_sqlite_locking(target_engine) -> None:
    """Start every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite otherwise issues no BEGIN before SELECTs, so two bookings could
    both read a free calendar before either inserts. Taking the write lock
    up front serializes them; the loser waits up to the driver timeout.
    """

    @event.listens_for(target_engine, 'connect')
    def _disable_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target_engine, 'begin')
    def _begin_immediate(connection):
        connection.exec_driver_sql('BEGIN IMMEDIATE')


if engine.dialect.name == 'sqlite':
    configure_sqlite_locking(engine)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_schema() -> None:
    global _schema_checked

    if _schema_checked:
        return

    with _schema_lock:
        if _schema_checked:
            return

        # Registers every table on Base.metadata before create_all.
        from dental_backend.models import (  # noqa: F401
            appointment,
            blocked_date,
            dental_service,
            notification,
            user,
            working_hour,
        )

        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()

        _schema_checked = True


def ensure_appointment_schema() -> None:
    inspector = inspect(engine)

    if 'appointments' not in inspector.get_table_names():
        return

    existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
    migration_steps = [
        ('treatment_notes', 'ALTER TABLE appointments ADD COLUMN treatment_notes TEXT'),
        ('cancellation_reason', 'ALTER TABLE appointments ADD COLUMN cancellation_reason VARCHAR(255)'),
        ('is_paid', 'ALTER TABLE appointments ADD COLUMN is_paid BOOLEAN NOT NULL DEFAULT FALSE'),
    ]

    with engine.begin() as connection:
        for column_name, statement in migration_steps:
            if column_name not in existing_columns:
                connection.execute(text(statement))
        connection.execute(
            text('CREATE INDEX IF NOT EXISTS idx_appointments_dentist_range '
                 'ON appointments(dentist_id, start_datetime, end_datetime)')
        )
        connection.execute(
            text('CREATE INDEX IF NOT EXISTS idx_appointments_status_start ON appointments(status, start_datetime)')
        )


def is_lock_timeout(exc: OperationalError) -> bool:
    message = str(exc.orig).lower()
    return 'database is locked' in message or 'lock timeout' in message or 'could not obtain lock' in message
