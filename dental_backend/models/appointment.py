"""Appointment model definitions."""

from datetime import datetime, timedelta

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import relationship

from dental_backend.database import Base
from dental_backend.models.dental_service import DentalService
from dental_backend.models.user import User

STATUS_PENDING = "pending"
STATUS_SUGGESTED = "suggested"
STATUS_CONFIRMED = "confirmed"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_NO_SHOW = "no_show"
STATUSES = (
    STATUS_PENDING,
    STATUS_SUGGESTED,
    STATUS_CONFIRMED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
    STATUS_NO_SHOW,
)

_ACTIVE_ROW = text("status != 'cancelled'")


class Appointment(Base):
    """A booking of one service with one dentist for one patient.

    ``end_datetime`` is always ``start_datetime + duration_minutes``; both are
    written together through :meth:`schedule`. Only the lifecycle module
    writes ``status``.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        # Storage-level backstop against double-booking the same start.
        Index(
            "uq_appointments_dentist_start_active",
            "dentist_id",
            "start_datetime",
            unique=True,
            sqlite_where=_ACTIVE_ROW,
            postgresql_where=_ACTIVE_ROW,
        ),
    )

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    dentist_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("dental_services.id"), nullable=False)
    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=STATUS_PENDING)
    cost = Column(Numeric(10, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    treatment_notes = Column(Text, nullable=True)
    cancellation_reason = Column(String(255), nullable=True)
    is_paid = Column(Boolean, nullable=False, default=False)

    patient = relationship(User, foreign_keys=[patient_id])
    dentist = relationship(User, foreign_keys=[dentist_id])
    service = relationship(DentalService)

    def schedule(self, start_datetime: datetime, duration_minutes: int) -> None:
        self.start_datetime = start_datetime
        self.duration_minutes = duration_minutes
        self.end_datetime = start_datetime + timedelta(minutes=duration_minutes)
