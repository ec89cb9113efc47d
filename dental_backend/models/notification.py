"""Notification model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from dental_backend.database import Base


class Notification(Base):
    """A message queued for a user about one appointment."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    kind = Column(String, nullable=False)
    message = Column(String, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.now)
