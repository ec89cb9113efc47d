"""Blocked date model definitions."""

from sqlalchemy import Column, Date, ForeignKey, Integer, String, Time
from dental_backend.database import Base


class BlockedDate(Base):
    """A one-off exception removing a full day or a part of it from a dentist's hours."""
    __tablename__ = "dentist_blocked_dates"

    id = Column(Integer, primary_key=True)
    dentist_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    blocked_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    reason = Column(String(255), nullable=True)

    @property
    def is_full_day(self) -> bool:
        return self.start_time is None or self.end_time is None
