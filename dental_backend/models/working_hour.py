"""Working-hour rule model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Time
from dental_backend.database import Base

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class WorkingHourRule(Base):
    """Recurring weekly opening hours of one dentist for one weekday (0 = Sunday)."""
    __tablename__ = "dentist_working_hours"

    id = Column(Integer, primary_key=True)
    dentist_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    weekday = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def day_name(self) -> str:
        if self.weekday is None or not 0 <= self.weekday <= 6:
            return "Unknown"
        return DAY_NAMES[self.weekday]
