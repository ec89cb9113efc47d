import os
from datetime import time

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_time(value: str | None) -> time | None:
    if value is None or not value.strip():
        return None
    hour, minute = value.strip().split(":", 1)
    return time(int(hour), int(minute))


def _get_int_list(value: str) -> list[int]:
    return [int(part) for part in value.split(",") if part.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dental.db")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:4200").split(",")
    if origin.strip()
]

SLOT_INCREMENT_MINUTES = int(os.getenv("SLOT_INCREMENT_MINUTES", "30"))
LUNCH_BREAK_START = _get_time(os.getenv("LUNCH_BREAK_START", "12:00"))
LUNCH_BREAK_END = _get_time(os.getenv("LUNCH_BREAK_END", "13:00"))

PATIENT_CANCELLATION_NOTICE_HOURS = int(os.getenv("PATIENT_CANCELLATION_NOTICE_HOURS", "24"))
REMINDER_SENDS_PER_SECOND = float(os.getenv("REMINDER_SENDS_PER_SECOND", "10"))

# 0 = Sunday ... 6 = Saturday
DEFAULT_WORKING_DAYS = _get_int_list(os.getenv("DEFAULT_WORKING_DAYS", "1,2,3,4,5,6"))
DEFAULT_WORKING_START = _get_time(os.getenv("DEFAULT_WORKING_START", "09:00"))
DEFAULT_WORKING_END = _get_time(os.getenv("DEFAULT_WORKING_END", "17:00"))

MAX_APPOINTMENT_NOTES_LENGTH = 1000

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))


def lunch_break() -> tuple[time, time] | None:
    if LUNCH_BREAK_START is None or LUNCH_BREAK_END is None:
        return None
    return LUNCH_BREAK_START, LUNCH_BREAK_END


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_INCREMENT_MINUTES <= 0:
        raise RuntimeError("SLOT_INCREMENT_MINUTES must be positive.")
    if REMINDER_SENDS_PER_SECOND < 0:
        raise RuntimeError("REMINDER_SENDS_PER_SECOND cannot be negative.")
