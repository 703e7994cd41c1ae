import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scheduling.db")

SLOT_STRIDE_MINUTES = _get_int(os.getenv("SLOT_STRIDE_MINUTES"), 30)
CANCELLATION_LEAD_MINUTES = _get_int(os.getenv("CANCELLATION_LEAD_MINUTES"), 120)
MAX_APPOINTMENT_NOTES_LENGTH = _get_int(os.getenv("MAX_APPOINTMENT_NOTES_LENGTH"), 600)

REMINDERS_ENABLED = _get_bool(os.getenv("REMINDERS_ENABLED"), default=True)
REMINDER_INTERVAL_MINUTES = _get_int(os.getenv("REMINDER_INTERVAL_MINUTES"), 15)
REMINDER_LEAD_MINUTES = _get_int(os.getenv("REMINDER_LEAD_MINUTES"), 120)
REMINDER_WINDOW_MINUTES = _get_int(os.getenv("REMINDER_WINDOW_MINUTES"), 15)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = _get_int(os.getenv("JWT_EXPIRES_MINUTES"), 60)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_STRIDE_MINUTES <= 0:
        raise RuntimeError("SLOT_STRIDE_MINUTES must be positive.")
    # A window narrower than the cadence leaves appointments that are never reminded.
    if REMINDER_WINDOW_MINUTES < REMINDER_INTERVAL_MINUTES:
        raise RuntimeError("REMINDER_WINDOW_MINUTES must be at least REMINDER_INTERVAL_MINUTES.")
