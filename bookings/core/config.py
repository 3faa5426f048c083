import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bookings.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Asia/Dubai")

SLOT_INCREMENT_MINUTES = int(os.getenv("SLOT_INCREMENT_MINUTES", "30"))
CONFLICT_WINDOW_PADDING_HOURS = int(os.getenv("CONFLICT_WINDOW_PADDING_HOURS", "24"))

SIDE_EFFECT_TIMEOUT_SECONDS = float(os.getenv("SIDE_EFFECT_TIMEOUT_SECONDS", "10"))
SIDE_EFFECT_MAX_ATTEMPTS = int(os.getenv("SIDE_EFFECT_MAX_ATTEMPTS", "2"))
SIDE_EFFECT_WORKERS = int(os.getenv("SIDE_EFFECT_WORKERS", "4"))

CALENDAR_PROVIDER = os.getenv("CALENDAR_PROVIDER", "none")
VIDEO_PROVIDER = os.getenv("VIDEO_PROVIDER", "none")
MEETING_FALLBACK_BASE_URL = os.getenv("MEETING_FALLBACK_BASE_URL", "https://meet.google.com")

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))
MANAGE_TOKEN_EXPIRES_DAYS = int(os.getenv("MANAGE_TOKEN_EXPIRES_DAYS", "180"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_INCREMENT_MINUTES <= 0:
        raise RuntimeError("SLOT_INCREMENT_MINUTES must be positive.")
