import os



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Upper bound on instances produced by one recurring availability request.
MAX_RECURRING_INSTANCES = int(os.getenv("MAX_RECURRING_INSTANCES", "365"))

SLOT_CLEANUP_PRESERVE_BOOKED = _get_bool(os.getenv("SLOT_CLEANUP_PRESERVE_BOOKED"), default=True)
SLOT_CLEANUP_NOTIFY_CUSTOMERS = _get_bool(os.getenv("SLOT_CLEANUP_NOTIFY_CUSTOMERS"), default=True)
SLOT_CLEANUP_CREATE_CANCELLATION_RECORDS = _get_bool(
    os.getenv("SLOT_CLEANUP_CREATE_CANCELLATION_RECORDS"),
    default=True,
)
SLOT_CLEANUP_ORPHANED = _get_bool(os.getenv("SLOT_CLEANUP_ORPHANED"), default=True)
SLOT_CLEANUP_ABORT_ON_NOTIFICATION_FAILURE = _get_bool(
    os.getenv("SLOT_CLEANUP_ABORT_ON_NOTIFICATION_FAILURE"),
    default=True,
)

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if MAX_RECURRING_INSTANCES < 1:
        raise RuntimeError("MAX_RECURRING_INSTANCES must be at least 1.")
