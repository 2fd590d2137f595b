import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as tutoring.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "tutoring.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie issued by the sign-in service
    AUTH_COOKIE_NAME = "tutoring_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", "false")

    # CSRF double-submit names
    CSRF_COOKIE_NAME = "csrf_token"
    CSRF_HEADER_NAME = "X-CSRF-Token"

    # Lessons are fixed-length
    LESSON_DURATION_MINUTES = int(os.getenv("LESSON_DURATION_MINUTES", "60"))

    # Cancellation policy (student-initiated only)
    CANCEL_CUTOFF_HOURS = int(os.getenv("CANCEL_CUTOFF_HOURS", "24"))

    # Re-open the slot when a booking made from it is cancelled before it starts
    RESTORE_SLOT_ON_CANCEL = _env_bool("RESTORE_SLOT_ON_CANCEL", "true")

    # Reminder sweep looks this far ahead
    REMINDER_WINDOW_HOURS = int(os.getenv("REMINDER_WINDOW_HOURS", "24"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Tables normally come from `flask db upgrade`
    CREATE_TABLES_ON_START = False

    # Basic app settings
    DEBUG = False

class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SESSION_COOKIE_SECURE = False
    LOG_LEVEL = "DEBUG"
    CREATE_TABLES_ON_START = True
