import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as courtslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "courtslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Trusted identity headers set by the upstream auth gateway
    AUTH_USER_HEADER = "X-User-Id"
    AUTH_ROLE_HEADER = "X-User-Role"

    # Booking rules
    MAX_PLAYERS = 6                     # captain + up to 5 team members
    BOOKING_REQUIRE_MEMBERSHIP = _env_bool("BOOKING_REQUIRE_MEMBERSHIP", "true")

    # Membership expiry scan (daily, fixed local time)
    EXPIRY_SCAN_TIMEZONE = os.getenv("EXPIRY_SCAN_TIMEZONE", "Asia/Kolkata")
    EXPIRY_SCAN_HOUR = int(os.getenv("EXPIRY_SCAN_HOUR", "10"))
    EXPIRY_SCAN_MINUTE = int(os.getenv("EXPIRY_SCAN_MINUTE", "0"))

    # Push notifications (Expo)
    NOTIFICATIONS_ENABLED = _env_bool("NOTIFICATIONS_ENABLED", "true")
    NOTIFICATIONS_ASYNC = _env_bool("NOTIFICATIONS_ASYNC", "true")
    NOTIFICATION_WORKERS = int(os.getenv("NOTIFICATION_WORKERS", "4"))
    EXPO_PUSH_URL = os.getenv("EXPO_PUSH_URL", "https://exp.host/--/api/v2/push/send")
    PUSH_TIMEOUT_SECONDS = int(os.getenv("PUSH_TIMEOUT_SECONDS", "10"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    NOTIFICATIONS_ENABLED = False
    NOTIFICATIONS_ASYNC = False
    LOG_LEVEL = "DEBUG"
