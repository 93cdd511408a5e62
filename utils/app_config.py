from flask import current_app

_DEFAULTS = {
    "MAX_PLAYERS": 6,
    "BOOKING_REQUIRE_MEMBERSHIP": True,
    "EXPIRY_SCAN_TIMEZONE": "Asia/Kolkata",
    "EXPIRY_SCAN_HOUR": 10,
    "EXPIRY_SCAN_MINUTE": 0,
}


def cfg(name: str):
    """Read a setting from the active app, falling back to the built-in default."""
    try:
        return current_app.config.get(name, _DEFAULTS.get(name))
    except RuntimeError:
        # outside an application context (scripts, pure unit tests)
        return _DEFAULTS.get(name)
