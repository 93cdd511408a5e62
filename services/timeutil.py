import re
from datetime import date, datetime
from zoneinfo import ZoneInfo

from services.errors import ValidationError

_CLOCK = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*$")


def to_day(value) -> date:
    """Normalize a date, datetime or ISO string to a calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError(f"Invalid date: {value!r}. Use YYYY-MM-DD")


def parse_wall_clock(value: str) -> int:
    """Parse "18:00", "6:00" or "6:00 PM" into minutes after midnight."""
    match = _CLOCK.match(value or "") if isinstance(value, str) else None
    if not match:
        raise ValidationError(f"Invalid time: {value!r}. Use HH:MM")

    hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3)
    if minute > 59:
        raise ValidationError(f"Invalid time: {value!r}")
    if meridiem:
        if not 1 <= hour <= 12:
            raise ValidationError(f"Invalid time: {value!r}")
        hour = hour % 12 + (12 if meridiem.lower() == "pm" else 0)
    elif hour > 23:
        raise ValidationError(f"Invalid time: {value!r}")
    return hour * 60 + minute


def format_wall_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def local_now(tz_name: str) -> datetime:
    return datetime.now(ZoneInfo(tz_name))


def local_today(tz_name: str) -> date:
    return local_now(tz_name).date()
