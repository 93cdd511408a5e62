"""Slot occupancy for a court on a given day.

Windows are half-open ``[start, end)`` in minutes after midnight, so a
10:00-11:00 booking leaves 11:00-12:00 free.
"""

from dataclasses import dataclass

from models import db
from models.booking import Booking, OCCUPYING_STATUSES
from services.errors import ValidationError
from services.timeutil import to_day, parse_wall_clock, format_wall_clock


@dataclass(frozen=True)
class Interval:
    start: int
    end: int
    booking_id: int = None

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end

    @property
    def label(self) -> str:
        return f"{format_wall_clock(self.start)}-{format_wall_clock(self.end)}"


def parse_window(start_time: str, end_time: str):
    start = parse_wall_clock(start_time)
    end = parse_wall_clock(end_time)
    if end <= start:
        raise ValidationError("end_time must be after start_time")
    return start, end


def occupied_intervals(court_id: int, day, session=None):
    session = session if session is not None else db.session
    rows = (
        session.query(Booking)
        .filter(
            Booking.court_id == court_id,
            Booking.date == to_day(day),
            Booking.status.in_(OCCUPYING_STATUSES),
        )
        .all()
    )
    intervals = [
        Interval(parse_wall_clock(b.start_time), parse_wall_clock(b.end_time), b.id)
        for b in rows
    ]
    return sorted(intervals, key=lambda i: (i.start, i.end))


def find_slot_conflict(court_id: int, day, start_time: str, end_time: str, session=None):
    """First occupied interval overlapping the requested window, or None."""
    start, end = parse_window(start_time, end_time)
    for interval in occupied_intervals(court_id, day, session=session):
        if interval.overlaps(start, end):
            return interval
    return None


def is_slot_free(court_id: int, day, start_time: str, end_time: str, session=None) -> bool:
    return find_slot_conflict(court_id, day, start_time, end_time, session=session) is None


def booked_slot_keys(court_id: int, days, session=None):
    """``{"YYYY-MM-DD_HH:MM", ...}`` for every occupied slot across ``days``."""
    session = session if session is not None else db.session
    wanted = sorted({to_day(d) for d in days})
    if not wanted:
        return set()

    rows = (
        session.query(Booking.date, Booking.start_time)
        .filter(
            Booking.court_id == court_id,
            Booking.date.in_(wanted),
            Booking.status.in_(OCCUPYING_STATUSES),
        )
        .all()
    )
    return {f"{d.isoformat()}_{start}" for d, start in rows}
