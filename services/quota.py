"""Daily quota: a user plays in at most one active match per calendar day.

Callers that write based on these answers must run them inside the same
unit of work, after locking the participants' user rows.
"""

from sqlalchemy import or_, select

from models import db
from models.booking import Booking, TeamMember, ACTIVE_STATUSES
from services.timeutil import to_day


def find_active_booking(user_id: int, day, session=None, exclude_booking_id=None):
    """Return the user's Pending/Confirmed booking on ``day`` (as owner or team member), if any."""
    session = session if session is not None else db.session
    day = to_day(day)

    member_of = select(TeamMember.booking_id).where(TeamMember.user_id == user_id)
    q = (
        session.query(Booking)
        .filter(
            Booking.date == day,
            Booking.status.in_(ACTIVE_STATUSES),
            or_(Booking.owner_id == user_id, Booking.id.in_(member_of)),
        )
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.order_by(Booking.id.asc()).first()


def has_active_booking(user_id: int, day, session=None) -> bool:
    return find_active_booking(user_id, day, session=session) is not None


def find_quota_conflict(user_ids, day, session=None):
    """First ``(user_id, booking)`` among ``user_ids`` already playing on ``day``, else None."""
    for user_id in user_ids:
        booking = find_active_booking(user_id, day, session=session)
        if booking is not None:
            return user_id, booking
    return None
