"""Read-only counters for the admin dashboard and a player's profile."""

from sqlalchemy import func, or_, select

from models import db
from models.booking import Booking, TeamMember, STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED, ACTIVE_STATUSES
from models.user import User, MEMBERSHIP_ACTIVE
from services.timeutil import to_day, parse_wall_clock

PLAYED_STATUSES = (STATUS_CONFIRMED, STATUS_COMPLETED)


def dashboard_stats(today, recent_limit: int = 5) -> dict:
    today = to_day(today)
    todays = (
        Booking.query
        .filter(Booking.date == today)
        .order_by(Booking.start_time.asc(), Booking.id.asc())
        .all()
    )
    return {
        "total_users": db.session.query(func.count(User.id)).scalar(),
        "active_members": (
            db.session.query(func.count(User.id))
            .filter(User.membership_status == MEMBERSHIP_ACTIVE)
            .scalar()
        ),
        "bookings_today": len(todays),
        "pending_today": sum(1 for b in todays if b.status == STATUS_PENDING),
        "recent_bookings": todays[:recent_limit],
    }


def user_stats(user_id: int, today) -> dict:
    today = to_day(today)
    member_of = select(TeamMember.booking_id).where(TeamMember.user_id == user_id)
    rows = (
        Booking.query
        .filter(or_(Booking.owner_id == user_id, Booking.id.in_(member_of)))
        .all()
    )
    played = [b for b in rows if b.status in PLAYED_STATUSES and b.date <= today]
    minutes = sum(parse_wall_clock(b.end_time) - parse_wall_clock(b.start_time) for b in played)
    return {
        "total_bookings": len(played),
        "hours_played": round(minutes / 60, 2),
        "upcoming": sum(1 for b in rows if b.status in ACTIVE_STATUSES and b.date >= today),
    }
