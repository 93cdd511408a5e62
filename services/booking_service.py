"""Booking admission: atomic multi-date, multi-player booking creation plus
the single-record lifecycle writes (cancel, mark paid).
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import (
    Booking,
    TeamMember,
    ACTIVE_STATUSES,
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_CANCELLED,
    PAYMENT_PAID,
)
from models.court import Court
from models.join_request import REQUEST_PENDING, REQUEST_DECLINED
from models.user import User, MEMBERSHIP_ACTIVE, ROLE_ADMIN
from services.availability import parse_window, find_slot_conflict
from services.errors import ValidationError, ConflictError, NotFoundError, AuthorizationError
from services.events import BookingCreated, BookingStatusChanged
from services.quota import find_quota_conflict
from services.timeutil import to_day, format_wall_clock
from services.uow import UnitOfWork
from utils.app_config import cfg

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    bookings: List[Booking] = field(default_factory=list)
    total_amount: int = 0

    @property
    def batch_ref(self):
        return self.bookings[0].batch_ref if self.bookings else None


def generate_booking_ref(prefix: str = "BK") -> str:
    return f"{prefix}-{datetime.utcnow():%y%m%d%H%M%S}{secrets.token_hex(4).upper()}"


def _normalize_dates(dates):
    if not dates:
        raise ValidationError("At least one date is required")
    days = [to_day(d) for d in dates]
    if len(set(days)) != len(days):
        raise ValidationError("Dates must not repeat")
    return sorted(days)


def _normalize_members(owner_id, team_member_ids, max_players):
    member_ids = []
    for raw in team_member_ids or []:
        try:
            member_ids.append(int(raw))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid team member id: {raw!r}")

    if owner_id in member_ids:
        raise ValidationError("The captain must not be listed as a team member")
    if len(set(member_ids)) != len(member_ids):
        raise ValidationError("Team members must not repeat")
    if 1 + len(member_ids) > max_players:
        raise ValidationError(
            f"Team must be between 1 and {max_players} players",
            max_players=max_players,
        )
    return member_ids


def create_booking(
    owner_id: int,
    court_id: int,
    dates,
    start_time: str,
    end_time: str,
    team_member_ids=(),
    is_public: bool = False,
    uow: UnitOfWork = None,
) -> BookingResult:
    """
    Book ``court_id`` for every date in ``dates`` with one shared roster.

    All-or-nothing: the first date failing the quota or slot check raises
    ConflictError and nothing is written.
    """
    max_players = int(cfg("MAX_PLAYERS"))
    days = _normalize_dates(dates)
    start, end = parse_window(start_time, end_time)
    start_label, end_label = format_wall_clock(start), format_wall_clock(end)
    member_ids = _normalize_members(owner_id, team_member_ids, max_players)
    participant_ids = [owner_id] + member_ids

    uow = uow or UnitOfWork()
    with uow:
        # Row locks serialize concurrent requests for the same court or players
        court = Court.query.filter_by(id=court_id).with_for_update().first()
        if not court or not court.is_active:
            raise NotFoundError("Court not found", court_id=court_id)

        users = (
            User.query
            .filter(User.id.in_(participant_ids))
            .order_by(User.id.asc())
            .with_for_update()
            .all()
        )
        found = {u.id: u for u in users}
        if owner_id not in found:
            raise NotFoundError("User not found", user_id=owner_id)
        missing = [uid for uid in member_ids if uid not in found]
        if missing:
            raise NotFoundError("Team member not found", user_ids=missing)

        if cfg("BOOKING_REQUIRE_MEMBERSHIP") and found[owner_id].membership_status != MEMBERSHIP_ACTIVE:
            raise ValidationError("Captain must have an active membership")

        for day in days:
            quota = find_quota_conflict(participant_ids, day)
            if quota:
                user_id, existing = quota
                raise ConflictError(
                    f"{day.isoformat()}: user {user_id} already has a booking on this day.",
                    date=day, user_id=user_id, booking_id=existing.id,
                )
            taken = find_slot_conflict(court.id, day, start_label, end_label)
            if taken:
                raise ConflictError(
                    f"{day.isoformat()}: slot {start_label}-{end_label} is already booked ({taken.label}).",
                    date=day, booking_id=taken.booking_id,
                )

        batch_ref = generate_booking_ref("BT")
        created = []
        for day in days:
            booking = Booking(
                booking_ref=generate_booking_ref(),
                batch_ref=batch_ref,
                court_id=court.id,
                owner_id=owner_id,
                date=day,
                start_time=start_label,
                end_time=end_label,
                is_public=bool(is_public),
                total_players=len(participant_ids),
                status=STATUS_PENDING,
                total_amount=court.price_per_hour,
                team_members=[TeamMember(user_id=uid) for uid in member_ids],
            )
            db.session.add(booking)
            created.append(booking)

        try:
            db.session.flush()
            uow.add_event(BookingCreated(
                batch_ref=batch_ref,
                booking_ids=[b.id for b in created],
                booking_refs=[b.booking_ref for b in created],
                owner_id=owner_id,
                court_id=court.id,
                dates=list(days),
            ))
            uow.commit()
        except IntegrityError:
            # A concurrent writer got past the checks first; the partial unique indexes caught it
            uow.rollback()
            logger.info("Booking batch %s lost a race on court %s", batch_ref, court_id)
            raise ConflictError(
                f"{days[0].isoformat()}: slot or daily quota was taken by a concurrent booking.",
                date=days[0],
            )

    logger.info("Created %d booking(s) in batch %s for owner %s", len(created), batch_ref, owner_id)
    return BookingResult(bookings=created, total_amount=sum(b.total_amount for b in created))


def get_booking(booking_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError("Booking not found", booking_id=booking_id)
    return booking


def cancel_booking(booking_id: int, actor_id: int, actor_role: str = None, reason: str = None, now=None) -> Booking:
    """Owner or admin cancels a Pending/Confirmed booking."""
    with UnitOfWork() as uow:
        booking = get_booking(booking_id)
        is_admin = actor_role == ROLE_ADMIN
        if booking.owner_id != actor_id and not is_admin:
            raise AuthorizationError("Only the captain or an admin can cancel this booking")
        if booking.status not in ACTIVE_STATUSES:
            raise ValidationError("Booking not cancellable", status=booking.status)

        if not reason and booking.owner_id != actor_id:
            reason = "Admin cancellation"

        booking.status = STATUS_CANCELLED
        booking.cancelled_at = now or datetime.utcnow()
        booking.cancel_reason = reason[:120] if reason else None
        booking.cancelled_by = actor_id
        # open requests die with the match
        for req in booking.join_requests:
            if req.status == REQUEST_PENDING:
                req.status = REQUEST_DECLINED
                req.resolved_at = booking.cancelled_at
                req.resolved_by = actor_id
        uow.add_event(BookingStatusChanged(
            booking_id=booking.id,
            booking_ref=booking.booking_ref,
            owner_id=booking.owner_id,
            status=STATUS_CANCELLED,
            reason=booking.cancel_reason,
        ))
    return booking


def mark_booking_paid(booking_id: int, actor_role: str, now=None) -> Booking:
    """Admin confirms payment: Pending -> Confirmed, whole team marked Paid."""
    if actor_role != ROLE_ADMIN:
        raise AuthorizationError("Only an admin can mark a booking as paid")

    with UnitOfWork() as uow:
        booking = get_booking(booking_id)
        if booking.status == STATUS_CONFIRMED:
            return booking
        if booking.status != STATUS_PENDING:
            raise ValidationError("Booking cannot be confirmed", status=booking.status)

        now = now or datetime.utcnow()
        court = db.session.get(Court, booking.court_id)
        booking.status = STATUS_CONFIRMED
        booking.total_amount = court.price_per_hour if court else booking.total_amount
        booking.paid_at = now
        booking.confirmed_at = now
        for member in booking.team_members:
            member.payment_status = PAYMENT_PAID
            member.paid_at = now

        uow.add_event(BookingStatusChanged(
            booking_id=booking.id,
            booking_ref=booking.booking_ref,
            owner_id=booking.owner_id,
            status=STATUS_CONFIRMED,
        ))
    return booking


def list_bookings_for_user(user_id: int):
    """Bookings the user owns or plays in, newest date first."""
    member_of = select(TeamMember.booking_id).where(TeamMember.user_id == user_id)
    return (
        Booking.query
        .filter(or_(Booking.owner_id == user_id, Booking.id.in_(member_of)))
        .order_by(Booking.date.desc(), Booking.start_time.asc())
        .all()
    )
