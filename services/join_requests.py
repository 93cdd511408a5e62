"""Join requests for public matches.

Pending -> Accepted or Pending -> Declined; both are terminal. Only the
booking owner (the captain) resolves requests.
"""

import logging
from datetime import datetime

from models import db
from models.booking import Booking, TeamMember
from models.join_request import JoinRequest, REQUEST_PENDING, REQUEST_ACCEPTED, REQUEST_DECLINED
from models.user import User
from services.errors import ValidationError, ConflictError, NotFoundError, AuthorizationError
from services.events import JoinRequested, JoinRequestAccepted
from services.quota import find_active_booking
from services.uow import UnitOfWork
from utils.app_config import cfg

logger = logging.getLogger(__name__)

_DECISIONS = {
    "accepted": REQUEST_ACCEPTED,
    "accept": REQUEST_ACCEPTED,
    "declined": REQUEST_DECLINED,
    "decline": REQUEST_DECLINED,
}


def _locked_booking(booking_id: int) -> Booking:
    booking = Booking.query.filter_by(id=booking_id).with_for_update().first()
    if not booking:
        raise NotFoundError("Booking not found", booking_id=booking_id)
    return booking


def _is_full(booking: Booking) -> bool:
    return len(booking.participant_ids()) >= int(cfg("MAX_PLAYERS"))


def request_join(booking_id: int, user_id: int) -> JoinRequest:
    """Ask to join a public match. Returns the existing Pending request if there is one."""
    with UnitOfWork() as uow:
        booking = _locked_booking(booking_id)
        if not db.session.get(User, user_id):
            raise NotFoundError("User not found", user_id=user_id)

        if booking.owner_id == user_id:
            raise ValidationError("You are the captain of this booking")
        if any(m.user_id == user_id for m in booking.team_members):
            raise ValidationError("You are already a member of this team")
        if not booking.is_active:
            raise ValidationError("This booking is no longer active", status=booking.status)

        existing = (
            JoinRequest.query
            .filter_by(booking_id=booking.id, requester_id=user_id, status=REQUEST_PENDING)
            .first()
        )
        if existing:
            return existing

        if not booking.is_public:
            raise ValidationError("This match is not open for join requests")
        if _is_full(booking):
            raise ValidationError("This booking is already full")

        req = JoinRequest(booking_id=booking.id, requester_id=user_id, status=REQUEST_PENDING)
        db.session.add(req)
        db.session.flush()
        uow.add_event(JoinRequested(
            booking_id=booking.id,
            request_id=req.id,
            captain_id=booking.owner_id,
            requester_id=user_id,
        ))

    logger.info("User %s requested to join booking %s", user_id, booking_id)
    return req


def resolve_join_request(booking_id: int, request_id: int, captain_id: int, decision: str, now=None) -> JoinRequest:
    """Captain accepts or declines a Pending request. Accepting a full team changes nothing."""
    status = _DECISIONS.get((decision or "").strip().lower())
    if status is None:
        raise ValidationError("decision must be Accepted or Declined")

    with UnitOfWork() as uow:
        booking = _locked_booking(booking_id)
        req = db.session.get(JoinRequest, request_id)
        if not req or req.booking_id != booking.id:
            raise NotFoundError("Request not found", request_id=request_id)
        if booking.owner_id != captain_id:
            raise AuthorizationError("Only the captain can manage requests")
        if req.status != REQUEST_PENDING:
            raise ValidationError("Request already resolved", status=req.status)

        if status == REQUEST_ACCEPTED:
            if not booking.is_active:
                raise ValidationError("This booking is no longer active", status=booking.status)
            if _is_full(booking):
                raise ValidationError("Team is full.", max_players=int(cfg("MAX_PLAYERS")))

            # lock the requester like booking creation does, then re-check the daily quota
            User.query.filter_by(id=req.requester_id).with_for_update().first()
            clash = find_active_booking(req.requester_id, booking.date)
            if clash:
                raise ConflictError(
                    f"{booking.date.isoformat()}: user {req.requester_id} already has a booking on this day.",
                    date=booking.date, user_id=req.requester_id, booking_id=clash.id,
                )

            booking.team_members.append(TeamMember(user_id=req.requester_id))
            booking.total_players = len(booking.participant_ids())
            uow.add_event(JoinRequestAccepted(
                booking_id=booking.id,
                request_id=req.id,
                requester_id=req.requester_id,
            ))

        req.status = status
        req.resolved_at = now or datetime.utcnow()
        req.resolved_by = captain_id

    logger.info("Join request %s on booking %s %s", request_id, booking_id, status.lower())
    return req
