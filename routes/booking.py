from flask import Blueprint, request, jsonify, g

from models import db
from models.court import Court
from models.user import ROLE_ADMIN
from security.rbac import is_admin, require_roles
from services import booking_service, join_requests
from services.availability import booked_slot_keys
from services.errors import ValidationError, NotFoundError
from utils.auth_context import login_required
from utils.audit import log_event
from utils.validation import parse_bool, parse_int

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


def booking_to_dict(b, include_requests=False):
    out = {
        "id": b.id,
        "booking_ref": b.booking_ref,
        "batch_ref": b.batch_ref,
        "court_id": b.court_id,
        "owner_id": b.owner_id,
        "date": b.date.isoformat(),
        "start_time": b.start_time,
        "end_time": b.end_time,
        "is_public": b.is_public,
        "total_players": b.total_players,
        "status": b.status,
        "total_amount": b.total_amount,
        "team_members": [
            {
                "user_id": m.user_id,
                "payment_status": m.payment_status,
                "joined_at": m.joined_at.isoformat(),
            }
            for m in b.team_members
        ],
        "created_at": b.created_at.isoformat(),
        "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "cancel_reason": b.cancel_reason,
    }
    if include_requests:
        out["join_requests"] = [join_request_to_dict(r) for r in b.join_requests]
    return out


def join_request_to_dict(r):
    return {
        "id": r.id,
        "booking_id": r.booking_id,
        "requester_id": r.requester_id,
        "status": r.status,
        "requested_at": r.requested_at.isoformat(),
        "resolved_at": r.resolved_at.isoformat() if r.resolved_at else None,
    }


# ---------- PLAYERS: book one court for one or more dates (ATOMIC) ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    court_id = data.get("court_id")
    dates = data.get("dates")
    if isinstance(dates, str):
        dates = [dates]
    start_time = data.get("start_time")
    end_time = data.get("end_time")

    if court_id in (None, "") or not dates or not start_time or not end_time:
        raise ValidationError("court_id, dates, start_time and end_time are required")
    team_member_ids = data.get("team_member_ids") or []
    if not isinstance(team_member_ids, list):
        raise ValidationError("team_member_ids must be a list")

    result = booking_service.create_booking(
        owner_id=g.user.id,
        court_id=parse_int(court_id, "court_id"),
        dates=dates,
        start_time=start_time,
        end_time=end_time,
        team_member_ids=team_member_ids,
        is_public=parse_bool(data.get("is_public"), "is_public"),
    )

    log_event(
        "BOOKING_CREATE", actor_id=g.user.id, entity="booking_batch", entity_id=result.batch_ref,
        metadata={"booking_ids": [b.id for b in result.bookings]},
    )
    return jsonify(
        count=len(result.bookings),
        total_amount=result.total_amount,
        batch_ref=result.batch_ref,
        data=[booking_to_dict(b) for b in result.bookings],
    ), 201


# ---------- PLAYERS: view my bookings ----------
@booking_bp.get("/me")
@login_required
def my_bookings():
    rows = booking_service.list_bookings_for_user(g.user.id)
    status = request.args.get("status")
    if status:
        rows = [b for b in rows if b.status == status]
    return jsonify([booking_to_dict(b) for b in rows]), 200


# ---------- PLAYERS: occupied slots for a court across dates ----------
@booking_bp.get("/availability")
@login_required
def availability():
    court_id = request.args.get("court_id", type=int)
    dates = [d for d in (request.args.get("dates") or "").split(",") if d.strip()]
    if not court_id or not dates:
        raise ValidationError("court_id and dates are required")
    if not db.session.get(Court, court_id):
        raise NotFoundError("Court not found", court_id=court_id)

    return jsonify(data=sorted(booked_slot_keys(court_id, dates))), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def booking_detail(booking_id: int):
    booking = booking_service.get_booking(booking_id)
    can_manage = booking.owner_id == g.user.id or is_admin()
    return jsonify(booking_to_dict(booking, include_requests=can_manage)), 200


# ---------- PLAYERS/ADMIN: cancel booking ----------
@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or None

    booking = booking_service.cancel_booking(booking_id, g.user.id, g.role, reason)

    log_event("BOOKING_CANCEL", actor_id=g.user.id, entity="booking", entity_id=booking.id, metadata={"reason": reason})
    return jsonify(message="Cancelled", data=booking_to_dict(booking)), 200


# ---------- ADMIN: confirm payment ----------
@booking_bp.post("/<int:booking_id>/pay")
@require_roles(ROLE_ADMIN)
def mark_paid(booking_id: int):
    booking = booking_service.mark_booking_paid(booking_id, g.role)

    log_event("BOOKING_PAID", actor_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(data=booking_to_dict(booking)), 200


# ---------- PLAYERS: ask to join a public match ----------
@booking_bp.post("/<int:booking_id>/join")
@login_required
def request_join(booking_id: int):
    req = join_requests.request_join(booking_id, g.user.id)

    log_event("JOIN_REQUEST", actor_id=g.user.id, entity="join_request", entity_id=req.id, metadata={"booking_id": booking_id})
    return jsonify(message="Join request sent", data=join_request_to_dict(req)), 200


# ---------- CAPTAIN: accept / decline ----------
@booking_bp.put("/<int:booking_id>/requests/<int:request_id>")
@login_required
def resolve_join_request(booking_id: int, request_id: int):
    data = request.get_json(silent=True) or {}
    decision = data.get("status") or data.get("decision")

    req = join_requests.resolve_join_request(booking_id, request_id, g.user.id, decision)

    log_event(
        "JOIN_REQUEST_RESOLVE", actor_id=g.user.id, entity="join_request", entity_id=req.id,
        metadata={"booking_id": booking_id, "status": req.status},
    )
    booking = booking_service.get_booking(booking_id)
    return jsonify(
        message=f"Request {req.status}",
        data=join_request_to_dict(req),
        booking=booking_to_dict(booking, include_requests=True),
    ), 200
