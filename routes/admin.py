from datetime import date
from flask import Blueprint, current_app, jsonify, g, request

from models.booking import Booking
from models.user import ROLE_ADMIN
from security.rbac import require_roles
from services import subscriptions
from services.errors import NotFoundError, ValidationError
from services.membership import extend_membership
from services.stats import dashboard_stats
from services.timeutil import local_today, to_day
from routes.booking import booking_to_dict
from routes.subscriptions import subscription_to_dict
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# ---------- ADMIN: extend membership ----------
@admin_bp.post("/users/<int:user_id>/extend")
@require_roles(ROLE_ADMIN)
def extend_user_membership(user_id: int):
    data = request.get_json(silent=True) or {}
    if data.get("days") is None:
        raise ValidationError("days is required")

    user = extend_membership(user_id, data.get("days"))

    log_event(
        "MEMBERSHIP_EXTEND", actor_id=g.user.id, entity="user", entity_id=user.id,
        metadata={"days": data.get("days"), "expiry_date": user.membership_expiry_date},
    )
    return jsonify(
        message=f"Extended by {int(data['days'])} days",
        data={
            "id": user.id,
            "membership_status": user.membership_status,
            "membership_expiry_date": user.membership_expiry_date.isoformat(),
            "last_warning_day": user.last_warning_day,
        },
    ), 200


# ---------- ADMIN: list all bookings ----------
@admin_bp.get("/bookings")
@require_roles(ROLE_ADMIN)
def list_all_bookings():
    q = Booking.query
    status = request.args.get("status")
    if status and status != "all":
        q = q.filter_by(status=status)
    day = request.args.get("date")
    if day:
        try:
            q = q.filter(Booking.date == date.fromisoformat(day))
        except ValueError:
            raise ValidationError("Invalid date. Use YYYY-MM-DD")

    rows = q.order_by(Booking.created_at.desc()).limit(200).all()
    return jsonify([booking_to_dict(b) for b in rows]), 200


# ---------- ADMIN: offline subscription / cancel ----------
@admin_bp.post("/users/<int:user_id>/subscriptions")
@require_roles(ROLE_ADMIN)
def add_user_subscription(user_id: int):
    data = request.get_json(silent=True) or {}
    if data.get("days") is None or data.get("amount") is None:
        raise ValidationError("days and amount are required")

    sub = subscriptions.add_subscription(
        user_id, data.get("days"), data.get("amount"),
        added_by=g.user.display_name, notes=(data.get("notes") or "").strip() or None,
    )

    log_event(
        "SUBSCRIPTION_ADD", actor_id=g.user.id, entity="subscription", entity_id=sub.id,
        metadata={"user_id": user_id, "days": sub.days, "amount": sub.amount},
    )
    return jsonify(
        message=f"Subscription added: {sub.days} days for {sub.amount}",
        data=subscription_to_dict(sub),
    ), 201


@admin_bp.get("/users/<int:user_id>/subscription")
@require_roles(ROLE_ADMIN)
def get_user_subscription(user_id: int):
    sub = subscriptions.get_active_subscription(user_id)
    if sub is None:
        raise NotFoundError("No active subscription found for this user", user_id=user_id)
    return jsonify(data=subscription_to_dict(sub)), 200


@admin_bp.delete("/users/<int:user_id>/subscription")
@require_roles(ROLE_ADMIN)
def cancel_user_subscription(user_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or None

    sub = subscriptions.cancel_subscription(user_id, reason)

    log_event(
        "SUBSCRIPTION_CANCEL", actor_id=g.user.id, entity="subscription", entity_id=sub.id,
        metadata={"user_id": user_id, "reason": reason},
    )
    return jsonify(message="Subscription cancelled successfully", data=subscription_to_dict(sub)), 200


# ---------- ADMIN: dashboard ----------
@admin_bp.get("/stats/dashboard")
@require_roles(ROLE_ADMIN)
def dashboard():
    day = request.args.get("date")
    today = to_day(day) if day else local_today(current_app.config["EXPIRY_SCAN_TIMEZONE"])
    stats = dashboard_stats(today)
    stats["recent_bookings"] = [booking_to_dict(b) for b in stats["recent_bookings"]]
    return jsonify(date=today.isoformat(), data=stats), 200
