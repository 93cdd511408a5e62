from flask import Blueprint, jsonify, g, request

from services import subscriptions
from services.errors import NotFoundError
from utils.auth_context import login_required
from utils.audit import log_event

subscriptions_bp = Blueprint("subscriptions", __name__, url_prefix="/subscriptions")


def plan_to_dict(p):
    return {
        "id": p.id,
        "code": p.code,
        "name": p.name,
        "price": p.price,
        "duration_days": p.duration_days,
        "booking_hours": p.booking_hours,
        "guest_passes": p.guest_passes,
    }


def subscription_to_dict(s):
    return {
        "id": s.id,
        "user_id": s.user_id,
        "plan_name": s.plan_name,
        "days": s.days,
        "amount": s.amount,
        "start_date": s.start_date.isoformat(),
        "expiry_date": s.expiry_date.isoformat(),
        "status": s.status,
        "added_by": s.added_by,
        "payment_ref": s.payment_ref,
        "notes": s.notes,
        "cancelled_at": s.cancelled_at.isoformat() if s.cancelled_at else None,
    }


@subscriptions_bp.get("/plans")
@login_required
def plans():
    return jsonify(data=[plan_to_dict(p) for p in subscriptions.list_plans()]), 200


# ---------- PLAYERS: buy or renew a plan ----------
@subscriptions_bp.post("/purchase")
@login_required
def purchase():
    data = request.get_json(silent=True) or {}
    sub = subscriptions.purchase_subscription(g.user.id, data.get("plan"), data.get("payment_ref"))

    log_event(
        "SUBSCRIPTION_PURCHASE", actor_id=g.user.id, entity="subscription", entity_id=sub.id,
        metadata={"plan": data.get("plan"), "expiry_date": sub.expiry_date},
    )
    return jsonify(message="Subscription purchased successfully!", data=subscription_to_dict(sub)), 201


@subscriptions_bp.get("/me")
@login_required
def my_subscription():
    sub = subscriptions.get_active_subscription(g.user.id)
    if sub is None:
        raise NotFoundError("No active subscription found")
    return jsonify(data=subscription_to_dict(sub)), 200
