from flask import Blueprint, current_app, jsonify, g, request

from services.membership import save_push_token
from services.stats import user_stats
from services.timeutil import local_today, to_day
from utils.auth_context import login_required

users_bp = Blueprint("users", __name__, url_prefix="/users")


@users_bp.post("/me/push-token")
@login_required
def push_token():
    data = request.get_json(silent=True) or {}
    save_push_token(g.user.id, data.get("token"))
    return jsonify(message="Token saved"), 200


@users_bp.get("/me")
@login_required
def me():
    u = g.user
    return jsonify(
        id=u.id,
        email=u.email,
        full_name=u.full_name,
        role=g.role,
        membership={
            "status": u.membership_status,
            "expiry_date": u.membership_expiry_date.isoformat() if u.membership_expiry_date else None,
        },
    ), 200


@users_bp.get("/me/stats")
@login_required
def my_stats():
    day = request.args.get("date")
    today = to_day(day) if day else local_today(current_app.config["EXPIRY_SCAN_TIMEZONE"])
    return jsonify(data=user_stats(g.user.id, today)), 200
