"""Paid membership periods: plan purchase and renewal, admin-added offline
periods and cancellation.

Every path that starts a period goes through ``renewed_state``, like
``extend_membership`` does, so a renewal re-arms all expiry warnings.
"""

import logging
from datetime import datetime, timedelta

from models import db
from models.plan import Plan
from models.subscription import Subscription, SUB_ACTIVE, SUB_INACTIVE, SUB_CANCELLED, ADDED_BY_USER
from models.user import User, MEMBERSHIP_INACTIVE
from services.errors import ValidationError, NotFoundError
from services.events import MembershipExtended
from services.membership import MembershipState, parse_days, renewed_state
from services.timeutil import to_day, local_today
from services.uow import UnitOfWork
from utils.app_config import cfg

logger = logging.getLogger(__name__)

OFFLINE_PAYMENT = "OFFLINE"

DEFAULT_PLANS = (
    dict(code="monthly", name="Monthly", price=1500, duration_days=30, booking_hours=12, guest_passes=2),
    dict(code="quarterly", name="Quarterly", price=4000, duration_days=90, booking_hours=40, guest_passes=6),
    dict(code="yearly", name="Yearly", price=15000, duration_days=365, booking_hours=160, guest_passes=24),
)


def seed_plans() -> int:
    existing = {p.code for p in Plan.query.all()}
    created = 0
    for defaults in DEFAULT_PLANS:
        if defaults["code"] not in existing:
            db.session.add(Plan(**defaults))
            created += 1
    db.session.commit()
    return created


def list_plans():
    return Plan.query.filter_by(is_active=True).order_by(Plan.price.asc()).all()


def get_active_subscription(user_id: int):
    return Subscription.query.filter_by(user_id=user_id, status=SUB_ACTIVE).first()


def _today(today):
    return to_day(today) if today is not None else local_today(cfg("EXPIRY_SCAN_TIMEZONE"))


def _locked_user(user_id):
    user = User.query.filter_by(id=user_id).with_for_update().first()
    if not user:
        raise NotFoundError("User not found", user_id=user_id)
    return user


def _start_period(uow, user, days, today, replaced_note, **fields) -> Subscription:
    state = renewed_state(MembershipState.from_user(user), days, today)

    previous = get_active_subscription(user.id)
    if previous is not None:
        previous.status = SUB_INACTIVE
        previous.append_note(replaced_note)

    sub = Subscription(
        user_id=user.id,
        days=days,
        start_date=state.expiry_date - timedelta(days=days),
        expiry_date=state.expiry_date,
        status=SUB_ACTIVE,
        **fields,
    )
    db.session.add(sub)
    state.apply_to(user)
    uow.add_event(MembershipExtended(user_id=user.id, days=days, expiry_date=state.expiry_date))
    return sub


def purchase_subscription(user_id: int, plan_code: str, payment_ref: str, today=None) -> Subscription:
    """Buy or renew a plan. A renewal starts when the current period ends."""
    if not plan_code or not payment_ref:
        raise ValidationError("plan and payment_ref are required")
    today = _today(today)

    with UnitOfWork() as uow:
        plan = Plan.query.filter_by(code=plan_code, is_active=True).first()
        if not plan:
            raise NotFoundError("Plan not found", plan=plan_code)
        user = _locked_user(user_id)

        sub = _start_period(
            uow, user, plan.duration_days, today,
            "Deactivated due to new plan purchase",
            plan_id=plan.id,
            plan_name=plan.name,
            amount=plan.price,
            added_by=ADDED_BY_USER,
            payment_ref=str(payment_ref)[:120],
            notes="Purchased via app",
        )

    logger.info("User %s bought plan %s until %s", user_id, plan_code, sub.expiry_date)
    return sub


def add_subscription(user_id: int, days, amount, added_by: str, notes: str = None, today=None) -> Subscription:
    """Admin records an offline payment as a new period."""
    days = parse_days(days)
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        raise ValidationError("amount must be a whole number")
    if amount < 0:
        raise ValidationError("amount must not be negative")
    today = _today(today)

    with UnitOfWork() as uow:
        user = _locked_user(user_id)
        sub = _start_period(
            uow, user, days, today,
            "Replaced by new subscription",
            plan_name=f"{days}-Day Admin Plan",
            amount=amount,
            added_by=(added_by or "Admin")[:120],
            payment_ref=OFFLINE_PAYMENT,
            notes=notes or "Added by admin",
        )

    logger.info("Admin %s added %d days for user %s", added_by, days, user_id)
    return sub


def cancel_subscription(user_id: int, reason: str = None, today=None, now=None) -> Subscription:
    """End the active period now; the membership goes Inactive immediately."""
    today = _today(today)

    with UnitOfWork():
        user = _locked_user(user_id)
        sub = get_active_subscription(user.id)
        if sub is None:
            raise NotFoundError("Active subscription not found for this user", user_id=user_id)

        sub.status = SUB_CANCELLED
        sub.cancelled_at = now or datetime.utcnow()
        sub.append_note(f"Cancelled: {reason or 'No reason provided'}")
        MembershipState(status=MEMBERSHIP_INACTIVE, expiry_date=today, last_warning_day=None).apply_to(user)

    logger.info("Cancelled subscription %s of user %s", sub.id, user_id)
    return sub
