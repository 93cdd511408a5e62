"""Membership period state machine.

Per period, each warning threshold (5, 3, 1 and 0 days left) is either
armed or fired. ``last_warning_day`` records the one most recently fired;
when the countdown moves past it the flag is cleared so the next, lower
threshold can still fire. Going past the expiry date deactivates the
membership. Extending a membership starts a new period with every
threshold armed again.

``compute_expiry_action`` is pure: it takes ``today`` explicitly and never
touches the database or the clock.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Optional

from models import db
from models.user import User, MEMBERSHIP_ACTIVE, MEMBERSHIP_INACTIVE
from services.errors import ValidationError, NotFoundError
from services.events import MembershipExtended
from services.timeutil import to_day, local_today
from services.uow import UnitOfWork
from utils.app_config import cfg

logger = logging.getLogger(__name__)

THRESHOLDS = (5, 3, 1, 0)

NOTICE_THRESHOLD = "threshold"
NOTICE_EXPIRED = "expired"

TRANSITION_NONE = "none"
TRANSITION_NOTIFY = "notified"
TRANSITION_EXPIRE = "deactivated"
TRANSITION_REARM = "rearmed"


@dataclass(frozen=True)
class MembershipState:
    status: str
    expiry_date: Optional[date] = None
    last_warning_day: Optional[int] = None

    @classmethod
    def from_user(cls, user: User) -> "MembershipState":
        return cls(
            status=user.membership_status,
            expiry_date=user.membership_expiry_date,
            last_warning_day=user.last_warning_day,
        )

    def apply_to(self, user: User):
        user.membership_status = self.status
        user.membership_expiry_date = self.expiry_date
        user.last_warning_day = self.last_warning_day


@dataclass(frozen=True)
class ExpiryNotice:
    kind: str
    days_left: int


@dataclass(frozen=True)
class ExpiryAction:
    new_state: MembershipState
    notice: Optional[ExpiryNotice] = None
    transition: str = TRANSITION_NONE


def days_left(today, expiry) -> int:
    return round((to_day(expiry) - to_day(today)) / timedelta(days=1))


def compute_expiry_action(today, membership: MembershipState) -> ExpiryAction:
    if membership.status != MEMBERSHIP_ACTIVE or membership.expiry_date is None:
        return ExpiryAction(membership)

    left = days_left(today, membership.expiry_date)

    if left < 0:
        return ExpiryAction(
            replace(membership, status=MEMBERSHIP_INACTIVE, last_warning_day=None),
            ExpiryNotice(NOTICE_EXPIRED, left),
            TRANSITION_EXPIRE,
        )

    if left in THRESHOLDS:
        if membership.last_warning_day == left:
            return ExpiryAction(membership)
        return ExpiryAction(
            replace(membership, last_warning_day=left),
            ExpiryNotice(NOTICE_THRESHOLD, left),
            TRANSITION_NOTIFY,
        )

    if membership.last_warning_day is not None and membership.last_warning_day != left:
        return ExpiryAction(replace(membership, last_warning_day=None), None, TRANSITION_REARM)

    return ExpiryAction(membership)


def parse_days(days) -> int:
    try:
        days = int(days)
    except (TypeError, ValueError):
        raise ValidationError("days must be a whole number")
    if days <= 0:
        raise ValidationError("days must be positive")
    return days


def renewed_state(current: MembershipState, days: int, today) -> MembershipState:
    """A new Active period of ``days`` after the later of today and the current expiry, all thresholds armed."""
    today = to_day(today)
    base = current.expiry_date if current.expiry_date and current.expiry_date > today else today
    return MembershipState(
        status=MEMBERSHIP_ACTIVE,
        expiry_date=base + timedelta(days=days),
        last_warning_day=None,
    )


def extend_membership(user_id: int, days, today=None) -> User:
    """Add ``days`` to the membership and start a fresh warning period."""
    days = parse_days(days)
    today = to_day(today) if today is not None else local_today(cfg("EXPIRY_SCAN_TIMEZONE"))

    with UnitOfWork() as uow:
        user = User.query.filter_by(id=user_id).with_for_update().first()
        if not user:
            raise NotFoundError("User not found", user_id=user_id)

        new_state = renewed_state(MembershipState.from_user(user), days, today)
        new_state.apply_to(user)
        uow.add_event(MembershipExtended(user_id=user.id, days=days, expiry_date=new_state.expiry_date))

    logger.info("Extended membership of user %s by %d days to %s", user_id, days, new_state.expiry_date)
    return user


def save_push_token(user_id: int, token: str) -> User:
    token = (token or "").strip()
    if not token:
        raise ValidationError("Token is required")

    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found", user_id=user_id)
    user.push_token = token[:255]
    db.session.commit()
    return user
