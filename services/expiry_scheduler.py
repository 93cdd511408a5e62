"""Daily membership expiry scan and the thread that triggers it.

The scan is idempotent with respect to stored state, so a missed or failed
run heals on the next one. It is not reentrant: overlapping calls in the
same process are skipped.
"""

import logging
import threading
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from models import db
from models.user import User, MEMBERSHIP_ACTIVE
from services.events import MembershipNotice
from services.membership import (
    MembershipState,
    compute_expiry_action,
    TRANSITION_NONE,
)
from services.timeutil import to_day
from services.uow import UnitOfWork
from utils.audit import log_event

logger = logging.getLogger(__name__)

_scan_lock = threading.Lock()


def run_expiry_scan(today, bus=None):
    """
    Apply the expiry state machine to every active membership.

    Returns counters, or None when another scan is still running.
    """
    if not _scan_lock.acquire(blocking=False):
        logger.warning("Expiry scan skipped: previous run still in progress")
        return None
    try:
        return _scan(to_day(today), bus)
    finally:
        _scan_lock.release()


def _scan(today, bus):
    logger.info("Running membership expiry scan for %s", today.isoformat())
    counters = {"scanned": 0, "notified": 0, "deactivated": 0, "rearmed": 0, "failed": 0}

    user_ids = [
        row.id
        for row in (
            db.session.query(User.id)
            .filter(User.membership_status == MEMBERSHIP_ACTIVE, User.membership_expiry_date.isnot(None))
            .order_by(User.id.asc())
            .all()
        )
    ]
    db.session.commit()

    for user_id in user_ids:
        counters["scanned"] += 1
        try:
            transition = _process_user(user_id, today, bus)
        except Exception:
            # one bad row must not stop the rest of the scan
            logger.exception("Expiry scan failed for user %s", user_id)
            db.session.rollback()
            counters["failed"] += 1
            continue
        if transition != TRANSITION_NONE:
            counters[transition] += 1

    log_event("EXPIRY_SCAN", entity="membership_scan", entity_id=today.isoformat(), metadata=counters)
    logger.info("Expiry scan complete: %s", counters)
    return counters


def _process_user(user_id, today, bus):
    with UnitOfWork(bus=bus) as uow:
        user = User.query.filter_by(id=user_id).with_for_update().first()
        if user is None or user.membership_status != MEMBERSHIP_ACTIVE:
            return TRANSITION_NONE

        action = compute_expiry_action(today, MembershipState.from_user(user))
        if action.transition == TRANSITION_NONE:
            return TRANSITION_NONE

        action.new_state.apply_to(user)
        if action.notice:
            uow.add_event(MembershipNotice(
                user_id=user.id,
                kind=action.notice.kind,
                days_left=action.notice.days_left,
            ))
        logger.debug("User %s: %s (%s)", user_id, action.transition, action.notice)
    return action.transition


class ExpiryScheduler:
    """Fires ``run_expiry_scan`` once a day at a fixed local time."""

    def __init__(self, app, tz_name="Asia/Kolkata", hour=10, minute=0, clock=None):
        self.app = app
        self.tz = ZoneInfo(tz_name)
        self.hour = hour
        self.minute = minute
        self._clock = clock or (lambda: datetime.now(self.tz))
        self._stop = threading.Event()
        self._thread = None

    @classmethod
    def from_app(cls, app):
        return cls(
            app,
            tz_name=app.config.get("EXPIRY_SCAN_TIMEZONE", "Asia/Kolkata"),
            hour=int(app.config.get("EXPIRY_SCAN_HOUR", 10)),
            minute=int(app.config.get("EXPIRY_SCAN_MINUTE", 0)),
        )

    def next_run_after(self, now: datetime) -> datetime:
        now = now.astimezone(self.tz)
        candidate = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    def run_once(self, now: datetime = None):
        now = (now or self._clock()).astimezone(self.tz)
        with self.app.app_context():
            try:
                return run_expiry_scan(now.date(), bus=self.app.extensions.get("message_bus"))
            finally:
                db.session.remove()

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="expiry-scheduler", daemon=True)
        self._thread.start()
        logger.info("Expiry scheduler started (%02d:%02d %s)", self.hour, self.minute, self.tz.key)
        return self._thread

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def _loop(self):
        while not self._stop.is_set():
            now = self._clock()
            wait_seconds = max((self.next_run_after(now) - now).total_seconds(), 0)
            if self._stop.wait(wait_seconds):
                break
            try:
                self.run_once()
            except Exception:
                logger.exception("Scheduled expiry scan crashed")
