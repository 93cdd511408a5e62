"""
Unit of Work

Bounds a check-then-write sequence in one database transaction and holds
the outbound events it produced until the commit has succeeded.

Usage:
    with UnitOfWork(bus) as uow:
        court = Court.query.filter_by(id=court_id).with_for_update().first()
        ...
        uow.add_event(BookingCreated(...))
    # committed here; events published afterwards
"""

import logging
from typing import List

from models import db
from services.events import DomainEvent
from services.message_bus import get_message_bus

logger = logging.getLogger(__name__)


class UnitOfWork:

    def __init__(self, bus=None, session=None):
        self.session = session if session is not None else db.session
        self.bus = bus if bus is not None else get_message_bus()
        self._events: List[DomainEvent] = []
        self._active = False

    def __enter__(self):
        self.begin()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._active:
            return False
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False

    def begin(self):
        if self._active:
            raise RuntimeError("Unit of work already started")
        self._events = []
        self._active = True
        return self

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def commit(self):
        """Commit the transaction, then publish collected events."""
        events = list(self._events)
        try:
            self.session.commit()
        except Exception:
            self.rollback()
            raise
        self._events.clear()
        self._active = False
        self._publish(events)

    def rollback(self):
        if self._events:
            logger.info(f"Rolling back transaction, discarding {len(self._events)} events")
        self.session.rollback()
        self._events.clear()
        self._active = False

    def _publish(self, events: List[DomainEvent]):
        if not events or self.bus is None:
            return
        try:
            self.bus.publish_events(events)
        except Exception as e:
            # already committed; delivery is best effort
            logger.error(f"Error publishing events: {e}", exc_info=True)
