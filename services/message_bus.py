"""
Message Bus

Routes outbound events to their handlers once the producing transaction
has committed. Handler failures are logged and never reach the caller.
"""

from typing import Callable, Dict, Iterable, List, Type
import logging

from flask import current_app

from services.events import DomainEvent

logger = logging.getLogger(__name__)


class MessageBus:
    """Events: multiple handlers per event type (1:N)."""

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[Callable]] = {}

    def register_event_handler(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], None]
    ):
        self._event_handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Registered event handler for {event_type.__name__}")

    def publish_events(self, events: Iterable[DomainEvent]):
        """
        Publish events to every registered handler.

        Errors in handlers are logged but don't stop other handlers.
        """
        for event in events:
            event_type = type(event)
            handlers = self._event_handlers.get(event_type, [])

            if not handlers:
                logger.debug(f"No handlers registered for event {event_type.__name__}")
                continue

            logger.info(f"Publishing event: {event_type.__name__} (ID: {event.event_id})")

            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Error in event handler {getattr(handler, '__name__', handler)} "
                        f"for event {event_type.__name__}: {e}",
                        exc_info=True
                    )


def get_message_bus():
    """The bus installed on the running app, or None outside an app context."""
    try:
        return current_app.extensions.get("message_bus")
    except RuntimeError:
        return None
