"""Push notification dispatch.

Dispatchers implement ``send(token, title, body, data)`` and raise
``NotificationDeliveryError`` when a message cannot be delivered.
``NotificationDelivery`` is the only caller: it runs sends inline or on a
thread pool and logs failures instead of raising them.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

import requests

from services.errors import NotificationDeliveryError

logger = logging.getLogger(__name__)

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"


@dataclass(frozen=True)
class PushMessage:
    token: str
    title: str
    body: str
    data: dict = field(default_factory=dict)


class NotificationDispatcher:
    def send(self, token: str, title: str, body: str, data: dict = None):
        raise NotImplementedError


class NullDispatcher(NotificationDispatcher):
    """Used when notifications are disabled; drops every message."""

    def send(self, token, title, body, data=None):
        logger.debug("Notifications disabled, dropping %r", title)
        return None


class ExpoPushDispatcher(NotificationDispatcher):
    def __init__(self, url: str = EXPO_PUSH_URL, timeout: float = 10, session=None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, token, title, body, data=None):
        payload = {
            "to": token,
            "sound": "default",
            "title": title,
            "body": body,
            "data": {**(data or {}), "timestamp": datetime.utcnow().isoformat()},
        }
        try:
            resp = self.session.post(
                self.url,
                json=payload,
                headers={"Accept": "application/json", "Accept-encoding": "gzip, deflate"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            result = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise NotificationDeliveryError(f"Push request failed: {exc}") from exc

        receipt = result.get("data") or {}
        if isinstance(receipt, dict) and receipt.get("status") == "error":
            raise NotificationDeliveryError(
                f"Push rejected: {receipt.get('message') or 'unknown error'}"
            )
        return receipt


class NotificationDelivery:
    """Best-effort delivery of push messages; never raises delivery errors."""

    def __init__(self, dispatcher: NotificationDispatcher, executor=None):
        self.dispatcher = dispatcher
        self.executor = executor

    def deliver(self, messages):
        for message in messages:
            if not message.token:
                continue
            if self.executor is not None:
                self.executor.submit(self._send_one, message)
            else:
                self._send_one(message)

    def _send_one(self, message: PushMessage):
        try:
            return self.dispatcher.send(message.token, message.title, message.body, message.data)
        except NotificationDeliveryError as exc:
            logger.warning("Push delivery failed for %r: %s", message.title, exc.message, exc_info=True)
            return None

    def shutdown(self, wait=True):
        if self.executor is not None:
            self.executor.shutdown(wait=wait)
            self.executor = None


def build_dispatcher(config) -> NotificationDispatcher:
    if not config.get("NOTIFICATIONS_ENABLED", True):
        return NullDispatcher()
    return ExpoPushDispatcher(
        url=config.get("EXPO_PUSH_URL") or EXPO_PUSH_URL,
        timeout=config.get("PUSH_TIMEOUT_SECONDS", 10),
    )
