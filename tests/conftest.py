import itertools
from datetime import date, timedelta

import pytest

from app import create_app, init_notifications
from config import TestConfig
from models import db
from models.court import Court
from models.user import User, MEMBERSHIP_ACTIVE, MEMBERSHIP_INACTIVE, ROLE_PLAYER
from services.errors import NotificationDeliveryError
from services.notifications import NotificationDispatcher

DAY = date(2024, 6, 1)


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self):
        self.sent = []
        self.fail_tokens = set()

    def send(self, token, title, body, data=None):
        if token in self.fail_tokens:
            raise NotificationDeliveryError(f"device {token} unreachable")
        self.sent.append({"token": token, "title": title, "body": body, "data": data or {}})
        return {"status": "ok"}

    def titles_for(self, token):
        return [m["title"] for m in self.sent if m["token"] == token]


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def app(dispatcher):
    app = create_app(TestConfig)
    init_notifications(app, dispatcher=dispatcher)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def bus(app):
    return app.extensions["message_bus"]


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(active=True, role=ROLE_PLAYER, expiry=None, token=None, name=None, last_warning_day=None):
        n = next(counter)
        if expiry is None and active:
            expiry = DAY + timedelta(days=60)
        user = User(
            email=f"player{n}@example.com",
            full_name=name or f"Player {n}",
            role=role,
            membership_status=MEMBERSHIP_ACTIVE if active else MEMBERSHIP_INACTIVE,
            membership_expiry_date=expiry,
            last_warning_day=last_warning_day,
            push_token=token,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_court(app):
    counter = itertools.count(1)

    def _make(name=None, price=1500, active=True):
        court = Court(name=name or f"Court {next(counter)}", location="Arena", price_per_hour=price, is_active=active)
        db.session.add(court)
        db.session.commit()
        return court

    return _make
