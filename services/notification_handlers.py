"""Turns committed domain events into push messages."""

from models import db
from models.booking import Booking, STATUS_CONFIRMED, STATUS_CANCELLED
from models.court import Court
from models.user import User, ROLE_ADMIN
from services.events import (
    BookingCreated,
    BookingStatusChanged,
    JoinRequested,
    JoinRequestAccepted,
    MembershipExtended,
    MembershipNotice,
)
from services.notifications import PushMessage


def _token_of(user_id):
    user = db.session.get(User, user_id) if user_id else None
    return user, (user.push_token if user else None)


def _admin_tokens():
    rows = User.query.filter(User.role == ROLE_ADMIN, User.push_token.isnot(None)).all()
    return [u.push_token for u in rows]


def _court_name(court_id):
    court = db.session.get(Court, court_id) if court_id else None
    return court.name if court else "the court"


def booking_created_messages(event: BookingCreated):
    first_ref = event.booking_refs[0] if event.booking_refs else event.batch_ref
    days = len(event.dates)
    suffix = f" ({days} dates)" if days > 1 else ""

    messages = [
        PushMessage(
            token,
            "New Booking Request 🏸",
            f"Booking {first_ref}{suffix} is pending approval.",
            {"screen": "AdminBookings", "bookingId": event.booking_ids[0] if event.booking_ids else None},
        )
        for token in _admin_tokens()
    ]

    _, token = _token_of(event.owner_id)
    if token:
        messages.append(PushMessage(
            token,
            "Booking Received ⏳",
            f"Your booking at {_court_name(event.court_id)}{suffix} is pending confirmation.",
            {"screen": "MyBookings"},
        ))
    return messages


def booking_status_messages(event: BookingStatusChanged):
    _, token = _token_of(event.owner_id)
    messages = []
    if event.status == STATUS_CONFIRMED:
        if token:
            booking = db.session.get(Booking, event.booking_id)
            body = "Your match is officially confirmed."
            if booking:
                body = f"Match on {booking.date.strftime('%d %b')} is officially confirmed."
            messages.append(PushMessage(
                token,
                "Booking Approved! ✅",
                body,
                {"screen": "BookingDetails", "bookingId": event.booking_id},
            ))
        messages.extend(
            PushMessage(t, "Admin: Booking Paid", f"Booking {event.booking_ref} status updated to Paid.")
            for t in _admin_tokens()
        )
    elif event.status == STATUS_CANCELLED and token:
        body = "Your booking has been cancelled."
        if event.reason:
            body = f"Your booking has been cancelled: {event.reason}"
        messages.append(PushMessage(token, "Booking Cancelled ❌", body, {"screen": "MyBookings"}))
    return messages


def join_requested_messages(event: JoinRequested):
    _, token = _token_of(event.captain_id)
    if not token:
        return []
    requester = db.session.get(User, event.requester_id)
    booking = db.session.get(Booking, event.booking_id)
    player = requester.display_name if requester else "A player"
    court = _court_name(booking.court_id if booking else None)
    return [PushMessage(
        token,
        "New Join Request 👥",
        f"{player} wants to join your match at {court}.",
        {"screen": "BookingDetails", "bookingId": event.booking_id},
    )]


def join_accepted_messages(event: JoinRequestAccepted):
    _, token = _token_of(event.requester_id)
    if not token:
        return []
    booking = db.session.get(Booking, event.booking_id)
    court = _court_name(booking.court_id if booking else None)
    return [PushMessage(
        token,
        "Request Accepted! 🎉",
        f"You have been accepted for the match at {court}.",
        {"screen": "BookingDetails", "bookingId": event.booking_id},
    )]


def membership_notice_text(name: str, kind: str, days_left: int):
    if kind == "expired":
        return ("Membership Expired ❌",
                f"Hi {name}, your membership has expired. Renew now to book courts.")
    if days_left == 5:
        return ("Membership Expiring Soon ⏳",
                f"Hi {name}, just a heads up! You have 5 days left on your membership.")
    if days_left == 3:
        return ("Action Required: 3 Days Left ⚠️",
                f"Hi {name}, don't lose access! Your membership expires in 3 days.")
    if days_left == 1:
        return ("Final Warning: Expires Tomorrow! ⏰",
                f"Hi {name}, this is your last day to renew before expiry!")
    if days_left == 0:
        return ("Membership Expires Today ⏰",
                f"Hi {name}, your membership expires today. Renew to keep booking courts.")
    return ("Membership Reminder 🏸",
            f"Hi {name}, your membership expires in {days_left} days.")


def membership_notice_messages(event: MembershipNotice):
    user, token = _token_of(event.user_id)
    if not token:
        return []
    title, body = membership_notice_text(user.display_name, event.kind, event.days_left)
    return [PushMessage(token, title, body, {"screen": "Membership"})]


def membership_extended_messages(event: MembershipExtended):
    _, token = _token_of(event.user_id)
    if not token:
        return []
    until = event.expiry_date.strftime("%d %b") if event.expiry_date else "-"
    return [PushMessage(
        token,
        "Membership Extended! 🚀",
        f"Your membership has been extended by {event.days} days. Valid until {until}.",
        {"screen": "Membership"},
    )]


_BUILDERS = {
    BookingCreated: booking_created_messages,
    BookingStatusChanged: booking_status_messages,
    JoinRequested: join_requested_messages,
    JoinRequestAccepted: join_accepted_messages,
    MembershipNotice: membership_notice_messages,
    MembershipExtended: membership_extended_messages,
}


def register_notification_handlers(bus, delivery):
    for event_type, builder in _BUILDERS.items():
        bus.register_event_handler(event_type, _make_handler(builder, delivery))


def _make_handler(builder, delivery):
    def handler(event):
        delivery.deliver(builder(event))
    handler.__name__ = f"notify_{builder.__name__}"
    return handler
