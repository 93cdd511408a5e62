"""Error taxonomy shared by the booking and membership services.

Every error surfaced to a caller derives from ``CourtSlotError`` and carries
the HTTP status the blueprint layer should answer with, plus optional detail
fields merged into the JSON body.
"""


class CourtSlotError(Exception):
    status_code = 400

    def __init__(self, message: str, **detail):
        super().__init__(message)
        self.message = message
        self.detail = {k: v for k, v in detail.items() if v is not None}

    def to_dict(self) -> dict:
        return {"error": self.message, **self.detail}


class ValidationError(CourtSlotError):
    """Malformed input or a capacity rule violated."""
    status_code = 400


class ConflictError(CourtSlotError):
    """Quota or slot already taken; names the offending date and user."""
    status_code = 409

    def __init__(self, message: str, date=None, user_id=None, booking_id=None):
        super().__init__(
            message,
            date=date.isoformat() if hasattr(date, "isoformat") else date,
            user_id=user_id,
            booking_id=booking_id,
        )
        self.date = date
        self.user_id = user_id
        self.booking_id = booking_id


class NotFoundError(CourtSlotError):
    status_code = 404


class AuthorizationError(CourtSlotError):
    status_code = 403


class NotificationDeliveryError(CourtSlotError):
    """Push delivery failed. Always recovered locally, never surfaced."""
    status_code = 502
