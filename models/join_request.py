from datetime import datetime
from models.db import db

REQUEST_PENDING = "Pending"
REQUEST_ACCEPTED = "Accepted"
REQUEST_DECLINED = "Declined"


class JoinRequest(db.Model):
    __tablename__ = "join_requests"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    requester_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=REQUEST_PENDING)
    # status values: Pending, Accepted, Declined (last two are terminal)

    requested_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    resolved_at = db.Column(db.DateTime, nullable=True)
    resolved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    booking = db.relationship("Booking", back_populates="join_requests")
