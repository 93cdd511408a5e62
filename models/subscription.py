from datetime import datetime
from models.db import db

SUB_ACTIVE = "Active"
SUB_INACTIVE = "Inactive"      # replaced by a newer purchase
SUB_CANCELLED = "Cancelled"

ADDED_BY_USER = "User"


class Subscription(db.Model):
    """
    One paid membership period. At most one row per user is Active; buying
    or adding a new one retires the previous row. The user's membership
    fields remain the source of truth for the expiry scan.
    """
    __tablename__ = "subscriptions"
    __table_args__ = (
        db.Index("ix_subscriptions_user_status", "user_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    plan_id = db.Column(db.Integer, db.ForeignKey("plans.id"), nullable=True)   # null for admin-added periods

    plan_name = db.Column(db.String(80), nullable=False)
    days = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    expiry_date = db.Column(db.Date, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=SUB_ACTIVE)
    added_by = db.Column(db.String(120), nullable=False, default=ADDED_BY_USER)
    payment_ref = db.Column(db.String(120), nullable=True)   # "OFFLINE" for admin-added
    notes = db.Column(db.Text, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def append_note(self, text: str):
        self.notes = f"{self.notes} | {text}" if self.notes else text
