import json
from datetime import datetime
from models.db import db


class AuditLog(db.Model):
    """Who did what to which booking, join request or membership."""
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity", "entity_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.Integer, nullable=True)     # null for scheduler / CLI runs
    action = db.Column(db.String(80), nullable=False)   # BOOKING_CREATE, JOIN_REQUEST_RESOLVE, MEMBERSHIP_EXTEND ...
    entity = db.Column(db.String(40), nullable=True)    # booking, booking_batch, join_request, user
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    @property
    def details(self):
        return json.loads(self.metadata_json) if self.metadata_json else {}
