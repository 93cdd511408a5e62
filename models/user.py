from datetime import datetime
from models.db import db

MEMBERSHIP_ACTIVE = "Active"
MEMBERSHIP_INACTIVE = "Inactive"

ROLE_PLAYER = "PLAYER"
ROLE_ADMIN = "ADMIN"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(120), nullable=True)
    phone_number = db.Column(db.String(30), nullable=True)

    # role is asserted by the upstream auth layer; mirrored here for admin lookups
    role = db.Column(db.String(20), nullable=False, default=ROLE_PLAYER, index=True)

    # membership period
    membership_status = db.Column(db.String(20), nullable=False, default=MEMBERSHIP_INACTIVE, index=True)
    membership_expiry_date = db.Column(db.Date, nullable=True, index=True)
    # last fired threshold (5, 3, 1, 0) for the current period; None = all armed
    last_warning_day = db.Column(db.Integer, nullable=True)
    push_token = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email
