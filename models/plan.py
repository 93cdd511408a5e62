from datetime import datetime
from models.db import db


class Plan(db.Model):
    __tablename__ = "plans"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), unique=True, nullable=False)   # monthly / quarterly / yearly
    name = db.Column(db.String(80), nullable=False)
    price = db.Column(db.Integer, nullable=False)                  # smallest currency unit
    duration_days = db.Column(db.Integer, nullable=False)
    booking_hours = db.Column(db.Integer, nullable=False, default=0)
    guest_passes = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
