from datetime import datetime
from models.db import db

STATUS_PENDING = "Pending"
STATUS_CONFIRMED = "Confirmed"
STATUS_CANCELLED = "Cancelled"
STATUS_COMPLETED = "Completed"

# statuses that count against the daily quota
ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)
# statuses that occupy the court
OCCUPYING_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED)

PAYMENT_PENDING = "Pending"
PAYMENT_PAID = "Paid"

_ACTIVE_WHERE = db.text("status IN ('Pending', 'Confirmed')")


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)
    booking_ref = db.Column(db.String(40), unique=True, nullable=False, index=True)
    # shared by every row of one multi-day request
    batch_ref = db.Column(db.String(40), nullable=False, index=True)

    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(5), nullable=False)  # "HH:MM"
    end_time = db.Column(db.String(5), nullable=False)

    is_public = db.Column(db.Boolean, default=False, nullable=False)
    total_players = db.Column(db.Integer, default=1, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    total_amount = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    confirmed_at = db.Column(db.DateTime, nullable=True)
    paid_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)
    cancelled_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    team_members = db.relationship(
        "TeamMember",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="TeamMember.id",
    )
    join_requests = db.relationship(
        "JoinRequest",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="JoinRequest.id",
    )

    __table_args__ = (
        # Last line of defense against concurrent double booking
        db.Index(
            "uq_booking_court_slot_active",
            "court_id", "date", "start_time",
            unique=True,
            sqlite_where=_ACTIVE_WHERE,
            postgresql_where=_ACTIVE_WHERE,
        ),
        db.Index(
            "uq_booking_owner_day_active",
            "owner_id", "date",
            unique=True,
            sqlite_where=_ACTIVE_WHERE,
            postgresql_where=_ACTIVE_WHERE,
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def participant_ids(self):
        return [self.owner_id] + [m.user_id for m in self.team_members]


class TeamMember(db.Model):
    __tablename__ = "team_members"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    payment_status = db.Column(db.String(20), nullable=False, default=PAYMENT_PENDING)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)

    booking = db.relationship("Booking", back_populates="team_members")

    __table_args__ = (
        db.UniqueConstraint("booking_id", "user_id", name="uq_team_member_once"),
    )
