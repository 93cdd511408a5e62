"""Outbound events published after a unit of work commits.

Handlers registered on the message bus turn these into push notifications;
nothing in the booking or membership logic waits on them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID, uuid4


@dataclass(frozen=True)
class DomainEvent:
    event_id: UUID = field(default_factory=uuid4, init=False)
    occurred_at: datetime = field(default_factory=datetime.utcnow, init=False)


@dataclass(frozen=True)
class BookingCreated(DomainEvent):
    batch_ref: str = ""
    booking_ids: List[int] = field(default_factory=list)
    booking_refs: List[str] = field(default_factory=list)
    owner_id: int = 0
    court_id: int = 0
    dates: List[date] = field(default_factory=list)


@dataclass(frozen=True)
class BookingStatusChanged(DomainEvent):
    booking_id: int = 0
    booking_ref: str = ""
    owner_id: int = 0
    status: str = ""
    reason: Optional[str] = None


@dataclass(frozen=True)
class JoinRequested(DomainEvent):
    booking_id: int = 0
    request_id: int = 0
    captain_id: int = 0
    requester_id: int = 0


@dataclass(frozen=True)
class JoinRequestAccepted(DomainEvent):
    booking_id: int = 0
    request_id: int = 0
    requester_id: int = 0


@dataclass(frozen=True)
class MembershipNotice(DomainEvent):
    user_id: int = 0
    kind: str = ""  # "threshold" or "expired"
    days_left: int = 0


@dataclass(frozen=True)
class MembershipExtended(DomainEvent):
    user_id: int = 0
    days: int = 0
    expiry_date: Optional[date] = None
