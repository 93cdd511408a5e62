from .db import db
from .user import User
from .audit_log import AuditLog
from .court import Court
from .booking import Booking, TeamMember
from .join_request import JoinRequest
from .plan import Plan
from .subscription import Subscription
