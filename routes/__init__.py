from .health import health_bp
from .booking import booking_bp
from .admin import admin_bp
from .users import users_bp
from .subscriptions import subscriptions_bp
