import atexit
import logging
from concurrent.futures import ThreadPoolExecutor

from flask import Flask, jsonify
from config import Config
from routes import health_bp, booking_bp, admin_bp, users_bp, subscriptions_bp

from models import db
from models.db import use_immediate_transactions
from flask_migrate import Migrate
from services.errors import CourtSlotError
from services.message_bus import MessageBus
from services.notifications import NotificationDelivery, build_dispatcher
from services.notification_handlers import register_notification_handlers
from utils.auth_context import load_current_user

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(subscriptions_bp)

    # Database init
    db.init_app(app)
    with app.app_context():
        use_immediate_transactions(db.engine)

    # Migrations
    Migrate(app, db)

    # Outbound events -> push notifications, after commit only
    init_notifications(app)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(CourtSlotError)
    def _handle_domain_error(err):
        db.session.rollback()
        return jsonify(err.to_dict()), err.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app


def init_notifications(app, dispatcher=None):
    previous = app.extensions.get("notification_delivery")
    if previous is not None:
        previous.shutdown()

    executor = None
    if app.config.get("NOTIFICATIONS_ASYNC", True):
        executor = ThreadPoolExecutor(
            max_workers=app.config.get("NOTIFICATION_WORKERS", 4),
            thread_name_prefix="push",
        )
    delivery = NotificationDelivery(dispatcher or build_dispatcher(app.config), executor)
    bus = MessageBus()
    register_notification_handlers(bus, delivery)

    app.extensions["message_bus"] = bus
    app.extensions["notification_delivery"] = delivery
    # drain queued pushes on interpreter exit
    atexit.register(delivery.shutdown)
    return bus

#-------------------------
import click
from datetime import date
from models.user import User, ROLE_ADMIN
from services.expiry_scheduler import ExpiryScheduler, run_expiry_scan
from services.subscriptions import seed_plans
from services.timeutil import local_today

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return

        if user.role != ROLE_ADMIN:
            user.role = ROLE_ADMIN
            db.session.commit()

        print(f"{user.email} promoted to ADMIN")

    @app.cli.command("seed-plans")
    def seed_plans_cmd():
        """Insert the default monthly / quarterly / yearly plans if missing."""
        created = seed_plans()
        print(f"Seeded {created} plan(s)")

    @app.cli.command("expiry-scan")
    @click.option("--today", "today", default=None, help="Override today's date (YYYY-MM-DD).")
    def expiry_scan(today):
        """Run the membership expiry scan once (for an external daily cron)."""
        day = date.fromisoformat(today) if today else local_today(app.config["EXPIRY_SCAN_TIMEZONE"])
        result = run_expiry_scan(day, bus=app.extensions.get("message_bus"))
        if result is None:
            print("Expiry scan already running, skipped")
            return
        print(f"Expiry scan for {day.isoformat()}: {result}")

    @app.cli.command("run-scheduler")
    def run_scheduler():
        """Run the daily expiry scheduler in the foreground."""
        scheduler = ExpiryScheduler.from_app(app)
        thread = scheduler.start()
        try:
            while thread.is_alive():
                thread.join(timeout=1)
        except KeyboardInterrupt:
            scheduler.stop(timeout=5)

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
