from flask import Flask, request, g, jsonify
from sqlalchemy.orm import sessionmaker
from config import Config
from routes import health_bp, availability_bp, booking_bp, admin_bp, notifications_bp

from models import db
from flask_migrate import Migrate
from services import build_services
from services.errors import ReservationError
from utils.seed import seed_roles
from utils.auth_context import load_current_user
from utils.clock import utcnow
from security.csrf import require_csrf


def create_app(config_object=Config, notifier=None, clock=utcnow):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(availability_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(notifications_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    with app.app_context():
        if app.config.get("CREATE_TABLES_ON_START"):
            db.create_all()
        # Seed default roles at startup (safe & idempotent)
        seed_roles()

        # The reservation core gets its own sessions on the app's engine
        app.extensions["reservations"] = build_services(
            sessionmaker(bind=db.engine),
            notifier=notifier,
            lesson_duration_minutes=app.config["LESSON_DURATION_MINUTES"],
            cancel_cutoff_hours=app.config["CANCEL_CUTOFF_HOURS"],
            restore_slot_on_cancel=app.config["RESTORE_SLOT_ON_CANCEL"],
            reminder_window_hours=app.config["REMINDER_WINDOW_HOURS"],
            clock=clock,
        )

    @app.before_request
    def _load_user():
        load_current_user()

    CSRF_EXEMPT_PATHS = {
        "/health",
    }

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Only enforce CSRF if user is already authenticated (cookie session)
            if getattr(g, "user", None) is not None:
                failure = require_csrf()
                if failure:
                    return failure

    @app.errorhandler(ReservationError)
    def _reservation_error(exc):
        return jsonify(error=exc.message), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
import click
from models.user import User, Role
from utils.audit import log_event

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Grant ADMIN to an existing user by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("send-reminders")
    @click.option("--hours", type=int, default=None, help="Look-ahead window, defaults to REMINDER_WINDOW_HOURS.")
    def send_reminders(hours):
        """Remind students and teachers of lessons starting soon (run periodically)."""
        from datetime import timedelta

        window = timedelta(hours=hours) if hours else None
        reminded = app.extensions["reservations"].reminders.send_due_reminders(window)
        log_event("REMINDERS_SENT", metadata={"booking_ids": [b.id for b in reminded]})
        click.echo(f"Reminded {len(reminded)} booking(s)")

    @app.cli.command("complete-bookings")
    def complete_bookings():
        """Mark confirmed bookings whose lesson has ended as completed."""
        completed = app.extensions["reservations"].engine.complete_finished()
        log_event("BOOKINGS_COMPLETED", metadata={"booking_ids": [b.id for b in completed]})
        click.echo(f"Completed {len(completed)} booking(s)")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
