import click
from flask import Flask, request, g, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from routes import (
    health_bp, auth_bp, services_bp, timeslots_bp, reservations_bp, queue_bp, admin_bp,
)
from models import db
from models.user import User, Role
from utils.errors import ApiError
from utils.seed import seed_defaults, seed_demo_catalog
from utils.auth_context import load_current_user
from security.csrf import require_csrf

CSRF_EXEMPT_PATHS = {
    "/auth/login",
    "/auth/register",
}


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(services_bp)
    app.register_blueprint(timeslots_bp)
    app.register_blueprint(reservations_bp)
    app.register_blueprint(queue_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed roles and the queue lock row (safe & idempotent)
    if app.config.get("SEED_ON_STARTUP", True):
        with app.app_context():
            seed_defaults()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        if not app.config.get("CSRF_ENABLED", True):
            return None
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Only enforce CSRF if user is already authenticated (cookie session)
            if getattr(g, "user", None) is not None:
                failure = require_csrf()
                if failure:
                    return failure

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def _api_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def _db_error(exc):
        db.session.rollback()
        app.logger.exception("Unexpected persistence failure on %s %s", request.method, request.path)
        return jsonify(error="Internal error", code="internal_error"), 500


def register_cli(app):
    @app.cli.command("grant-role")
    @click.argument("email")
    @click.option("--role", default="ADMIN", show_default=True, help="CUSTOMER, STAFF or ADMIN")
    def grant_role(email, role):
        """Give a user a role by email (bootstrap the first admin)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        role_name = role.strip().upper()
        role_row = Role.query.filter_by(name=role_name).first()
        if not role_row:
            role_row = Role(name=role_name)
            db.session.add(role_row)

        if role_row not in user.roles:
            user.roles.append(role_row)
        db.session.commit()

        click.echo(f"{user.email} granted {role_name}")

    @app.cli.command("seed-demo")
    @click.option("--days", default=7, show_default=True, type=int)
    def seed_demo(days):
        """Create the demo services and hourly time slots."""
        seed_defaults()
        services_created, slots_created = seed_demo_catalog(days=days)
        click.echo(f"Created {services_created} services and {slots_created} time slots")


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
