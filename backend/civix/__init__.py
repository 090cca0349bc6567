import logging
import os

import click
from alembic.config import Config as AlembicConfig
from alembic.script import ScriptDirectory
from alembic.util import CommandError
from flask import Flask, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from civix.config import Config
from civix.extensions import cors, db, login_manager, migrate
from civix.segments.segment_admin import admin_bp
from civix.segments.segment_auth import auth_bp
from civix.segments.segment_issues import issues_bp
from civix.segments.segment_messages import messages_bp
from civix.segments.segment_notifications import notifications_bp
from civix.segments.segment_payments import payments_bp
from civix.segments.segment_staff import staff_bp
from civix.segments.segment_users import users_bp

MIGRATIONS_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "migrations"))

BLUEPRINTS = (
    auth_bp,
    issues_bp,
    staff_bp,
    admin_bp,
    users_bp,
    payments_bp,
    notifications_bp,
    messages_bp,
)


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL") or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.logger.setLevel(level)


def _check_production(app: Flask) -> None:
    if app.config["ENV"] not in ("prod", "production"):
        return
    for key in ("SECRET_KEY", "JWT_SECRET"):
        secret = (app.config.get(key) or "").strip()
        if not secret or len(secret) < 16 or secret == "dev-secret-change-me":
            raise RuntimeError(f"{key} must be set and at least 16 chars in production")
    if not (os.getenv("DATABASE_URL") or "").strip() and not (os.getenv("SQLALCHEMY_DATABASE_URI") or "").strip():
        raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")
    if not (app.config.get("STRIPE_WEBHOOK_SECRET") or "").strip():
        app.logger.warning("STRIPE_WEBHOOK_SECRET is not set; /api/payments/webhook/stripe will answer 503")


def _cors_origins(app: Flask) -> list:
    origins = [o.strip() for o in (app.config.get("CORS_ORIGINS") or "").split(",") if o.strip()]
    client = (app.config.get("CLIENT_URL") or "").strip().rstrip("/")
    if client and client not in origins:
        origins.append(client)
    if not origins and app.config["ENV"] not in ("prod", "production"):
        origins = ["*"]
    return origins


def _alembic_head() -> str:
    try:
        cfg = AlembicConfig(os.path.join(MIGRATIONS_DIR, "alembic.ini"))
        cfg.set_main_option("script_location", MIGRATIONS_DIR)
        heads = ScriptDirectory.from_config(cfg).get_heads()
    except CommandError:
        return "unknown"
    return heads[0] if heads else "unknown"


def _register_routes(app: Flask) -> None:
    @app.get("/")
    def index():
        return jsonify({
            "success": True,
            "message": "Civix API server is running",
            "endpoints": {
                "auth": "/api/auth",
                "issues": "/api/issues",
                "staff": "/api/staff",
                "admin": "/api/admin",
                "users": "/api/users",
                "payments": "/api/payments",
                "notifications": "/api/notifications",
                "messages": "/api/messages",
            },
        })

    @app.get("/api/health")
    def health():
        db_state = "ok"
        try:
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            app.logger.exception("health check could not reach the database")
            db.session.rollback()
            db_state = "fail"
        return jsonify({
            "success": db_state == "ok",
            "service": "civix-backend",
            "env": app.config["ENV"],
            "db": db_state,
        }), (200 if db_state == "ok" else 503)

    @app.get("/api/version")
    def version():
        return jsonify({"success": True, "alembic_head": _alembic_head()})


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({"success": False, "message": "Route not found", "requestedUrl": request.path}), 404

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return jsonify({"success": False, "message": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.error("unhandled error on %s %s: %s", request.method, request.path, e)
        db.session.rollback()
        body = {"success": False, "message": "Internal server error"}
        if app.config["ENV"] in ("dev", "development"):
            body["error"] = str(getattr(e, "original_exception", None) or e)
        return jsonify(body), 500


def _register_cli(app: Flask) -> None:
    from civix.models import User

    @app.cli.command("create-admin")
    @click.option("--email", required=True)
    @click.option("--name", default="Admin", show_default=True)
    @click.option("--password", required=True)
    def create_admin(email, name, password):
        """Create (or promote) an admin account."""
        email = email.strip().lower()
        if len(password) < 6:
            raise click.BadParameter("password must be at least 6 characters", param_hint="--password")

        u = User.query.filter_by(email=email).first()
        if u is None:
            u = User(name=name, email=email, photo_url=app.config["DEFAULT_AVATAR_URL"])
            db.session.add(u)
        u.role = "admin"
        u.is_blocked = False
        u.set_password(password)
        u.touch()
        db.session.commit()
        click.echo(f"admin ready: {email}")


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
    app.config["ENV"] = (app.config.get("ENV") or "dev").strip().lower()

    _configure_logging(app)
    _check_production(app)

    # Ensure instance dir exists for SQLite paths
    os.makedirs(app.config["INSTANCE_DIR"], exist_ok=True)

    cors.init_app(app, resources={r"/api/*": {"origins": _cors_origins(app)}})
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)
    login_manager.init_app(app)

    # registers the Flask-Login loaders
    import civix.auth  # noqa: F401

    for bp in BLUEPRINTS:
        app.register_blueprint(bp)

    _register_routes(app)
    _register_error_handlers(app)
    _register_cli(app)

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    app.logger.info("civix backend ready (env=%s)", app.config["ENV"])
    return app
