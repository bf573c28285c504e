from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from flask import Flask, Request, jsonify
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

import sessions
from config import DATA_DIR, DEFAULT_DATABASE_URI, Config
from errors import EduVaultError
from models import Account, db

logger = logging.getLogger(__name__)

login = LoginManager()
login.session_protection = None  # bearer tokens only, no login cookie


@login.request_loader
def load_account(req: Request) -> Account | None:
    # raises TokenInvalid / RoleMismatch, rendered as 401 by the error handler
    token = sessions.bearer_token(req.headers.get("Authorization"))
    if token is None:
        return None
    return sessions.verify(token)


@login.unauthorized_handler
def unauthorized():
    return jsonify({"message": "Authentication token required"}), 401


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(EduVaultError)
    def handle_domain_error(exc: EduVaultError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        db.session.rollback()
        logger.exception("Unhandled error")
        return jsonify({"message": "Server error"}), 500


def create_app(overrides: Mapping[str, Any] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
    if not app.config.get("JWT_SECRET"):
        raise RuntimeError("JWT_SECRET is required")
    if app.config["SQLALCHEMY_DATABASE_URI"] == DEFAULT_DATABASE_URI:
        DATA_DIR.mkdir(exist_ok=True, parents=True)

    db.init_app(app)
    login.init_app(app)

    from auth import bp as auth_bp
    from course_views import bp as courses_bp
    from users import bp as users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(courses_bp)
    register_error_handlers(app)

    @app.get("/healthz")
    def health():
        return "ok", 200

    return app


def seed_initial_data(app: Flask) -> None:
    """Create the first admin from ADMIN_EMAIL / ADMIN_PASSWORD.

    Signup only hands out student and teacher roles, so without this an empty
    deployment has nobody who can promote anyone.
    """
    email = app.config.get("ADMIN_EMAIL")
    password = app.config.get("ADMIN_PASSWORD")
    if not email or not password or Account.query.first():
        return
    admin = Account(name="Administrator", email=email, role="admin")
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    logger.info("Seeded admin account %s", admin.id)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    application = create_app()
    with application.app_context():
        db.create_all()
        seed_initial_data(application)
    application.run(
        host="0.0.0.0", port=int(os.environ.get("PORT", "5001")), debug=True
    )
