from __future__ import annotations

import logging
import secrets
from urllib.parse import urlencode

from flask import Blueprint, current_app, jsonify, redirect, request, session
from flask_login import current_user, login_required
from werkzeug.wrappers.response import Response

import sessions
from errors import InvalidCredentials
from oauth import GoogleConfig, GoogleOAuthClient, OAuthError
from schemas import LoginRequest, SignupRequest, parse

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/api/auth")

DASHBOARD_PATHS = {
    "admin": "/admin/dashboard",
    "teacher": "/teacher/dashboard",
    "student": "/student/dashboard",
}
OAUTH_STATES_KEY = "oauth_states"
MAX_PENDING_STATES = 5


def _session_body(token: str, profile: dict) -> dict:
    return {"token": token, "user": profile}


def _oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient(GoogleConfig.from_mapping(current_app.config))


def _client_redirect(path: str, **params: str) -> Response:
    base = current_app.config["CLIENT_URL"].rstrip("/")
    return redirect(f"{base}{path}?{urlencode(params)}")


@bp.post("/signup")
def signup():
    body = parse(SignupRequest, request.get_json(silent=True))
    token, profile = sessions.register(body.name, body.email, body.password, body.role)
    return jsonify(_session_body(token, profile)), 201


@bp.post("/login")
def login():
    body = parse(LoginRequest, request.get_json(silent=True))
    token, profile = sessions.issue_from_credentials(body.email, body.password)
    return jsonify(_session_body(token, profile))


@bp.get("/google")
def google_start() -> Response:
    # the requested role never leaves the server; state is only a lookup key
    state = secrets.token_urlsafe(24)
    pending = dict(session.get(OAUTH_STATES_KEY, {}))
    pending[state] = request.args.get("role", "student")
    session[OAUTH_STATES_KEY] = dict(list(pending.items())[-MAX_PENDING_STATES:])
    return redirect(_oauth_client().build_authorization_url(state=state))


@bp.get("/google/callback")
def google_callback() -> Response:
    pending = dict(session.get(OAUTH_STATES_KEY, {}))
    state = request.args.get("state", "")
    code = request.args.get("code")
    if state not in pending or not code or request.args.get("error"):
        logger.warning("OAuth callback rejected (state known=%s)", state in pending)
        return _client_redirect("/login", error="auth_failed")
    requested_role = pending.pop(state)
    session[OAUTH_STATES_KEY] = pending

    client = _oauth_client()
    try:
        tokens = client.exchange_code(code=code)
        identity = client.fetch_identity(access_token=tokens["access_token"])
    except OAuthError as exc:
        logger.warning("OAuth round trip failed: %s", exc.code)
        return _client_redirect("/login", error="auth_failed")

    try:
        token, profile = sessions.issue_from_external_identity(identity, requested_role)
    except InvalidCredentials as exc:
        logger.warning("External login refused: %s", exc.message)
        return _client_redirect("/login", error="auth_failed")
    return _client_redirect(DASHBOARD_PATHS.get(profile["role"], "/student/dashboard"), token=token)


@bp.get("/me")
@login_required
def me():
    return jsonify(current_user.to_dict())
