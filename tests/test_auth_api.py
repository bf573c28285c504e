from urllib.parse import parse_qs, urlparse

import pytest
import requests

import oauth
from models import Account, find_account_by_email


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_signup_login_me(client):
    resp = client.post(
        "/api/auth/signup",
        json={"name": "Stu", "email": "Stu@Example.com", "password": "pw1234"},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["user"]["role"] == "student"
    assert body["user"]["email"] == "stu@example.com"

    resp = client.post("/api/auth/login", json={"email": "stu@example.com", "password": "pw1234"})
    assert resp.status_code == 200
    token = resp.get_json()["token"]

    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.get_json()["email"] == "stu@example.com"
    assert "password" not in resp.get_json()


def test_signup_validation(client, make_account):
    resp = client.post("/api/auth/signup", json={"name": "", "email": "nope", "password": "x"})
    assert resp.status_code == 400
    fields = {e["field"] for e in resp.get_json()["errors"]}
    assert fields == {"name", "email", "password"}

    resp = client.post(
        "/api/auth/signup",
        json={"name": "A", "email": "a@example.com", "password": "pw1234", "role": "admin"},
    )
    assert resp.status_code == 400

    make_account("dup@example.com")
    resp = client.post(
        "/api/auth/signup", json={"name": "D", "email": "dup@example.com", "password": "pw1234"}
    )
    assert resp.status_code == 400
    assert resp.get_json()["errors"][0]["msg"] == "Email is already registered"


def test_login_failure(client, make_account):
    make_account("s@example.com", password="right-one")
    resp = client.post("/api/auth/login", json={"email": "s@example.com", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid email or password"


def test_missing_and_bad_tokens(client):
    assert client.get("/api/auth/me").status_code == 401
    resp = client.get("/api/courses", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid token"


def test_role_change_forces_reauthentication(client, make_account):
    admin = make_account("m@example.com", role="admin")
    student = make_account("s@example.com")
    assert client.get("/api/auth/me", headers=student.headers).status_code == 200

    resp = client.put(f"/api/users/{student.id}/role", json={"role": "teacher"}, headers=admin.headers)
    assert resp.status_code == 200

    resp = client.get("/api/auth/me", headers=student.headers)
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid token: Role mismatch"


def test_healthz(client):
    assert client.get("/healthz").data == b"ok"


# ──────────────────────────────  OAUTH  ───────────────────────────────
@pytest.fixture()
def google(monkeypatch):
    """Stand-in for Google's token and userinfo endpoints."""
    profile = {
        "sub": "google-42",
        "email": "fed@example.com",
        "email_verified": True,
        "name": "Fed User",
    }
    calls = []

    def fake_post(url, data, headers):
        calls.append(("token", data["code"]))
        return FakeResponse(200, {"access_token": "at-1", "id_token": "ignored"})

    def fake_get(url, headers):
        calls.append(("userinfo", headers["Authorization"]))
        return FakeResponse(200, dict(profile))

    monkeypatch.setattr(oauth, "http_post", fake_post)
    monkeypatch.setattr(oauth, "http_get", fake_get)
    return profile, calls


def _start(client, role=None):
    resp = client.get("/api/auth/google", query_string={"role": role} if role else None)
    assert resp.status_code == 302
    location = urlparse(resp.headers["Location"])
    assert location.netloc == "accounts.google.com"
    return parse_qs(location.query)["state"][0]


def _callback(client, state, code="code-1"):
    resp = client.get("/api/auth/google/callback", query_string={"state": state, "code": code})
    assert resp.status_code == 302
    location = urlparse(resp.headers["Location"])
    return location.path, parse_qs(location.query)


def test_google_new_account_gets_requested_role(app, client, google):
    state = _start(client, role="teacher")
    path, params = _callback(client, state)
    assert path == "/teacher/dashboard"

    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {params['token'][0]}"})
    assert resp.get_json()["role"] == "teacher"
    with app.app_context():
        assert find_account_by_email("fed@example.com").google_id == "google-42"
    assert google[1] == [("token", "code-1"), ("userinfo", "Bearer at-1")]


def test_google_requested_role_ignored_for_existing_account(app, client, google, make_account):
    existing = make_account("fed@example.com", role="student")
    state = _start(client, role="teacher")
    path, params = _callback(client, state)
    assert path == "/student/dashboard"
    with app.app_context():
        account = find_account_by_email("fed@example.com")
        assert account.id == existing.id
        assert account.role == "student"
        assert account.google_id == "google-42"
        assert Account.query.count() == 1


def test_google_admin_role_request_is_downgraded(client, google):
    state = _start(client, role="admin")
    path, _ = _callback(client, state)
    assert path == "/student/dashboard"


def test_google_state_is_single_use(client, google):
    state = _start(client)
    _callback(client, state)
    path, params = _callback(client, state)
    assert path == "/login"
    assert params["error"] == ["auth_failed"]


def test_google_unknown_state_rejected(client, google):
    _start(client)
    path, params = _callback(client, "forged-state")
    assert path == "/login"
    assert google[1] == []


def test_google_token_exchange_failure(client, monkeypatch):
    monkeypatch.setattr(oauth, "http_post", lambda url, data, headers: FakeResponse(400, {}))
    state = _start(client)
    path, params = _callback(client, state)
    assert path == "/login"
    assert params["error"] == ["auth_failed"]


def test_google_token_response_not_json(client, monkeypatch):
    not_json = requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)
    monkeypatch.setattr(oauth, "http_post", lambda url, data, headers: FakeResponse(200, not_json))
    state = _start(client)
    path, params = _callback(client, state)
    assert path == "/login"
    assert params["error"] == ["auth_failed"]


def test_google_userinfo_not_an_object(client, google, monkeypatch):
    monkeypatch.setattr(oauth, "http_get", lambda url, headers: FakeResponse(200, ["sub", "email"]))
    state = _start(client)
    path, params = _callback(client, state)
    assert path == "/login"
    assert params["error"] == ["auth_failed"]


def test_google_unverified_email_rejected(client, google):
    google[0]["email_verified"] = False
    state = _start(client)
    path, _ = _callback(client, state)
    assert path == "/login"
