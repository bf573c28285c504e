from __future__ import annotations

from types import SimpleNamespace

import pytest

from app import create_app
from models import Account, db
from sessions import encode_token

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SECRET_KEY": "test-secret-key",
    "JWT_SECRET": "test-jwt-secret",
    "PASSWORD_HASH_METHOD": "pbkdf2:sha256:1000",
    "GOOGLE_CLIENT_ID": "client-id",
    "GOOGLE_CLIENT_SECRET": "client-secret",
    "GOOGLE_REDIRECT_URI": "http://localhost/api/auth/google/callback",
    "CLIENT_URL": "http://client.test",
}


@pytest.fixture()
def app():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def ctx(app):
    """An app context for tests that call the services directly."""
    with app.app_context():
        yield
        db.session.remove()


@pytest.fixture()
def add_account():
    """Insert an account; needs an active app context."""

    def _add(email, role="student", password="secret123", name="Test User"):
        account = Account(name=name, email=email, role=role)
        account.set_password(password)
        db.session.add(account)
        db.session.commit()
        return account

    return _add


@pytest.fixture()
def make_account(app, add_account):
    """Insert an account for HTTP tests and hand back its id and bearer header."""

    def _make(email, role="student", password="secret123", name="Test User"):
        with app.app_context():
            account = add_account(email, role=role, password=password, name=name)
            return SimpleNamespace(
                id=account.id,
                email=account.email,
                role=account.role,
                password=password,
                headers={"Authorization": f"Bearer {encode_token(account)}"},
            )

    return _make


@pytest.fixture()
def course_payload():
    return {
        "title": "CS101",
        "description": "Intro to computing",
        "startDate": "2024-01-01",
        "endDate": "2024-05-01",
    }
