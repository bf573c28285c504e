"""Session issuing and verification.

Tokens are stateless HS256 JWTs carrying the account id (``sub``) and the
account's role at issuance. ``verify`` re-reads the account and rejects the
token once the stored role has moved on, so a role change forces a fresh login
even while the token is still within its lifetime.
"""
from __future__ import annotations

import datetime as dt
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from flask import current_app
from jose import JWTError, jwt

from errors import InvalidCredentials, RoleMismatch, TokenInvalid, ValidationFailed
from models import (
    Account,
    db,
    find_account_by_email,
    find_account_by_external_id,
    find_account_by_id,
    utcnow,
)

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = ("student", "teacher")

Session = Tuple[str, Dict[str, Any]]


@dataclass(frozen=True)
class ExternalIdentity:
    """A verified identity handed back by the OAuth provider."""

    external_id: str
    email: str
    display_name: str


# ──────────────────────────────  CODEC  ───────────────────────────────
def encode_token(account: Account) -> str:
    cfg = current_app.config
    now = dt.datetime.now(dt.timezone.utc)
    claims = {
        "sub": str(account.id),
        "role": account.role,
        "iat": now,
        "exp": now + dt.timedelta(hours=cfg["TOKEN_TTL_HOURS"]),
    }
    return jwt.encode(claims, cfg["JWT_SECRET"], algorithm=cfg["JWT_ALGORITHM"])


def decode_token(token: str) -> Dict[str, Any]:
    cfg = current_app.config
    try:
        return jwt.decode(token, cfg["JWT_SECRET"], algorithms=[cfg["JWT_ALGORITHM"]])
    except JWTError as exc:
        raise TokenInvalid() from exc


def bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


# ──────────────────────────────  ISSUE  ───────────────────────────────
def _issue(account: Account) -> Session:
    account.last_login = utcnow()
    db.session.commit()
    return encode_token(account), account.public_profile()


def register(name: str, email: str, password: str, role: str = "student") -> Session:
    if role not in SELF_SERVICE_ROLES:
        raise ValidationFailed(errors=[{"field": "role", "msg": "Invalid role specified"}])
    if find_account_by_email(email) is not None:
        raise ValidationFailed(
            "User already exists",
            errors=[{"field": "email", "msg": "Email is already registered"}],
        )
    account = Account(name=name, email=email, role=role)
    account.set_password(password)
    db.session.add(account)
    db.session.flush()
    logger.info("Account %s created via signup (role=%s)", account.id, role)
    return _issue(account)


def issue_from_credentials(email: str, password: str) -> Session:
    account = find_account_by_email(email)
    if account is None or not account.check_password(password):
        logger.warning("Failed login for %s", email)
        raise InvalidCredentials()
    return _issue(account)


def issue_from_external_identity(
    identity: ExternalIdentity, requested_role: Optional[str] = None
) -> Session:
    """Log in (or sign up) with an identity asserted by the OAuth provider.

    ``requested_role`` only matters when a new account is created, and only
    the self-service roles are honoured; an existing account keeps its role.
    """
    account = find_account_by_external_id(identity.external_id)
    if account is None:
        account = find_account_by_email(identity.email)
        if account is None:
            role = requested_role if requested_role in SELF_SERVICE_ROLES else "student"
            account = Account(
                name=identity.display_name or identity.email,
                email=identity.email,
                google_id=identity.external_id,
                role=role,
            )
            # unusable: nobody knows the plaintext
            account.set_password(secrets.token_urlsafe(32))
            db.session.add(account)
            db.session.flush()
            logger.info("Account %s created via external identity (role=%s)", account.id, role)
        elif account.google_id is None:
            account.google_id = identity.external_id
            logger.info("Linked external identity to account %s", account.id)
        else:
            logger.warning(
                "Email %s already linked to another external identity", identity.email
            )
            raise InvalidCredentials("Email is linked to a different account")
    return _issue(account)


# ──────────────────────────────  VERIFY  ──────────────────────────────
def verify(token: str) -> Account:
    claims = decode_token(token)
    try:
        account_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenInvalid() from exc
    account = find_account_by_id(account_id)
    if account is None:
        raise TokenInvalid("User not found")
    if claims.get("role") != account.role:
        raise RoleMismatch()
    return account
