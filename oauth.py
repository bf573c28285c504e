"""
Minimal Google OAuth 2.0 client (authorization-code flow).

The web adapter (``auth.py``) builds the authorization URL, keeps the opaque
``state`` in the Flask session, and on callback asks this client to exchange
the code and read the user's profile. Nothing here touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping
from urllib.parse import urlencode

# Small indirection to ease monkeypatching in tests
import requests as http

from sessions import ExternalIdentity

AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
USERINFO_ENDPOINT = "https://openidconnect.googleapis.com/v1/userinfo"
HTTP_TIMEOUT = 10


class OAuthError(Exception):
    """Raised when the provider round trip fails."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def http_post(url: str, data: Dict[str, str], headers: Dict[str, str]):
    return http.post(url, data=data, headers=headers, timeout=HTTP_TIMEOUT)


def http_get(url: str, headers: Dict[str, str]):
    return http.get(url, headers=headers, timeout=HTTP_TIMEOUT)


def _json_object(resp, code: str) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError as exc:
        raise OAuthError(code) from exc
    if not isinstance(body, dict):
        raise OAuthError(code)
    return body


@dataclass(frozen=True)
class GoogleConfig:
    client_id: str
    client_secret: str
    redirect_uri: str

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "GoogleConfig":
        return cls(
            client_id=config["GOOGLE_CLIENT_ID"],
            client_secret=config["GOOGLE_CLIENT_SECRET"],
            redirect_uri=config["GOOGLE_REDIRECT_URI"],
        )


class GoogleOAuthClient:
    def __init__(self, config: GoogleConfig):
        self.cfg = config

    def build_authorization_url(self, *, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.cfg.client_id,
            "redirect_uri": self.cfg.redirect_uri,
            "scope": "openid profile email",
            "state": state,
        }
        return f"{AUTH_ENDPOINT}?{urlencode(params)}"

    def exchange_code(self, *, code: str) -> Dict[str, Any]:
        """Trade the authorization code for tokens; raises OAuthError on failure."""
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.cfg.client_id,
            "client_secret": self.cfg.client_secret,
            "redirect_uri": self.cfg.redirect_uri,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        try:
            resp = http_post(TOKEN_ENDPOINT, data=data, headers=headers)
        except http.RequestException as exc:
            raise OAuthError("token_exchange_failed") from exc
        if resp.status_code != 200:
            raise OAuthError("token_exchange_failed")
        tokens = _json_object(resp, "token_exchange_failed")
        if not tokens.get("access_token"):
            raise OAuthError("token_exchange_failed")
        return tokens

    def fetch_identity(self, *, access_token: str) -> ExternalIdentity:
        try:
            resp = http_get(
                USERINFO_ENDPOINT, headers={"Authorization": f"Bearer {access_token}"}
            )
        except http.RequestException as exc:
            raise OAuthError("userinfo_failed") from exc
        if resp.status_code != 200:
            raise OAuthError("userinfo_failed")
        info = _json_object(resp, "userinfo_failed")
        if not info.get("sub") or not info.get("email"):
            raise OAuthError("userinfo_incomplete")
        # accounts are linked by email, so it has to be verified by the provider
        if info.get("email_verified") is False:
            raise OAuthError("email_unverified")
        return ExternalIdentity(
            external_id=str(info["sub"]),
            email=info["email"],
            display_name=info.get("name") or info["email"],
        )
