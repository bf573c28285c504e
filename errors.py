"""Error taxonomy shared by the services and rendered by ``app.py``.

Services raise these before touching the database; the Flask error handler
turns them into ``{"message": ..., "errors": [...]}`` JSON bodies.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


class EduVaultError(Exception):
    status_code: int = 500
    default_message: str = "Server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        errors: Optional[List[Dict[str, str]]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailed(EduVaultError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(EduVaultError):
    status_code = 401
    default_message = "Authentication failed"


class InvalidCredentials(AuthenticationError):
    default_message = "Invalid email or password"


class TokenInvalid(AuthenticationError):
    default_message = "Invalid token"


class RoleMismatch(AuthenticationError):
    default_message = "Invalid token: Role mismatch"


class Forbidden(EduVaultError):
    status_code = 403
    default_message = "Access denied"


class NotFound(EduVaultError):
    status_code = 404
    default_message = "Not found"


class AlreadyEnrolled(EduVaultError):
    status_code = 400
    default_message = "Already enrolled in this course"


class NotEnrolled(EduVaultError):
    status_code = 400
    default_message = "You are not enrolled in this course"
