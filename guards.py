from __future__ import annotations

from functools import wraps
from typing import Callable, TypeVar

from flask_login import current_user, login_required

from errors import Forbidden
from ledger import is_enrolled
from models import Account, Course

F = TypeVar("F", bound=Callable)


def require_role(account: Account, *allowed_roles: str) -> None:
    if account.role not in allowed_roles:
        raise Forbidden(f"Access denied. Required role: {' or '.join(allowed_roles)}")


def is_owner_or_admin(account: Account, course: Course) -> bool:
    return account.id == course.instructor_id or account.role == "admin"


def require_course_owner_or_admin(account: Account, course: Course) -> None:
    if not is_owner_or_admin(account, course):
        raise Forbidden("Only course instructor or admin can perform this action")


def require_enrolled(account: Account, course: Course) -> None:
    if not is_enrolled(course.id, account.id):
        raise Forbidden("You must be enrolled in this course to perform this action")


def roles_required(*roles: str) -> Callable[[F], F]:
    """``login_required`` plus a role check against the bearer's account."""

    def decorator(view: F) -> F:
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            require_role(current_user, *roles)
            return view(*args, **kwargs)

        return wrapped  # type: ignore[return-value]

    return decorator
