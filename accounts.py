from __future__ import annotations

import logging
from typing import List, Optional

from errors import NotFound, ValidationFailed
from guards import require_role
from models import (
    Account,
    db,
    find_account_by_email,
    find_account_by_id,
    find_courses_by_instructor,
)

logger = logging.getLogger(__name__)


def get_account(account_id: int) -> Account:
    account = find_account_by_id(account_id)
    if account is None:
        raise NotFound("User not found")
    return account


def list_accounts(admin: Account) -> List[Account]:
    require_role(admin, "admin")
    return Account.query.order_by(Account.id).all()


def update_profile(
    account: Account,
    name: Optional[str] = None,
    email: Optional[str] = None,
    current_password: Optional[str] = None,
    new_password: Optional[str] = None,
) -> Account:
    if email is not None:
        other = find_account_by_email(email)
        if other is not None and other.id != account.id:
            raise ValidationFailed(
                errors=[{"field": "email", "msg": "Email is already registered"}]
            )
    if new_password is not None:
        if current_password is None:
            raise ValidationFailed(
                errors=[
                    {
                        "field": "currentPassword",
                        "msg": "Current password is required for password change",
                    }
                ]
            )
        if not account.check_password(current_password):
            raise ValidationFailed("Current password is incorrect")

    if name is not None:
        account.name = name
    if email is not None:
        account.email = email
    if new_password is not None:
        account.set_password(new_password)
    db.session.commit()
    return account


def change_role(admin: Account, account_id: int, role: str) -> Account:
    """Set a new role; tokens minted under the old role stop verifying."""
    require_role(admin, "admin")
    account = get_account(account_id)
    previous = account.role
    account.role = role
    db.session.commit()
    logger.info(
        "Account %s role changed %s -> %s by admin %s", account.id, previous, role, admin.id
    )
    return account


def delete_account(admin: Account, account_id: int) -> None:
    require_role(admin, "admin")
    account = get_account(account_id)
    if find_courses_by_instructor(account.id):
        raise ValidationFailed("User still instructs courses; reassign or delete them first")
    db.session.delete(account)
    db.session.commit()
    logger.info("Account %s deleted by admin %s", account_id, admin.id)
