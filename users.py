from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

import accounts
from guards import roles_required
from schemas import ProfileUpdate, RoleChange, parse

bp = Blueprint("users", __name__, url_prefix="/api/users")


@bp.get("/me")
@login_required
def me():
    return jsonify(current_user.to_dict())


@bp.put("/me")
@login_required
def update_me():
    body = parse(ProfileUpdate, request.get_json(silent=True))
    account = accounts.update_profile(
        current_user,
        name=body.name,
        email=body.email,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    return jsonify(account.to_dict())


@bp.get("")
@roles_required("admin")
def list_users():
    return jsonify([a.to_dict() for a in accounts.list_accounts(current_user)])


@bp.put("/<int:user_id>/role")
@roles_required("admin")
def change_role(user_id: int):
    body = parse(RoleChange, request.get_json(silent=True))
    account = accounts.change_role(current_user, user_id, body.role)
    return jsonify(account.to_dict())


@bp.delete("/<int:user_id>")
@roles_required("admin")
def delete_user(user_id: int):
    accounts.delete_account(current_user, user_id)
    return jsonify({"message": "User deleted successfully"})
