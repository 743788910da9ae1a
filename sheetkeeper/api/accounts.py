from flask import Blueprint, jsonify
from flask_login import login_required, logout_user

from ..auth import account_json
from ..security import current_principal
from ..services import accounts as account_svc
from ..services.ownership import require_admin
from .common import json_body
from .schemas import PasswordResetSchema

bp = Blueprint("accounts_api", __name__, url_prefix="/api/accounts")


@bp.get("")
@login_required
def list_accounts():
    require_admin(current_principal(), "list accounts")
    return jsonify(accounts=[account_json(a) for a in account_svc.list_accounts()])


@bp.post("/<username>/reset-password")
@login_required
def reset_password(username: str):
    require_admin(current_principal(), "reset passwords")
    body = PasswordResetSchema.model_validate(json_body())
    acct = account_svc.reset_password(username, body.password)
    return jsonify(account=account_json(acct))


@bp.delete("/me")
@login_required
def delete_me():
    username = current_principal().username
    removed = account_svc.delete_account(username)
    logout_user()
    return jsonify(ok=True, username=username, characters_removed=removed)


@bp.delete("/<username>")
@login_required
def delete_account(username: str):
    require_admin(current_principal(), "delete other accounts")
    removed = account_svc.delete_account(username)
    return jsonify(ok=True, username=username, characters_removed=removed)
