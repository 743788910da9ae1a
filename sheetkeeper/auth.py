from flask import Blueprint, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager, login_user, logout_user, login_required, current_user

from .api.common import json_body
from .api.schemas import AccountUpdateSchema, CredentialsSchema
from .errors import Unauthorized
from .models import db, Account
from .security import extract_token, issue_token, verify_token
from .services import accounts as account_svc

auth_bp = Blueprint("auth_bp", __name__)
login_manager = LoginManager()
limiter = Limiter(get_remote_address)


@login_manager.user_loader
def load_user(account_id):  # called by Flask-Login using session cookie
    return db.session.get(Account, int(account_id))


@login_manager.request_loader
def load_user_from_request(req):
    token = extract_token()
    if not token:
        return None
    try:
        data = verify_token(token)
    except Unauthorized:
        return None
    return Account.query.filter_by(username=data["sub"]).first()


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify(error="Authentication required.", code="E_UNAUTHENTICATED"), 401


def account_json(a: Account) -> dict:
    return {
        "id": a.id,
        "username": a.username,
        "is_admin": bool(a.is_admin),
        "created_at": a.created_at.isoformat() if a.created_at else None,
        "last_login_at": a.last_login_at.isoformat() if a.last_login_at else None,
    }


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("20/minute")
def register():
    creds = CredentialsSchema.model_validate(json_body())
    acct = account_svc.register_account(creds.username, creds.password)
    login_user(acct, remember=True)
    return jsonify(account=account_json(acct), token=issue_token(acct)), 201


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("20/minute")
def login():
    creds = CredentialsSchema.model_validate(json_body())
    acct = account_svc.authenticate(creds.username, creds.password)
    login_user(acct, remember=True)
    return jsonify(account=account_json(acct), token=issue_token(acct)), 200


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(account=account_json(current_user)), 200


@auth_bp.route("/update", methods=["PATCH"])
@login_required
def update_account():
    body = AccountUpdateSchema.model_validate(json_body())
    acct = account_svc.update_account(
        current_user.username,
        body.current_password,
        new_username=body.username,
        new_password=body.password,
    )
    # tokens are keyed by username
    return jsonify(account=account_json(acct), token=issue_token(acct)), 200


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify(ok=True), 200
