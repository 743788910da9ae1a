import datetime as dt
import logging
from typing import List, Optional, Tuple

from ..errors import BadRequest, NotFound, Unauthorized
from ..models import db, Account
from .characters import purge_character

logger = logging.getLogger(__name__)


def _clean(username: Optional[str]) -> str:
    return (username or "").strip()


def get_account(username: str) -> Account:
    acct = Account.query.filter_by(username=_clean(username)).first()
    if not acct:
        raise NotFound("E_NO_ACCOUNT", "Account not found")
    return acct


def list_accounts() -> List[Account]:
    return Account.query.order_by(Account.id.asc()).all()


def register_account(username: str, password: str, is_admin: bool = False) -> Account:
    username = _clean(username)
    if not username or not password:
        raise BadRequest("E_CREDENTIALS_REQUIRED", "username and password are required")
    if Account.query.filter_by(username=username).first():
        raise BadRequest("E_USERNAME_TAKEN", "username already taken")
    try:
        acct = Account(username=username, is_admin=bool(is_admin))
        acct.set_password(password)
        db.session.add(acct)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("register_account username=%s is_admin=%s", username, acct.is_admin)
    return acct


def authenticate(username: str, password: str) -> Account:
    acct = Account.query.filter_by(username=_clean(username)).first()
    if not acct or not acct.check_password(password or ""):
        logger.warning("authenticate failed username=%s", _clean(username))
        raise Unauthorized("E_BAD_CREDENTIALS", "invalid username or password")
    try:
        acct.last_login_at = dt.datetime.utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return acct


def update_account(username: str, current_password: str,
                   new_username: Optional[str] = None, new_password: Optional[str] = None) -> Account:
    """Change the caller's own username and/or password; requires the current password."""
    acct = get_account(username)
    if not acct.check_password(current_password or ""):
        raise Unauthorized("E_BAD_CREDENTIALS", "current password is incorrect")
    new_username = _clean(new_username)
    if new_username and new_username != acct.username:
        if Account.query.filter_by(username=new_username).first():
            raise BadRequest("E_USERNAME_TAKEN", "username already taken")
    try:
        if new_username:
            acct.username = new_username
        if new_password:
            acct.set_password(new_password)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "update_account username=%s renamed=%s password_changed=%s",
        username, bool(new_username and new_username != username), bool(new_password),
    )
    return acct


def reset_password(username: str, new_password: str) -> Account:
    if not new_password:
        raise BadRequest("E_PASSWORD_REQUIRED", "new password is required")
    try:
        acct = get_account(username)
        acct.set_password(new_password)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("reset_password username=%s", username)
    return acct


def delete_account(username: str) -> int:
    try:
        acct = get_account(username)
        chars = list(acct.characters)
        for char in chars:
            purge_character(char)
        db.session.flush()
        db.session.expire(acct, ["characters"])
        db.session.delete(acct)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("delete_account username=%s characters_removed=%s", username, len(chars))
    return len(chars)


def ensure_admin_account(username: str, password: str) -> Tuple[Account, bool]:
    """Create the bootstrap administrator unless an account by that name exists."""
    acct = Account.query.filter_by(username=_clean(username)).first()
    if acct:
        if not acct.is_admin:
            logger.warning("ensure_admin_account username=%s exists without admin rights", username)
        return acct, False
    acct = register_account(username, password, is_admin=True)
    return acct, True
