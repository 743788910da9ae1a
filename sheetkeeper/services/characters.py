import logging
from typing import Any, Dict, List

from ..errors import BadRequest, NotFound
from ..models import db, Account, Character
from ..security import Principal
from .associations import delete_character_item
from .ownership import get_character

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("name", "race", "character_class", "background", "alignment", "icon_url")
INT_FIELDS = ("level", "experience", "armor_class", "current_hp", "max_hp", "temp_hp", "speed")

# keys that are never copied into the free-form sheet bucket
RESERVED_KEYS = {"id", "account_id", "sheet", "items", "skills", "spells", "created_at", "updated_at"}


def _apply(char: Character, data: Dict[str, Any]) -> None:
    for key in TEXT_FIELDS:
        if data.get(key) is not None:
            setattr(char, key, str(data[key]).strip())
    for key in INT_FIELDS:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise BadRequest("E_FIELD_INVALID", f"{key} must be an integer")
        setattr(char, key, value)

    extra = {k: v for k, v in data.items() if k not in RESERVED_KEYS and k not in TEXT_FIELDS and k not in INT_FIELDS}
    sheet_patch = data.get("sheet")
    if sheet_patch is not None and not isinstance(sheet_patch, dict):
        raise BadRequest("E_FIELD_INVALID", "sheet must be an object")
    if extra or sheet_patch:
        # reassign so the JSON column is flagged dirty
        merged = dict(char.sheet or {})
        merged.update(sheet_patch or {})
        merged.update(extra)
        char.sheet = merged


def purge_character(char: Character) -> Dict[str, int]:
    """Delete a character and its instance rows, children first. Does not commit."""
    counts = {"items": 0, "skills": 0, "spells": 0}
    for ci in list(char.items):
        delete_character_item(ci)
        counts["items"] += 1
    for cs in list(char.skills):
        db.session.delete(cs)
        counts["skills"] += 1
    for sp in list(char.spells):
        db.session.delete(sp)
        counts["spells"] += 1
    db.session.flush()
    db.session.expire(char, ["items", "skills", "spells"])
    db.session.delete(char)
    return counts


def create_character(principal: Principal, data: Dict[str, Any]) -> Character:
    data = dict(data or {})
    name = (data.get("name") or "").strip()
    if not name:
        raise BadRequest("E_NAME_REQUIRED", "name is required")

    if principal.is_admin and data.get("account_id") is not None:
        account = db.session.get(Account, data["account_id"])
    else:
        account = Account.query.filter_by(username=principal.username).first()
    if not account:
        raise NotFound("E_NO_ACCOUNT", "Account not found")

    try:
        char = Character(account=account, name=name, sheet={})
        _apply(char, data)
        db.session.add(char)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("create_character character_id=%s account=%s name=%s", char.id, account.username, name)
    return char


def list_characters(principal: Principal) -> List[Character]:
    q = Character.query
    if not principal.is_admin:
        q = q.join(Account).filter(Account.username == principal.username)
    return q.order_by(Character.id.asc()).all()


def update_character(character_id, data: Dict[str, Any]) -> Character:
    data = dict(data or {})
    if "name" in data and data["name"] is not None and not str(data["name"]).strip():
        raise BadRequest("E_NAME_REQUIRED", "name cannot be blank")
    try:
        char = get_character(character_id)
        _apply(char, data)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("update_character character_id=%s fields=%s", character_id, sorted(data))
    return char


def delete_character(character_id) -> Dict[str, int]:
    try:
        char = get_character(character_id)
        counts = purge_character(char)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("delete_character character_id=%s removed=%s", character_id, counts)
    return counts
