"""Ownership and visibility checks consumed by the request layer.

Two tiers: admins bypass every check; everyone else must own the character
and, for single-entry reads, the entry must be linked to that character.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import exists

from ..errors import BadRequest, Forbidden, NotFound
from ..models import (
    db,
    Character,
    CharacterItem,
    CharacterItemProperty,
    CharacterSkill,
    CharacterSpell,
    INSTANCE_MODELS,
)
from ..security import Principal


def get_character(character_id) -> Character:
    char = db.session.get(Character, character_id)
    if not char:
        raise NotFound("E_NO_CHAR", "Character not found")
    return char


def verify_ownership(character_id, username: str) -> None:
    char = get_character(character_id)
    if char.account.username != username:
        raise Forbidden("E_NOT_OWNER", "You do not own this character")


def is_visible_to_character(kind: str, entry_id, character_id) -> bool:
    """True iff an instance row links catalog entry ``entry_id`` to the character."""
    if kind == "spell":
        cond = (CharacterSpell.character_id == character_id) & (CharacterSpell.spell_id == entry_id)
    elif kind == "skill":
        cond = (CharacterSkill.character_id == character_id) & (CharacterSkill.skill_id == entry_id)
    elif kind == "item":
        cond = (CharacterItem.character_id == character_id) & (CharacterItem.item_id == entry_id)
    elif kind == "item_property":
        cond = exists().where(
            CharacterItemProperty.character_item_id == CharacterItem.id,
            CharacterItemProperty.property_id == entry_id,
            CharacterItem.character_id == character_id,
        )
        return bool(db.session.query(cond).scalar())
    else:
        raise BadRequest("E_KIND", f"Unknown catalog kind: {kind}")
    return bool(db.session.query(exists().where(cond)).scalar())


def require_admin(principal: Principal, action: str = "do this") -> None:
    if not principal.is_admin:
        raise Forbidden("E_ADMIN_ONLY", f"Only administrators can {action}.")


def authorize_character(principal: Principal, character_id) -> None:
    if principal.is_admin:
        return
    verify_ownership(character_id, principal.username)


def authorize_entry_read(principal: Principal, kind: str, entry_id, character_id: Optional[int]) -> None:
    if principal.is_admin:
        return
    if character_id is None:
        raise BadRequest("E_CHAR_REQUIRED", "character_id is required.")
    verify_ownership(character_id, principal.username)
    if not is_visible_to_character(kind, entry_id, character_id):
        raise Forbidden("E_NOT_VISIBLE", "This entry is not available to the character.")


def get_instance(kind: str, instance_id):
    model = INSTANCE_MODELS.get(kind)
    if model is None:
        raise BadRequest("E_KIND", f"Unknown instance kind: {kind}")
    row = db.session.get(model, instance_id)
    if not row:
        raise NotFound("E_NO_INSTANCE", f"{model.__name__} not found")
    return row


def character_id_for_instance(kind: str, instance_id) -> int:
    row = get_instance(kind, instance_id)
    if kind == "item_property":
        return row.character_item.character_id
    return row.character_id


def authorize_instance(principal: Principal, kind: str, instance_id) -> None:
    if principal.is_admin:
        return
    verify_ownership(character_id_for_instance(kind, instance_id), principal.username)
