"""CRUD for spells, skills and item properties."""

import logging
from typing import Any, Dict, List, Tuple

from sqlalchemy import delete

from ..errors import BadRequest, NotFound
from ..models import (
    db,
    Skill,
    Spell,
    ItemProperty,
    CharacterItemProperty,
    CharacterSkill,
    CharacterSpell,
    item_item_properties,
)
from .ownership import get_character

logger = logging.getLogger(__name__)

SPELL_FIELDS = (
    "name", "level", "icon_url", "concentration", "description_template",
    "summary_template", "school", "categories",
)
SKILL_FIELDS = (
    "name", "description_template", "summary_template", "icon_url", "reset_on",
    "max_uses", "auto_calculated", "auto_formula", "categories",
)
ITEM_PROPERTY_FIELDS = ("name", "description", "base_max_uses", "reset_on")


def _apply(obj, fields, data: Dict[str, Any]) -> None:
    unknown = sorted(set(data) - set(fields) - {"id"})
    if unknown:
        raise BadRequest("E_FIELD_INVALID", f"Unknown fields: {', '.join(unknown)}")
    if "name" in data and data["name"] is not None and not str(data["name"]).strip():
        raise BadRequest("E_NAME_REQUIRED", "name cannot be blank")
    for key in fields:
        value = data.get(key)
        if value is None:
            continue
        if key == "name":
            value = str(value).strip()
        try:
            setattr(obj, key, value)
        except ValueError as e:
            raise BadRequest("E_FIELD_INVALID", str(e))


def _create(model, fields, data):
    data = dict(data or {})
    if not (data.get("name") or "").strip():
        raise BadRequest("E_NAME_REQUIRED", "name is required")
    obj = model()
    _apply(obj, fields, data)
    try:
        db.session.add(obj)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("create_%s id=%s name=%s", model.__tablename__, obj.id, obj.name)
    return obj


def _get(model, entry_id, code):
    obj = db.session.get(model, entry_id)
    if not obj:
        raise NotFound(code, f"{model.__name__} not found")
    return obj


def _update(model, fields, entry_id, data, code, after=None):
    try:
        obj = _get(model, entry_id, code)
        _apply(obj, fields, dict(data or {}))
        db.session.flush()
        if after is not None:
            after(obj)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("update_%s id=%s fields=%s", model.__tablename__, entry_id, sorted(data or {}))
    return obj


# ---------------------- spells ----------------------

def create_spell(data) -> Spell:
    return _create(Spell, SPELL_FIELDS, data)


def list_spells() -> List[Spell]:
    return Spell.query.order_by(Spell.level.asc(), Spell.name.asc()).all()


def get_spell(spell_id) -> Spell:
    return _get(Spell, spell_id, "E_NO_SPELL")


def update_spell(spell_id, data) -> Spell:
    return _update(Spell, SPELL_FIELDS, spell_id, data, "E_NO_SPELL")


def delete_spell(spell_id) -> None:
    try:
        spell = get_spell(spell_id)
        rows = CharacterSpell.query.filter_by(spell_id=spell.id).all()
        for row in rows:
            db.session.delete(row)
        db.session.flush()
        db.session.delete(spell)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("delete_spell spell_id=%s instances_removed=%s", spell_id, len(rows))


def spells_for_character(character_id) -> List[Tuple[Spell, CharacterSpell]]:
    get_character(character_id)
    rows = (
        db.session.query(Spell, CharacterSpell)
        .join(CharacterSpell, CharacterSpell.spell_id == Spell.id)
        .filter(CharacterSpell.character_id == character_id)
        .order_by(Spell.level.asc(), Spell.name.asc())
        .all()
    )
    return [(spell, cs) for spell, cs in rows]


# ---------------------- skills ----------------------

def _clamp_skill_instances(skill: Skill) -> None:
    if skill.auto_calculated or skill.max_uses is None:
        return
    (
        CharacterSkill.query
        .filter(CharacterSkill.skill_id == skill.id, CharacterSkill.current_uses > skill.max_uses)
        .update({CharacterSkill.current_uses: skill.max_uses}, synchronize_session=False)
    )


def create_skill(data) -> Skill:
    return _create(Skill, SKILL_FIELDS, data)


def list_skills() -> List[Skill]:
    return Skill.query.order_by(Skill.name.asc()).all()


def get_skill(skill_id) -> Skill:
    return _get(Skill, skill_id, "E_NO_SKILL")


def update_skill(skill_id, data) -> Skill:
    return _update(Skill, SKILL_FIELDS, skill_id, data, "E_NO_SKILL", after=_clamp_skill_instances)


def delete_skill(skill_id) -> None:
    try:
        skill = get_skill(skill_id)
        rows = CharacterSkill.query.filter_by(skill_id=skill.id).all()
        for row in rows:
            db.session.delete(row)
        db.session.flush()
        db.session.delete(skill)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("delete_skill skill_id=%s instances_removed=%s", skill_id, len(rows))


def skills_for_character(character_id) -> List[Tuple[Skill, CharacterSkill]]:
    get_character(character_id)
    rows = (
        db.session.query(Skill, CharacterSkill)
        .join(CharacterSkill, CharacterSkill.skill_id == Skill.id)
        .filter(CharacterSkill.character_id == character_id)
        .order_by(Skill.name.asc())
        .all()
    )
    return [(skill, cs) for skill, cs in rows]


# ---------------------- item properties ----------------------

def _clamp_property_instances(prop: ItemProperty) -> None:
    if prop.base_max_uses is None:
        return
    (
        CharacterItemProperty.query
        .filter(
            CharacterItemProperty.property_id == prop.id,
            CharacterItemProperty.current_uses > prop.base_max_uses,
        )
        .update({CharacterItemProperty.current_uses: prop.base_max_uses}, synchronize_session=False)
    )


def create_item_property(data) -> ItemProperty:
    return _create(ItemProperty, ITEM_PROPERTY_FIELDS, data)


def list_item_properties() -> List[ItemProperty]:
    return ItemProperty.query.order_by(ItemProperty.name.asc()).all()


def get_item_property(property_id) -> ItemProperty:
    return _get(ItemProperty, property_id, "E_NO_PROPERTY")


def update_item_property(property_id, data) -> ItemProperty:
    return _update(
        ItemProperty, ITEM_PROPERTY_FIELDS, property_id, data, "E_NO_PROPERTY",
        after=_clamp_property_instances,
    )


def delete_item_property(property_id) -> None:
    """Delete a property everywhere: its instances, its item links, then the row."""
    try:
        prop = get_item_property(property_id)
        rows = CharacterItemProperty.query.filter_by(property_id=prop.id).all()
        for row in rows:
            row.character_item.properties.remove(row)
            db.session.delete(row)
        db.session.flush()
        unlinked = db.session.execute(
            delete(item_item_properties).where(item_item_properties.c.property_id == prop.id)
        ).rowcount
        db.session.delete(prop)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "delete_item_property property_id=%s instances_removed=%s items_unlinked=%s",
        property_id, len(rows), unlinked,
    )
