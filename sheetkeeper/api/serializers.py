"""JSON shapes shared by the API blueprints."""

from ..models import (
    Character,
    CharacterItem,
    CharacterItemProperty,
    CharacterSkill,
    CharacterSpell,
    Item,
    ItemProperty,
    Skill,
    Spell,
    SUBTYPE_FIELDS,
)


def _iso(value):
    return value.isoformat() if value else None


def item_property_json(p: ItemProperty) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "base_max_uses": p.base_max_uses,
        "reset_on": p.reset_on,
    }


def item_json(itm: Item) -> dict:
    data = {
        "id": itm.id,
        "name": itm.name,
        "category": itm.category,
        "description_template": itm.description_template,
        "summary_template": itm.summary_template,
        "icon_url": itm.icon_url,
        "cost": {"quantity": itm.cost_quantity, "unit": itm.cost_unit},
        "rarity": itm.rarity,
        "weight": itm.weight,
        "requires_attunement": bool(itm.requires_attunement),
        "reset_on": itm.reset_on,
        "max_uses": itm.max_uses,
        "max_uses_auto_calculated": bool(itm.max_uses_auto_calculated),
        "max_uses_formula": itm.max_uses_formula,
        "stackable": bool(itm.stackable),
        "properties": [item_property_json(p) for p in itm.properties],
    }
    # subtype-only columns exist only on the matching subclass
    for field in SUBTYPE_FIELDS.get(itm.category, ()):
        data[field] = getattr(itm, field, None)
    return data


def skill_json(s: Skill) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "description_template": s.description_template,
        "summary_template": s.summary_template,
        "icon_url": s.icon_url,
        "reset_on": s.reset_on,
        "max_uses": s.max_uses,
        "auto_calculated": bool(s.auto_calculated),
        "auto_formula": s.auto_formula,
        "categories": list(s.categories or []),
    }


def spell_json(s: Spell) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "level": s.level,
        "icon_url": s.icon_url,
        "concentration": bool(s.concentration),
        "description_template": s.description_template,
        "summary_template": s.summary_template,
        "school": s.school,
        "categories": list(s.categories or []),
    }


def character_item_property_json(cip: CharacterItemProperty) -> dict:
    return {
        "id": cip.id,
        "property_id": cip.property_id,
        "name": cip.item_property.name if cip.item_property else None,
        "current_uses": cip.current_uses,
        "base_max_uses": cip.item_property.base_max_uses if cip.item_property else None,
    }


def character_item_json(ci: CharacterItem) -> dict:
    return {
        "id": ci.id,
        "character_id": ci.character_id,
        "item": item_json(ci.item),
        "source": ci.source,
        "current_uses": ci.current_uses,
        "quantity": ci.quantity,
        "stackable": bool(ci.stackable),
        "equipped": bool(ci.equipped),
        "attuned": bool(ci.attuned),
        "favourite": bool(ci.favourite),
        "properties": [character_item_property_json(p) for p in ci.properties],
    }


def character_skill_json(cs: CharacterSkill) -> dict:
    return {
        "id": cs.id,
        "character_id": cs.character_id,
        "skill": skill_json(cs.skill),
        "source": cs.source,
        "current_uses": cs.current_uses,
        "favourite": bool(cs.favourite),
    }


def character_spell_json(cs: CharacterSpell) -> dict:
    return {
        "id": cs.id,
        "character_id": cs.character_id,
        "spell": spell_json(cs.spell),
        "source": cs.source,
        "prepared": bool(cs.prepared),
        "favourite": bool(cs.favourite),
    }


def character_json(c: Character, full: bool = False) -> dict:
    data = {
        "id": c.id,
        "account_id": c.account_id,
        "owner": c.account.username if c.account else None,
        "name": c.name,
        "race": c.race,
        "character_class": c.character_class,
        "background": c.background,
        "alignment": c.alignment,
        "icon_url": c.icon_url,
        "level": c.level,
        "experience": c.experience,
        "armor_class": c.armor_class,
        "current_hp": c.current_hp,
        "max_hp": c.max_hp,
        "temp_hp": c.temp_hp,
        "speed": c.speed,
        "sheet": dict(c.sheet or {}),
        "created_at": _iso(c.created_at),
        "updated_at": _iso(c.updated_at),
    }
    if full:
        data["items"] = [character_item_json(ci) for ci in c.items]
        data["skills"] = [character_skill_json(cs) for cs in c.skills]
        data["spells"] = [character_spell_json(cs) for cs in c.spells]
    return data


INSTANCE_SERIALIZERS = {
    "item": character_item_json,
    "item_property": character_item_property_json,
    "skill": character_skill_json,
    "spell": character_spell_json,
}
