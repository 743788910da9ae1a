"""Attach, detach and keep in sync the per-character instance rows.

Every public function here runs as one transaction: it commits on success,
rolls back and re-raises on any failure.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..errors import BadRequest, NotFound
from ..models import (
    db,
    Item,
    ItemProperty,
    Skill,
    Spell,
    CharacterItem,
    CharacterItemProperty,
    CharacterSkill,
    CharacterSpell,
)
from ..models.enums import SOURCES, normalize
from .batch import BatchResult, Outcome, unique_ids
from .ownership import get_character, get_instance

logger = logging.getLogger(__name__)

KINDS = ("spell", "skill", "item")

# fields the generic instance update accepts, per instance kind
UPDATABLE_FIELDS = {
    "item": {"current_uses": int, "quantity": int, "equipped": bool, "attuned": bool, "favourite": bool},
    "skill": {"current_uses": int, "favourite": bool},
    "spell": {"prepared": bool, "favourite": bool},
    "item_property": {"current_uses": int},
}


# ---------------------- helpers ----------------------

def require_ids(ids) -> List[int]:
    if ids is None:
        raise BadRequest("E_IDS_REQUIRED", "A list of ids is required.")
    if isinstance(ids, (str, bytes)) or not isinstance(ids, Iterable):
        raise BadRequest("E_IDS_INVALID", "ids must be a list.")
    out = []
    for raw in ids:
        if isinstance(raw, bool):
            raise BadRequest("E_IDS_INVALID", f"Invalid id: {raw!r}")
        try:
            out.append(int(raw))
        except (TypeError, ValueError):
            raise BadRequest("E_IDS_INVALID", f"Invalid id: {raw!r}")
    if not out:
        raise BadRequest("E_IDS_REQUIRED", "A list of ids is required.")
    return out


def normalize_source(source) -> Optional[str]:
    try:
        return normalize(source, SOURCES, "source")
    except ValueError as e:
        raise BadRequest("E_SOURCE_INVALID", str(e))


def clamp_uses(value: int, maximum: Optional[int]) -> int:
    if value < 0:
        return 0
    if maximum is not None and maximum >= 0 and value > maximum:
        return maximum
    return value


def max_uses_for(kind: str, row) -> Optional[int]:
    """Finite upper bound for ``current_uses``; formula-driven maxima are unbounded here."""
    if kind == "item":
        item = row.item
        return None if item.max_uses_auto_calculated else item.max_uses
    if kind == "skill":
        skill = row.skill
        return None if skill.auto_calculated else skill.max_uses
    if kind == "item_property":
        return row.item_property.base_max_uses
    return None


def _seed_property(prop: ItemProperty) -> CharacterItemProperty:
    return CharacterItemProperty(
        item_property=prop,
        property_id=prop.id,
        current_uses=prop.base_max_uses if prop.base_max_uses is not None else 0,
    )


def _get_item(item_id) -> Item:
    item = db.session.get(Item, item_id)
    if not item:
        raise NotFound("E_NO_ITEM", "Item not found")
    return item


def delete_character_item(ci: CharacterItem) -> None:
    """Remove one CharacterItem and its property rows, children first."""
    for cip in list(ci.properties):
        db.session.delete(cip)
    db.session.delete(ci)


# ---------------------- attach ----------------------

def _attach_simple(character_id, ids, source, catalog_model, collection, fk, build) -> BatchResult:
    wanted_raw = require_ids(ids)
    source = normalize_source(source)
    result = BatchResult()
    try:
        char = get_character(character_id)
        wanted = unique_ids(wanted_raw, result)
        found = {}
        if wanted:
            found = {e.id: e for e in catalog_model.query.filter(catalog_model.id.in_(wanted)).all()}
        rows = getattr(char, collection)
        existing = {getattr(r, fk) for r in rows}
        for eid in wanted:
            entry = found.get(eid)
            if entry is None:
                result.record(eid, Outcome.SKIPPED_UNKNOWN)
                continue
            if eid in existing:
                result.record(eid, Outcome.SKIPPED_DUPLICATE)
                continue
            rows.append(build(entry, source))
            existing.add(eid)
            result.record(eid, Outcome.ATTACHED)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "attach_%s character_id=%s source=%s outcomes=%s",
        collection, character_id, source, result.counts(),
    )
    return result


def attach_spells(character_id, spell_ids, source=None) -> BatchResult:
    return _attach_simple(
        character_id, spell_ids, source, Spell, "spells", "spell_id",
        lambda spell, src: CharacterSpell(spell=spell, source=src, prepared=False, favourite=False),
    )


def attach_skills(character_id, skill_ids, source=None) -> BatchResult:
    return _attach_simple(
        character_id, skill_ids, source, Skill, "skills", "skill_id",
        lambda skill, src: CharacterSkill(skill=skill, source=src, current_uses=skill.max_uses, favourite=False),
    )


def attach_items(character_id, item_ids, source=None) -> BatchResult:
    """Give items to a character.

    A stackable item the character already holds bumps that row's quantity
    (as ``quantity = quantity + 1`` in SQL, on a row read ``FOR UPDATE``);
    anything else becomes a new row with one property instance per catalog
    property.
    """
    wanted_raw = require_ids(item_ids)
    source = normalize_source(source)
    result = BatchResult()
    try:
        char = get_character(character_id)
        wanted = unique_ids(wanted_raw, result)
        found = {}
        if wanted:
            found = {i.id: i for i in Item.query.filter(Item.id.in_(wanted)).all()}
        for iid in wanted:
            item = found.get(iid)
            if item is None:
                result.record(iid, Outcome.SKIPPED_UNKNOWN)
                continue
            existing = None
            if item.stackable:
                existing = (
                    CharacterItem.query
                    .filter_by(character_id=char.id, item_id=item.id)
                    .order_by(CharacterItem.id.asc())
                    .with_for_update()
                    .first()
                )
            if existing is not None:
                existing.quantity = CharacterItem.quantity + 1
                existing.stackable = True
                result.record(iid, Outcome.STACKED)
                continue
            ci = CharacterItem(
                item=item,
                source=source,
                quantity=1,
                current_uses=item.max_uses,
                stackable=bool(item.stackable),
            )
            char.items.append(ci)
            for prop in item.properties:
                ci.properties.append(_seed_property(prop))
            result.record(iid, Outcome.ATTACHED)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "attach_items character_id=%s source=%s outcomes=%s",
        character_id, source, result.counts(),
    )
    return result


def attach_catalog_to_character(kind: str, character_id, ids, source=None) -> BatchResult:
    if kind == "spell":
        return attach_spells(character_id, ids, source)
    if kind == "skill":
        return attach_skills(character_id, ids, source)
    if kind == "item":
        return attach_items(character_id, ids, source)
    raise BadRequest("E_KIND", f"Unknown catalog kind: {kind}")


# ---------------------- detach ----------------------

def _detach_simple(character_id, ids, collection, fk) -> BatchResult:
    wanted_raw = require_ids(ids)
    result = BatchResult()
    try:
        char = get_character(character_id)
        wanted = unique_ids(wanted_raw, result)
        rows = getattr(char, collection)
        present = {getattr(r, fk): r for r in rows}
        for eid in wanted:
            row = present.get(eid)
            if row is None:
                result.record(eid, Outcome.SKIPPED_ABSENT)
                continue
            rows.remove(row)
            db.session.delete(row)
            result.record(eid, Outcome.DETACHED)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "detach_%s character_id=%s outcomes=%s", collection, character_id, result.counts()
    )
    return result


def detach_spells(character_id, spell_ids) -> BatchResult:
    return _detach_simple(character_id, spell_ids, "spells", "spell_id")


def detach_skills(character_id, skill_ids) -> BatchResult:
    return _detach_simple(character_id, skill_ids, "skills", "skill_id")


def detach_items(character_id, item_ids) -> BatchResult:
    """Remove every copy of the given catalog items from the character."""
    wanted_raw = require_ids(item_ids)
    result = BatchResult()
    try:
        char = get_character(character_id)
        wanted = unique_ids(wanted_raw, result)
        for iid in wanted:
            rows = [ci for ci in char.items if ci.item_id == iid]
            if not rows:
                result.record(iid, Outcome.SKIPPED_ABSENT)
                continue
            for ci in rows:
                char.items.remove(ci)
                delete_character_item(ci)
            result.record(iid, Outcome.DETACHED)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("detach_items character_id=%s outcomes=%s", character_id, result.counts())
    return result


def detach_character_items(character_id, character_item_ids) -> BatchResult:
    """Remove single physical copies, addressed by CharacterItem id."""
    wanted_raw = require_ids(character_item_ids)
    result = BatchResult()
    try:
        char = get_character(character_id)
        wanted = unique_ids(wanted_raw, result)
        by_id = {ci.id: ci for ci in char.items}
        for cid in wanted:
            ci = by_id.get(cid)
            if ci is None:
                result.record(cid, Outcome.SKIPPED_ABSENT)
                continue
            char.items.remove(ci)
            delete_character_item(ci)
            result.record(cid, Outcome.DETACHED)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "detach_character_items character_id=%s outcomes=%s", character_id, result.counts()
    )
    return result


def detach_catalog_from_character(kind: str, character_id, ids) -> BatchResult:
    if kind == "spell":
        return detach_spells(character_id, ids)
    if kind == "skill":
        return detach_skills(character_id, ids)
    if kind == "item":
        return detach_items(character_id, ids)
    raise BadRequest("E_KIND", f"Unknown catalog kind: {kind}")


# ---------------------- property propagation ----------------------

def apply_property_addition(item: Item, property_ids: List[int], result: BatchResult) -> int:
    """Create missing property instances on every CharacterItem of ``item``.

    Only properties currently linked to the catalog item are materialized.
    Does not commit. Returns the number of rows created.
    """
    linked = {p.id: p for p in item.properties}
    props = []
    for pid in property_ids:
        if pid in linked:
            props.append(linked[pid])
        else:
            result.record(pid, Outcome.SKIPPED_UNKNOWN)
    created_for = set()
    created = 0
    for ci in CharacterItem.query.filter_by(item_id=item.id).order_by(CharacterItem.id).all():
        have = {cip.property_id for cip in ci.properties}
        for prop in props:
            if prop.id in have:
                continue
            ci.properties.append(_seed_property(prop))
            created_for.add(prop.id)
            created += 1
    for prop in props:
        result.record(prop.id, Outcome.ATTACHED if prop.id in created_for else Outcome.SKIPPED_DUPLICATE)
    return created


def apply_property_removal(item: Item, property_ids: List[int], result: BatchResult) -> int:
    """Delete property instances for properties no longer on ``item``. Does not commit."""
    linked = {p.id for p in item.properties}
    targets = []
    for pid in property_ids:
        if pid in linked:
            result.record(pid, Outcome.SKIPPED_LINKED)
        else:
            targets.append(pid)
    if not targets:
        return 0
    rows = (
        CharacterItemProperty.query
        .join(CharacterItem, CharacterItemProperty.character_item_id == CharacterItem.id)
        .filter(CharacterItem.item_id == item.id, CharacterItemProperty.property_id.in_(targets))
        .all()
    )
    hit = set()
    for cip in rows:
        hit.add(cip.property_id)
        cip.character_item.properties.remove(cip)
        db.session.delete(cip)
    for pid in targets:
        result.record(pid, Outcome.DETACHED if pid in hit else Outcome.SKIPPED_ABSENT)
    return len(rows)


def propagate_property_addition(item_id, property_ids) -> BatchResult:
    wanted_raw = require_ids(property_ids)
    result = BatchResult()
    try:
        item = _get_item(item_id)
        created = apply_property_addition(item, unique_ids(wanted_raw, result), result)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("propagate_property_addition item_id=%s created=%s", item_id, created)
    return result


def propagate_property_removal(item_id, property_ids) -> BatchResult:
    wanted_raw = require_ids(property_ids)
    result = BatchResult()
    try:
        item = _get_item(item_id)
        removed = apply_property_removal(item, unique_ids(wanted_raw, result), result)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("propagate_property_removal item_id=%s removed=%s", item_id, removed)
    return result


def resync_item_properties(item_id) -> Dict[str, int]:
    """Make every instance of the item carry exactly the catalog's properties."""
    try:
        item = _get_item(item_id)
        linked = [p.id for p in item.properties]
        stray = {
            pid for (pid,) in (
                db.session.query(CharacterItemProperty.property_id)
                .join(CharacterItem, CharacterItemProperty.character_item_id == CharacterItem.id)
                .filter(CharacterItem.item_id == item.id)
                .distinct()
            )
            if pid not in linked
        }
        scratch = BatchResult()
        created = apply_property_addition(item, linked, scratch)
        removed = apply_property_removal(item, sorted(stray), scratch)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("resync_item_properties item_id=%s created=%s removed=%s", item_id, created, removed)
    return {"created": created, "removed": removed}


# ---------------------- instance state ----------------------

def _coerce(kind: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    allowed = UPDATABLE_FIELDS.get(kind)
    if allowed is None:
        raise BadRequest("E_KIND", f"Unknown instance kind: {kind}")
    unknown = sorted(set(fields) - set(allowed))
    if unknown:
        raise BadRequest("E_FIELD_INVALID", f"Fields not updatable on {kind}: {', '.join(unknown)}")
    out = {}
    for key, value in fields.items():
        if value is None:
            continue
        typ = allowed[key]
        if typ is bool and not isinstance(value, bool):
            raise BadRequest("E_FIELD_INVALID", f"{key} must be a boolean")
        if typ is int and (isinstance(value, bool) or not isinstance(value, int)):
            raise BadRequest("E_FIELD_INVALID", f"{key} must be an integer")
        out[key] = value
    return out


def update_instance(kind: str, instance_id, fields: Dict[str, Any]):
    """Partial update of one instance row.

    Absent or ``None`` fields are left alone. ``current_uses`` is clamped to
    ``[0, max]``. Setting an item's ``quantity`` to zero or less deletes the
    row; the function then returns ``None``.
    """
    changes = _coerce(kind, fields or {})
    deleted = False
    try:
        row = get_instance(kind, instance_id)
        if "quantity" in changes:
            qty = changes.pop("quantity")
            if qty <= 0:
                row.character.items.remove(row)
                delete_character_item(row)
                deleted = True
                changes = {}
            elif qty > 1 and not (row.stackable or row.item.stackable):
                raise BadRequest("E_NOT_STACKABLE", "Non-stackable items hold one copy per row.")
            else:
                row.quantity = qty
        if "current_uses" in changes:
            row.current_uses = clamp_uses(changes.pop("current_uses"), max_uses_for(kind, row))
        for key, value in changes.items():
            setattr(row, key, value)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "update_instance kind=%s instance_id=%s fields=%s deleted=%s",
        kind, instance_id, sorted(fields or {}), deleted,
    )
    return None if deleted else row


def _character_spell(character_id, spell_id) -> CharacterSpell:
    row = CharacterSpell.query.filter_by(character_id=character_id, spell_id=spell_id).first()
    if not row:
        raise NotFound("E_NO_INSTANCE", "The character does not have this spell")
    return row


def toggle_spell_prepared(character_id, spell_id) -> CharacterSpell:
    row = _character_spell(character_id, spell_id)
    return update_instance("spell", row.id, {"prepared": not row.prepared})


def toggle_spell_favourite(character_id, spell_id) -> CharacterSpell:
    row = _character_spell(character_id, spell_id)
    return update_instance("spell", row.id, {"favourite": not row.favourite})


def change_skill_uses(character_id, skill_id, uses: int) -> CharacterSkill:
    row = CharacterSkill.query.filter_by(character_id=character_id, skill_id=skill_id).first()
    if not row:
        raise NotFound("E_NO_INSTANCE", "The character does not have this skill")
    return update_instance("skill", row.id, {"current_uses": uses})
