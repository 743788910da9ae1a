"""Item catalog operations, including subtype category changes.

Changing an item's category moves its subtype row between the joined
``weapons``/``armors`` tables while the ``items`` row (and everything keyed
on its id) stays put::

    NO_CHANGE ──(category differs)──> SUBTYPE_SWAP ──(expunge + get)──> RELOADED

After the swap the mapped object in the session still has the old class,
so it is expunged and the item is loaded again by id before anything else
touches it.
"""

import enum
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, insert

from ..errors import BadRequest, NotFound
from ..models import (
    db,
    Item,
    ItemProperty,
    CharacterItem,
    SUBTYPE_FIELDS,
    SUBTYPE_MODELS,
    model_for_category,
)
from ..models.enums import ITEM_CATEGORIES, normalize
from .associations import (
    apply_property_addition,
    apply_property_removal,
    delete_character_item,
    require_ids,
)
from .batch import BatchResult, Outcome, unique_ids
from .ownership import get_character

logger = logging.getLogger(__name__)

BASE_FIELDS = (
    "name",
    "description_template",
    "summary_template",
    "icon_url",
    "cost_quantity",
    "cost_unit",
    "rarity",
    "weight",
    "requires_attunement",
    "reset_on",
    "max_uses",
    "max_uses_auto_calculated",
    "max_uses_formula",
    "stackable",
)

ALL_SUBTYPE_FIELDS = {f for fields in SUBTYPE_FIELDS.values() for f in fields}

ACCEPTED_KEYS = set(BASE_FIELDS) | ALL_SUBTYPE_FIELDS | {"category", "property_ids", "id"}


class CategoryTransition(str, enum.Enum):
    NO_CHANGE = "no_change"
    SUBTYPE_SWAP = "subtype_swap"
    RELOADED = "reloaded"


def _category(value) -> str:
    try:
        return normalize(value, ITEM_CATEGORIES, "category")
    except ValueError as e:
        raise BadRequest("E_CATEGORY_INVALID", str(e))


def _assign(obj, key, value) -> None:
    try:
        setattr(obj, key, value)
    except ValueError as e:
        raise BadRequest("E_FIELD_INVALID", str(e))


def _check_keys(data: Dict[str, Any]) -> None:
    unknown = sorted(set(data) - ACCEPTED_KEYS)
    if unknown:
        raise BadRequest("E_FIELD_INVALID", f"Unknown item fields: {', '.join(unknown)}")


def _subtype_values(category: str, data: Dict[str, Any]) -> Dict[str, Any]:
    fields = SUBTYPE_FIELDS.get(category, ())
    stray = sorted(k for k in data if k in ALL_SUBTYPE_FIELDS and k not in fields)
    if stray:
        logger.warning("item subtype fields ignored category=%s fields=%s", category, stray)
    return {f: data.get(f) for f in fields}


def _clamp_item_instances(item: Item) -> None:
    if item.max_uses_auto_calculated or item.max_uses is None:
        return
    (
        CharacterItem.query
        .filter(CharacterItem.item_id == item.id, CharacterItem.current_uses > item.max_uses)
        .update({CharacterItem.current_uses: item.max_uses}, synchronize_session=False)
    )


def get_item(item_id) -> Item:
    item = db.session.get(Item, item_id)
    if not item:
        raise NotFound("E_NO_ITEM", "Item not found")
    return item


def list_items(category: Optional[str] = None) -> List[Item]:
    q = Item.query
    if category:
        q = q.filter(Item.category == _category(category))
    return q.order_by(Item.id.asc()).all()


def items_for_character(character_id) -> List[CharacterItem]:
    get_character(character_id)
    return (
        CharacterItem.query
        .filter_by(character_id=character_id)
        .order_by(CharacterItem.id.asc())
        .all()
    )


def create_item(data: Dict[str, Any]) -> Item:
    data = dict(data or {})
    _check_keys(data)
    name = (data.get("name") or "").strip()
    if not name:
        raise BadRequest("E_NAME_REQUIRED", "name is required")
    category = _category(data.get("category") or "OTHER")
    property_ids = require_ids(data["property_ids"]) if data.get("property_ids") else []

    try:
        item = model_for_category(category)(category=category)
        _assign(item, "name", name)
        for key in BASE_FIELDS:
            if key != "name" and data.get(key) is not None:
                _assign(item, key, data[key])
        for key, value in _subtype_values(category, data).items():
            setattr(item, key, value)
        if property_ids:
            found = {p.id: p for p in ItemProperty.query.filter(ItemProperty.id.in_(property_ids)).all()}
            for pid in dict.fromkeys(property_ids):
                if pid in found:
                    item.properties.append(found[pid])
                else:
                    logger.warning("create_item unknown property_id=%s skipped", pid)
        db.session.add(item)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("create_item item_id=%s category=%s name=%s", item.id, category, name)
    return item


def _swap_subtype_row(item_id: int, old_category: str, new_category: str, values: Dict[str, Any]) -> None:
    old_model = SUBTYPE_MODELS.get(old_category)
    new_model = SUBTYPE_MODELS.get(new_category)
    if old_model is not None:
        table = old_model.__table__
        db.session.execute(delete(table).where(table.c.id == item_id))
    if new_model is not None:
        db.session.execute(insert(new_model.__table__).values(id=item_id, **values))


def update_item(item_id, data: Dict[str, Any]) -> Tuple[Item, CategoryTransition]:
    """Partial update of a catalog item; a new ``category`` swaps its subtype.

    Returns the item as loaded after the update together with the last
    transition state reached (``NO_CHANGE`` or ``RELOADED``).
    """
    data = dict(data or {})
    _check_keys(data)
    if "name" in data and data["name"] is not None and not str(data["name"]).strip():
        raise BadRequest("E_NAME_REQUIRED", "name cannot be blank")
    try:
        item = get_item(item_id)
        old_category = item.category
        new_category = _category(data["category"]) if data.get("category") else old_category

        for key in BASE_FIELDS:
            if data.get(key) is not None:
                _assign(item, key, data[key])
        if data.get("property_ids") is not None:
            logger.warning("update_item item_id=%s property_ids ignored; use the property link endpoints", item_id)
        if "max_uses" in data or "max_uses_auto_calculated" in data:
            db.session.flush()
            _clamp_item_instances(item)

        if new_category == old_category:
            state = CategoryTransition.NO_CHANGE
            for key, value in _subtype_values(old_category, data).items():
                if value is not None:
                    setattr(item, key, value)
            db.session.commit()
        else:
            state = CategoryTransition.SUBTYPE_SWAP
            item.category = new_category
            db.session.flush()
            _swap_subtype_row(item.id, old_category, new_category, _subtype_values(new_category, data))

            db.session.expunge(item)
            db.session.expire_all()
            item = db.session.get(Item, item_id)
            if item is None or item.category != new_category:
                raise RuntimeError(f"item {item_id} did not reload as {new_category}")
            state = CategoryTransition.RELOADED
            db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "update_item item_id=%s category=%s->%s state=%s",
        item_id, old_category, new_category, state.value,
    )
    return item, state


def change_item_category(item_id, category, subtype_fields: Optional[Dict[str, Any]] = None) -> Item:
    data = dict(subtype_fields or {})
    data["category"] = category
    item, _ = update_item(item_id, data)
    return item


def add_properties_to_item(item_id, property_ids) -> BatchResult:
    """Link properties to the item and give every existing copy an instance of each.

    Propagation runs for every requested property that ends up on the item,
    including ones that were already linked, so a retry fills in instances a
    previous failed call left missing.
    """
    wanted_raw = require_ids(property_ids)
    result = BatchResult()
    try:
        item = get_item(item_id)
        wanted = unique_ids(wanted_raw, result)
        found = {}
        if wanted:
            found = {p.id: p for p in ItemProperty.query.filter(ItemProperty.id.in_(wanted)).all()}
        linked = set(item.property_ids)
        for pid in wanted:
            if pid not in found:
                result.record(pid, Outcome.SKIPPED_UNKNOWN)
            elif pid in linked:
                result.record(pid, Outcome.SKIPPED_DUPLICATE)
            else:
                item.properties.append(found[pid])
                linked.add(pid)
                result.record(pid, Outcome.ATTACHED)
        db.session.flush()
        created = apply_property_addition(item, [pid for pid in wanted if pid in found], BatchResult())
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "add_properties_to_item item_id=%s outcomes=%s instances_created=%s",
        item_id, result.counts(), created,
    )
    return result


def remove_properties_from_item(item_id, property_ids) -> BatchResult:
    wanted_raw = require_ids(property_ids)
    result = BatchResult()
    try:
        item = get_item(item_id)
        wanted = unique_ids(wanted_raw, result)
        linked = {p.id: p for p in item.properties}
        for pid in wanted:
            prop = linked.get(pid)
            if prop is None:
                result.record(pid, Outcome.SKIPPED_ABSENT)
                continue
            item.properties.remove(prop)
            result.record(pid, Outcome.DETACHED)
        db.session.flush()
        removed = apply_property_removal(item, wanted, BatchResult())
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "remove_properties_from_item item_id=%s outcomes=%s instances_removed=%s",
        item_id, result.counts(), removed,
    )
    return result


def delete_item(item_id) -> None:
    try:
        item = get_item(item_id)
        copies = list(item.character_items)
        for ci in copies:
            delete_character_item(ci)
        item.properties.clear()
        db.session.flush()
        db.session.expire(item, ["character_items"])
        # ORM delete removes the subtype row before the base row
        db.session.delete(item)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("delete_item item_id=%s character_items_removed=%s", item_id, len(copies))
