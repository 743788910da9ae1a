"""Item catalog endpoints and per-character item state."""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ..security import current_principal
from ..services import associations, items as item_svc
from ..services.ownership import authorize_character, authorize_entry_read, require_admin
from .common import character_id_arg, json_body, patch_instance
from .schemas import ids_body
from .serializers import character_item_json, item_json

bp = Blueprint("items_api", __name__, url_prefix="/api/items")


@bp.get("")
@login_required
def list_items():
    """Admins get the catalog; anyone may list a character they own with ``?character_id=``."""
    principal = current_principal()
    character_id = character_id_arg()
    if character_id is not None:
        authorize_character(principal, character_id)
        rows = item_svc.items_for_character(character_id)
        return jsonify(character_id=character_id, character_items=[character_item_json(ci) for ci in rows])
    require_admin(principal, "list the whole item catalog")
    rows = item_svc.list_items(request.args.get("category"))
    return jsonify(items=[item_json(i) for i in rows])


@bp.post("")
@login_required
def create_item():
    require_admin(current_principal(), "create items")
    item = item_svc.create_item(json_body())
    return jsonify(item_json(item)), 201


@bp.get("/<int:item_id>")
@login_required
def get_item(item_id: int):
    authorize_entry_read(current_principal(), "item", item_id, character_id_arg())
    return jsonify(item_json(item_svc.get_item(item_id)))


@bp.patch("/<int:item_id>")
@login_required
def update_item(item_id: int):
    require_admin(current_principal(), "edit items")
    item, state = item_svc.update_item(item_id, json_body())
    return jsonify(item=item_json(item), transition=state.value)


@bp.delete("/<int:item_id>")
@login_required
def delete_item(item_id: int):
    require_admin(current_principal(), "delete items")
    item_svc.delete_item(item_id)
    return jsonify(ok=True, id=item_id)


@bp.post("/<int:item_id>/properties/add")
@login_required
def add_properties(item_id: int):
    require_admin(current_principal(), "edit items")
    result = item_svc.add_properties_to_item(item_id, ids_body(json_body()))
    return jsonify(item_id=item_id, **result.as_dict())


@bp.put("/<int:item_id>/properties/remove")
@login_required
def remove_properties(item_id: int):
    require_admin(current_principal(), "edit items")
    result = item_svc.remove_properties_from_item(item_id, ids_body(json_body()))
    return jsonify(item_id=item_id, **result.as_dict())


@bp.post("/<int:item_id>/resync")
@login_required
def resync_item(item_id: int):
    require_admin(current_principal(), "edit items")
    counts = associations.resync_item_properties(item_id)
    return jsonify(item_id=item_id, **counts)


@bp.patch("/character-items/<int:instance_id>")
@login_required
def update_character_item(instance_id: int):
    return patch_instance("item", instance_id)


@bp.patch("/character-item-properties/<int:instance_id>")
@login_required
def update_character_item_property(instance_id: int):
    return patch_instance("item_property", instance_id)
