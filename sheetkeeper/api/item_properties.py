from flask import Blueprint, jsonify
from flask_login import login_required

from ..security import current_principal
from ..services import catalog
from ..services.ownership import authorize_entry_read, require_admin
from .common import character_id_arg, json_body
from .serializers import item_property_json

bp = Blueprint("item_properties_api", __name__, url_prefix="/api/item-properties")


@bp.get("")
@login_required
def list_item_properties():
    require_admin(current_principal(), "list item properties")
    return jsonify(item_properties=[item_property_json(p) for p in catalog.list_item_properties()])


@bp.post("")
@login_required
def create_item_property():
    require_admin(current_principal(), "create item properties")
    return jsonify(item_property_json(catalog.create_item_property(json_body()))), 201


@bp.get("/<int:property_id>")
@login_required
def get_item_property(property_id: int):
    authorize_entry_read(current_principal(), "item_property", property_id, character_id_arg())
    return jsonify(item_property_json(catalog.get_item_property(property_id)))


@bp.patch("/<int:property_id>")
@login_required
def update_item_property(property_id: int):
    require_admin(current_principal(), "edit item properties")
    return jsonify(item_property_json(catalog.update_item_property(property_id, json_body())))


@bp.delete("/<int:property_id>")
@login_required
def delete_item_property(property_id: int):
    require_admin(current_principal(), "delete item properties")
    catalog.delete_item_property(property_id)
    return jsonify(ok=True, id=property_id)
