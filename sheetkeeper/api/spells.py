from flask import Blueprint, jsonify
from flask_login import login_required

from ..security import current_principal
from ..services import associations, catalog
from ..services.ownership import authorize_character, authorize_entry_read, require_admin
from .common import character_id_arg, json_body, patch_instance
from .serializers import character_spell_json, spell_json

bp = Blueprint("spells_api", __name__, url_prefix="/api/spells")


@bp.get("")
@login_required
def list_spells():
    principal = current_principal()
    character_id = character_id_arg()
    if character_id is not None:
        authorize_character(principal, character_id)
        pairs = catalog.spells_for_character(character_id)
        return jsonify(character_id=character_id, character_spells=[character_spell_json(cs) for _, cs in pairs])
    require_admin(principal, "list the whole spell catalog")
    return jsonify(spells=[spell_json(s) for s in catalog.list_spells()])


@bp.post("")
@login_required
def create_spell():
    require_admin(current_principal(), "create spells")
    return jsonify(spell_json(catalog.create_spell(json_body()))), 201


@bp.get("/<int:spell_id>")
@login_required
def get_spell(spell_id: int):
    authorize_entry_read(current_principal(), "spell", spell_id, character_id_arg())
    return jsonify(spell_json(catalog.get_spell(spell_id)))


@bp.patch("/<int:spell_id>")
@login_required
def update_spell(spell_id: int):
    require_admin(current_principal(), "edit spells")
    return jsonify(spell_json(catalog.update_spell(spell_id, json_body())))


@bp.delete("/<int:spell_id>")
@login_required
def delete_spell(spell_id: int):
    require_admin(current_principal(), "delete spells")
    catalog.delete_spell(spell_id)
    return jsonify(ok=True, id=spell_id)


@bp.patch("/character-spells/<int:instance_id>")
@login_required
def update_character_spell(instance_id: int):
    return patch_instance("spell", instance_id)


@bp.post("/<int:spell_id>/characters/<int:character_id>/toggle-prepared")
@login_required
def toggle_prepared(spell_id: int, character_id: int):
    authorize_character(current_principal(), character_id)
    row = associations.toggle_spell_prepared(character_id, spell_id)
    return jsonify(character_spell_json(row))


@bp.post("/<int:spell_id>/characters/<int:character_id>/toggle-favourite")
@login_required
def toggle_favourite(spell_id: int, character_id: int):
    authorize_character(current_principal(), character_id)
    row = associations.toggle_spell_favourite(character_id, spell_id)
    return jsonify(character_spell_json(row))
