from flask import Blueprint, jsonify
from flask_login import login_required

from ..security import current_principal
from ..services import associations, catalog
from ..services.ownership import authorize_character, authorize_entry_read, require_admin
from .common import character_id_arg, json_body, patch_instance
from .schemas import SkillUsesSchema
from .serializers import character_skill_json, skill_json

bp = Blueprint("skills_api", __name__, url_prefix="/api/skills")


@bp.get("")
@login_required
def list_skills():
    principal = current_principal()
    character_id = character_id_arg()
    if character_id is not None:
        authorize_character(principal, character_id)
        pairs = catalog.skills_for_character(character_id)
        return jsonify(character_id=character_id, character_skills=[character_skill_json(cs) for _, cs in pairs])
    require_admin(principal, "list the whole skill catalog")
    return jsonify(skills=[skill_json(s) for s in catalog.list_skills()])


@bp.post("")
@login_required
def create_skill():
    require_admin(current_principal(), "create skills")
    return jsonify(skill_json(catalog.create_skill(json_body()))), 201


@bp.get("/<int:skill_id>")
@login_required
def get_skill(skill_id: int):
    authorize_entry_read(current_principal(), "skill", skill_id, character_id_arg())
    return jsonify(skill_json(catalog.get_skill(skill_id)))


@bp.patch("/<int:skill_id>")
@login_required
def update_skill(skill_id: int):
    require_admin(current_principal(), "edit skills")
    return jsonify(skill_json(catalog.update_skill(skill_id, json_body())))


@bp.delete("/<int:skill_id>")
@login_required
def delete_skill(skill_id: int):
    require_admin(current_principal(), "delete skills")
    catalog.delete_skill(skill_id)
    return jsonify(ok=True, id=skill_id)


@bp.patch("/character-skills/<int:instance_id>")
@login_required
def update_character_skill(instance_id: int):
    return patch_instance("skill", instance_id)


@bp.put("/<int:skill_id>/characters/<int:character_id>/uses")
@login_required
def change_uses(skill_id: int, character_id: int):
    authorize_character(current_principal(), character_id)
    body = SkillUsesSchema.model_validate(json_body())
    row = associations.change_skill_uses(character_id, skill_id, body.current_uses)
    return jsonify(character_skill_json(row))
