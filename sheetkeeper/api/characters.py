"""Character CRUD plus batch attach/detach of catalog entries."""

from flask import Blueprint, jsonify
from flask_login import login_required

from ..errors import NotFound
from ..security import current_principal
from ..services import associations, characters as character_svc
from ..services.ownership import authorize_character, get_character
from .common import json_body
from .schemas import IdListSchema, ids_body
from .serializers import character_json

bp = Blueprint("characters_api", __name__, url_prefix="/api/characters")

KIND_BY_SEGMENT = {"spells": "spell", "skills": "skill", "items": "item"}


def _kind(segment: str) -> str:
    kind = KIND_BY_SEGMENT.get(segment)
    if kind is None:
        raise NotFound("E_NO_ROUTE", f"Unknown collection: {segment}")
    return kind


@bp.get("")
@login_required
def list_characters():
    rows = character_svc.list_characters(current_principal())
    return jsonify(characters=[character_json(c) for c in rows])


@bp.post("")
@login_required
def create_character():
    data = json_body()
    char = character_svc.create_character(current_principal(), data)
    return jsonify(character_json(char, full=True)), 201


@bp.get("/<int:character_id>")
@login_required
def get_character_detail(character_id: int):
    authorize_character(current_principal(), character_id)
    return jsonify(character_json(get_character(character_id), full=True))


@bp.patch("/<int:character_id>")
@login_required
def update_character(character_id: int):
    authorize_character(current_principal(), character_id)
    data = json_body()
    char = character_svc.update_character(character_id, data)
    return jsonify(character_json(char, full=True))


@bp.delete("/<int:character_id>")
@login_required
def delete_character(character_id: int):
    authorize_character(current_principal(), character_id)
    removed = character_svc.delete_character(character_id)
    return jsonify(ok=True, removed=removed)


@bp.post("/<int:character_id>/<segment>/add")
@login_required
def attach(character_id: int, segment: str):
    """Body: ``{"ids": [..], "source": "CLASS"}``. Unknown and duplicate ids are skipped."""
    kind = _kind(segment)
    authorize_character(current_principal(), character_id)
    body = IdListSchema.model_validate(json_body())
    result = associations.attach_catalog_to_character(kind, character_id, body.ids, body.source)
    return jsonify(character_id=character_id, kind=kind, **result.as_dict())


@bp.put("/<int:character_id>/<segment>/remove")
@login_required
def detach(character_id: int, segment: str):
    kind = _kind(segment)
    authorize_character(current_principal(), character_id)
    result = associations.detach_catalog_from_character(kind, character_id, ids_body(json_body()))
    return jsonify(character_id=character_id, kind=kind, **result.as_dict())


@bp.put("/<int:character_id>/character-items/remove")
@login_required
def detach_character_items(character_id: int):
    authorize_character(current_principal(), character_id)
    result = associations.detach_character_items(character_id, ids_body(json_body()))
    return jsonify(character_id=character_id, kind="character_item", **result.as_dict())
