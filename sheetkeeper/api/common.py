from typing import Optional

from flask import jsonify, request

from ..errors import BadRequest
from ..security import current_principal
from ..services import associations
from ..services.ownership import authorize_instance
from .schemas import INSTANCE_PATCH_SCHEMAS
from .serializers import INSTANCE_SERIALIZERS


def json_body() -> dict:
    data = request.get_json(force=True, silent=True) or {}
    if not isinstance(data, dict):
        raise BadRequest("E_BODY_INVALID", "JSON object expected")
    return data


def character_id_arg() -> Optional[int]:
    raw = request.args.get("character_id")
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise BadRequest("E_CHAR_INVALID", "character_id must be an integer")


def patch_instance(kind: str, instance_id: int):
    """Owner (or admin) PATCH of one instance row; null fields are left alone."""
    authorize_instance(current_principal(), kind, instance_id)
    fields = INSTANCE_PATCH_SCHEMAS[kind].model_validate(json_body()).model_dump(exclude_unset=True)
    row = associations.update_instance(kind, instance_id, fields)
    if row is None:
        return jsonify(id=instance_id, deleted=True)
    return jsonify(INSTANCE_SERIALIZERS[kind](row))
