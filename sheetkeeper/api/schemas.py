"""Request body schemas for the JSON endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt, conlist, constr


class StrictBody(BaseModel):
    model_config = ConfigDict(extra="forbid")


class CredentialsSchema(StrictBody):
    username: constr(strip_whitespace=True, min_length=1, max_length=64)
    password: constr(min_length=1, max_length=256)


class AccountUpdateSchema(StrictBody):
    current_password: str
    username: Optional[constr(strip_whitespace=True, min_length=1, max_length=64)] = None
    password: Optional[constr(min_length=1, max_length=256)] = None


class PasswordResetSchema(StrictBody):
    password: constr(min_length=1, max_length=256)


class IdListSchema(StrictBody):
    ids: conlist(StrictInt, min_length=1, max_length=500)
    source: Optional[constr(max_length=16)] = None


class SkillUsesSchema(StrictBody):
    current_uses: StrictInt


class ItemInstancePatch(StrictBody):
    current_uses: Optional[StrictInt] = None
    quantity: Optional[StrictInt] = None
    equipped: Optional[StrictBool] = None
    attuned: Optional[StrictBool] = None
    favourite: Optional[StrictBool] = None


class ItemPropertyInstancePatch(StrictBody):
    current_uses: Optional[StrictInt] = None


class SkillInstancePatch(StrictBody):
    current_uses: Optional[StrictInt] = None
    favourite: Optional[StrictBool] = None


class SpellInstancePatch(StrictBody):
    prepared: Optional[StrictBool] = None
    favourite: Optional[StrictBool] = None


INSTANCE_PATCH_SCHEMAS = {
    "item": ItemInstancePatch,
    "item_property": ItemPropertyInstancePatch,
    "skill": SkillInstancePatch,
    "spell": SpellInstancePatch,
}


def ids_body(data: dict) -> List[int]:
    return IdListSchema.model_validate(data).ids
