from .base import db, Model, metadata

# Import model modules so tables register with metadata
from .accounts import Account                    # noqa: F401
from .characters import Character                # noqa: F401
from .catalog import Skill, Spell                # noqa: F401
from .items import (                             # noqa: F401
    Item, Weapon, Armor, ItemProperty, item_item_properties,
    SUBTYPE_FIELDS, SUBTYPE_MODELS, model_for_category,
)
from .instances import (                         # noqa: F401
    CharacterItem, CharacterItemProperty, CharacterSkill, CharacterSpell,
    INSTANCE_MODELS,
)

__all__ = [
    "db", "Model", "metadata",
    "Account", "Character",
    "Skill", "Spell",
    "Item", "Weapon", "Armor", "ItemProperty", "item_item_properties",
    "SUBTYPE_FIELDS", "SUBTYPE_MODELS", "model_for_category",
    "CharacterItem", "CharacterItemProperty", "CharacterSkill", "CharacterSpell",
    "INSTANCE_MODELS",
]
