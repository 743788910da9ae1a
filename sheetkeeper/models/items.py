"""Item catalog: a base ``items`` table plus joined subtype tables.

``weapons`` and ``armors`` share their primary key with ``items.id``. The
``category`` column is the discriminator; CONSUMABLE and OTHER rows have no
subtype row and load as plain :class:`Item`.
"""

from sqlalchemy import case
from sqlalchemy.orm import validates

from .base import db, Model
from .enums import COST_UNITS, ITEM_CATEGORIES, RARITIES, RESET_TYPES, non_negative, normalize


# link table; the surrogate id keeps the property list in insertion order
item_item_properties = db.Table(
    "item_item_properties",
    db.Column("id", db.Integer, primary_key=True),
    db.Column("item_id", db.Integer, db.ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True),
    db.Column("property_id", db.Integer, db.ForeignKey("item_properties.id", ondelete="CASCADE"), nullable=False, index=True),
    db.UniqueConstraint("item_id", "property_id", name="uq_item_property"),
)


class ItemProperty(Model):
    __tablename__ = "item_properties"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    description = db.Column(db.String(1024))
    base_max_uses = db.Column(db.Integer)   # 0 or null = passive
    reset_on = db.Column(db.String(16))

    @validates("base_max_uses")
    def validate_base_max_uses(self, key, value):
        return non_negative(value, key)

    @validates("reset_on")
    def validate_reset_on(self, key, value):
        return normalize(value, RESET_TYPES, key)

    def __repr__(self) -> str:
        return f"<ItemProperty {self.id} {self.name}>"


class Item(Model):
    __tablename__ = "items"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    description_template = db.Column(db.String(4096))
    summary_template = db.Column(db.String(2048))
    icon_url = db.Column(db.String(256))
    cost_quantity = db.Column(db.Float)
    cost_unit = db.Column(db.String(4))
    rarity = db.Column(db.String(16), nullable=False, default="COMMON")
    weight = db.Column(db.Float, nullable=False, default=0.0)
    category = db.Column(db.String(16), nullable=False, default="OTHER", index=True)
    requires_attunement = db.Column(db.Boolean, nullable=False, default=False)

    reset_on = db.Column(db.String(16))
    max_uses = db.Column(db.Integer)                       # fixed override, null = passive
    max_uses_auto_calculated = db.Column(db.Boolean, nullable=False, default=False)
    max_uses_formula = db.Column(db.String(128))           # opaque, evaluated elsewhere
    stackable = db.Column(db.Boolean, nullable=False, default=False)

    properties = db.relationship(
        "ItemProperty",
        secondary=item_item_properties,
        order_by=item_item_properties.c.id,
    )
    character_items = db.relationship(
        "CharacterItem", back_populates="item", passive_deletes=True
    )

    __mapper_args__ = {
        "polymorphic_on": case(
            (category == "WEAPON", "WEAPON"),
            (category == "ARMOR", "ARMOR"),
            else_="ITEM",
        ),
        "polymorphic_identity": "ITEM",
    }

    @validates("category")
    def validate_category(self, key, value):
        return normalize(value, ITEM_CATEGORIES, key)

    @validates("rarity")
    def validate_rarity(self, key, value):
        return normalize(value, RARITIES, key)

    @validates("cost_unit")
    def validate_cost_unit(self, key, value):
        return normalize(value, COST_UNITS, key)

    @validates("max_uses")
    def validate_max_uses(self, key, value):
        return non_negative(value, key)

    @validates("reset_on")
    def validate_reset_on(self, key, value):
        return normalize(value, RESET_TYPES, key)

    @property
    def property_ids(self):
        return [p.id for p in self.properties]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id} {self.name} [{self.category}]>"


class Weapon(Item):
    __tablename__ = "weapons"

    id = db.Column(db.Integer, db.ForeignKey("items.id", ondelete="CASCADE"), primary_key=True)
    range = db.Column(db.String(64))
    damage = db.Column(db.String(64))

    __mapper_args__ = {"polymorphic_identity": "WEAPON"}

    def __init__(self, **kw):
        kw.setdefault("category", "WEAPON")
        super().__init__(**kw)


class Armor(Item):
    __tablename__ = "armors"

    id = db.Column(db.Integer, db.ForeignKey("items.id", ondelete="CASCADE"), primary_key=True)
    armor_class_formula = db.Column(db.String(128))

    __mapper_args__ = {"polymorphic_identity": "ARMOR"}

    def __init__(self, **kw):
        kw.setdefault("category", "ARMOR")
        super().__init__(**kw)


# subtype-only columns, by category
SUBTYPE_FIELDS = {
    "WEAPON": ("range", "damage"),
    "ARMOR": ("armor_class_formula",),
}

SUBTYPE_MODELS = {
    "WEAPON": Weapon,
    "ARMOR": Armor,
}


def model_for_category(category: str):
    return SUBTYPE_MODELS.get(category, Item)
