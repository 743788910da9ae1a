"""Per-character association rows linking a character to catalog entries."""

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlalchemy.orm import validates

from .base import db, Model
from .enums import SOURCES, normalize


class CharacterItem(Model):
    __tablename__ = "character_items"

    id = db.Column(db.Integer, primary_key=True)
    character_id = db.Column(
        db.Integer, db.ForeignKey("characters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id = db.Column(
        db.Integer, db.ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    source = db.Column(db.String(16))
    current_uses = db.Column(db.Integer)               # null = passive
    quantity = db.Column(db.Integer, nullable=False, default=1)
    stackable = db.Column(db.Boolean, nullable=False, default=False)   # copied at attach time
    equipped = db.Column(db.Boolean, nullable=False, default=False)
    attuned = db.Column(db.Boolean, nullable=False, default=False)
    favourite = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_character_items_qty_pos"),
        CheckConstraint("current_uses IS NULL OR current_uses >= 0", name="ck_character_items_uses_nonneg"),
        db.Index("ix_character_items_char_item", "character_id", "item_id"),
    )

    character = db.relationship("Character", back_populates="items")
    item = db.relationship("Item", back_populates="character_items")
    properties = db.relationship(
        "CharacterItemProperty",
        back_populates="character_item",
        cascade="all, delete-orphan",
        order_by="CharacterItemProperty.id",
    )

    @validates("source")
    def validate_source(self, key, value):
        return normalize(value, SOURCES, key)

    def property_for(self, property_id):
        for cip in self.properties:
            if cip.property_id == property_id:
                return cip
        return None


class CharacterItemProperty(Model):
    __tablename__ = "character_item_properties"

    id = db.Column(db.Integer, primary_key=True)
    character_item_id = db.Column(
        db.Integer, db.ForeignKey("character_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    property_id = db.Column(
        db.Integer, db.ForeignKey("item_properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    current_uses = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("character_item_id", "property_id", name="uq_character_item_property"),
        CheckConstraint("current_uses >= 0", name="ck_character_item_properties_uses_nonneg"),
    )

    character_item = db.relationship("CharacterItem", back_populates="properties")
    item_property = db.relationship("ItemProperty")


class CharacterSkill(Model):
    __tablename__ = "character_skills"

    id = db.Column(db.Integer, primary_key=True)
    character_id = db.Column(
        db.Integer, db.ForeignKey("characters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    skill_id = db.Column(
        db.Integer, db.ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True
    )
    source = db.Column(db.String(16))
    current_uses = db.Column(db.Integer)
    favourite = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("character_id", "skill_id", name="uq_character_skill"),
        CheckConstraint("current_uses IS NULL OR current_uses >= 0", name="ck_character_skills_uses_nonneg"),
    )

    character = db.relationship("Character", back_populates="skills")
    skill = db.relationship("Skill", back_populates="character_skills")

    @validates("source")
    def validate_source(self, key, value):
        return normalize(value, SOURCES, key)


class CharacterSpell(Model):
    __tablename__ = "character_spells"

    id = db.Column(db.Integer, primary_key=True)
    character_id = db.Column(
        db.Integer, db.ForeignKey("characters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    spell_id = db.Column(
        db.Integer, db.ForeignKey("spells.id", ondelete="CASCADE"), nullable=False, index=True
    )
    source = db.Column(db.String(16))
    prepared = db.Column(db.Boolean, nullable=False, default=False)
    favourite = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("character_id", "spell_id", name="uq_character_spell"),
    )

    character = db.relationship("Character", back_populates="spells")
    spell = db.relationship("Spell", back_populates="character_spells")

    @validates("source")
    def validate_source(self, key, value):
        return normalize(value, SOURCES, key)


# instance kinds addressed by id through the generic update path
INSTANCE_MODELS = {
    "item": CharacterItem,
    "item_property": CharacterItemProperty,
    "skill": CharacterSkill,
    "spell": CharacterSpell,
}
