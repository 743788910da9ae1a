"""Character-independent catalog definitions: skills and spells."""

from sqlalchemy.orm import validates

from .base import db, Model
from .enums import RESET_TYPES, SCHOOLS, non_negative, normalize


class Skill(Model):
    __tablename__ = "skills"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    description_template = db.Column(db.String(2048))
    summary_template = db.Column(db.String(1024))
    icon_url = db.Column(db.String(256))
    reset_on = db.Column(db.String(16))
    max_uses = db.Column(db.Integer)                  # null or 0 = passive
    auto_calculated = db.Column(db.Boolean, nullable=False, default=False)
    auto_formula = db.Column(db.String(128))          # e.g. "proficiencyBonus", opaque here
    categories = db.Column(db.JSON, nullable=False, default=list)

    character_skills = db.relationship(
        "CharacterSkill", back_populates="skill", passive_deletes=True
    )

    @validates("reset_on")
    def validate_reset_on(self, key, value):
        return normalize(value, RESET_TYPES, key)

    @validates("max_uses")
    def validate_max_uses(self, key, value):
        return non_negative(value, key)

    def __repr__(self) -> str:
        return f"<Skill {self.id} {self.name}>"


class Spell(Model):
    __tablename__ = "spells"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    level = db.Column(db.Integer, nullable=False, default=0)
    icon_url = db.Column(db.String(256))
    concentration = db.Column(db.Boolean, nullable=False, default=False)
    description_template = db.Column(db.String(2048))
    summary_template = db.Column(db.String(1024))
    school = db.Column(db.String(16))
    categories = db.Column(db.JSON, nullable=False, default=list)

    character_spells = db.relationship(
        "CharacterSpell", back_populates="spell", passive_deletes=True
    )

    @validates("school")
    def validate_school(self, key, value):
        return normalize(value, SCHOOLS, key)

    @validates("level")
    def validate_level(self, key, value):
        if value is not None and not 0 <= int(value) <= 9:
            raise ValueError("spell level must be between 0 and 9")
        return value

    def __repr__(self) -> str:
        return f"<Spell {self.id} {self.name}>"
