import datetime as dt

from .base import db, Model


class Character(Model):
    __tablename__ = "characters"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(
        db.Integer, db.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # identity
    name = db.Column(db.String(80), nullable=False, index=True)
    race = db.Column(db.String(64))
    character_class = db.Column(db.String(64))
    background = db.Column(db.String(64))
    alignment = db.Column(db.String(32))
    icon_url = db.Column(db.String(256))

    # progression / combat basics
    level = db.Column(db.Integer, nullable=False, default=1)
    experience = db.Column(db.Integer, nullable=False, default=0)
    armor_class = db.Column(db.Integer, nullable=False, default=10)
    current_hp = db.Column(db.Integer, nullable=False, default=0)
    max_hp = db.Column(db.Integer, nullable=False, default=0)
    temp_hp = db.Column(db.Integer, nullable=False, default=0)
    speed = db.Column(db.Integer, nullable=False, default=30)

    # easy-mode bucket for the rest of the sheet (ability scores, coins, slots...)
    sheet = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, nullable=False, default=dt.datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow
    )

    account = db.relationship("Account", back_populates="characters")

    items = db.relationship(
        "CharacterItem", back_populates="character",
        cascade="all, delete-orphan", order_by="CharacterItem.id",
    )
    skills = db.relationship(
        "CharacterSkill", back_populates="character",
        cascade="all, delete-orphan", order_by="CharacterSkill.id",
    )
    spells = db.relationship(
        "CharacterSpell", back_populates="character",
        cascade="all, delete-orphan", order_by="CharacterSpell.id",
    )

    def __repr__(self) -> str:
        return f"<Character {self.id} {self.name}>"
