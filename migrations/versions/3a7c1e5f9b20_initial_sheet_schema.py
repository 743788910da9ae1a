"""
Initial schema: accounts, characters, catalog (skills, spells, items with
weapon/armor subtypes, item properties) and per-character instance tables

Revision ID: 3a7c1e5f9b20
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


revision = "3a7c1e5f9b20"
down_revision = None
branch_labels = None
depends_on = None


def _json_type():
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import JSONB
        return JSONB
    return sa.JSON


def upgrade() -> None:
    json_type = _json_type()

    # --- Accounts & characters ---
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
    )
    op.create_index(op.f("ix_accounts_username"), "accounts", ["username"], unique=True)

    op.create_table(
        "characters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("race", sa.String(length=64), nullable=True),
        sa.Column("character_class", sa.String(length=64), nullable=True),
        sa.Column("background", sa.String(length=64), nullable=True),
        sa.Column("alignment", sa.String(length=32), nullable=True),
        sa.Column("icon_url", sa.String(length=256), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("experience", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("armor_class", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("current_hp", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("max_hp", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("temp_hp", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("speed", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column("sheet", json_type, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_characters_account_id"), "characters", ["account_id"], unique=False)
    op.create_index(op.f("ix_characters_name"), "characters", ["name"], unique=False)

    # --- Catalog ---
    op.create_table(
        "skills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description_template", sa.String(length=2048), nullable=True),
        sa.Column("summary_template", sa.String(length=1024), nullable=True),
        sa.Column("icon_url", sa.String(length=256), nullable=True),
        sa.Column("reset_on", sa.String(length=16), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("auto_calculated", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("auto_formula", sa.String(length=128), nullable=True),
        sa.Column("categories", json_type, nullable=False),
    )
    op.create_index(op.f("ix_skills_name"), "skills", ["name"], unique=False)

    op.create_table(
        "spells",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("icon_url", sa.String(length=256), nullable=True),
        sa.Column("concentration", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("description_template", sa.String(length=2048), nullable=True),
        sa.Column("summary_template", sa.String(length=1024), nullable=True),
        sa.Column("school", sa.String(length=16), nullable=True),
        sa.Column("categories", json_type, nullable=False),
    )
    op.create_index(op.f("ix_spells_name"), "spells", ["name"], unique=False)

    op.create_table(
        "item_properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("base_max_uses", sa.Integer(), nullable=True),
        sa.Column("reset_on", sa.String(length=16), nullable=True),
    )
    op.create_index(op.f("ix_item_properties_name"), "item_properties", ["name"], unique=False)

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description_template", sa.String(length=4096), nullable=True),
        sa.Column("summary_template", sa.String(length=2048), nullable=True),
        sa.Column("icon_url", sa.String(length=256), nullable=True),
        sa.Column("cost_quantity", sa.Float(), nullable=True),
        sa.Column("cost_unit", sa.String(length=4), nullable=True),
        sa.Column("rarity", sa.String(length=16), nullable=False, server_default="COMMON"),
        sa.Column("weight", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("category", sa.String(length=16), nullable=False, server_default="OTHER"),
        sa.Column("requires_attunement", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("reset_on", sa.String(length=16), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("max_uses_auto_calculated", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("max_uses_formula", sa.String(length=128), nullable=True),
        sa.Column("stackable", sa.Boolean(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index(op.f("ix_items_name"), "items", ["name"], unique=False)
    op.create_index(op.f("ix_items_category"), "items", ["category"], unique=False)

    # subtype tables share the items primary key
    op.create_table(
        "weapons",
        sa.Column("id", sa.Integer(), sa.ForeignKey("items.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("range", sa.String(length=64), nullable=True),
        sa.Column("damage", sa.String(length=64), nullable=True),
    )
    op.create_table(
        "armors",
        sa.Column("id", sa.Integer(), sa.ForeignKey("items.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("armor_class_formula", sa.String(length=128), nullable=True),
    )

    op.create_table(
        "item_item_properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("item_properties.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("item_id", "property_id", name="uq_item_property"),
    )
    op.create_index(op.f("ix_item_item_properties_item_id"), "item_item_properties", ["item_id"], unique=False)
    op.create_index(op.f("ix_item_item_properties_property_id"), "item_item_properties", ["property_id"], unique=False)

    # --- Per-character instances ---
    op.create_table(
        "character_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("character_id", sa.Integer(), sa.ForeignKey("characters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=True),
        sa.Column("current_uses", sa.Integer(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("stackable", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("equipped", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("attuned", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("favourite", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("quantity >= 1", name="ck_character_items_qty_pos"),
        sa.CheckConstraint("current_uses IS NULL OR current_uses >= 0", name="ck_character_items_uses_nonneg"),
    )
    op.create_index(op.f("ix_character_items_character_id"), "character_items", ["character_id"], unique=False)
    op.create_index(op.f("ix_character_items_item_id"), "character_items", ["item_id"], unique=False)
    op.create_index("ix_character_items_char_item", "character_items", ["character_id", "item_id"], unique=False)

    op.create_table(
        "character_item_properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("character_item_id", sa.Integer(), sa.ForeignKey("character_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("item_properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("current_uses", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("character_item_id", "property_id", name="uq_character_item_property"),
        sa.CheckConstraint("current_uses >= 0", name="ck_character_item_properties_uses_nonneg"),
    )
    op.create_index(
        op.f("ix_character_item_properties_character_item_id"),
        "character_item_properties", ["character_item_id"], unique=False,
    )
    op.create_index(
        op.f("ix_character_item_properties_property_id"),
        "character_item_properties", ["property_id"], unique=False,
    )

    op.create_table(
        "character_skills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("character_id", sa.Integer(), sa.ForeignKey("characters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("skill_id", sa.Integer(), sa.ForeignKey("skills.id", ondelete="CASCADE"), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=True),
        sa.Column("current_uses", sa.Integer(), nullable=True),
        sa.Column("favourite", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("character_id", "skill_id", name="uq_character_skill"),
        sa.CheckConstraint("current_uses IS NULL OR current_uses >= 0", name="ck_character_skills_uses_nonneg"),
    )
    op.create_index(op.f("ix_character_skills_character_id"), "character_skills", ["character_id"], unique=False)
    op.create_index(op.f("ix_character_skills_skill_id"), "character_skills", ["skill_id"], unique=False)

    op.create_table(
        "character_spells",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("character_id", sa.Integer(), sa.ForeignKey("characters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("spell_id", sa.Integer(), sa.ForeignKey("spells.id", ondelete="CASCADE"), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=True),
        sa.Column("prepared", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("favourite", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("character_id", "spell_id", name="uq_character_spell"),
    )
    op.create_index(op.f("ix_character_spells_character_id"), "character_spells", ["character_id"], unique=False)
    op.create_index(op.f("ix_character_spells_spell_id"), "character_spells", ["spell_id"], unique=False)


def downgrade() -> None:
    for table in (
        "character_spells",
        "character_skills",
        "character_item_properties",
        "character_items",
        "item_item_properties",
        "armors",
        "weapons",
        "items",
        "item_properties",
        "spells",
        "skills",
        "characters",
        "accounts",
    ):
        op.drop_table(table)
