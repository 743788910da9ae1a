from sqlalchemy import func, select

from sheetkeeper import create_app
from sheetkeeper.models import (
    db, Account, Character, Item, Weapon, ItemProperty, Skill, Spell,
    CharacterItem, CharacterItemProperty, CharacterSkill, CharacterSpell,
    item_item_properties,
)
from sheetkeeper.services import associations, catalog
from sheetkeeper.services.accounts import delete_account
from sheetkeeper.services.characters import delete_character
from sheetkeeper.services.items import delete_item


def setup_data():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "AUTO_CREATE_TABLES": False,
        "BOOTSTRAP_ADMIN": False,
    })
    with app.app_context():
        db.drop_all(); db.create_all()
        acct = Account(username="alice"); acct.set_password("pw")
        c1 = Character(name="One", account=acct)
        c2 = Character(name="Two", account=acct)
        keen = ItemProperty(name="Keen", base_max_uses=1)
        axe = Weapon(name="Axe", damage="1d12")
        axe.properties.append(keen)
        rage = Skill(name="Rage", max_uses=2)
        bless = Spell(name="Bless", level=1)
        db.session.add_all([acct, c1, c2, axe, rage, bless])
        db.session.commit()
        ids = {"acct": acct.id, "c1": c1.id, "c2": c2.id, "axe": axe.id, "keen": keen.id,
               "rage": rage.id, "bless": bless.id}
        for cid in (ids["c1"], ids["c2"]):
            associations.attach_items(cid, [ids["axe"]])
            associations.attach_skills(cid, [ids["rage"]])
            associations.attach_spells(cid, [ids["bless"]])
    return app, ids


def _count(model):
    return db.session.execute(select(func.count()).select_from(model.__table__)).scalar()


def test_delete_character_removes_its_instances_only():
    app, ids = setup_data()
    with app.app_context():
        removed = delete_character(ids["c1"])
        assert removed == {"items": 1, "skills": 1, "spells": 1}
        assert db.session.get(Character, ids["c1"]) is None
        assert _count(CharacterItem) == 1
        assert _count(CharacterItemProperty) == 1
        assert _count(CharacterSkill) == 1
        assert _count(CharacterSpell) == 1


def test_delete_account_removes_everything_it_owns():
    app, ids = setup_data()
    with app.app_context():
        assert delete_account("alice") == 2
        assert _count(Account) == 0
        assert _count(Character) == 0
        assert _count(CharacterItem) == 0
        assert _count(CharacterItemProperty) == 0
        assert _count(CharacterSkill) == 0
        assert _count(CharacterSpell) == 0
        # catalog is untouched
        assert _count(Item) == 1 and _count(Skill) == 1 and _count(Spell) == 1


def test_delete_item_removes_instances_links_and_subtype_row():
    app, ids = setup_data()
    with app.app_context():
        delete_item(ids["axe"])
        assert _count(Item) == 0
        assert _count(Weapon) == 0
        assert _count(CharacterItem) == 0
        assert _count(CharacterItemProperty) == 0
        assert db.session.execute(select(func.count()).select_from(item_item_properties)).scalar() == 0
        assert _count(ItemProperty) == 1


def test_delete_catalog_entries_cascade_to_instances():
    app, ids = setup_data()
    with app.app_context():
        catalog.delete_skill(ids["rage"])
        catalog.delete_spell(ids["bless"])
        assert _count(CharacterSkill) == 0
        assert _count(CharacterSpell) == 0

        catalog.delete_item_property(ids["keen"])
        assert _count(CharacterItemProperty) == 0
        assert db.session.execute(select(func.count()).select_from(item_item_properties)).scalar() == 0
        assert db.session.get(Item, ids["axe"]).properties == []
        assert _count(CharacterItem) == 2
