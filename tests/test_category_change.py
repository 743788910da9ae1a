import pytest
from sqlalchemy import select

from sheetkeeper import create_app
from sheetkeeper.errors import BadRequest
from sheetkeeper.models import (
    db, Account, Character, Item, Weapon, Armor, ItemProperty, CharacterItem,
)
from sheetkeeper.services import associations
from sheetkeeper.services.items import (
    CategoryTransition,
    change_item_category,
    create_item,
    update_item,
)


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
        char = Character(name="Hero", account=acct)
        heavy = ItemProperty(name="Heavy")
        db.session.add_all([acct, char, heavy])
        db.session.commit()
        blade = create_item({
            "name": "Blade", "category": "weapon", "damage": "1d8", "range": "5",
            "property_ids": [heavy.id],
        })
        ids = {"char": char.id, "blade": blade.id, "heavy": heavy.id}
        associations.attach_items(ids["char"], [ids["blade"]])
    return app, ids


def _subtype_row(model, item_id):
    table = model.__table__
    return db.session.execute(select(table).where(table.c.id == item_id)).first()


def test_create_dispatches_on_category():
    app, ids = setup_data()
    with app.app_context():
        blade = db.session.get(Item, ids["blade"])
        assert isinstance(blade, Weapon)
        assert blade.damage == "1d8"
        plain = create_item({"name": "Rope", "category": "other", "weight": 10})
        assert type(plain) is Item
        with pytest.raises(BadRequest):
            create_item({"category": "WEAPON"})
        with pytest.raises(BadRequest):
            create_item({"name": "Thing", "category": "VEHICLE"})


def test_weapon_to_armor_preserves_identity_properties_and_instances():
    app, ids = setup_data()
    with app.app_context():
        before = CharacterItem.query.filter_by(item_id=ids["blade"]).one()
        instance_id = before.id

        item = change_item_category(ids["blade"], "ARMOR", {"armor_class_formula": "13 + DEX"})

        assert isinstance(item, Armor)
        assert item.id == ids["blade"]
        assert item.category == "ARMOR"
        assert item.armor_class_formula == "13 + DEX"
        assert item.property_ids == [ids["heavy"]]
        assert _subtype_row(Weapon, ids["blade"]) is None
        assert _subtype_row(Armor, ids["blade"]) is not None

        after = CharacterItem.query.filter_by(item_id=ids["blade"]).one()
        assert after.id == instance_id
        assert [cip.property_id for cip in after.properties] == [ids["heavy"]]


def test_same_category_updates_in_place():
    app, ids = setup_data()
    with app.app_context():
        item, state = update_item(ids["blade"], {"damage": "2d6", "name": "Greatblade"})
        assert state is CategoryTransition.NO_CHANGE
        assert isinstance(item, Weapon)
        assert item.damage == "2d6"
        assert item.name == "Greatblade"


def test_swap_applies_base_fields_and_reloads():
    app, ids = setup_data()
    with app.app_context():
        item, state = update_item(ids["blade"], {"category": "CONSUMABLE", "stackable": True, "weight": 0.5})
        assert state is CategoryTransition.RELOADED
        assert type(item) is Item
        assert item.stackable is True
        assert item.weight == 0.5
        assert _subtype_row(Weapon, ids["blade"]) is None

        item, state = update_item(ids["blade"], {"category": "WEAPON", "damage": "1d4"})
        assert state is CategoryTransition.RELOADED
        assert isinstance(item, Weapon)
        assert item.damage == "1d4"


def test_update_rejects_unknown_fields():
    app, ids = setup_data()
    with app.app_context():
        with pytest.raises(BadRequest):
            update_item(ids["blade"], {"colour": "red"})
        with pytest.raises(BadRequest):
            update_item(ids["blade"], {"rarity": "MYTHIC"})
        assert db.session.get(Item, ids["blade"]).rarity == "COMMON"


def test_negative_max_uses_is_rejected():
    app, ids = setup_data()
    with app.app_context():
        with pytest.raises(BadRequest):
            create_item({"name": "Bad", "max_uses": -2})
        assert Item.query.filter_by(name="Bad").count() == 0

        with pytest.raises(BadRequest):
            update_item(ids["blade"], {"max_uses": -1})
        with pytest.raises(BadRequest):
            update_item(ids["blade"], {"category": "ARMOR", "max_uses": -1})
        blade = db.session.get(Item, ids["blade"])
        assert isinstance(blade, Weapon)
        assert blade.max_uses is None


def test_attach_seeds_non_negative_uses():
    app, ids = setup_data()
    with app.app_context():
        item = create_item({"name": "Wand", "max_uses": 0})
        associations.attach_items(ids["char"], [item.id])
        row = CharacterItem.query.filter_by(item_id=item.id).one()
        assert row.current_uses == 0
        assert row.character_id == ids["char"]
