import pytest

from sheetkeeper import create_app
from sheetkeeper.errors import BadRequest, NotFound
from sheetkeeper.models import (
    db, Account, Character, Item, Weapon, ItemProperty, Skill, Spell,
    CharacterItem, CharacterItemProperty, CharacterSkill, CharacterSpell,
)
from sheetkeeper.services import associations
from sheetkeeper.services.batch import Outcome

TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test",
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "AUTO_CREATE_TABLES": False,
    "BOOTSTRAP_ADMIN": False,
}


def setup_data():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        db.drop_all(); db.create_all()
        acct = Account(username="alice")
        acct.set_password("pw")
        char = Character(name="Hero", account=acct)
        db.session.add_all([acct, char])
        p1 = ItemProperty(name="Charges", base_max_uses=2, reset_on="LONG_REST")
        p2 = ItemProperty(name="Cursed", base_max_uses=0)
        potion = Item(name="Potion", category="CONSUMABLE", stackable=True, max_uses=3)
        potion.properties.extend([p1, p2])
        sword = Weapon(name="Sword", damage="1d8 slashing", range="5")
        sword.properties.append(p1)
        fireball = Spell(name="Fireball", level=3, school="EVOCATION")
        surge = Skill(name="Action Surge", max_uses=1, reset_on="SHORT_REST")
        db.session.add_all([potion, sword, fireball, surge])
        db.session.commit()
        ids = {
            "char": char.id, "potion": potion.id, "sword": sword.id,
            "p1": p1.id, "p2": p2.id, "fireball": fireball.id, "surge": surge.id,
        }
    return app, ids


def test_stackable_item_attached_twice_is_one_row():
    app, ids = setup_data()
    with app.app_context():
        r1 = associations.attach_items(ids["char"], [ids["potion"]])
        r2 = associations.attach_items(ids["char"], [ids["potion"]])
        assert r1.ids(Outcome.ATTACHED) == [ids["potion"]]
        assert r2.ids(Outcome.STACKED) == [ids["potion"]]
        rows = CharacterItem.query.filter_by(character_id=ids["char"], item_id=ids["potion"]).all()
        assert len(rows) == 1
        assert rows[0].quantity == 2


def test_non_stackable_item_attached_twice_is_two_rows():
    app, ids = setup_data()
    with app.app_context():
        associations.attach_items(ids["char"], [ids["sword"]])
        associations.attach_items(ids["char"], [ids["sword"]])
        rows = CharacterItem.query.filter_by(character_id=ids["char"], item_id=ids["sword"]).all()
        assert len(rows) == 2
        assert all(r.quantity == 1 for r in rows)
        assert all(len(r.properties) == 1 for r in rows)


def test_new_instance_gets_one_property_row_per_catalog_property():
    app, ids = setup_data()
    with app.app_context():
        associations.attach_items(ids["char"], [ids["potion"]], source="item")
        ci = CharacterItem.query.filter_by(item_id=ids["potion"]).one()
        assert ci.source == "ITEM"
        assert ci.current_uses == 3
        seeded = {cip.property_id: cip.current_uses for cip in ci.properties}
        assert seeded == {ids["p1"]: 2, ids["p2"]: 0}


def test_stacking_does_not_add_property_rows():
    app, ids = setup_data()
    with app.app_context():
        associations.attach_items(ids["char"], [ids["potion"]])
        associations.attach_items(ids["char"], [ids["potion"]])
        assert CharacterItemProperty.query.count() == 2


def test_scenario_stack_then_remove_property():
    from sheetkeeper.services.items import remove_properties_from_item

    app, ids = setup_data()
    with app.app_context():
        associations.attach_items(ids["char"], [ids["potion"]])
        associations.attach_items(ids["char"], [ids["potion"]])
        ci = CharacterItem.query.filter_by(item_id=ids["potion"]).one()
        assert ci.quantity == 2
        assert ci.current_uses == 3
        assert sorted(cip.current_uses for cip in ci.properties) == [0, 2]

        remove_properties_from_item(ids["potion"], [ids["p2"]])

        ci = CharacterItem.query.filter_by(item_id=ids["potion"]).one()
        assert [(cip.property_id, cip.current_uses) for cip in ci.properties] == [(ids["p1"], 2)]


def test_unknown_and_repeated_ids_are_skipped():
    app, ids = setup_data()
    with app.app_context():
        result = associations.attach_items(ids["char"], [ids["sword"], 9999, ids["sword"]])
        assert result.ids(Outcome.ATTACHED) == [ids["sword"]]
        assert result.ids(Outcome.SKIPPED_UNKNOWN) == [9999]
        assert result.ids(Outcome.SKIPPED_DUPLICATE) == [ids["sword"]]
        assert CharacterItem.query.count() == 1


def test_attach_spells_and_skills_skip_existing():
    app, ids = setup_data()
    with app.app_context():
        r = associations.attach_spells(ids["char"], [ids["fireball"]], source="CLASS")
        assert r.ids(Outcome.ATTACHED) == [ids["fireball"]]
        r = associations.attach_spells(ids["char"], [ids["fireball"]], source="CLASS")
        assert r.ids(Outcome.SKIPPED_DUPLICATE) == [ids["fireball"]]
        assert not r.changed
        cs = CharacterSpell.query.one()
        assert cs.prepared is False and cs.favourite is False and cs.source == "CLASS"

        associations.attach_skills(ids["char"], [ids["surge"]])
        sk = CharacterSkill.query.one()
        assert sk.current_uses == 1


def test_attach_requires_existing_character_and_ids():
    app, ids = setup_data()
    with app.app_context():
        with pytest.raises(NotFound):
            associations.attach_spells(4242, [ids["fireball"]])
        with pytest.raises(BadRequest):
            associations.attach_spells(ids["char"], None)
        with pytest.raises(BadRequest):
            associations.attach_skills(ids["char"], [])
        with pytest.raises(BadRequest):
            associations.attach_items(ids["char"], [ids["sword"]], source="STOLEN")
        with pytest.raises(BadRequest):
            associations.attach_catalog_to_character("feat", ids["char"], [1])


def test_detach_absent_is_a_no_op():
    app, ids = setup_data()
    with app.app_context():
        r = associations.detach_spells(ids["char"], [ids["fireball"]])
        assert r.ids(Outcome.SKIPPED_ABSENT) == [ids["fireball"]]
        r = associations.detach_items(ids["char"], [ids["sword"]])
        assert r.ids(Outcome.SKIPPED_ABSENT) == [ids["sword"]]


def test_detach_items_removes_every_copy_and_children():
    app, ids = setup_data()
    with app.app_context():
        associations.attach_items(ids["char"], [ids["sword"]])
        associations.attach_items(ids["char"], [ids["sword"], ids["potion"]])
        r = associations.detach_catalog_from_character("item", ids["char"], [ids["sword"]])
        assert r.ids(Outcome.DETACHED) == [ids["sword"]]
        remaining = CharacterItem.query.all()
        assert [ci.item_id for ci in remaining] == [ids["potion"]]
        assert CharacterItemProperty.query.count() == 2


def test_detach_single_copy_by_instance_id():
    app, ids = setup_data()
    with app.app_context():
        associations.attach_items(ids["char"], [ids["sword"]])
        associations.attach_items(ids["char"], [ids["sword"]])
        first, second = CharacterItem.query.order_by(CharacterItem.id).all()
        r = associations.detach_character_items(ids["char"], [first.id, 777])
        assert r.ids(Outcome.DETACHED) == [first.id]
        assert r.ids(Outcome.SKIPPED_ABSENT) == [777]
        assert [ci.id for ci in CharacterItem.query.all()] == [second.id]


def test_spell_toggles_and_skill_uses():
    app, ids = setup_data()
    with app.app_context():
        associations.attach_spells(ids["char"], [ids["fireball"]])
        associations.attach_skills(ids["char"], [ids["surge"]])
        assert associations.toggle_spell_prepared(ids["char"], ids["fireball"]).prepared is True
        assert associations.toggle_spell_prepared(ids["char"], ids["fireball"]).prepared is False
        assert associations.toggle_spell_favourite(ids["char"], ids["fireball"]).favourite is True
        assert associations.change_skill_uses(ids["char"], ids["surge"], 5).current_uses == 1
        assert associations.change_skill_uses(ids["char"], ids["surge"], -3).current_uses == 0
        with pytest.raises(NotFound):
            associations.toggle_spell_prepared(ids["char"], 999)
