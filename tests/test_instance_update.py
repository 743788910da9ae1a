import pytest

from sheetkeeper import create_app
from sheetkeeper.errors import BadRequest, NotFound
from sheetkeeper.models import (
    db, Account, Character, Item, ItemProperty, Skill, Spell,
    CharacterItem, CharacterItemProperty, CharacterSkill, CharacterSpell,
)
from sheetkeeper.services import associations, catalog
from sheetkeeper.services.associations import update_instance


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
        charges = ItemProperty(name="Charges", base_max_uses=3)
        staff = Item(name="Staff", category="OTHER", max_uses=5)
        staff.properties.append(charges)
        arrows = Item(name="Arrows", category="CONSUMABLE", stackable=True)
        ki = Skill(name="Ki", max_uses=4)
        inspiration = Skill(name="Inspiration", auto_calculated=True, auto_formula="charismaModifier")
        shield = Spell(name="Shield", level=1)
        db.session.add_all([acct, char, staff, arrows, ki, inspiration, shield])
        db.session.commit()
        ids = {
            "char": char.id, "staff": staff.id, "arrows": arrows.id,
            "ki": ki.id, "inspiration": inspiration.id, "shield": shield.id,
        }
        associations.attach_items(ids["char"], [ids["staff"], ids["arrows"]])
        associations.attach_skills(ids["char"], [ids["ki"], ids["inspiration"]])
        associations.attach_spells(ids["char"], [ids["shield"]])
        ids["ci_staff"] = CharacterItem.query.filter_by(item_id=ids["staff"]).one().id
        ids["ci_arrows"] = CharacterItem.query.filter_by(item_id=ids["arrows"]).one().id
        ids["cip"] = CharacterItemProperty.query.one().id
        ids["cs_ki"] = CharacterSkill.query.filter_by(skill_id=ids["ki"]).one().id
        ids["cs_insp"] = CharacterSkill.query.filter_by(skill_id=ids["inspiration"]).one().id
        ids["csp"] = CharacterSpell.query.one().id
    return app, ids


def test_current_uses_is_clamped():
    app, ids = setup_data()
    with app.app_context():
        assert update_instance("item", ids["ci_staff"], {"current_uses": 99}).current_uses == 5
        assert update_instance("item", ids["ci_staff"], {"current_uses": -2}).current_uses == 0
        assert update_instance("item_property", ids["cip"], {"current_uses": 10}).current_uses == 3
        assert update_instance("skill", ids["cs_ki"], {"current_uses": 9}).current_uses == 4


def test_formula_driven_maximum_only_clamps_below():
    app, ids = setup_data()
    with app.app_context():
        assert update_instance("skill", ids["cs_insp"], {"current_uses": 12}).current_uses == 12
        assert update_instance("skill", ids["cs_insp"], {"current_uses": -1}).current_uses == 0


def test_absent_and_null_fields_are_left_alone():
    app, ids = setup_data()
    with app.app_context():
        update_instance("item", ids["ci_staff"], {"equipped": True, "current_uses": 2})
        row = update_instance("item", ids["ci_staff"], {"attuned": True, "current_uses": None})
        assert row.equipped is True
        assert row.attuned is True
        assert row.current_uses == 2
        spell = update_instance("spell", ids["csp"], {"prepared": True})
        assert spell.prepared is True and spell.favourite is False


def test_bad_fields_are_rejected():
    app, ids = setup_data()
    with app.app_context():
        with pytest.raises(BadRequest):
            update_instance("spell", ids["csp"], {"current_uses": 1})
        with pytest.raises(BadRequest):
            update_instance("item", ids["ci_staff"], {"equipped": "yes"})
        with pytest.raises(BadRequest):
            update_instance("item", ids["ci_staff"], {"quantity": 2})
        with pytest.raises(BadRequest):
            update_instance("weapon", 1, {})
        with pytest.raises(NotFound):
            update_instance("item", 9999, {"equipped": True})


def test_quantity_updates_and_zero_deletes():
    app, ids = setup_data()
    with app.app_context():
        assert update_instance("item", ids["ci_arrows"], {"quantity": 20}).quantity == 20
        assert update_instance("item", ids["ci_arrows"], {"quantity": 0}) is None
        assert db.session.get(CharacterItem, ids["ci_arrows"]) is None

        assert update_instance("item", ids["ci_staff"], {"quantity": -1}) is None
        assert CharacterItem.query.count() == 0
        assert CharacterItemProperty.query.count() == 0


def test_lowering_catalog_maximum_clamps_instances():
    app, ids = setup_data()
    with app.app_context():
        update_instance("skill", ids["cs_ki"], {"current_uses": 4})
        catalog.update_skill(ids["ki"], {"max_uses": 2})
        assert db.session.get(CharacterSkill, ids["cs_ki"]).current_uses == 2

        catalog.update_item_property(db.session.get(CharacterItemProperty, ids["cip"]).property_id, {"base_max_uses": 1})
        assert db.session.get(CharacterItemProperty, ids["cip"]).current_uses == 1


def test_negative_catalog_maximum_is_rejected():
    app, ids = setup_data()
    with app.app_context():
        with pytest.raises(BadRequest):
            catalog.create_item_property({"name": "Cursed", "base_max_uses": -1})
        with pytest.raises(BadRequest):
            catalog.update_skill(ids["ki"], {"max_uses": -3})
        assert db.session.get(Skill, ids["ki"]).max_uses == 4
        assert db.session.get(CharacterSkill, ids["cs_ki"]).current_uses == 4
        assert ItemProperty.query.filter_by(name="Cursed").count() == 0


def test_clamp_ignores_a_negative_upper_bound():
    assert associations.clamp_uses(5, -3) == 5
    assert associations.clamp_uses(-5, -3) == 0
    assert associations.clamp_uses(5, 2) == 2
