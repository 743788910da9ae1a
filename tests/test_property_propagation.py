from sheetkeeper import create_app
from sheetkeeper.models import (
    db, Account, Character, Item, ItemProperty, CharacterItem, CharacterItemProperty,
)
from sheetkeeper.services import associations
from sheetkeeper.services.batch import Outcome
from sheetkeeper.services.items import add_properties_to_item, remove_properties_from_item


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
        alice = Account(username="alice"); alice.set_password("pw")
        bob = Account(username="bob"); bob.set_password("pw")
        c1 = Character(name="C1", account=alice)
        c2 = Character(name="C2", account=bob)
        light = ItemProperty(name="Light")
        charges = ItemProperty(name="Charges", base_max_uses=3)
        wand = Item(name="Wand", category="OTHER", max_uses=7)
        wand.properties.append(light)
        db.session.add_all([alice, bob, c1, c2, light, charges, wand])
        db.session.commit()
        ids = {"c1": c1.id, "c2": c2.id, "wand": wand.id, "light": light.id, "charges": charges.id}
        associations.attach_items(ids["c1"], [ids["wand"]])
        associations.attach_items(ids["c2"], [ids["wand"]])
        associations.attach_items(ids["c2"], [ids["wand"]])
    return app, ids


def _props_by_instance(item_id):
    return {
        ci.id: sorted(cip.property_id for cip in ci.properties)
        for ci in CharacterItem.query.filter_by(item_id=item_id).all()
    }


def test_adding_property_reaches_every_holder():
    app, ids = setup_data()
    with app.app_context():
        result = add_properties_to_item(ids["wand"], [ids["charges"]])
        assert result.ids(Outcome.ATTACHED) == [ids["charges"]]
        per_instance = _props_by_instance(ids["wand"])
        assert len(per_instance) == 3
        assert all(p == sorted([ids["light"], ids["charges"]]) for p in per_instance.values())
        seeded = CharacterItemProperty.query.filter_by(property_id=ids["charges"]).all()
        assert [cip.current_uses for cip in seeded] == [3, 3, 3]


def test_adding_twice_leaves_one_child_per_instance():
    app, ids = setup_data()
    with app.app_context():
        add_properties_to_item(ids["wand"], [ids["charges"]])
        again = add_properties_to_item(ids["wand"], [ids["charges"]])
        assert again.ids(Outcome.SKIPPED_DUPLICATE) == [ids["charges"]]
        assert CharacterItemProperty.query.filter_by(property_id=ids["charges"]).count() == 3

        rerun = associations.propagate_property_addition(ids["wand"], [ids["charges"]])
        assert rerun.ids(Outcome.SKIPPED_DUPLICATE) == [ids["charges"]]
        assert CharacterItemProperty.query.filter_by(property_id=ids["charges"]).count() == 3


def test_add_heals_missing_instances():
    app, ids = setup_data()
    with app.app_context():
        add_properties_to_item(ids["wand"], [ids["charges"]])
        # simulate a propagation that never reached one instance
        victim = CharacterItemProperty.query.filter_by(property_id=ids["charges"]).first()
        db.session.delete(victim)
        db.session.commit()

        add_properties_to_item(ids["wand"], [ids["charges"]])
        assert CharacterItemProperty.query.filter_by(property_id=ids["charges"]).count() == 3


def test_unknown_property_is_skipped():
    app, ids = setup_data()
    with app.app_context():
        result = add_properties_to_item(ids["wand"], [424242])
        assert result.ids(Outcome.SKIPPED_UNKNOWN) == [424242]
        assert not result.changed


def test_removing_property_reaches_every_holder_and_is_idempotent():
    app, ids = setup_data()
    with app.app_context():
        first = remove_properties_from_item(ids["wand"], [ids["light"]])
        assert first.ids(Outcome.DETACHED) == [ids["light"]]
        assert CharacterItemProperty.query.filter_by(property_id=ids["light"]).count() == 0
        assert all(p == [] for p in _props_by_instance(ids["wand"]).values())

        second = remove_properties_from_item(ids["wand"], [ids["light"]])
        assert second.ids(Outcome.SKIPPED_ABSENT) == [ids["light"]]
        assert len(_props_by_instance(ids["wand"])) == 3


def test_removal_propagation_keeps_linked_properties():
    app, ids = setup_data()
    with app.app_context():
        result = associations.propagate_property_removal(ids["wand"], [ids["light"]])
        assert result.ids(Outcome.SKIPPED_LINKED) == [ids["light"]]
        assert CharacterItemProperty.query.filter_by(property_id=ids["light"]).count() == 3


def test_resync_repairs_drift():
    app, ids = setup_data()
    with app.app_context():
        wand = db.session.get(Item, ids["wand"])
        charges = db.session.get(ItemProperty, ids["charges"])
        wand.properties.append(charges)
        stray = CharacterItem.query.filter_by(item_id=ids["wand"]).first()
        db.session.delete(stray.properties[0])
        db.session.commit()

        counts = associations.resync_item_properties(ids["wand"])
        assert counts == {"created": 4, "removed": 0}
        assert all(p == sorted([ids["light"], ids["charges"]]) for p in _props_by_instance(ids["wand"]).values())
