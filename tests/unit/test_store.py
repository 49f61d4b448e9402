# tests/unit/test_store.py
from uuid import uuid4

import pytest

from mealcart.core.models import IngredientRow, PlannerState
from mealcart.core.shopping import GroupKey
from mealcart.core.store import BASKET, CONSUMED, MANUAL, PlannerStore

TOMATO = GroupKey.of("Tomate", "g", "Fresh")


@pytest.fixture
def store(catalog):
    return PlannerStore(catalog)


def _item(store, name):
    return next((i for s in store.build_shopping_sections() for i in s.items if i.name == name), None)


def test_two_phase_toggle(store):
    store.add_to_basket(12, 1)
    store.add_manual_item("tomate", quantity=2, ingredient_id=1)
    assert _item(store, "Tomate").total_quantity == 5

    store.toggle_or_remove("Tomate", "g", "Fresh")
    assert store.checked == {"1_g"}
    assert store.consumed == {}
    assert _item(store, "Tomate").checked

    store.toggle_or_remove("Tomate", "g", "Fresh")
    assert store.consumed == {TOMATO: 3}
    assert store.manual_items == []
    assert store.checked == set()

    # recipe still in the basket: row stays, fully bought
    tomato = _item(store, "Tomate")
    assert tomato.total_quantity == 0
    assert not tomato.checked


def test_two_phase_toggle_removes_manual_only_group(store):
    store.add_manual_quick("Piles @Hygiene")
    store.toggle_or_remove("Piles", "", "Hygiene")
    store.toggle_or_remove("Piles", "", "Hygiene")
    assert store.manual_items == []
    assert store.consumed == {}
    assert store.build_shopping_sections() == []


def test_toggle_on_absent_group_is_a_noop(store):
    events = []
    store.subscribe(lambda name, _: events.append(name))
    store.toggle_or_remove("Rien", "", "Other")
    assert events == []


def test_shrinking_basket_clamps_consumed(store):
    store.add_to_basket(10, 4)
    store.toggle_or_remove("Tomate", "g", "Fresh")
    store.toggle_or_remove("Tomate", "g", "Fresh")
    assert store.consumed[TOMATO] == 200

    events = []
    store.subscribe(lambda name, _: events.append(name))
    store.update_basket_persons(10, 2)
    store.build_shopping_sections()
    assert store.consumed[TOMATO] == 100
    assert events == [BASKET, CONSUMED]
    totals = store.aggregate_totals()
    assert all(amount <= totals[key].recipe_qty for key, amount in store.consumed.items())


def test_basket_upsert_and_clamp(store):
    events = []
    unsubscribe = store.subscribe(lambda name, _: events.append(name))
    store.add_to_basket(10, 0)
    store.add_to_basket(10, 3)
    assert [(b.meal_id, b.persons) for b in store.basket] == [(10, 3)]
    assert events == [BASKET, BASKET]

    unsubscribe()
    store.clear_basket()
    assert store.basket == []
    assert events == [BASKET, BASKET]
    assert store.update_basket_persons(10, 2) is False


def test_linked_manual_items_merge_by_ingredient_and_unit(store):
    store.add_manual_item("x", quantity=1, ingredient_id=4)
    store.add_manual_item("x", quantity=1.5, ingredient_id=4)
    store.add_manual_item("x", unit="l", quantity=1, ingredient_id=4)
    assert [(m.name, m.unit, m.quantity) for m in store.manual_items] == [("Lait", "ml", 2.5), ("Lait", "l", 1)]


def test_unlinked_manual_items_are_appended(store):
    store.add_manual_item("Piles", quantity=-3)
    store.add_manual_item("Piles")
    assert len(store.manual_items) == 2
    assert store.manual_items[0].quantity == 0
    assert store.add_manual_item("   ") is None


def test_quick_add_infers_or_overrides_category(store):
    assert store.add_manual_quick("lait").category == "Fresh"
    assert store.add_manual_quick("xylophone").category == "Other"
    forced = store.add_manual_quick("piles @Hygiene")
    assert (forced.name, forced.category, forced.unit, forced.quantity) == ("piles", "Hygiene", "", 0)
    assert store.add_manual_quick("  ") is None


def test_update_and_remove_manual_item(store):
    item = store.add_manual_item("Piles", quantity=2)
    assert store.update_manual_item(item.id, -1).quantity == 0
    assert store.update_manual_item(uuid4(), 1) is None
    events = []
    store.subscribe(lambda name, _: events.append(name))
    assert store.remove_manual_item(item.id) is True
    assert store.remove_manual_item(item.id) is False
    assert events == [MANUAL]


def test_planned_recipe_lifecycle(store):
    recipe = store.add_planned_recipe("  ", 4, [IngredientRow(name="Tomate", unit="g", quantity=200, canonical_id=1)])
    assert recipe.title == "Recette"
    assert recipe.base_servings == 4
    assert recipe.ingredients[0].base_quantity == 200

    store.update_planned_servings(recipe.id, 6)
    assert store.aggregate_totals()[TOMATO].recipe_qty == 300
    assert store.update_planned_servings(uuid4(), 2) is None

    assert store.remove_planned_recipe(recipe.id) is True
    assert store.remove_planned_recipe(recipe.id) is False


def test_group_and_single_check_toggles(store):
    store.add_to_basket(10, 1)
    store.toggle_checked_for_group("Boeuf haché", "g", "Fresh")
    assert "2_g" in store.checked
    store.toggle_checked_for_group("Boeuf haché", "g", "Fresh")
    assert "2_g" not in store.checked
    assert store.toggle_checked("manual:x") is True
    assert store.toggle_checked("manual:x") is False


def test_suggest_manual_names(store):
    assert store.suggest_manual_names("to") == ["tomate", "papier toilette"]
    assert store.suggest_manual_names("Via") == ["viande", "viande hachee"]
    assert store.suggest_manual_names(" ") == []


def test_snapshot_round_trip(catalog, store):
    store.add_to_basket(10, 2)
    store.add_manual_item("Piles", quantity=0.1 + 0.2)
    store.toggle_or_remove("Tomate", "g", "Fresh")
    store.toggle_or_remove("Tomate", "g", "Fresh")

    state = PlannerState.model_validate_json(store.snapshot().model_dump_json())
    restored = PlannerStore(catalog, state)
    assert restored.consumed == store.consumed
    assert restored.manual_items == store.manual_items
    assert restored.basket == store.basket

    store.reset_consumed()
    assert store.consumed == {}
