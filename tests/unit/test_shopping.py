# tests/unit/test_shopping.py
import json

from mealcart.core.catalog import Catalog
from mealcart.core.models import BasketEntry, IngredientRow, ManualItem, Meal, MealIngredient, PlannedRecipe
from mealcart.core.shopping import (
    GroupKey,
    aggregate_totals,
    build_sections,
    decode_ledger,
    encode_ledger,
)

BEEF = GroupKey.of("Boeuf haché", "g", "Fresh")
TOMATO = GroupKey.of("Tomate", "g", "Fresh")


def test_basket_contribution_is_per_person_times_persons(catalog):
    two = aggregate_totals(catalog, [BasketEntry(meal_id=10, persons=2)])
    four = aggregate_totals(catalog, [BasketEntry(meal_id=10, persons=4)])
    assert two[BEEF].recipe_qty == 200
    assert four[BEEF].recipe_qty == 2 * two[BEEF].recipe_qty
    assert two[BEEF].display_name == "Boeuf haché"
    assert two[BEEF].contributing_ids == ["2_g"]


def test_meals_sharing_an_ingredient_fold_into_one_group(catalog):
    totals = aggregate_totals(catalog, [BasketEntry(meal_id=10, persons=2), BasketEntry(meal_id=11, persons=1)])
    assert totals[TOMATO].total_qty == 250
    assert totals[TOMATO].contributing_ids == ["1_g"]
    assert totals[TOMATO].linked_ingredient_id == 1


def test_dangling_references_are_skipped():
    catalog = Catalog(meals=[Meal(id=1, name="Fantome", ingredients=[MealIngredient(ingredient_id=42, qty_per_person=1)])])
    totals = aggregate_totals(catalog, [BasketEntry(meal_id=1, persons=2), BasketEntry(meal_id=999, persons=1)])
    assert totals == {}


def test_planned_recipe_rows_are_scaled(catalog):
    recipe = PlannedRecipe(
        title="Gratin",
        servings=6,
        base_servings=4,
        ingredients=[
            IngredientRow(name="Tomate", unit="g", quantity=200, base_quantity=200, canonical_id=1),
            IngredientRow(name="sel", unit=""),
            IngredientRow(name="Pomme", quantity=2, is_selected=False),
        ],
    )
    totals = aggregate_totals(catalog, planned_recipes=[recipe])
    assert totals[TOMATO].recipe_qty == 300
    salt = totals[GroupKey.of("sel", "", "Grocery")]
    assert salt.contributing_ids == [f"planned:{recipe.id}:{recipe.ingredients[1].id}"]
    assert salt.has_recipe
    assert all(key.name != "pomme" for key in totals)


def test_manual_items_are_manual_contributions(catalog):
    items = [
        ManualItem(ingredient_id=1, name="", category="", quantity=2),
        ManualItem(name="Piles", category="Other"),
    ]
    totals = aggregate_totals(catalog, [BasketEntry(meal_id=12, persons=1)], manual_items=items)
    tomato = totals[TOMATO]
    assert (tomato.total_qty, tomato.recipe_qty, tomato.manual_qty) == (5, 3, 2)
    assert tomato.contributing_ids == ["1_g"]
    batteries = totals[GroupKey.of("Piles", "", "Other")]
    assert batteries.has_manual and batteries.total_qty == 0
    assert batteries.contributing_ids == [f"manual:{items[1].id}"]


def test_sections_are_ordered_and_checked(catalog):
    totals = aggregate_totals(catalog, [BasketEntry(meal_id=10, persons=2)],
                              manual_items=[ManualItem(name="Piles", category="Other")])
    sections, _ = build_sections(totals, {}, {"1_g"})
    assert [s.category for s in sections] == ["Grocery", "Fresh", "Other"]
    fresh = sections[1].items
    assert [i.name for i in fresh] == ["Boeuf haché", "Tomate"]
    assert [i.checked for i in fresh] == [False, True]
    assert fresh[1].id == "1_g"
    assert sections[2].items[0].total_quantity == 0


def test_build_clamps_ledger_to_current_recipe_quantity(catalog):
    totals = aggregate_totals(catalog, [BasketEntry(meal_id=10, persons=2)])
    ghost = GroupKey("ghost", "g", "other")
    sections, ledger = build_sections(totals, {BEEF: 500, ghost: 3}, set())
    assert ledger == {BEEF: 200}
    beef = next(i for s in sections for i in s.items if i.name == "Boeuf haché")
    assert beef.total_quantity == 0
    for key, amount in ledger.items():
        assert amount <= totals[key].recipe_qty


def test_group_key_folds_case_accents_and_separator():
    assert GroupKey.of(" Crème ", "CL", "Fresh") == GroupKey("creme", "cl", "fresh")
    key = GroupKey.of("a|b", "g", "Other")
    assert GroupKey.decode(key.encode()) == key


def test_ledger_round_trip_is_exact():
    ledger = {GroupKey.of("Crème | fraîche", "cl", "Fresh"): 0.1 + 0.2, BEEF: 200.0}
    raw = json.loads(json.dumps(encode_ledger(ledger)))
    assert decode_ledger(raw) == ledger


def test_malformed_ledger_keys_are_dropped():
    assert decode_ledger({"a|b": 1, "x|y|z": 2}) == {GroupKey("x", "y", "z"): 2.0}
