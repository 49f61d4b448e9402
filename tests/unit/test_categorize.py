# tests/unit/test_categorize.py
import pytest

from mealcart.core.categorize import (
    DEFAULT_CATEGORY,
    DRINKS,
    FRESH,
    GROCERY,
    HYGIENE,
    apply_alias,
    categorize,
    category_sort_key,
)


def test_unknown_name_falls_back_to_other():
    assert categorize("xylophone") == DEFAULT_CATEGORY == "Other"
    assert categorize("") == DEFAULT_CATEGORY


@pytest.mark.parametrize("name,expected", [
    ("Lait", FRESH),
    ("Pâtes", GROCERY),
    ("Coca-Cola", DRINKS),
    ("Ice Tea pêche", DRINKS),
    ("tomates cerises", FRESH),
    ("gel douche", HYGIENE),
    ("Papier toilette", HYGIENE),
])
def test_categorize_known_names(name, expected):
    assert categorize(name) == expected


def test_aliases_apply_before_lookup():
    assert apply_alias("Nutella") == "chocolat"
    assert apply_alias("ice  tea") == "ice tea"
    assert categorize("Nutella") == GROCERY


def test_alias_result_is_looked_up_in_exact_table():
    assert categorize("icetea") == DRINKS


def test_category_order_with_alphabetical_fallback():
    cats = ["Other", "Zeta", "Grocery", "Alpha", "Fresh"]
    assert sorted(cats, key=category_sort_key) == ["Grocery", "Fresh", "Other", "Alpha", "Zeta"]
