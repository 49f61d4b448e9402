# tests/conftest.py
import pytest

from mealcart.core.catalog import Catalog

CATALOG_PAYLOAD = {
    "ingredients": [
        {"id": 1, "name": "Tomate", "category": "Fresh", "unit": "g"},
        {"id": 2, "name": "Viande hachée", "category": "Fresh", "unit": "g", "canonicalName": "Boeuf haché"},
        {"id": 3, "name": "Pâtes", "category": "Grocery", "unit": "g"},
        {"id": 4, "name": "Lait", "category": "Fresh", "unit": "ml"},
    ],
    "meals": [
        {"id": 10, "name": "Bolognaise", "type": "plat", "ingredients": [
            {"ingredient_id": 2, "unit": "g", "qty_per_person": 100},
            {"ingredient_id": 3, "unit": "g", "qty_per_person": 125},
            {"ingredient_id": 1, "unit": "g", "qty_per_person": 50},
        ]},
        {"id": 11, "name": "Salade de tomates", "type": "entree", "ingredients": [
            {"ingredient_id": 1, "unit": "g", "qty_per_person": 150},
        ]},
        {"id": 12, "name": "Tomates nature", "type": "entree", "ingredients": [
            {"ingredient_id": 1, "unit": None, "qty_per_person": 3},
        ]},
    ],
}


@pytest.fixture
def catalog_payload():
    return CATALOG_PAYLOAD


@pytest.fixture
def catalog():
    return Catalog.from_records(CATALOG_PAYLOAD)
