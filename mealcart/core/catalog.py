# mealcart/core/catalog.py
from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from .models import Ingredient, Meal
from .normalize import fold_diacritics


def preferred_name(ingredient: Ingredient) -> str:
    return ingredient.preferred_name()


def _fold(s: str) -> str:
    return fold_diacritics(s).lower().strip()


class Catalog:
    """Session copy of the reference data: ingredients and standing recipes, keyed by id."""

    def __init__(self, ingredients: Iterable[Ingredient] = (), meals: Iterable[Meal] = ()) -> None:
        self.ingredients: Dict[int, Ingredient] = {ing.id: ing for ing in ingredients}
        self.meals: Dict[int, Meal] = {m.id: m for m in meals}

    @classmethod
    def from_records(cls, payload: Mapping[str, Any]) -> "Catalog":
        """Build from the provider shape ``{"ingredients": [...], "meals": [...]}``."""
        ingredients = [Ingredient.model_validate(r) for r in payload.get("ingredients", [])]
        meals = [Meal.model_validate(r) for r in payload.get("meals", [])]
        return cls(ingredients, meals)

    def __len__(self) -> int:
        return len(self.ingredients)

    def __bool__(self) -> bool:
        return bool(self.ingredients)

    def ingredient(self, ingredient_id: Optional[int]) -> Optional[Ingredient]:
        if ingredient_id is None:
            return None
        return self.ingredients.get(ingredient_id)

    def meal(self, meal_id: int) -> Optional[Meal]:
        return self.meals.get(meal_id)

    def match_by_name(self, name: str) -> Optional[Ingredient]:
        """Exact folded-name match first, then the first entry whose name contains the query."""
        target = _fold(name)
        if not target:
            return None
        entries = sorted(self.ingredients.values(), key=lambda ing: ing.id)
        for ing in entries:
            if _fold(ing.name) == target:
                return ing
        for ing in entries:
            if target in _fold(ing.name):
                return ing
        return None
