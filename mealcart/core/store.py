# mealcart/core/store.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple
from uuid import UUID

from .catalog import Catalog, preferred_name
from .categorize import ALIAS_MAP, EXACT_CATEGORY_MAP
from .merge import merge_manual_item
from .models import (
    BasketEntry,
    IngredientRow,
    ManualItem,
    PlannedRecipe,
    PlannerState,
    ShoppingSection,
)
from .normalize import normalize
from .shopping import (
    GroupKey,
    ShoppingGroup,
    aggregate_totals,
    build_sections,
    decode_ledger,
    encode_ledger,
    infer_category,
    resolve_manual,
)

logger = logging.getLogger(__name__)

# Slice names passed to listeners; they double as persistence keys.
BASKET = "basket"
PLANNED = "planned_recipes"
MANUAL = "manual_items"
CHECKED = "checked"
CONSUMED = "consumed"

Listener = Callable[[str, "PlannerStore"], None]

DEFAULT_RECIPE_TITLE = "Recette"


def _parse_category_override(raw: str) -> Tuple[str, Optional[str]]:
    """Split ``"lait @Fresh"`` into ("lait", "Fresh")."""
    name, sep, category = raw.partition("@")
    if not sep:
        return raw, None
    name, category = name.strip(), category.strip()
    return (name or raw), (category or None)


class PlannerStore:
    """
    Single-writer state container for the planner and its shopping list.

    Every public mutation performs one transition and then notifies listeners
    with the name of the slice it changed. Reads (aggregation, sections) are
    recomputed from current state each time.
    """

    def __init__(self, catalog: Catalog, state: Optional[PlannerState] = None) -> None:
        state = state or PlannerState()
        self.catalog = catalog
        self.basket: List[BasketEntry] = list(state.basket)
        self.planned_recipes: List[PlannedRecipe] = list(state.planned_recipes)
        self.manual_items: List[ManualItem] = list(state.manual_items)
        self.checked: Set[str] = set(state.checked)
        self.consumed: Dict[GroupKey, float] = decode_ledger(state.consumed)
        self._listeners: List[Listener] = []

    # ---- observers -----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, slice_name: str) -> None:
        for listener in list(self._listeners):
            listener(slice_name, self)

    def snapshot(self) -> PlannerState:
        return PlannerState(
            basket=[b.model_copy() for b in self.basket],
            planned_recipes=[r.model_copy(deep=True) for r in self.planned_recipes],
            manual_items=[m.model_copy() for m in self.manual_items],
            checked=sorted(self.checked),
            consumed=encode_ledger(self.consumed),
        )

    # ---- basket --------------------------------------------------------------

    def add_to_basket(self, meal_id: int, persons: int) -> None:
        persons = max(1, persons)
        for idx, entry in enumerate(self.basket):
            if entry.meal_id == meal_id:
                self.basket[idx] = entry.model_copy(update={"persons": persons})
                break
        else:
            self.basket.append(BasketEntry(meal_id=meal_id, persons=persons))
        self._notify(BASKET)

    def update_basket_persons(self, meal_id: int, persons: int) -> bool:
        for idx, entry in enumerate(self.basket):
            if entry.meal_id == meal_id:
                self.basket[idx] = entry.model_copy(update={"persons": max(1, persons)})
                self._notify(BASKET)
                return True
        return False

    def remove_from_basket(self, meal_id: int) -> None:
        self.basket = [b for b in self.basket if b.meal_id != meal_id]
        self._notify(BASKET)

    def clear_basket(self) -> None:
        self.basket = []
        self._notify(BASKET)

    # ---- planned (imported) recipes -------------------------------------------

    def add_planned_recipe(
        self,
        title: str,
        servings: int,
        ingredients: Sequence[IngredientRow],
        base_servings: Optional[int] = None,
        date: Optional[datetime] = None,
    ) -> PlannedRecipe:
        rows = [
            row.model_copy(update={"base_quantity": row.quantity}) if row.base_quantity is None else row.model_copy()
            for row in ingredients
        ]
        recipe = PlannedRecipe(
            title=title.strip() or DEFAULT_RECIPE_TITLE,
            servings=max(1, servings),
            base_servings=max(1, base_servings if base_servings is not None else servings),
            date=date or datetime.now(),
            ingredients=rows,
        )
        self.planned_recipes.append(recipe)
        self._notify(PLANNED)
        return recipe

    def update_planned_servings(self, recipe_id: UUID, servings: int) -> Optional[PlannedRecipe]:
        for idx, recipe in enumerate(self.planned_recipes):
            if recipe.id == recipe_id:
                updated = recipe.model_copy(update={"servings": max(1, servings)})
                self.planned_recipes[idx] = updated
                self._notify(PLANNED)
                return updated
        return None

    def remove_planned_recipe(self, recipe_id: UUID) -> bool:
        before = len(self.planned_recipes)
        self.planned_recipes = [r for r in self.planned_recipes if r.id != recipe_id]
        if len(self.planned_recipes) == before:
            return False
        self._notify(PLANNED)
        return True

    # ---- manual items --------------------------------------------------------

    def infer_category(self, name: str) -> str:
        return infer_category(name, self.catalog)

    def add_manual_item(
        self,
        name: str,
        category: str = "",
        unit: str = "",
        quantity: float = 0.0,
        ingredient_id: Optional[int] = None,
    ) -> Optional[ManualItem]:
        """Add (or merge) a manual entry. Quantity 0 and empty unit are allowed."""
        name, unit = name.strip(), unit.strip()
        if not name:
            return None
        qty = max(0.0, quantity)

        ingredient = self.catalog.ingredient(ingredient_id)
        if ingredient is not None:
            incoming = ManualItem(
                ingredient_id=ingredient.id,
                name=preferred_name(ingredient),
                category=ingredient.category,
                unit=unit or ingredient.unit,
                quantity=qty,
            )
        else:
            incoming = ManualItem(
                name=name,
                category=category.strip() or self.infer_category(name),
                unit=unit,
                quantity=qty,
            )
        self.manual_items = merge_manual_item(self.manual_items, incoming)
        self._notify(MANUAL)
        return incoming

    def add_manual_quick(self, raw_input: str) -> Optional[ManualItem]:
        """Quick add: ``"name"`` or ``"name @Category"``; empty unit, quantity 0."""
        text = raw_input.strip()
        if not text:
            return None
        name, forced = _parse_category_override(text)
        return self.add_manual_item(name, category=forced or self.infer_category(name))

    def update_manual_item(self, item_id: UUID, quantity: float) -> Optional[ManualItem]:
        for idx, item in enumerate(self.manual_items):
            if item.id == item_id:
                updated = item.model_copy(update={"quantity": max(0.0, quantity)})
                self.manual_items[idx] = updated
                self._notify(MANUAL)
                return updated
        return None

    def remove_manual_item(self, item_id: UUID) -> bool:
        before = len(self.manual_items)
        self.manual_items = [m for m in self.manual_items if m.id != item_id]
        if len(self.manual_items) == before:
            return False
        self._notify(MANUAL)
        return True

    def suggest_manual_names(self, query: str, limit: int = 8) -> List[str]:
        q = normalize(query)
        if not q:
            return []
        pool = {normalize(ing.name) for ing in self.catalog.ingredients.values()}
        pool |= set(EXACT_CATEGORY_MAP)
        pool |= set(ALIAS_MAP.values())
        prefix = sorted(n for n in pool if n.startswith(q))
        if len(prefix) >= limit:
            return prefix[:limit]
        rest = sorted(n for n in pool if q in n and not n.startswith(q))
        return (prefix + rest)[:limit]

    # ---- shopping list -------------------------------------------------------

    def aggregate_totals(self) -> Dict[GroupKey, ShoppingGroup]:
        return aggregate_totals(self.catalog, self.basket, self.planned_recipes, self.manual_items)

    def build_shopping_sections(self) -> List[ShoppingSection]:
        """Current sections. Clamps the consumed ledger when the basket shrank below it."""
        sections, ledger = build_sections(self.aggregate_totals(), self.consumed, self.checked)
        if ledger != self.consumed:
            logger.debug("clamping consumed ledger: %d -> %d keys", len(self.consumed), len(ledger))
            self.consumed = ledger
            self._notify(CONSUMED)
        return sections

    def toggle_checked(self, item_id: str) -> bool:
        if item_id in self.checked:
            self.checked.discard(item_id)
        else:
            self.checked.add(item_id)
        self._notify(CHECKED)
        return item_id in self.checked

    def _group_ids(self, name: str, unit: str, category: str) -> Tuple[GroupKey, Optional[ShoppingGroup]]:
        key = GroupKey.of(name, unit, category)
        return key, self.aggregate_totals().get(key)

    def toggle_checked_for_group(self, name: str, unit: str, category: str) -> None:
        _, group = self._group_ids(name, unit, category)
        if group is None:
            return
        if any(i in self.checked for i in group.contributing_ids):
            self.checked.difference_update(group.contributing_ids)
        else:
            self.checked.update(group.contributing_ids)
        self._notify(CHECKED)

    def toggle_or_remove(self, name: str, unit: str, category: str) -> None:
        """First tap checks every contributing id; second tap marks the recipe part bought,
        drops the group's manual items and unchecks it."""
        key, group = self._group_ids(name, unit, category)
        if group is None:
            return
        ids = group.contributing_ids
        if not all(i in self.checked for i in ids):
            self.checked.update(ids)
            self._notify(CHECKED)
            return

        if group.recipe_qty > 0:
            self.consumed[key] = min(self.consumed.get(key, 0.0) + group.recipe_qty, group.recipe_qty)
            self._notify(CONSUMED)

        remaining = []
        for item in self.manual_items:
            resolved = resolve_manual(item, self.catalog)
            if GroupKey.of(resolved.name, resolved.unit, resolved.category) != key:
                remaining.append(item)
        if len(remaining) != len(self.manual_items):
            self.manual_items = remaining
            self._notify(MANUAL)

        self.checked.difference_update(ids)
        self._notify(CHECKED)

    def reset_consumed(self) -> None:
        self.consumed = {}
        self._notify(CONSUMED)
