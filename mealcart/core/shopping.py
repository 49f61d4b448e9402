# mealcart/core/shopping.py
"""Shopping-list aggregation.

Groups are recomputed from scratch on every call. Three sources feed the
same key space:

1. basket entries (standing recipe x persons)  -> recipe contribution
2. planned (imported) recipes, scaled           -> recipe contribution
3. manual items, even at quantity 0             -> manual contribution

The consumed ledger only ever offsets the recipe contribution.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Set, Tuple

from .catalog import Catalog, preferred_name
from .categorize import categorize, category_sort_key
from .models import BasketEntry, ManualItem, PlannedRecipe, ShoppingItem, ShoppingSection
from .normalize import fold_diacritics

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"


def _fold_key_part(s: str) -> str:
    return fold_diacritics(s).lower().strip().replace(KEY_SEPARATOR, " ")


class GroupKey(NamedTuple):
    """Normalized (name, unit, category) identifying one shopping row."""
    name: str
    unit: str
    category: str

    @classmethod
    def of(cls, name: str, unit: str, category: str) -> "GroupKey":
        return cls(_fold_key_part(name), _fold_key_part(unit), _fold_key_part(category))

    def encode(self) -> str:
        return KEY_SEPARATOR.join(self)

    @classmethod
    def decode(cls, raw: str) -> Optional["GroupKey"]:
        parts = raw.split(KEY_SEPARATOR)
        if len(parts) != 3:
            return None
        return cls(*parts)


@dataclass
class ShoppingGroup:
    display_name: str
    category: str
    unit: str
    total_qty: float = 0.0
    recipe_qty: float = 0.0
    manual_qty: float = 0.0
    contributing_ids: List[str] = field(default_factory=list)
    linked_ingredient_id: Optional[int] = None
    has_recipe: bool = False
    has_manual: bool = False

    def add_id(self, check_id: str) -> None:
        if check_id not in self.contributing_ids:
            self.contributing_ids.append(check_id)

    def add_recipe(self, qty: float, check_id: str) -> None:
        self.total_qty += qty
        self.recipe_qty += qty
        self.has_recipe = True
        self.add_id(check_id)

    def add_manual(self, qty: float, check_id: str) -> None:
        self.total_qty += qty
        self.manual_qty += qty
        self.has_manual = True
        self.add_id(check_id)


class ResolvedManual(NamedTuple):
    name: str
    category: str
    unit: str
    check_id: str
    ingredient_id: Optional[int]


def catalog_check_id(ingredient_id: int, unit: str) -> str:
    return f"{ingredient_id}_{unit}"


def manual_check_id(item: ManualItem) -> str:
    return f"manual:{item.id}"


def planned_check_id(recipe: PlannedRecipe, row_id) -> str:
    return f"planned:{recipe.id}:{row_id}"


def infer_category(name: str, catalog: Catalog) -> str:
    """Catalog category of a matching ingredient, else the free-text categorizer."""
    match = catalog.match_by_name(name)
    if match is not None:
        return match.category
    return categorize(name)


def resolve_manual(item: ManualItem, catalog: Catalog) -> ResolvedManual:
    ingredient = catalog.ingredient(item.ingredient_id)
    if ingredient is None:
        return ResolvedManual(item.name, item.category, item.unit, manual_check_id(item), None)
    name = item.name.strip() or preferred_name(ingredient)
    unit = item.unit.strip() or ingredient.unit
    category = item.category.strip() or ingredient.category
    return ResolvedManual(name, category, unit, catalog_check_id(ingredient.id, unit), ingredient.id)


def _group(totals: Dict[GroupKey, ShoppingGroup], name: str, unit: str, category: str) -> ShoppingGroup:
    key = GroupKey.of(name, unit, category)
    group = totals.get(key)
    if group is None:
        group = totals[key] = ShoppingGroup(display_name=name, category=category, unit=unit)
    else:
        group.display_name, group.category, group.unit = name, category, unit
    return group


def aggregate_totals(
    catalog: Catalog,
    basket: Iterable[BasketEntry] = (),
    planned_recipes: Iterable[PlannedRecipe] = (),
    manual_items: Iterable[ManualItem] = (),
) -> Dict[GroupKey, ShoppingGroup]:
    totals: Dict[GroupKey, ShoppingGroup] = {}

    for entry in basket:
        meal = catalog.meal(entry.meal_id)
        if meal is None:
            continue
        for line in meal.ingredients:
            ingredient = catalog.ingredient(line.ingredient_id)
            if ingredient is None:
                continue
            group = _group(totals, preferred_name(ingredient), line.unit, ingredient.category)
            group.add_recipe(line.qty_per_person * entry.persons, catalog_check_id(ingredient.id, line.unit))
            group.linked_ingredient_id = ingredient.id

    for recipe in planned_recipes:
        for row in recipe.scaled_ingredients():
            if not row.is_selected:
                continue
            qty = row.quantity if row.quantity is not None else (row.base_quantity or 0.0)
            unit = row.unit.strip()
            ingredient = catalog.ingredient(row.canonical_id)
            if ingredient is not None:
                unit = unit or ingredient.unit
                group = _group(totals, preferred_name(ingredient), unit, ingredient.category)
                group.add_recipe(qty, catalog_check_id(ingredient.id, unit))
                group.linked_ingredient_id = ingredient.id
            else:
                name = row.name.strip()
                if not name:
                    continue
                group = _group(totals, name, unit, infer_category(name, catalog))
                group.add_recipe(qty, planned_check_id(recipe, row.id))

    for item in manual_items:
        resolved = resolve_manual(item, catalog)
        group = _group(totals, resolved.name, resolved.unit, resolved.category)
        group.add_manual(item.quantity, resolved.check_id)
        if resolved.ingredient_id is not None:
            group.linked_ingredient_id = resolved.ingredient_id

    return totals


def build_sections(
    totals: Mapping[GroupKey, ShoppingGroup],
    consumed: Mapping[GroupKey, float],
    checked: Set[str],
) -> Tuple[List[ShoppingSection], Dict[GroupKey, float]]:
    """Shopping sections plus the consumed ledger clamped to current recipe quantities.

    The ledger is returned rather than mutated; callers persist it when it differs.
    """
    ledger: Dict[GroupKey, float] = {}
    for key, amount in consumed.items():
        recipe_qty = totals[key].recipe_qty if key in totals else 0.0
        clamped = min(amount, recipe_qty)
        if clamped > 0:
            ledger[key] = clamped

    by_category: Dict[str, List[ShoppingItem]] = {}
    for key, group in totals.items():
        recipe_left = max(0.0, group.recipe_qty - consumed.get(key, 0.0))
        displayed = recipe_left + group.manual_qty
        if displayed <= 0 and recipe_left <= 0 and not group.has_manual and not group.has_recipe:
            continue
        item = ShoppingItem(
            id=group.contributing_ids[0] if group.contributing_ids else key.encode(),
            ingredient_id=group.linked_ingredient_id,
            name=group.display_name,
            category=group.category,
            unit=group.unit,
            total_quantity=displayed,
            checked=any(i in checked for i in group.contributing_ids),
        )
        by_category.setdefault(group.category, []).append(item)

    sections = [
        ShoppingSection(
            category=category,
            items=sorted(by_category[category], key=lambda it: (it.name.casefold(), it.id)),
        )
        for category in sorted(by_category, key=category_sort_key)
    ]
    return sections, ledger


# ---------- Ledger storage ----------

def encode_ledger(ledger: Mapping[GroupKey, float]) -> Dict[str, float]:
    return {key.encode(): float(amount) for key, amount in ledger.items()}


def decode_ledger(raw: Mapping[str, float]) -> Dict[GroupKey, float]:
    ledger: Dict[GroupKey, float] = {}
    for encoded, amount in raw.items():
        key = GroupKey.decode(encoded)
        if key is None:
            logger.warning("dropping malformed consumed-ledger key %r", encoded)
            continue
        ledger[key] = float(amount)
    return ledger
