# mealcart/core/merge.py
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .models import ManualItem


def _key(item: ManualItem) -> Optional[Tuple[int, str]]:
    """Merge key: (ingredient_id, unit). Free-text items have none and never merge."""
    if item.ingredient_id is None:
        return None
    return (item.ingredient_id, item.unit)


def merge_manual_item(current: Iterable[ManualItem], incoming: ManualItem) -> List[ManualItem]:
    """
    Return a **new** manual-item list with ``incoming`` folded in.

    Rules:
    - Same (ingredient_id, unit) => quantities are **summed**; name and category
      are refreshed from ``incoming`` (they come from the catalog).
    - Different units of one ingredient stay separate rows.
    - Items without ingredient_id are always appended, even at quantity 0.
    - Order is preserved; new rows go last.
    """
    merged = [it.model_copy() for it in current]
    key = _key(incoming)
    if key is not None:
        for idx, existing in enumerate(merged):
            if _key(existing) == key:
                merged[idx] = existing.model_copy(update={
                    "quantity": round(existing.quantity + incoming.quantity, 6),  # avoid float drift
                    "name": incoming.name,
                    "category": incoming.category,
                })
                return merged
    merged.append(incoming.model_copy())
    return merged
