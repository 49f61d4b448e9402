# mealcart/core/canonicalize.py
from __future__ import annotations

from typing import Dict, List, Mapping, Protocol, Sequence, Union

from .catalog import Catalog
from .matching import build_candidates
from .models import (
    Candidate,
    CanonCandidate,
    CanonRequest,
    CanonResponse,
    ExtractedItem,
    Ingredient,
    IngredientRow,
)

DEFAULT_CONFIDENCE_THRESHOLD = 0.8


class Resolver(Protocol):
    """External collaborator choosing one catalog id per item among its candidates.

    Must return exactly one mapped entry per item, in order, with ids taken
    from that item's candidate list. Failures are raised, never retried here.
    """

    def resolve(self, request: CanonRequest) -> CanonResponse: ...


def build_canon_request(
    items: Sequence[ExtractedItem],
    candidates: Mapping[int, Sequence[Candidate]],
) -> CanonRequest:
    return CanonRequest(
        items=list(items),
        candidates={
            str(idx): [CanonCandidate(id=c.id, name=c.name, canonical_name=c.canonical_name) for c in ranked]
            for idx, ranked in candidates.items()
        },
    )


def apply_mapping(
    rows: Sequence[IngredientRow],
    response: CanonResponse,
    ingredients: Mapping[int, Ingredient],
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> List[IngredientRow]:
    """Copy of ``rows`` with confident, resolvable mappings applied.

    Low-confidence or unknown ids leave the row as typed; that is normal.
    """
    out = [row.model_copy() for row in rows]
    for mapped in response.mapped:
        if not 0 <= mapped.idx < len(out):
            continue
        if mapped.canonical_id is None or mapped.confidence < confidence_threshold:
            continue
        ingredient = ingredients.get(mapped.canonical_id)
        if ingredient is None:
            continue
        out[mapped.idx] = out[mapped.idx].model_copy(
            update={"canonical_id": ingredient.id, "name": ingredient.preferred_name()}
        )
    return out


def canonicalize(
    rows: Sequence[IngredientRow],
    catalog: Union[Catalog, Mapping[int, Ingredient]],
    resolver: Resolver,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    k: int = 6,
) -> List[IngredientRow]:
    ingredients: Dict[int, Ingredient] = dict(catalog.ingredients if isinstance(catalog, Catalog) else catalog)
    items = [ExtractedItem(n=row.name, q=row.quantity, u=row.unit or None) for row in rows]
    candidates = build_candidates(items, ingredients, k=k)
    response = resolver.resolve(build_canon_request(items, candidates))
    return apply_mapping(rows, response, ingredients, confidence_threshold)
