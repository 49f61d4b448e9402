# tests/unit/test_canonicalize.py
import pytest

from mealcart.core.canonicalize import apply_mapping, build_canon_request, canonicalize
from mealcart.core.models import CanonMapped, CanonResponse, Candidate, ExtractedItem, IngredientRow
from mealcart.services.exceptions import ResolverError


class FakeResolver:
    def __init__(self, mapped):
        self.mapped = mapped
        self.requests = []

    def resolve(self, request):
        self.requests.append(request)
        return CanonResponse(mapped=self.mapped)


class FailingResolver:
    def resolve(self, request):
        raise ResolverError("resolver down")


def _row(name="viande hachee"):
    return IngredientRow(name=name, unit="g", quantity=500, base_quantity=500)


def test_low_confidence_leaves_row_untouched(catalog):
    resolver = FakeResolver([CanonMapped(idx=0, canonical_id=2, canonical_name="Boeuf haché", confidence=0.6)])
    [row] = canonicalize([_row()], catalog, resolver, confidence_threshold=0.75)
    assert row.name == "viande hachee"
    assert row.canonical_id is None


def test_confident_mapping_adopts_catalog_name(catalog):
    resolver = FakeResolver([CanonMapped(idx=0, canonical_id=2, canonical_name="whatever", confidence=0.9)])
    [row] = canonicalize([_row()], catalog, resolver, confidence_threshold=0.75)
    assert row.name == "Boeuf haché"
    assert row.canonical_id == 2
    assert row.quantity == 500


def test_request_carries_ranked_candidates(catalog):
    resolver = FakeResolver([])
    canonicalize([_row(), _row("lait")], catalog, resolver)
    [request] = resolver.requests
    assert [i.n for i in request.items] == ["viande hachee", "lait"]
    assert request.items[0].u == "g"
    assert request.candidates["0"][0].id == 2
    assert request.candidates["1"][0].id == 4


def test_request_uses_wire_field_names():
    request = build_canon_request(
        [ExtractedItem(n="lait", q=1, u="l")],
        {0: [Candidate(id=4, name="Lait", canonical_name=None, score=461)]},
    )
    payload = request.model_dump(by_alias=True)
    assert payload["candidates"]["0"][0] == {"id": 4, "name": "Lait", "canonicalName": None}


def test_unresolvable_mappings_are_skipped(catalog):
    rows = [_row("a"), _row("b"), _row("c")]
    response = CanonResponse(mapped=[
        CanonMapped(idx=0, canonical_id=None, confidence=0.99),
        CanonMapped(idx=1, canonical_id=999, confidence=0.99),
        CanonMapped(idx=7, canonical_id=1, confidence=0.99),
        CanonMapped(idx=2, canonical_id=1, confidence=0.8),
    ])
    out = apply_mapping(rows, response, catalog.ingredients, confidence_threshold=0.8)
    assert [r.canonical_id for r in out] == [None, None, 1]
    assert [r.name for r in out] == ["a", "b", "Tomate"]
    assert rows[2].canonical_id is None


def test_resolver_failure_propagates(catalog):
    with pytest.raises(ResolverError):
        canonicalize([_row()], catalog, FailingResolver())
