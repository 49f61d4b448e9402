# tests/unit/test_matching.py
from mealcart.core.matching import (
    CatalogIndex,
    build_candidates,
    jaccard_tokens,
    levenshtein_ratio,
    trigram_similarity,
)
from mealcart.core.models import ExtractedItem, Ingredient


def _catalog():
    return [
        Ingredient(id=1, name="tomate", category="Fresh"),
        Ingredient(id=2, name="tomate cerise", category="Fresh"),
        Ingredient(id=3, name="sauce tomate", category="Grocery"),
        Ingredient(id=4, name="tomme", category="Fresh"),
    ]


def test_metrics_basic_values():
    assert levenshtein_ratio("abc", "abc") == 1.0
    assert levenshtein_ratio("abcd", "wxyz") == 0.0
    assert jaccard_tokens("huile olive", "olive huile") == 1.0
    assert jaccard_tokens("", "olive") == 0.0
    assert trigram_similarity("tomat", "tomat") == 1.0
    assert 0.0 < trigram_similarity("tomat", "tomm") < 1.0


def test_score_bands_never_invert():
    ranked = build_candidates(["tomate"], _catalog(), k=3)[0]
    assert [c.id for c in ranked] == [1, 2, 3, 4]
    exact, prefix, substring, fuzzy = (c.score for c in ranked)
    assert exact >= 400
    assert 40 <= prefix < 400
    assert 20 <= substring < 40
    assert fuzzy < 20


def test_candidate_list_has_at_least_five_slots():
    catalog = [Ingredient(id=i, name=f"produit {i}", category="Other") for i in range(1, 11)]
    assert len(build_candidates(["produit"], catalog, k=2)[0]) == 5
    assert len(build_candidates(["produit"], catalog, k=8)[0]) == 8


def test_ranking_is_deterministic():
    catalog = _catalog()
    queries = [ExtractedItem(n="Tomates"), ExtractedItem(n="sauce")]
    assert build_candidates(queries, catalog) == build_candidates(queries, catalog)


def test_ties_are_broken_by_display_name():
    catalog = [
        Ingredient(id=20, name="Poivre", category="Grocery"),
        Ingredient(id=21, name="poivre", category="Grocery", canonicalName="Arôme poivre"),
    ]
    ranked = build_candidates(["poivre"], catalog)[0]
    assert ranked[0].score == ranked[1].score
    assert [c.id for c in ranked] == [21, 20]


def test_canonical_name_is_an_extra_matching_form():
    catalog = [
        Ingredient(id=2, name="Viande hachée", category="Fresh", canonicalName="Boeuf haché"),
        Ingredient(id=5, name="Boeuf bourguignon", category="Fresh"),
    ]
    ranked = build_candidates(["boeuf hache"], catalog)[0]
    assert ranked[0].id == 2
    assert ranked[0].canonical_name == "Boeuf haché"


def test_empty_query_falls_back_to_alphabetical_order():
    catalog = _catalog() + [Ingredient(id=5, name="Beurre doux", category="Fresh", canonicalName="beurre")]
    ranked = build_candidates(["  "], catalog, k=5)[0]
    assert [c.id for c in ranked] == [5, 3, 1, 2, 4]
    assert all(c.score == 0 for c in ranked)


def test_index_can_be_reused_across_queries():
    index = CatalogIndex(_catalog())
    assert len(index) == 4
    result = build_candidates(["tomme", "cerise"], index)
    assert result[0][0].id == 4
    assert result[1][0].id == 2
