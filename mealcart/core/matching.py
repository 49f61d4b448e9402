# mealcart/core/matching.py
"""Ranks catalog ingredients against free-text queries.

Per normalized form the score is::

    400 * exact + 40 * prefix + 20 * substring + fuzzy
    fuzzy = max(levenshtein ratio, token jaccard, trigram cosine)

The bonus bands are wide enough that fuzzy (<= 1) never lets a weaker
band overtake a stronger one.
"""
from __future__ import annotations

import logging
import math
from functools import cmp_to_key
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from rapidfuzz.distance import Levenshtein

from .models import Candidate, ExtractedItem, Ingredient
from .normalize import FRENCH_MATCH_NORMALIZER, MatchNormalizer

logger = logging.getLogger(__name__)

EXACT_BONUS = 400.0
PREFIX_BONUS = 40.0
SUBSTRING_BONUS = 20.0
MIN_CANDIDATES = 5
TIE_EPSILON = 1e-4


def levenshtein_ratio(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return max(0.0, 1.0 - Levenshtein.distance(a, b) / longest)


def jaccard_tokens(a: str, b: str) -> float:
    A, B = set(a.split()), set(b.split())
    if not A or not B:
        return 0.0
    return len(A & B) / len(A | B)


def trigrams(s: str) -> Set[str]:
    padded = f"  {s}  "
    if len(padded) < 3:
        return set()
    return {padded[i:i + 3] for i in range(len(padded) - 2)}


def trigram_similarity(a: str, b: str) -> float:
    A, B = trigrams(a), trigrams(b)
    if not A or not B:
        return 0.0
    return len(A & B) / math.sqrt(len(A) * len(B))


def form_score(query: str, form: str) -> float:
    """Score one normalized catalog form against a normalized query."""
    exact = query == form
    prefix = form.startswith(query) or query.startswith(form)
    substring = query in form or form in query
    fuzzy = max(levenshtein_ratio(query, form), jaccard_tokens(query, form), trigram_similarity(query, form))
    return EXACT_BONUS * exact + PREFIX_BONUS * prefix + SUBSTRING_BONUS * substring + fuzzy


class CatalogIndex:
    """Precomputed normalized forms for a catalog, queried many times."""

    def __init__(
        self,
        catalog: Union[Mapping[int, Ingredient], Iterable[Ingredient]],
        normalizer: MatchNormalizer = FRENCH_MATCH_NORMALIZER,
    ) -> None:
        entries = catalog.values() if isinstance(catalog, Mapping) else catalog
        self.normalizer = normalizer
        self._entries: List[Tuple[Ingredient, Tuple[str, ...]]] = []
        for ing in entries:
            forms = [normalizer(ing.name)]
            if ing.canonical_name and ing.canonical_name.strip():
                canonical = normalizer(ing.canonical_name)
                if canonical not in forms:
                    forms.append(canonical)
            self._entries.append((ing, tuple(forms)))
        self._alphabetical = sorted(self._entries, key=lambda e: _display_key(e[0]))

    def __len__(self) -> int:
        return len(self._entries)

    def rank(self, query: str, limit: int) -> List[Candidate]:
        q = self.normalizer(query)
        if not q:
            return [_candidate(ing, 0.0) for ing, _ in self._alphabetical[:limit]]

        scored = [(ing, max(form_score(q, f) for f in forms)) for ing, forms in self._entries]
        scored.sort(key=cmp_to_key(_compare))
        return [_candidate(ing, score) for ing, score in scored[:limit]]


def _display_key(ing: Ingredient) -> Tuple[str, int]:
    return (ing.preferred_name().casefold(), ing.id)


def _compare(left: Tuple[Ingredient, float], right: Tuple[Ingredient, float]) -> int:
    # Scores closer than TIE_EPSILON are ties, ordered by display name.
    (a, sa), (b, sb) = left, right
    if abs(sa - sb) >= TIE_EPSILON:
        return -1 if sa > sb else 1
    ka, kb = _display_key(a), _display_key(b)
    return (ka > kb) - (ka < kb)


def _candidate(ing: Ingredient, score: float) -> Candidate:
    return Candidate(id=ing.id, name=ing.name, canonical_name=ing.canonical_name, score=score)


def build_candidates(
    queries: Sequence[Union[ExtractedItem, str]],
    catalog: Union[Mapping[int, Ingredient], Iterable[Ingredient], CatalogIndex],
    k: int = 6,
    query_names: Optional[Sequence[str]] = None,
) -> Dict[int, List[Candidate]]:
    """Top ``max(k, 5)`` catalog candidates per query index.

    ``query_names`` optionally overrides the text matched for each query
    (e.g. names already cleaned by the caller).
    """
    index = catalog if isinstance(catalog, CatalogIndex) else CatalogIndex(catalog)
    limit = max(k, MIN_CANDIDATES)
    result: Dict[int, List[Candidate]] = {}
    for idx, query in enumerate(queries):
        if query_names is not None and idx < len(query_names):
            text = query_names[idx]
        else:
            text = query.n if isinstance(query, ExtractedItem) else query
        ranked = index.rank(text, limit)
        result[idx] = ranked
        logger.debug(
            "candidates for %r: %s",
            text,
            ", ".join(f"{c.name}(id:{c.id})" for c in ranked[:5]),
        )
    return result
