# mealcart/core/normalize.py
"""Text normalization shared by the matcher, the categorizer and the shopping list.

Two flavours live here:

- ``normalize`` / ``tokenize`` produce a stable, display-safe form used for
  group keys and category lookups.
- ``MatchNormalizer`` is lossier and only ever used to maximise fuzzy-match
  recall. Its locale rules (annotation patterns + token reducer) are data, so
  the matcher does not care which language it is reducing.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Callable, Iterable, List, Pattern, Sequence

_LIGATURES = {"œ": "oe", "Œ": "oe", "æ": "ae", "Æ": "ae"}
_NON_WORD = re.compile(r"[^a-z0-9\s-]")
_SPACES = re.compile(r"\s+")

# Irregular domain nouns, keyed by their normalized (accent-free) form.
IRREGULAR_SINGULARS = {
    "oeufs": "oeuf",
    "oeuf": "oeuf",
    "pates": "pate",
    "legumes": "legume",
    "fruits": "fruit",
    "viandes": "viande",
    "yaourts": "yaourt",
}


def fold_diacritics(s: str) -> str:
    for src, dst in _LIGATURES.items():
        s = s.replace(src, dst)
    decomposed = unicodedata.normalize("NFKD", s)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _squash(s: str) -> str:
    s = _NON_WORD.sub(" ", s)
    return _SPACES.sub(" ", s).strip()


def normalize(s: str) -> str:
    """Fold accents, lowercase, keep ``[a-z0-9 -]`` and collapse whitespace."""
    return _squash(fold_diacritics(s).lower())


def singularize(token: str) -> str:
    if token in IRREGULAR_SINGULARS:
        return IRREGULAR_SINGULARS[token]
    if len(token) > 3 and token[-1] in ("s", "x"):
        return token[:-1]
    return token


def tokenize(s: str) -> List[str]:
    return [singularize(t) for t in normalize(s).split()]


# ---------- Match-only normalization ----------

class FrenchReducer:
    """Very small French suffix reducer: haché/hachée/hacher -> hach, drops plural/feminine endings."""

    _HACH = re.compile(r"hach(e|ee|es|er|ez)$")
    _SUFFIX = re.compile(r"(ees|es|e|s|x)$")

    def __call__(self, token: str) -> str:
        token = self._HACH.sub("hach", token)
        if len(token) > 3:
            token = self._SUFFIX.sub("", token)
        return token


FRENCH_ANNOTATIONS: Sequence[Pattern[str]] = (
    re.compile(r"\s*\((?:~?\d+(?:[.,]\d+)?\s*(?:mg|g|kg|ml|cl|l))\)\s*", re.IGNORECASE),
    re.compile(r"\s*\((?:facultatif|optionnel|optional)\)\s*", re.IGNORECASE),
)


class MatchNormalizer:
    """Aggressive normalizer for fuzzy matching, never for display.

    Args:
        annotations: patterns removed before tokenizing (package sizes, "(optional)").
        reduce_token: per-token stemmer applied last.
    """

    def __init__(
        self,
        annotations: Iterable[Pattern[str]] = FRENCH_ANNOTATIONS,
        reduce_token: Callable[[str], str] = FrenchReducer(),
    ) -> None:
        self.annotations = tuple(annotations)
        self.reduce_token = reduce_token

    def __call__(self, s: str) -> str:
        x = s.replace("’", "'")
        x = fold_diacritics(x).lower()
        for pattern in self.annotations:
            x = pattern.sub(" ", x)
        x = _squash(x)
        return " ".join(self.reduce_token(t) for t in x.split())


FRENCH_MATCH_NORMALIZER = MatchNormalizer()


def normalize_for_match(s: str) -> str:
    return FRENCH_MATCH_NORMALIZER(s)
