# mealcart/core/categorize.py
"""Best-effort store-aisle categorization for free-text ingredient names.

Lookup precedence, most specific first:
alias -> exact full name -> exact single token -> keyword sets -> DEFAULT_CATEGORY.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, List, Tuple

from .normalize import normalize, tokenize

GROCERY = "Grocery"
FRESH = "Fresh"
FROZEN = "Frozen"
DRINKS = "Drinks"
HYGIENE = "Hygiene"
DEFAULT_CATEGORY = "Other"

# Display order for shopping sections; unknown categories sort alphabetically after these.
CATEGORY_ORDER: Tuple[str, ...] = (GROCERY, FRESH, FROZEN, DRINKS, HYGIENE, DEFAULT_CATEGORY)

# Brands and abbreviations -> canonical term (keys are normalized full strings).
ALIAS_MAP: Dict[str, str] = {
    "choco": "chocolat",
    "nutella": "chocolat",
    "coca": "cola",
    "coca-cola": "cola",
    "coca cola": "cola",
    "yaour": "yaourt",
    "legumes": "legume",
    "viandes": "viande",
    "icetea": "ice tea",
}

# Tokens that only mean something together.
COMPOUND_ALIASES: List[Tuple[FrozenSet[str], str]] = [
    (frozenset({"ice", "tea"}), "ice tea"),
]

EXACT_CATEGORY_MAP: Dict[str, str] = {
    "lait": FRESH, "yaourt": FRESH, "fromage": FRESH,
    "beurre": FRESH, "oeuf": FRESH, "creme": FRESH,
    "poulet": FRESH, "boeuf": FRESH, "porc": FRESH,
    "jambon": FRESH, "steak": FRESH,
    "fruit": FRESH, "legume": FRESH, "viande": FRESH,

    "riz": GROCERY, "pate": GROCERY, "farine": GROCERY,
    "sucre": GROCERY, "sel": GROCERY, "huile": GROCERY, "vinaigre": GROCERY,
    "conserve": GROCERY, "thon": GROCERY,
    "cafe": GROCERY, "the": GROCERY, "chocolat": GROCERY, "cacao": GROCERY,

    "eau": DRINKS, "jus": DRINKS, "soda": DRINKS,
    "biere": DRINKS, "vin": DRINKS, "cola": DRINKS, "ice tea": DRINKS,

    "glace": FROZEN, "surgele": FROZEN,

    "shampoing": HYGIENE, "savon": HYGIENE, "dentifrice": HYGIENE,
    "papier toilette": HYGIENE, "lessive": HYGIENE,
}

# First set sharing a token with the name wins, so order matters.
KEYWORD_CATEGORY_MAP: List[Tuple[FrozenSet[str], str]] = [
    (frozenset({"lait", "yaourt", "fromage", "beurre", "oeuf", "creme", "poulet", "boeuf",
                "porc", "jambon", "steak", "fruit", "legume", "viande"}), FRESH),
    (frozenset({"pomme", "banane", "poire", "tomate", "salade", "carotte", "oignon", "ail",
                "citron"}), FRESH),
    (frozenset({"riz", "pate", "farine", "sucre", "sel", "huile", "vinaigre", "conserve",
                "thon", "cafe", "the", "chocolat", "cacao"}), GROCERY),
    (frozenset({"eau", "jus", "soda", "biere", "vin", "cola", "orangina", "fanta", "sprite",
                "perrier", "evian", "vittel", "lipton", "ice", "tea"}), DRINKS),
    (frozenset({"glace", "surgele"}), FROZEN),
    (frozenset({"shampoing", "savon", "dentifrice", "papier", "toilette", "lessive", "gel",
                "douche"}), HYGIENE),
]


def apply_alias(raw_name: str) -> str:
    n = normalize(raw_name)
    if n in ALIAS_MAP:
        return ALIAS_MAP[n]
    toks = set(tokenize(raw_name))
    for required, alias in COMPOUND_ALIASES:
        if required <= toks:
            return alias
    return n


def categorize(raw_name: str) -> str:
    """Store category for ``raw_name``; never fails, falls back to DEFAULT_CATEGORY."""
    alias = apply_alias(raw_name)
    if alias in EXACT_CATEGORY_MAP:
        return EXACT_CATEGORY_MAP[alias]

    toks = set(tokenize(alias))
    if len(toks) == 1:
        (only,) = toks
        if only in EXACT_CATEGORY_MAP:
            return EXACT_CATEGORY_MAP[only]

    for keywords, category in KEYWORD_CATEGORY_MAP:
        if toks & keywords:
            return category
    return DEFAULT_CATEGORY


def category_sort_key(category: str) -> Tuple[int, str]:
    try:
        return (CATEGORY_ORDER.index(category), category)
    except ValueError:
        return (len(CATEGORY_ORDER), category)
