# mealcart/core/units.py
from __future__ import annotations

from typing import Optional

from .normalize import fold_diacritics

# Short vocabulary used everywhere in the shopping list.
GRAM, KILOGRAM, MILLIGRAM = "g", "kg", "mg"
MILLILITER, CENTILITER, LITER = "ml", "cl", "l"
TABLESPOON, TEASPOON = "cs", "cac"
EGG, CLOVE, SACHET, SLICE, CARTON, PINCH, CAN, STALK = (
    "oeuf", "gousse", "sachet", "tranche", "brique", "pincee", "boite", "branche",
)

UNIT_ALIASES = {
    "g": GRAM, "gr": GRAM, "gramme": GRAM, "grammes": GRAM, "gram": GRAM, "grams": GRAM,
    "kg": KILOGRAM, "kilo": KILOGRAM, "kilos": KILOGRAM, "kilogramme": KILOGRAM, "kilogrammes": KILOGRAM,
    "mg": MILLIGRAM, "milligramme": MILLIGRAM, "milligrammes": MILLIGRAM,
    "ml": MILLILITER, "millilitre": MILLILITER, "millilitres": MILLILITER, "milliliter": MILLILITER,
    "cl": CENTILITER, "centilitre": CENTILITER, "centilitres": CENTILITER,
    "l": LITER, "litre": LITER, "litres": LITER, "liter": LITER, "liters": LITER,
    "cas": TABLESPOON, "cs": TABLESPOON, "cuillere a soupe": TABLESPOON,
    "cuilleres a soupe": TABLESPOON, "cuil a soupe": TABLESPOON, "tbsp": TABLESPOON,
    "cac": TEASPOON, "cc": TEASPOON, "cuil a cafe": TEASPOON, "cuillere a cafe": TEASPOON,
    "cuilleres a cafe": TEASPOON, "tsp": TEASPOON,
    "oeuf": EGG, "oeufs": EGG,
    "gousse": CLOVE, "gousses": CLOVE,
    "sachet": SACHET, "sachets": SACHET,
    "tranche": SLICE, "tranches": SLICE,
    "brique": CARTON, "briques": CARTON,
    "pincee": PINCH, "pincees": PINCH,
    "boite": CAN, "boites": CAN,
    "branche": STALK, "branches": STALK,
}

# Piece units only make sense when the ingredient name hints at them.
PIECE_UNIT_HINTS = {
    EGG: ("oeuf",),
    CLOVE: ("gousse", "ail", "vanille"),
    STALK: ("branche", "celeri", "thym", "romarin", "persil", "menthe", "coriandre"),
    SLICE: ("tranche", "jambon", "pain", "fromage", "saumon", "bacon"),
}


def normalize_unit(raw: Optional[str]) -> str:
    """Canonical short unit for ``raw``; unknown tokens come back unchanged (trimmed)."""
    if raw is None:
        return ""
    stripped = raw.strip()
    key = fold_diacritics(stripped).lower().replace(".", "").strip()
    return UNIT_ALIASES.get(key, stripped)


def sanitize_unit(name: str, unit: str) -> str:
    """Drop a piece unit the ingredient name does not support (e.g. ``oeuf`` on "oignon")."""
    hints = PIECE_UNIT_HINTS.get(unit)
    if hints is None:
        return unit
    folded = fold_diacritics(name).lower()
    if any(h in folded for h in hints):
        return unit
    return ""
