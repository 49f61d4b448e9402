# mealcart/core/recipe_parser.py
from __future__ import annotations

import re
from typing import List, NamedTuple, Optional

from .models import ExtractionRequest, ExtractionResponse, IngredientRow
from .units import normalize_unit, sanitize_unit

SERVINGS_PATTERNS = [
    re.compile(r"\bpour\s*(\d{1,2})\s*(?:pers(?:onnes)?|p|parts?)\b", re.IGNORECASE),
    re.compile(r"\b(\d{1,2})\s*(?:pers(?:onnes)?|p|parts?)\b", re.IGNORECASE),
]


class ParsedRecipe(NamedTuple):
    title: Optional[str]
    rows: List[IngredientRow]
    servings: Optional[int]
    steps: List[str]


def detect_servings(text: str) -> Optional[int]:
    """Serving count hint from raw OCR text ("pour 4 personnes", "6 parts"), if any."""
    s = text.strip()
    for pattern in SERVINGS_PATTERNS:
        m = pattern.search(s)
        if m:
            return int(m.group(1))
    return None


def build_extraction_request(text: str) -> ExtractionRequest:
    return ExtractionRequest(t=text, s=detect_servings(text))


def rows_from_extraction(response: ExtractionResponse) -> List[IngredientRow]:
    rows = []
    for item in response.i:
        name = item.n.strip()
        unit = sanitize_unit(name, normalize_unit(item.u))
        rows.append(IngredientRow(name=name, unit=unit, quantity=item.q, base_quantity=item.q))
    return rows


def parse_extraction(response: ExtractionResponse, servings_hint: Optional[int] = None) -> ParsedRecipe:
    title = (response.r or "").strip() or None
    servings = response.s if response.s is not None else servings_hint
    return ParsedRecipe(title, rows_from_extraction(response), servings, list(response.p or []))
