"""Recipe import pipeline: raw text -> structured rows -> catalog-linked rows.

One ``ImportSlot`` exists per UI slot (a device). Starting an import issues
a fresh token; a result whose token is no longer the slot's latest is
discarded so an older, slower request can never overwrite a newer one.
"""
from __future__ import annotations

import logging
import threading
from contextlib import nullcontext
from typing import Dict, List, NamedTuple, Optional
from uuid import UUID, uuid4

from mealcart.core.canonicalize import DEFAULT_CONFIDENCE_THRESHOLD, canonicalize
from mealcart.core.catalog import Catalog
from mealcart.core.models import IngredientRow
from mealcart.core.recipe_parser import build_extraction_request, parse_extraction
from .exceptions import ResolverError
from .llm import CanonicalResolver, RecipeExtractor
from .metrics import MetricsLogger

logger = logging.getLogger(__name__)


class ImportResult(NamedTuple):
    title: Optional[str]
    servings: Optional[int]
    rows: List[IngredientRow]
    steps: List[str]
    canonicalized: bool


class ImportSlot:
    """Latest-request-wins token holder."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[UUID] = None

    def begin(self) -> UUID:
        token = uuid4()
        with self._lock:
            self._current = token
        return token

    def is_current(self, token: UUID) -> bool:
        with self._lock:
            return self._current == token


class SlotRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: Dict[str, ImportSlot] = {}

    def get(self, slot_id: str) -> ImportSlot:
        with self._lock:
            return self._slots.setdefault(slot_id, ImportSlot())


class StaleImport(Exception):
    """The import finished after a newer one started on the same slot."""


class RecipeImporter:
    def __init__(
        self,
        extractor: RecipeExtractor,
        resolver: Optional[CanonicalResolver],
        catalog: Catalog,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        k: int = 6,
        metrics: Optional[MetricsLogger] = None,
    ) -> None:
        self.extractor = extractor
        self.resolver = resolver
        self.catalog = catalog
        self.confidence_threshold = confidence_threshold
        self.k = k
        self.metrics = metrics

    def _timed(self, name: str, **extra):
        return self.metrics.timed(name, **extra) if self.metrics else nullcontext()

    def import_text(self, text: str, slot: Optional[ImportSlot] = None) -> ImportResult:
        """Extract then canonicalize. Extraction errors propagate; resolver errors
        only cost the catalog links. Raises ``StaleImport`` when superseded."""
        token = slot.begin() if slot is not None else None
        request = build_extraction_request(text)
        with self._timed("extract", chars=len(text)):
            response = self.extractor.extract(request)
        parsed = parse_extraction(response, servings_hint=request.s)

        rows, canonicalized = parsed.rows, False
        if not self.catalog:
            logger.warning("catalog is empty; skipping canonicalization")
        elif self.resolver is None:
            logger.warning("no canonical resolver configured; skipping canonicalization")
        elif rows:
            try:
                with self._timed("canonicalize", items=len(rows)):
                    rows = canonicalize(rows, self.catalog, self.resolver,
                                        confidence_threshold=self.confidence_threshold, k=self.k)
                canonicalized = True
            except ResolverError as e:
                logger.warning("canonicalization failed, keeping extracted names: %s", e)

        if slot is not None and not slot.is_current(token):
            logger.info("discarding superseded import %s", token)
            raise StaleImport(str(token))

        linked = sum(1 for r in rows if r.canonical_id is not None)
        logger.info("imported %r: %d rows, %d linked, servings=%s",
                    parsed.title, len(rows), linked, parsed.servings)
        return ImportResult(parsed.title, parsed.servings, rows, parsed.steps, canonicalized)
