from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field

from mealcart.config import Settings
from mealcart.core.catalog import Catalog
from mealcart.core.matching import build_candidates
from mealcart.core.models import Candidate, IngredientRow
from mealcart.services.exceptions import LLMError
from mealcart.services.importer import RecipeImporter, SlotRegistry, StaleImport
from mealcart.services.llm import CanonicalResolver, RecipeExtractor
from mealcart.services.metrics import MetricsLogger
from .deps import get_catalog, get_extractor, get_metrics, get_resolver, get_settings

router = APIRouter(prefix="/api/v1/ingest", tags=["ingest"])

# One slot per device; lives for the whole process.
_SLOTS = SlotRegistry()

# ---- DI helpers --------------------------------------------------------------

def get_slots() -> SlotRegistry:
    return _SLOTS

def get_importer(
    settings: Settings = Depends(get_settings),
    catalog: Catalog = Depends(get_catalog),
    extractor: RecipeExtractor = Depends(get_extractor),
    resolver: Optional[CanonicalResolver] = Depends(get_resolver),
    metrics: MetricsLogger = Depends(get_metrics),
) -> RecipeImporter:
    return RecipeImporter(
        extractor,
        resolver,
        catalog,
        confidence_threshold=settings.canonical_confidence_threshold,
        k=settings.candidate_k,
        metrics=metrics,
    )

# ---- Models ------------------------------------------------------------------

class TextIngestRequest(BaseModel):
    text: str

class TextIngestResponse(BaseModel):
    title: Optional[str] = None
    servings: Optional[int] = None
    ingredients: List[IngredientRow]
    steps: List[str] = Field(default_factory=list)
    canonicalized: bool = False

class CandidateRequest(BaseModel):
    queries: List[str]
    k: Optional[int] = Field(None, ge=1)

# ---- Routes ------------------------------------------------------------------

@router.post("/text", response_model=TextIngestResponse)
def import_text(
    request: TextIngestRequest,
    x_device_id: str = Header("default"),
    importer: RecipeImporter = Depends(get_importer),
    slots: SlotRegistry = Depends(get_slots),
):
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="Recipe text is empty")
    try:
        result = importer.import_text(request.text, slot=slots.get(x_device_id))
    except StaleImport:
        raise HTTPException(status_code=409, detail="Superseded by a newer import on this device")
    except LLMError as e:
        raise HTTPException(status_code=502, detail=f"Recipe extraction failed: {e}")
    return TextIngestResponse(
        title=result.title,
        servings=result.servings,
        ingredients=result.rows,
        steps=result.steps,
        canonicalized=result.canonicalized,
    )


@router.post("/candidates", response_model=Dict[int, List[Candidate]])
def rank_candidates(
    request: CandidateRequest,
    settings: Settings = Depends(get_settings),
    catalog: Catalog = Depends(get_catalog),
):
    """Local catalog ranking only; no external call."""
    return build_candidates(request.queries, catalog.ingredients, k=request.k or settings.candidate_k)
