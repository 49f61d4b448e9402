from __future__ import annotations

import logging
from typing import Iterator, Optional

from fastapi import Depends, HTTPException

from mealcart.config import Settings
from mealcart.core.catalog import Catalog
from mealcart.core.store import PlannerStore
from mealcart.services.exceptions import LLMError, RepoError
from mealcart.services.llm import (
    CanonicalResolver,
    OpenAICanonicalResolver,
    OpenAIRecipeExtractor,
    RecipeExtractor,
)
from mealcart.services.metrics import MetricsLogger
from mealcart.services.repo.json_repo import JSONCatalogRepo, JSONStateRepo, StatePersister

logger = logging.getLogger(__name__)

# ---- DI helpers --------------------------------------------------------------

def get_settings() -> Settings:
    return Settings()

def get_state_repo(settings: Settings = Depends(get_settings)) -> JSONStateRepo:
    return JSONStateRepo(settings)

def get_catalog(settings: Settings = Depends(get_settings)) -> Catalog:
    try:
        return JSONCatalogRepo(settings).load()
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))

def get_store(
    catalog: Catalog = Depends(get_catalog),
    repo: JSONStateRepo = Depends(get_state_repo),
) -> Iterator[PlannerStore]:
    """Store loaded from disk for this request; every transition is written back."""
    try:
        state = repo.load()
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    store = PlannerStore(catalog, state)
    unsubscribe = store.subscribe(StatePersister(repo))
    try:
        yield store
    finally:
        unsubscribe()

def get_metrics(settings: Settings = Depends(get_settings)) -> MetricsLogger:
    return MetricsLogger(settings)

def get_extractor(settings: Settings = Depends(get_settings)) -> RecipeExtractor:
    try:
        return OpenAIRecipeExtractor(settings)
    except LLMError as e:
        raise HTTPException(status_code=502, detail=str(e))

def get_resolver(settings: Settings = Depends(get_settings)) -> Optional[CanonicalResolver]:
    try:
        return OpenAICanonicalResolver(settings)
    except LLMError as e:
        logger.warning("canonical resolver unavailable: %s", e)
        return None
