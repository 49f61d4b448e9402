from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from mealcart.core.models import ManualItem, ShoppingSection
from mealcart.core.store import PlannerStore
from mealcart.services.exceptions import RepoError
from .deps import get_store

router = APIRouter(prefix="/api/v1/shopping", tags=["shopping"])

# ---- Models ------------------------------------------------------------------

class GroupRef(BaseModel):
    name: str
    unit: str = ""
    category: str

class ManualItemCreate(BaseModel):
    name: str
    category: str = ""
    unit: str = ""
    quantity: float = 0.0
    ingredient_id: Optional[int] = None

class QuickAddRequest(BaseModel):
    text: str

class QuantityUpdate(BaseModel):
    quantity: float = Field(..., ge=0)

class CheckState(BaseModel):
    id: str
    checked: bool

# ---- Routes ------------------------------------------------------------------

@router.get("/sections", response_model=List[ShoppingSection])
def get_sections(store: PlannerStore = Depends(get_store)):
    try:
        return store.build_shopping_sections()
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/toggle", response_model=List[ShoppingSection])
def toggle_or_remove(group: GroupRef, store: PlannerStore = Depends(get_store)):
    """First call checks the row; a second call on a checked row marks it bought."""
    try:
        store.toggle_or_remove(group.name, group.unit, group.category)
        return store.build_shopping_sections()
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/toggle-group", response_model=List[ShoppingSection])
def toggle_group(group: GroupRef, store: PlannerStore = Depends(get_store)):
    try:
        store.toggle_checked_for_group(group.name, group.unit, group.category)
        return store.build_shopping_sections()
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/checked/{item_id:path}", response_model=CheckState)
def toggle_checked(item_id: str, store: PlannerStore = Depends(get_store)):
    try:
        return CheckState(id=item_id, checked=store.toggle_checked(item_id))
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/consumed", status_code=status.HTTP_204_NO_CONTENT)
def reset_consumed(store: PlannerStore = Depends(get_store)):
    try:
        store.reset_consumed()
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/manual", response_model=List[ManualItem])
def list_manual_items(store: PlannerStore = Depends(get_store)):
    return store.manual_items


@router.post("/manual", response_model=List[ManualItem], status_code=status.HTTP_201_CREATED)
def add_manual_item(body: ManualItemCreate, store: PlannerStore = Depends(get_store)):
    if body.ingredient_id is not None and store.catalog.ingredient(body.ingredient_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown ingredient {body.ingredient_id}")
    try:
        added = store.add_manual_item(body.name, body.category, body.unit, body.quantity, body.ingredient_id)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if added is None:
        raise HTTPException(status_code=400, detail="Item name is empty")
    return store.manual_items


@router.post("/manual/quick", response_model=List[ManualItem], status_code=status.HTTP_201_CREATED)
def quick_add(body: QuickAddRequest, store: PlannerStore = Depends(get_store)):
    try:
        added = store.add_manual_quick(body.text)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if added is None:
        raise HTTPException(status_code=400, detail="Item name is empty")
    return store.manual_items


@router.patch("/manual/{item_id}", response_model=ManualItem)
def update_manual_item(item_id: UUID, body: QuantityUpdate, store: PlannerStore = Depends(get_store)):
    try:
        updated = store.update_manual_item(item_id, body.quantity)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Unknown manual item {item_id}")
    return updated


@router.delete("/manual/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_manual_item(item_id: UUID, store: PlannerStore = Depends(get_store)):
    try:
        removed = store.remove_manual_item(item_id)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail=f"Unknown manual item {item_id}")


@router.get("/suggestions", response_model=List[str])
def suggest_names(q: str = Query(""), limit: int = Query(8, ge=1, le=50),
                  store: PlannerStore = Depends(get_store)):
    return store.suggest_manual_names(q, limit=limit)
