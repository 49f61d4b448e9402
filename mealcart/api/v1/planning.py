from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from mealcart.core.models import BasketEntry, IngredientRow, PlannedRecipe
from mealcart.core.store import PlannerStore
from mealcart.services.exceptions import RepoError
from .deps import get_store

router = APIRouter(prefix="/api/v1/planning", tags=["planning"])

# ---- Models ------------------------------------------------------------------

class PersonsUpdate(BaseModel):
    persons: int

class PlannedRecipeCreate(BaseModel):
    title: str = ""
    servings: int
    base_servings: Optional[int] = None
    ingredients: List[IngredientRow] = Field(default_factory=list)

class ServingsUpdate(BaseModel):
    servings: int

# ---- Basket ------------------------------------------------------------------

@router.get("/basket", response_model=List[BasketEntry])
def get_basket(store: PlannerStore = Depends(get_store)):
    return store.basket


@router.put("/basket/{meal_id}", response_model=List[BasketEntry])
def put_basket_entry(meal_id: int, body: PersonsUpdate, store: PlannerStore = Depends(get_store)):
    if store.catalog.meal(meal_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown meal {meal_id}")
    try:
        store.add_to_basket(meal_id, body.persons)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return store.basket


@router.delete("/basket/{meal_id}", response_model=List[BasketEntry])
def delete_basket_entry(meal_id: int, store: PlannerStore = Depends(get_store)):
    try:
        store.remove_from_basket(meal_id)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return store.basket


@router.delete("/basket", status_code=status.HTTP_204_NO_CONTENT)
def clear_basket(store: PlannerStore = Depends(get_store)):
    try:
        store.clear_basket()
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))

# ---- Planned recipes ---------------------------------------------------------

@router.get("/recipes", response_model=List[PlannedRecipe])
def list_planned_recipes(store: PlannerStore = Depends(get_store)):
    return store.planned_recipes


@router.post("/recipes", response_model=PlannedRecipe, status_code=status.HTTP_201_CREATED)
def add_planned_recipe(body: PlannedRecipeCreate, store: PlannerStore = Depends(get_store)):
    try:
        return store.add_planned_recipe(body.title, body.servings, body.ingredients,
                                        base_servings=body.base_servings)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/recipes/{recipe_id}", response_model=PlannedRecipe)
def rescale_planned_recipe(recipe_id: UUID, body: ServingsUpdate, store: PlannerStore = Depends(get_store)):
    try:
        updated = store.update_planned_servings(recipe_id, body.servings)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Unknown planned recipe {recipe_id}")
    return updated


@router.delete("/recipes/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_planned_recipe(recipe_id: UUID, store: PlannerStore = Depends(get_store)):
    try:
        removed = store.remove_planned_recipe(recipe_id)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail=f"Unknown planned recipe {recipe_id}")
