# mealcart/core/models.py
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------- Catalog (owned by the external provider) ----------

class Ingredient(BaseModel):
    """Immutable catalog entry."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str
    category: str
    unit: str = ""
    photo: Optional[str] = None
    canonical_name: Optional[str] = Field(None, alias="canonicalName")
    pivot_unit: Optional[str] = Field(None, alias="pivotUnit")

    def preferred_name(self) -> str:
        """Canonical name when it is set and non-blank, else the raw name."""
        canonical = (self.canonical_name or "").strip()
        return canonical or self.name


class MealIngredient(BaseModel):
    model_config = ConfigDict(frozen=True)

    ingredient_id: int
    unit: str = "g"
    qty_per_person: float = Field(..., ge=0)
    pivot_qty_per_person: Optional[float] = None

    @field_validator("unit", mode="before")
    @classmethod
    def _default_unit(cls, v: Optional[str]) -> str:
        return "g" if v is None else v


class Meal(BaseModel):
    """A standing catalog recipe, quantities are per person."""
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    type: str = ""
    photo: Optional[str] = None
    ingredients: List[MealIngredient] = Field(default_factory=list)


# ---------- User state ----------

class IngredientRow(BaseModel):
    """An extracted or manually entered ingredient line."""
    id: UUID = Field(default_factory=uuid4)
    is_selected: bool = True
    name: str
    unit: str = ""
    quantity: Optional[float] = None
    base_quantity: Optional[float] = None
    canonical_id: Optional[int] = None


class PlannedRecipe(BaseModel):
    """Imported recipe; stored quantities are always relative to ``base_servings``."""
    id: UUID = Field(default_factory=uuid4)
    title: str
    servings: int = Field(..., ge=1)
    base_servings: int = Field(..., ge=1)
    date: datetime = Field(default_factory=datetime.now)
    ingredients: List[IngredientRow] = Field(default_factory=list)

    def scaled_ingredients(self) -> List[IngredientRow]:
        factor = self.servings / self.base_servings
        out: List[IngredientRow] = []
        for row in self.ingredients:
            base = row.base_quantity if row.base_quantity is not None else row.quantity
            if base is None:
                out.append(row.model_copy())
            else:
                out.append(row.model_copy(update={"quantity": base * factor}))
        return out


class BasketEntry(BaseModel):
    meal_id: int
    persons: int = Field(1, ge=1)


class ManualItem(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    ingredient_id: Optional[int] = None
    name: str
    category: str
    unit: str = ""
    quantity: float = Field(0, ge=0, description="0 means added but unspecified")


class PlannerState(BaseModel):
    """Everything the store persists, in its storage shape."""
    basket: List[BasketEntry] = Field(default_factory=list)
    planned_recipes: List[PlannedRecipe] = Field(default_factory=list)
    manual_items: List[ManualItem] = Field(default_factory=list)
    checked: List[str] = Field(default_factory=list)
    consumed: Dict[str, float] = Field(default_factory=dict)


# ---------- Shopping list view ----------

class ShoppingItem(BaseModel):
    id: str
    ingredient_id: Optional[int] = None
    name: str
    category: str
    unit: str
    total_quantity: float
    checked: bool = False


class ShoppingSection(BaseModel):
    category: str
    items: List[ShoppingItem]


# ---------- Extraction contract ----------

class ExtractedItem(BaseModel):
    n: str
    q: Optional[float] = None
    u: Optional[str] = None


class ExtractionRequest(BaseModel):
    t: str
    s: Optional[int] = None


class ExtractionResponse(BaseModel):
    r: Optional[str] = None
    s: Optional[int] = None
    i: List[ExtractedItem] = Field(default_factory=list)
    p: Optional[List[str]] = None


# ---------- Canonicalization contract ----------

class Candidate(BaseModel):
    """A ranked catalog candidate for one query."""
    id: int
    name: str
    canonical_name: Optional[str] = None
    score: float


class CanonCandidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    canonical_name: Optional[str] = Field(None, alias="canonicalName")


class CanonRequest(BaseModel):
    items: List[ExtractedItem]
    candidates: Dict[str, List[CanonCandidate]]


class CanonMapped(BaseModel):
    idx: int
    canonical_id: Optional[int] = None
    canonical_name: Optional[str] = None
    confidence: float = Field(0, ge=0, le=1)


class CanonResponse(BaseModel):
    mapped: List[CanonMapped] = Field(default_factory=list)
