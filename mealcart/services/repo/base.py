from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any
from mealcart.core.catalog import Catalog
from mealcart.core.models import PlannerState

class StateRepo(ABC):
    @abstractmethod
    def load(self) -> PlannerState: ...
    @abstractmethod
    def save(self, state: PlannerState) -> None: ...
    @abstractmethod
    def save_slice(self, key: str, value: Any) -> None: ...

class CatalogRepo(ABC):
    @abstractmethod
    def load(self) -> Catalog: ...
