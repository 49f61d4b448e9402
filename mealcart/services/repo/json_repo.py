from __future__ import annotations

import io
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from pydantic import ValidationError

from mealcart.config import Settings
from mealcart.core.catalog import Catalog
from mealcart.core.models import PlannerState
from mealcart.core.store import BASKET, CHECKED, CONSUMED, MANUAL, PLANNED, PlannerStore
from mealcart.services.exceptions import RepoError
from .base import CatalogRepo, StateRepo

logger = logging.getLogger(__name__)

# Store slice -> key in the persisted key-value file
SLICE_KEYS: Dict[str, str] = {
    BASKET: "basket_meals",
    PLANNED: "planned_recipes",
    MANUAL: "manual_items",
    CHECKED: "checked_items",
    CONSUMED: "consumed_groups",
}


# Cross-platform file lock (fcntl for *nix; msvcrt for Windows)
@contextmanager
def _locked(path: str) -> Iterator[io.FileIO]:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    f = open(path, "a+b")  # create if missing
    try:
        try:
            import fcntl  # type: ignore
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            locker = ("fcntl", None)
        except ImportError:
            try:
                import msvcrt  # type: ignore
                msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)
                locker = ("msvcrt", 1)
            except Exception as e:
                f.close()
                raise RepoError(f"Could not lock file {path}: {e}") from e
        except OSError as e:
            f.close()
            raise RepoError(f"Could not lock file {path}: {e}") from e
        yield f
    finally:
        if not f.closed:
            try:
                if locker[0] == "fcntl":
                    import fcntl  # type: ignore
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                else:
                    import msvcrt  # type: ignore
                    msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, locker[1])
            except OSError as e:
                logger.warning("could not unlock %s: %s", path, e)
            f.close()


def _atomic_write(path: str, data: bytes) -> None:
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=d)
    try:
        with os.fdopen(fd, "wb") as w:
            w.write(data)
            w.flush()
            os.fsync(w.fileno())
        os.replace(tmp, path)
    except OSError as e:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise RepoError(f"Atomic write failed for {path}: {e}") from e


def _dumps(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class JSONStateRepo(StateRepo):
    """Key-value JSON file holding the planner state, one key per store slice.

    Reads and read-modify-write cycles hold an exclusive lock on a sidecar
    ``.lock`` file; the data file itself is only ever replaced atomically.
    """

    def __init__(self, settings: Settings):
        self.path = settings.state_file
        self.lock_path = self.path + ".lock"

    def _read_raw(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "rb") as f:
            raw = f.read() or b"{}"
        obj = json.loads(raw.decode("utf-8"))
        if not isinstance(obj, dict):
            raise ValueError("state file is not a JSON object")
        return obj

    def load(self) -> PlannerState:
        try:
            with _locked(self.lock_path):
                obj = self._read_raw()
            return PlannerState(**{
                slice_name: obj[key] for slice_name, key in SLICE_KEYS.items() if key in obj
            })
        except RepoError:
            raise
        except (OSError, ValueError, ValidationError) as e:
            raise RepoError(f"Failed to load planner state from {self.path}: {e}") from e

    def save(self, state: PlannerState) -> None:
        dumped = state.model_dump(mode="json")
        payload = {key: dumped[slice_name] for slice_name, key in SLICE_KEYS.items()}
        try:
            with _locked(self.lock_path):
                _atomic_write(self.path, _dumps(payload))
        except RepoError:
            raise
        except (OSError, TypeError) as e:
            raise RepoError(f"Failed to save planner state to {self.path}: {e}") from e

    def save_slice(self, key: str, value: Any) -> None:
        """Replace a single top-level key, leaving the others untouched."""
        try:
            with _locked(self.lock_path):
                obj = self._read_raw()
                obj[key] = value
                _atomic_write(self.path, _dumps(obj))
        except RepoError:
            raise
        except (OSError, ValueError, TypeError) as e:
            raise RepoError(f"Failed to save {key} to {self.path}: {e}") from e


class StatePersister:
    """Store listener writing the slice that just changed."""

    def __init__(self, repo: StateRepo):
        self.repo = repo

    def __call__(self, slice_name: str, store: PlannerStore) -> None:
        key = SLICE_KEYS.get(slice_name)
        if key is None:
            logger.warning("no storage key for slice %r", slice_name)
            return
        dumped = store.snapshot().model_dump(mode="json")
        self.repo.save_slice(key, dumped[slice_name])


class JSONCatalogRepo(CatalogRepo):
    """Read-only catalog snapshot: ``{"ingredients": [...], "meals": [...]}``."""

    def __init__(self, settings: Settings):
        self.path = settings.catalog_file

    def load(self) -> Catalog:
        if not os.path.exists(self.path):
            logger.warning("catalog file %s not found; starting with an empty catalog", self.path)
            return Catalog()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            return Catalog.from_records(payload)
        except (OSError, ValueError, AttributeError, ValidationError) as e:
            raise RepoError(f"Could not load catalog from {self.path}: {e}") from e
