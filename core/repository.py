# --- File: core/repository.py ---
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# --- Storage Abstraction ---

class Repository(ABC, Generic[ModelT]):
    """
    Keyed store of aggregates. Implementations must hand out independent copies:
    nothing a caller receives may alias the stored state.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[ModelT]:
        """Returns a copy of the stored item, or None."""
        pass

    @abstractmethod
    def list(self) -> List[ModelT]:
        """Returns copies of all items in insertion order."""
        pass

    @abstractmethod
    def upsert(self, key: str, item: ModelT) -> None:
        """Inserts or replaces an item. Replacing keeps the original insertion position."""
        pass

    def close(self) -> None:
        pass


class InMemoryRepository(Repository[ModelT]):
    """Process-memory store. Items live for the lifetime of the process."""
    def __init__(self, name: str = "items"):
        self.name = name
        self._items: Dict[str, ModelT] = {} # dicts keep insertion order
        self._lock = threading.Lock()
        logger.info(f"In-memory repository '{self.name}' initialized.")

    def get(self, key: str) -> Optional[ModelT]:
        with self._lock:
            item = self._items.get(key)
            return item.model_copy(deep=True) if item is not None else None

    def list(self) -> List[ModelT]:
        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def upsert(self, key: str, item: ModelT) -> None:
        with self._lock:
            self._items[key] = item.model_copy(deep=True)
