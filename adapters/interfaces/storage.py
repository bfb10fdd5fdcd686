"""Key-value storage interface definitions."""

from abc import ABC, abstractmethod
from typing import List, Optional


class KeyValueStoreInterface(ABC):
    """Opaque async key-value store holding JSON text values."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is missing."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        pass

    @abstractmethod
    async def keys(self) -> List[str]:
        """Return all stored keys."""
        pass
