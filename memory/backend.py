"""Durable key/value backend interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueBackend(ABC):
    """
    Slow, shared key/value surface behind the in-process cache.

    Values are JSON-compatible structures. Implementations raise
    PersistenceFailure on any I/O or protocol error.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None when the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store value under key (last write wins)."""
        pass

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable description for logs."""
        pass
