"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract key/value interface for storage.
This allows us to:
1. Swap the JSON file backend for any other blob store later
2. Use in-memory storage for testing
3. Keep the store and persistence coordinator decoupled from the transport

The interface is intentionally tiny - each aggregate is one string blob
under one key. Parsing and defaults belong to the persistence coordinator.
"""

from abc import ABC, abstractmethod
from typing import Optional


# One key per aggregate
TRANSACTIONS_KEY = "transactions"
PEOPLE_KEY = "people"
GOALS_KEY = "goals"
BUDGET_KEY = "budget"
SETTINGS_KEY = "settings"
CATEGORIES_KEY = "categories"
RECURRING_KEY = "recurring"
NOTIFICATIONS_KEY = "notifications"

ALL_KEYS = (
    TRANSACTIONS_KEY,
    PEOPLE_KEY,
    GOALS_KEY,
    BUDGET_KEY,
    SETTINGS_KEY,
    CATEGORIES_KEY,
    RECURRING_KEY,
    NOTIFICATIONS_KEY,
)


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for blob storage.

    Any storage implementation (files, browser storage, a database table)
    must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the raw blob stored under key.

        Returns:
            The stored string, or None if nothing is stored

        Raises:
            StorageReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store value under key, replacing any previous value.

        Raises:
            StorageWriteError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every key."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys currently stored."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """Stored value could not be read."""
    pass


class StorageWriteError(StorageError):
    """Value could not be written."""
    pass
