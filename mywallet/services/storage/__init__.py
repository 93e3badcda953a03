"""
Storage Services Package

Provides the abstract key/value interface and concrete backends.
The JSON file backend is the default, but the interface is swappable.
"""

from mywallet.services.storage.interface import (
    ALL_KEYS,
    BUDGET_KEY,
    CATEGORIES_KEY,
    GOALS_KEY,
    NOTIFICATIONS_KEY,
    PEOPLE_KEY,
    RECURRING_KEY,
    SETTINGS_KEY,
    TRANSACTIONS_KEY,
    KeyValueStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from mywallet.services.storage.json_file import JsonFileStorage
from mywallet.services.storage.memory import InMemoryStorage

__all__ = [
    # Interface
    "KeyValueStorageInterface",
    # Keys
    "ALL_KEYS",
    "BUDGET_KEY",
    "CATEGORIES_KEY",
    "GOALS_KEY",
    "NOTIFICATIONS_KEY",
    "PEOPLE_KEY",
    "RECURRING_KEY",
    "SETTINGS_KEY",
    "TRANSACTIONS_KEY",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
]
