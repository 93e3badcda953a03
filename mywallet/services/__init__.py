"""Services package."""

from mywallet.services.persistence import (
    DEBOUNCED_KEYS,
    IMMEDIATE_KEYS,
    ImportResult,
    PersistenceCoordinator,
    SnapshotImportError,
    export_filename,
    export_snapshot,
    parse_snapshot,
)
from mywallet.services.scheduling import TaskScheduler
from mywallet.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    # Persistence
    "DEBOUNCED_KEYS",
    "IMMEDIATE_KEYS",
    "ImportResult",
    "PersistenceCoordinator",
    "SnapshotImportError",
    "export_filename",
    "export_snapshot",
    "parse_snapshot",
    # Scheduling
    "TaskScheduler",
    # Storage services
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorageInterface",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]
