"""In-memory storage backend, used for tests and ephemeral sessions."""

from typing import Optional

from mywallet.services.storage.interface import KeyValueStorageInterface


class InMemoryStorage(KeyValueStorageInterface):
    """Dict-backed storage. Tracks how many writes each key received."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.write_counts: dict[str, int] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.write_counts[key] = self.write_counts.get(key, 0) + 1

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data)
