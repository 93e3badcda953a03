"""
JSON File Storage Implementation

DESIGN DECISION: Each aggregate is stored as one file, <data_dir>/<key>.json.
1. Users can inspect and back up their data with ordinary file tools
2. No database setup required
3. A corrupt file only affects one aggregate

TRADEOFFS:
- No multi-key transactions (each aggregate is written independently,
  which is all the persistence coordinator needs)
- Writes go through a temp file + rename so a crash never leaves a
  half-written blob behind

The implementation follows the abstract interface, so the coordinator
does not know or care which backend it talks to.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from mywallet.audit import get_logger
from mywallet.services.storage.interface import (
    KeyValueStorageInterface,
    StorageReadError,
    StorageWriteError,
)

logger = get_logger(__name__)

FILE_SUFFIX = ".json"


class JsonFileStorage(KeyValueStorageInterface):
    """
    File-per-key storage.

    Reads never retry (a missing or unreadable file is handled by the
    coordinator's defaults); writes retry transient OS errors.
    """

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir)
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._dir / f"{key}{FILE_SUFFIX}"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Failed to read {path}: {e}")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write_atomic(self, path: Path, value: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self._write_atomic(path, value)
        except OSError as e:
            logger.error("storage_write_failed", key=key, error=str(e))
            raise StorageWriteError(f"Failed to write {path}: {e}")

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Failed to delete {path}: {e}")

    def clear(self) -> None:
        for key in self.keys():
            self.delete(key)

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self._dir.glob(f"*{FILE_SUFFIX}"))
