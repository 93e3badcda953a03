"""
Persistence Coordinator

Write-through of each aggregate to the key/value storage backend, plus
snapshot export/import.

WRITE POLICY:
- High-churn aggregates (transactions, people, goals, categories,
  recurring) are debounced: the write happens debounce_seconds after the
  last change, and a new change within the window resets the timer.
- Low-churn aggregates (settings, budget, notifications) are written
  synchronously on every change. They are rarely written and losing the
  latest value on abrupt termination is least tolerable for them.

LOAD POLICY:
- Missing, unparsable, "null"/"undefined", or wrongly-shaped blobs fall
  back to typed defaults. Individual records that fail validation are
  dropped. Nothing here ever raises to the caller; fallbacks are logged.

IMPORT POLICY:
- All-or-nothing. The whole document is parsed and validated before any
  state is touched. A budget that cannot be interpreted fails the import
  rather than being silently replaced by the default.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from pydantic import BaseModel, TypeAdapter, ValidationError

from mywallet.audit import AuditLogger, get_logger
from mywallet.models.audit import AuditEventBuilder
from mywallet.models.ledger import (
    DEFAULT_CATEGORIES,
    AppSettings,
    BudgetConfig,
    Category,
    Goal,
    Notification,
    Person,
    RecurringTransaction,
    Transaction,
    default_settings,
)
from mywallet.models.migration import default_budget, load_budget
from mywallet.models.snapshot import LedgerState, Snapshot
from mywallet.services.scheduling import TaskScheduler
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
)

logger = get_logger(__name__)

DEBOUNCED_KEYS = frozenset({TRANSACTIONS_KEY, PEOPLE_KEY, GOALS_KEY, CATEGORIES_KEY, RECURRING_KEY})
IMMEDIATE_KEYS = frozenset({SETTINGS_KEY, BUDGET_KEY, NOTIFICATIONS_KEY})

# Storage key -> LedgerState attribute
STATE_FIELDS = {
    TRANSACTIONS_KEY: "transactions",
    PEOPLE_KEY: "people",
    GOALS_KEY: "goals",
    BUDGET_KEY: "budget",
    SETTINGS_KEY: "settings",
    CATEGORIES_KEY: "categories",
    RECURRING_KEY: "recurring",
    NOTIFICATIONS_KEY: "notifications",
}

# Values older clients wrote when serializing nothing
_EMPTY_MARKERS = {"", "null", "undefined"}

_LIST_MODELS: dict[str, type[BaseModel]] = {
    TRANSACTIONS_KEY: Transaction,
    PEOPLE_KEY: Person,
    GOALS_KEY: Goal,
    CATEGORIES_KEY: Category,
    RECURRING_KEY: RecurringTransaction,
    NOTIFICATIONS_KEY: Notification,
}


class SnapshotImportError(Exception):
    """Backup document could not be parsed or validated."""
    pass


@dataclass(frozen=True)
class ImportResult:
    """Outcome of an import; the ledger is untouched when success is False."""

    success: bool
    error: Optional[str] = None


def serialize(value: Any) -> str:
    """JSON blob for one aggregate value (a record or a sequence of records)."""
    if isinstance(value, BaseModel):
        return json.dumps(value.model_dump(mode="json", by_alias=True, exclude_none=True), ensure_ascii=False)
    return json.dumps(
        [item.model_dump(mode="json", by_alias=True, exclude_none=True) for item in value],
        ensure_ascii=False,
    )


def export_filename(now: datetime) -> str:
    return f"mywallet_backup_{now.date().isoformat()}.json"


def export_snapshot(state: LedgerState) -> str:
    """The backup document for state, pretty-printed."""
    snapshot = Snapshot.from_state(state)
    return json.dumps(snapshot.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2, ensure_ascii=False)


def parse_snapshot(content: str | bytes) -> Snapshot:
    """
    Parse and validate a backup document.

    Raises:
        SnapshotImportError: Unparsable JSON, a non-object document,
                             records that fail validation, or a budget
                             that cannot be interpreted
    """
    try:
        if isinstance(content, bytes):
            content = content.decode("utf-8")
        raw = json.loads(content)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SnapshotImportError(f"Backup is not valid JSON: {e}")

    if not isinstance(raw, dict):
        raise SnapshotImportError("Backup must be a JSON object")

    try:
        snapshot = Snapshot.model_validate(raw)
    except ValidationError as e:
        raise SnapshotImportError(f"Backup contains invalid records: {e.error_count()} error(s)")

    if snapshot.budget is not None and load_budget(snapshot.budget) is None:
        raise SnapshotImportError("Backup contains an invalid budget")
    return snapshot


class PersistenceCoordinator:
    """
    Moves aggregate values between the store and storage.

    The coordinator never raises from save(); write failures are logged
    and audited, and the in-memory state stays authoritative.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        scheduler: Optional[TaskScheduler] = None,
        debounce_seconds: float = 0.5,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._scheduler = scheduler or TaskScheduler()
        self._debounce_seconds = debounce_seconds
        self._audit = audit_logger

    @property
    def storage(self) -> KeyValueStorageInterface:
        return self._storage

    @property
    def scheduler(self) -> TaskScheduler:
        return self._scheduler

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def save(self, key: str, value: Any) -> None:
        """Persist one aggregate according to its write policy."""
        if key in DEBOUNCED_KEYS:
            self._scheduler.schedule(
                self._task_key(key),
                self._debounce_seconds,
                lambda: self._write(key, value),
            )
        else:
            self._write(key, value)

    def write_now(self, state: LedgerState, keys: Sequence[str] = ALL_KEYS) -> None:
        """
        Cancel pending debounced writes for keys and write state immediately.

        Used by import and reset so a stale pending write can never land
        after the new state.
        """
        self.cancel_pending(keys)
        for key in keys:
            self._write(key, getattr(state, STATE_FIELDS[key]))

    def cancel_pending(self, keys: Sequence[str] = ALL_KEYS) -> None:
        self._scheduler.cancel_all(self._task_key(k) for k in keys)

    def flush(self) -> None:
        """Write every pending debounced aggregate now."""
        self._scheduler.flush(self._task_key(k) for k in DEBOUNCED_KEYS)

    def has_pending(self, key: str) -> bool:
        return self._scheduler.is_pending(self._task_key(key))

    def clear_storage(self) -> None:
        """Cancel all pending writes and wipe storage."""
        self.cancel_pending()
        try:
            self._storage.clear()
        except StorageError as e:
            logger.error("storage_clear_failed", error=str(e))
            if self._audit:
                self._audit.log(AuditEventBuilder.storage_write_failed("*", str(e)))

    @staticmethod
    def _task_key(key: str) -> str:
        return f"persist:{key}"

    def _write(self, key: str, value: Any) -> None:
        try:
            self._storage.set(key, serialize(value))
        except StorageError as e:
            logger.error("aggregate_write_failed", key=key, error=str(e))
            if self._audit:
                self._audit.log(AuditEventBuilder.storage_write_failed(key, str(e)))

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load_state(self) -> LedgerState:
        """Read every aggregate, falling back to defaults where needed."""
        defaults = LedgerState.defaults()
        return LedgerState(
            transactions=self._load_list(TRANSACTIONS_KEY, defaults.transactions),
            people=self._load_list(PEOPLE_KEY, defaults.people),
            goals=self._load_list(GOALS_KEY, defaults.goals),
            budget=self._load_budget(),
            settings=self._load_settings(),
            categories=self._load_list(CATEGORIES_KEY, DEFAULT_CATEGORIES),
            recurring=self._load_list(RECURRING_KEY, defaults.recurring),
            notifications=self._load_list(NOTIFICATIONS_KEY, defaults.notifications),
        )

    def _fallback(self, key: str, reason: str) -> None:
        logger.warning("storage_fallback", key=key, reason=reason)
        if self._audit:
            self._audit.log(AuditEventBuilder.storage_fallback(key, reason))

    def _load_raw(self, key: str) -> Any:
        """Parsed JSON for key, or None when missing or unreadable."""
        try:
            blob = self._storage.get(key)
        except StorageError as e:
            self._fallback(key, str(e))
            return None

        if blob is None or blob.strip() in _EMPTY_MARKERS:
            return None

        try:
            return json.loads(blob)
        except json.JSONDecodeError as e:
            self._fallback(key, f"unparsable JSON: {e}")
            return None

    def _load_list(self, key: str, default: tuple) -> tuple:
        raw = self._load_raw(key)
        if raw is None:
            return default
        if not isinstance(raw, list):
            self._fallback(key, f"expected a list, found {type(raw).__name__}")
            return default

        adapter = TypeAdapter(_LIST_MODELS[key])
        records = []
        for index, item in enumerate(raw):
            try:
                records.append(adapter.validate_python(item))
            except ValidationError as e:
                self._fallback(key, f"record {index} dropped: {e.error_count()} error(s)")
        return tuple(records)

    def _load_budget(self) -> BudgetConfig:
        raw = self._load_raw(BUDGET_KEY)
        if raw is None:
            return default_budget()
        budget = load_budget(raw)
        if budget is None:
            self._fallback(BUDGET_KEY, "unrecognized budget, default used")
            return default_budget()
        return budget

    def _load_settings(self) -> AppSettings:
        raw = self._load_raw(SETTINGS_KEY)
        if raw is None:
            return default_settings()
        try:
            return AppSettings.model_validate(raw)
        except ValidationError as e:
            self._fallback(SETTINGS_KEY, f"invalid settings: {e.error_count()} error(s)")
            return default_settings()
