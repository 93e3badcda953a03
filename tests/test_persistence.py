"""Tests for storage backends, the task scheduler and the persistence coordinator."""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from mywallet.models import (
    AppSettings,
    DebtStatus,
    Goal,
    Transaction,
    default_settings,
)
from mywallet.models.snapshot import LedgerState, Snapshot
from mywallet.services import (
    InMemoryStorage,
    JsonFileStorage,
    PersistenceCoordinator,
    SnapshotImportError,
    StorageWriteError,
    TaskScheduler,
    export_filename,
    export_snapshot,
    parse_snapshot,
)
from mywallet.services.storage import KeyValueStorageInterface

NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


def tx(amount=10):
    return Transaction(amount=amount, type="expense", category="Other", date=NOW)


class FailingStorage(InMemoryStorage):
    """Storage whose writes always fail."""

    def set(self, key, value):
        raise StorageWriteError("disk full")


class TestJsonFileStorage:
    """Tests for the file-per-key backend."""

    def test_set_get_round_trip(self, tmp_path):
        """Test values survive a new storage instance."""
        JsonFileStorage(tmp_path).set("people", "[]")
        assert JsonFileStorage(tmp_path).get("people") == "[]"
        assert (tmp_path / "people.json").exists()

    def test_missing_key_is_none(self, tmp_path):
        """Test reading an unknown key."""
        assert JsonFileStorage(tmp_path).get("goals") is None

    def test_clear_and_keys(self, tmp_path):
        """Test listing and clearing."""
        storage = JsonFileStorage(tmp_path)
        storage.set("a", "1")
        storage.set("b", "2")
        assert storage.keys() == ["a", "b"]
        storage.clear()
        assert storage.keys() == []

    def test_rejects_path_like_keys(self, tmp_path):
        """Test keys cannot escape the data directory."""
        with pytest.raises(ValueError):
            JsonFileStorage(tmp_path).set("../evil", "x")

    def test_is_a_key_value_storage(self, tmp_path):
        """Test the backend implements the interface."""
        assert isinstance(JsonFileStorage(tmp_path), KeyValueStorageInterface)


class TestTaskScheduler:
    """Tests for the keyed cancelable scheduler."""

    def test_runs_immediately_without_loop(self):
        """Test synchronous callers get immediate execution."""
        calls = []
        TaskScheduler().schedule("k", 10, lambda: calls.append(1))
        assert calls == [1]

    async def test_debounce_coalesces(self):
        """Test a burst on one key runs only the last callback."""
        scheduler = TaskScheduler()
        calls = []
        for i in range(3):
            scheduler.schedule("k", 0.05, lambda i=i: calls.append(i))
        assert calls == []
        assert scheduler.is_pending("k")

        await asyncio.sleep(0.1)
        assert calls == [2]
        assert not scheduler.is_pending("k")

    async def test_cancel(self):
        """Test a cancelled task never runs."""
        scheduler = TaskScheduler()
        calls = []
        scheduler.schedule("k", 0.02, lambda: calls.append(1))
        assert scheduler.cancel("k") is True
        assert scheduler.cancel("k") is False
        await asyncio.sleep(0.05)
        assert calls == []

    async def test_flush_runs_pending_now(self):
        """Test flush executes pending tasks without waiting."""
        scheduler = TaskScheduler()
        calls = []
        scheduler.schedule("a", 10, lambda: calls.append("a"))
        scheduler.schedule("b", 10, lambda: calls.append("b"))
        scheduler.flush()
        assert sorted(calls) == ["a", "b"]
        assert scheduler.pending_keys == []

    def test_failing_callback_is_contained(self):
        """Test an exception in a task does not propagate."""
        def boom():
            raise RuntimeError("boom")

        TaskScheduler().schedule("k", 0, boom)


class TestPersistenceWrites:
    """Tests for the write policy."""

    async def test_debounced_burst_is_one_write(self):
        """Test rapid edits to a high-churn aggregate coalesce."""
        storage = InMemoryStorage()
        coordinator = PersistenceCoordinator(storage, debounce_seconds=0.05)

        coordinator.save("transactions", (tx(1),))
        coordinator.save("transactions", (tx(1), tx(2)))
        coordinator.save("transactions", (tx(1), tx(2), tx(3)))
        assert storage.write_counts.get("transactions", 0) == 0
        assert coordinator.has_pending("transactions")

        await asyncio.sleep(0.1)
        assert storage.write_counts["transactions"] == 1
        assert len(json.loads(storage.get("transactions"))) == 3

    async def test_immediate_keys_write_synchronously(self):
        """Test settings are written without debounce."""
        storage = InMemoryStorage()
        coordinator = PersistenceCoordinator(storage, debounce_seconds=10)
        coordinator.save("settings", AppSettings(currency="USD"))
        assert json.loads(storage.get("settings"))["currency"] == "USD"

    async def test_write_now_cancels_stale_pending_write(self):
        """Test a pending write cannot land after an immediate replacement."""
        storage = InMemoryStorage()
        coordinator = PersistenceCoordinator(storage, debounce_seconds=0.05)
        coordinator.save("goals", (Goal(name="Old", target_amount=1),))

        state = LedgerState(goals=(Goal(name="New", target_amount=1),))
        coordinator.write_now(state, ["goals"])
        await asyncio.sleep(0.1)

        assert storage.write_counts["goals"] == 1
        assert json.loads(storage.get("goals"))[0]["name"] == "New"

    def test_write_failure_is_logged_not_raised(self, audit_logger):
        """Test storage errors never escape save()."""
        coordinator = PersistenceCoordinator(FailingStorage(), audit_logger=audit_logger)
        coordinator.save("settings", default_settings())
        assert audit_logger.recent(1)[0].event_type.value == "storage_write_failed"

    async def test_clear_storage_drops_pending(self):
        """Test reset leaves nothing pending and storage empty."""
        storage = InMemoryStorage({"people": "[]"})
        coordinator = PersistenceCoordinator(storage, debounce_seconds=0.05)
        coordinator.save("transactions", (tx(),))
        coordinator.clear_storage()
        await asyncio.sleep(0.1)
        assert storage.keys() == []


class TestPersistenceLoad:
    """Tests for the lenient load contract."""

    @pytest.mark.parametrize("blob", [None, "", "null", "undefined", "{not json", '{"a": 1}'])
    def test_bad_blobs_fall_back_to_defaults(self, blob):
        """Test missing, literal null, unparsable or wrong-shaped values."""
        initial = {} if blob is None else {key: blob for key in ("transactions", "categories", "settings", "budget")}
        state = PersistenceCoordinator(InMemoryStorage(initial)).load_state()
        defaults = LedgerState.defaults()

        assert state.transactions == ()
        assert state.categories == defaults.categories
        assert state.settings == defaults.settings
        assert [s.name for s in state.budget.segments] == ["Essentials", "Discretionary", "Savings"]

    def test_invalid_records_are_dropped(self, audit_logger):
        """Test one bad record does not discard the rest."""
        good = tx().to_json_dict()
        bad = {"amount": -1, "type": "expense", "category": "x", "date": NOW.isoformat()}
        storage = InMemoryStorage({"transactions": json.dumps([good, bad])})

        state = PersistenceCoordinator(storage, audit_logger=audit_logger).load_state()
        assert len(state.transactions) == 1
        assert audit_logger.recent(1)[0].event_type.value == "storage_fallback"

    def test_legacy_budget_migrated_on_load(self):
        """Test the stored legacy budget shape is upgraded."""
        storage = InMemoryStorage({"budget": json.dumps({"monthlyIncome": 900, "needsRatio": 60, "wantsRatio": 25, "savingsRatio": 15})})
        state = PersistenceCoordinator(storage).load_state()
        assert state.budget.monthly_income == 900
        assert [s.ratio for s in state.budget.segments] == [60, 25, 15]

    def test_stored_debt_status_is_rederived(self):
        """Test a stale status in storage never survives loading."""
        person = {
            "id": "p1", "name": "Ali", "relationType": "owes_me",
            "debts": [
                {"id": "d1", "amount": 100, "paidAmount": 100, "status": "unpaid", "dueDate": NOW.isoformat()},
                {"id": "d2", "amount": 100, "paidAmount": 30, "status": "paid", "dueDate": NOW.isoformat()},
            ],
        }
        storage = InMemoryStorage({"people": json.dumps([person])})

        debts = PersistenceCoordinator(storage).load_state().people[0].debts
        assert [d.status for d in debts] == [DebtStatus.PAID, DebtStatus.PARTIAL]

    def test_unreadable_budget_fallback_is_audited(self, audit_logger):
        """Test a segments list with an invalid segment is replaced visibly."""
        blob = {"monthlyIncome": 500, "segments": [{"name": "All", "ratio": 150, "color": "#000"}]}
        storage = InMemoryStorage({"budget": json.dumps(blob)})

        state = PersistenceCoordinator(storage, audit_logger=audit_logger).load_state()

        assert state.budget.monthly_income == 0
        event = audit_logger.recent(1)[0]
        assert event.event_type.value == "storage_fallback"
        assert event.entity_type == "budget"

    def test_round_trip_through_storage(self):
        """Test saved aggregates load back equal."""
        storage = InMemoryStorage()
        coordinator = PersistenceCoordinator(storage)
        state = LedgerState(transactions=(tx(5),), settings=AppSettings(currency="EUR", dark_mode=True))
        coordinator.write_now(state)

        loaded = coordinator.load_state()
        assert loaded.transactions == state.transactions
        assert loaded.settings == state.settings
        assert loaded.categories == state.categories


class TestSnapshot:
    """Tests for the backup document."""

    def test_export_shape(self):
        """Test the exported keys and version."""
        doc = json.loads(export_snapshot(LedgerState(transactions=(tx(),))))
        assert set(doc) == {
            "transactions", "people", "goals", "budget", "settings",
            "categories", "recurringTransactions", "version",
        }
        assert doc["version"] == "2.0"
        assert "notifications" not in doc

    def test_export_filename(self):
        """Test the date-stamped filename."""
        assert export_filename(NOW) == "mywallet_backup_2024-03-15.json"

    @pytest.mark.parametrize("content", ["not json", "null", "[]", '"text"', b"\xff\xfe"])
    def test_parse_rejects_non_objects(self, content):
        """Test unparsable and non-object documents."""
        with pytest.raises(SnapshotImportError):
            parse_snapshot(content)

    def test_parse_rejects_invalid_records(self):
        """Test schema-invalid aggregates fail the whole import."""
        with pytest.raises(SnapshotImportError):
            parse_snapshot(json.dumps({"transactions": [{"amount": "lots"}]}))

    def test_parse_rejects_unreadable_budget(self):
        """Test an invalid budget segment fails the import instead of being dropped."""
        doc = {"budget": {"segments": [{"name": "", "ratio": 10, "color": "#000"}]}}
        with pytest.raises(SnapshotImportError, match="budget"):
            parse_snapshot(json.dumps(doc))

    def test_absent_fields_reset_to_defaults(self):
        """Test a sparse snapshot."""
        state = parse_snapshot("{}").to_state()
        assert state == LedgerState(budget=state.budget)
        assert len(state.budget.segments) == 3

    def test_snapshot_keeps_given_notifications(self):
        """Test notifications come from the caller, not the file."""
        snapshot = Snapshot()
        assert snapshot.to_state(notifications=()).notifications == ()
