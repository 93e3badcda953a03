"""Tests for deployment configuration."""

from pathlib import Path

import pytest

from mywallet.config import (
    SchedulerSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)
from mywallet.services.storage import InMemoryStorage, JsonFileStorage
from mywallet.store import FinanceStore


class TestSettings:
    """Tests for pydantic-settings loading."""

    def test_defaults(self, monkeypatch):
        """Test default timings and storage."""
        monkeypatch.delenv("MYWALLET_STORAGE_BACKEND", raising=False)
        storage = StorageSettings()
        scheduler = SchedulerSettings()
        assert storage.backend == "json_file"
        assert storage.debounce_seconds == 0.5
        assert scheduler.recurring_interval_seconds == 60
        assert scheduler.recurring_initial_delay_seconds == 2
        assert scheduler.reminder_offset_months == 1
        assert scheduler.payment_due_extension_days == 30

    def test_environment_overrides(self, monkeypatch, tmp_path):
        """Test prefixed environment variables."""
        monkeypatch.setenv("MYWALLET_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("MYWALLET_STORAGE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("MYWALLET_STORAGE_DEBOUNCE_MS", "250")
        storage = Settings().storage
        assert storage.backend == "memory"
        assert storage.data_dir == Path(tmp_path)
        assert storage.debounce_seconds == 0.25

    def test_invalid_backend_rejected(self, monkeypatch):
        """Test unknown backends fail validation."""
        monkeypatch.setenv("MYWALLET_STORAGE_BACKEND", "redis")
        with pytest.raises(ValueError):
            StorageSettings()

    def test_get_settings_is_cached(self):
        """Test the settings object is loaded once."""
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()

    def test_validate_all_settings(self, monkeypatch):
        """Test every group reports its status."""
        monkeypatch.setenv("MYWALLET_STORAGE_BACKEND", "redis")
        status = validate_all_settings()
        assert status["storage"] is False
        assert status["scheduler"] is True


class TestStoreFromSettings:
    """Tests for wiring a store from configuration."""

    def test_memory_backend(self, monkeypatch):
        """Test the memory backend selection."""
        monkeypatch.setenv("MYWALLET_STORAGE_BACKEND", "memory")
        store = FinanceStore.from_settings(Settings())
        assert isinstance(store.persistence.storage, InMemoryStorage)

    def test_json_file_backend(self, monkeypatch, tmp_path):
        """Test the file backend writes under the data dir."""
        monkeypatch.setenv("MYWALLET_STORAGE_BACKEND", "json_file")
        monkeypatch.setenv("MYWALLET_STORAGE_DATA_DIR", str(tmp_path / "data"))
        store = FinanceStore.from_settings(Settings())
        assert isinstance(store.persistence.storage, JsonFileStorage)

        store.update_settings(currency="USD")
        assert (tmp_path / "data" / "settings.json").exists()
