"""Tests for settings, the audit logger and the component factory."""

import pytest
from pydantic import ValidationError

from expense_ledger.audit import AuditLogger, create_correlation_id
from expense_ledger.config import AppSettings, StorageSettings, get_settings, validate_all_settings
from expense_ledger.ledger import LedgerStore
from expense_ledger.models import AuditEventBuilder, LedgerEventType
from expense_ledger.orchestrator import create_key_value_store, create_ledger_store
from expense_ledger.services.storage import InMemoryKeyValueStore, JsonFileKeyValueStore


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch, tmp_path):
    """Isolate every test from the developer's environment and .env."""
    monkeypatch.chdir(tmp_path)
    for var in ("LEDGER_STORAGE_BACKEND", "LEDGER_STORAGE_JSON_PATH", "LOG_LEVEL", "JSON_LOGS"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for pydantic-settings configuration."""

    def test_defaults(self):
        """Test default configuration."""
        settings = get_settings()
        assert settings.storage.backend == "json_file"
        assert settings.storage.json_path == "data/ledger.json"
        assert settings.app.currency_symbol == "$"
        assert settings.app.log_level == "INFO"

    def test_env_overrides(self, monkeypatch):
        """Test that environment variables are picked up."""
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert StorageSettings().backend == "memory"
        assert AppSettings().log_level == "DEBUG"

    def test_rejects_unknown_backend(self, monkeypatch):
        """Test that a typo in the backend name fails validation."""
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            StorageSettings()

    def test_rejects_unknown_log_level(self):
        """Test log level validation."""
        with pytest.raises(ValidationError):
            AppSettings(log_level="LOUD")

    def test_validate_all_settings(self, monkeypatch):
        """Test the startup check skips Google Sheets unless selected."""
        assert validate_all_settings() == {"app": True, "storage": True}

        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "google_sheets")
        get_settings.cache_clear()
        results = validate_all_settings()
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results


class TestAuditLogger:
    """Tests for the in-memory audit history."""

    def test_recent_events_newest_first(self):
        """Test history ordering and limit."""
        audit = AuditLogger(history_size=10)
        for name in ["A", "B", "C"]:
            audit.log(AuditEventBuilder.account_created(name))

        assert [e.account_name for e in audit.recent_events(limit=2)] == ["C", "B"]

    def test_filter_by_account(self):
        """Test filtering history by account."""
        audit = AuditLogger()
        audit.log(AuditEventBuilder.account_created("A"))
        audit.log(AuditEventBuilder.account_created("B"))
        assert [e.account_name for e in audit.recent_events(account_name="A")] == ["A"]

    def test_history_is_bounded(self):
        """Test that old events fall off."""
        audit = AuditLogger(history_size=2)
        for name in ["A", "B", "C"]:
            audit.log(AuditEventBuilder.account_created(name))
        assert len(audit.recent_events()) == 2

        disabled = AuditLogger(history_size=0)
        disabled.log(AuditEventBuilder.account_created("A"))
        assert disabled.recent_events() == []

    def test_events_by_correlation_id(self):
        """Test grouping events of one operation."""
        audit = AuditLogger()
        correlation_id = create_correlation_id()
        audit.log(AuditEventBuilder.expenses_cleared("Trip", 2, correlation_id=correlation_id))
        audit.log(AuditEventBuilder.account_created("Other"))
        audit.log(AuditEventBuilder.account_deleted("Trip", 2, False, correlation_id=correlation_id))

        events = audit.events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            LedgerEventType.EXPENSES_CLEARED,
            LedgerEventType.ACCOUNT_DELETED,
        ]


class TestOrchestrator:
    """Tests for the factory functions."""

    def test_memory_backend(self, monkeypatch):
        """Test backend selection from settings."""
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
        assert isinstance(create_key_value_store(), InMemoryKeyValueStore)

    def test_json_backend_path(self, monkeypatch, tmp_path):
        """Test the JSON backend uses the configured path."""
        monkeypatch.setenv("LEDGER_STORAGE_JSON_PATH", str(tmp_path / "my.json"))
        store = create_key_value_store()
        assert isinstance(store, JsonFileKeyValueStore)
        assert store.path == tmp_path / "my.json"

    async def test_create_ledger_store(self):
        """Test that the factory returns a working, un-initialized ledger."""
        ledger = create_ledger_store(store=InMemoryKeyValueStore())
        assert isinstance(ledger, LedgerStore)

        await ledger.initialize()
        assert await ledger.create_account("Trip") is True
        assert ledger.audit_logger.recent_events(limit=1)[0].event_type == LedgerEventType.ACCOUNT_CREATED
        await ledger.shutdown()
