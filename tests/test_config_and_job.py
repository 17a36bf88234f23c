"""
Tests for engine configuration loading, the search catalogue and the daily
job's notification text.
"""

from decimal import Decimal

import pytest

from core.config import CREDIT_THRESHOLD, EXPENSE_THRESHOLD, EngineConfig, load_config
from core.importer import ImportSummary, ImportedTransaction
from core.patterns import SEARCH_QUERIES, all_search_queries


@pytest.fixture
def fresh_config():
    load_config.cache_clear()
    yield
    load_config.cache_clear()


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------

class TestLoadConfig:

    def test_defaults(self, fresh_config, monkeypatch):
        for name in ("IMPORT_EXPENSE_THRESHOLD", "IMPORT_CREDIT_THRESHOLD", "IMPORT_MAX_WORKERS"):
            monkeypatch.delenv(name, raising=False)
        config = load_config()
        assert config.expense_threshold == EXPENSE_THRESHOLD
        assert config.credit_threshold == CREDIT_THRESHOLD
        assert config.max_workers == 1

    def test_env_overrides(self, fresh_config, monkeypatch):
        monkeypatch.setenv("IMPORT_CREDIT_THRESHOLD", "9")
        monkeypatch.setenv("IMPORT_MAX_WORKERS", "4")
        config = load_config()
        assert config.credit_threshold == 9
        assert config.max_workers == 4

    def test_bad_integer(self, fresh_config, monkeypatch):
        monkeypatch.setenv("IMPORT_EXPENSE_THRESHOLD", "five")
        with pytest.raises(ValueError):
            load_config()

    def test_loaded_once(self, fresh_config):
        assert load_config() is load_config()


class TestEngineConfig:

    def test_with_overrides_leaves_original(self):
        base = EngineConfig()
        changed = base.with_overrides(min_amount=Decimal("10"))
        assert changed.min_amount == Decimal("10")
        assert base.min_amount == Decimal("1")

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            EngineConfig().known_merchants["new"] = "New"

    def test_search_catalogue(self):
        queries = all_search_queries()
        assert len(queries) == sum(len(group) for group in SEARCH_QUERIES.values())
        assert len(set(queries)) == len(queries)
        assert EngineConfig().search_queries == queries


# ---------------------------------------------------------------------------
# fetch_daily notification
# ---------------------------------------------------------------------------

class TestNotification:

    def test_format(self):
        from fetch_daily import format_notification

        summary = ImportSummary(
            imported=2, duplicates=1,
            transactions=[
                ImportedTransaction("Swiggy", Decimal("450"), "expense", "OD1"),
                ImportedTransaction("Amazon", Decimal("250"), "refund", "m2"),
            ],
        )
        title, body = format_notification(summary)
        assert title == "Expense Tracker: 2 new transaction(s)"
        assert body.splitlines() == [
            "Expense: Rs 450",
            "Refund: Rs 250",
            "1 duplicate, 0 skipped, 0 rejected",
        ]

    def test_failures_mentioned(self):
        from fetch_daily import format_notification

        _, body = format_notification(ImportSummary(failed=2))
        assert "2 message(s) failed" in body
