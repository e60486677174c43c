"""Tests for UsageLog model and UsageStore."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

import pytest

from resume_aura.logging.models import UsageLog
from resume_aura.logging.usage_store import UsageStore


# --- UsageLog model tests ---


class TestUsageLog:
    def test_create_minimal(self):
        log = UsageLog(mode="analyze")
        assert log.mode == "analyze"
        assert log.session_id == "anonymous"
        assert log.provider == "gemini"
        assert log.success is True
        assert log.theme_count == 0
        assert log.id  # uuid auto-generated

    def test_create_full(self):
        log = UsageLog(
            mode="chat",
            session_id="sess-123",
            persona="Builder",
            title="Engineer",
            final_step="editing",
            theme_count=4,
            image_count=3,
            chat_turns=6,
            elapsed_seconds=42.5,
            total_input_tokens=5000,
            total_output_tokens=3000,
            estimated_cost_usd=0.05,
        )
        assert log.persona == "Builder"
        assert log.image_count == 3
        assert log.total_input_tokens == 5000
        assert log.estimated_cost_usd == 0.05

    def test_unique_ids(self):
        a = UsageLog(mode="analyze")
        b = UsageLog(mode="analyze")
        assert a.id != b.id

    def test_timestamp_auto(self):
        before = datetime.now()
        log = UsageLog(mode="analyze")
        after = datetime.now()
        assert before <= log.timestamp <= after

    def test_error_fields(self):
        log = UsageLog(mode="analyze", success=False, error_message="API timeout")
        assert log.success is False
        assert log.error_message == "API timeout"


# --- UsageStore tests ---


@pytest.fixture
def store(tmp_path: Path) -> UsageStore:
    return UsageStore(db_path=tmp_path / "test_usage.db")


class TestUsageStore:
    def test_save_and_get(self, store: UsageStore):
        log = UsageLog(mode="analyze", persona="Builder")
        store.save_log(log)
        logs = store.get_logs()
        assert len(logs) == 1
        assert logs[0].id == log.id
        assert logs[0].persona == "Builder"

    def test_creates_parent_directory(self, tmp_path: Path):
        UsageStore(db_path=tmp_path / "nested" / "dir" / "usage.db")
        assert (tmp_path / "nested" / "dir" / "usage.db").exists()

    def test_get_by_session_id(self, store: UsageStore):
        store.save_log(UsageLog(mode="analyze", session_id="s1"))
        store.save_log(UsageLog(mode="analyze", session_id="s2"))
        store.save_log(UsageLog(mode="chat", session_id="s1"))

        assert len(store.get_logs(session_id="s1")) == 2
        assert len(store.get_logs(session_id="s2")) == 1

    def test_get_logs_limit(self, store: UsageStore):
        for _ in range(10):
            store.save_log(UsageLog(mode="analyze"))
        assert len(store.get_logs(limit=3)) == 3

    def test_get_logs_empty(self, store: UsageStore):
        assert store.get_logs() == []

    def test_monthly_stats(self, store: UsageStore):
        store.save_log(
            UsageLog(
                mode="analyze",
                total_input_tokens=1000,
                total_output_tokens=500,
                image_count=3,
                estimated_cost_usd=0.03,
            )
        )
        store.save_log(
            UsageLog(
                mode="chat",
                total_input_tokens=2000,
                total_output_tokens=1000,
                estimated_cost_usd=0.05,
                success=False,
            )
        )
        stats = store.get_monthly_stats()
        assert stats["total_runs"] == 2
        assert stats["total_input_tokens"] == 3000
        assert stats["total_output_tokens"] == 1500
        assert stats["total_images"] == 3
        assert stats["total_cost_usd"] == pytest.approx(0.08)
        assert stats["success_rate"] == 50.0

    def test_monthly_stats_empty(self, store: UsageStore):
        stats = store.get_monthly_stats()
        assert stats["total_runs"] == 0
        assert stats["total_cost_usd"] == 0.0
        assert stats["success_rate"] == 0.0

    def test_get_total_cost(self, store: UsageStore):
        store.save_log(UsageLog(mode="analyze", estimated_cost_usd=0.10))
        store.save_log(UsageLog(mode="chat", estimated_cost_usd=0.25))
        assert store.get_total_cost() == pytest.approx(0.35)

    def test_get_total_cost_empty(self, store: UsageStore):
        assert store.get_total_cost() == 0.0

    def test_roundtrip_preserves_fields(self, store: UsageStore):
        log = UsageLog(
            mode="analyze",
            session_id="sess-rt",
            provider="anthropic",
            persona="Builder",
            title="Engineer",
            final_step="api_config",
            theme_count=4,
            image_count=2,
            chat_turns=1,
            elapsed_seconds=120.5,
            total_input_tokens=8000,
            total_output_tokens=4000,
            estimated_cost_usd=0.12,
            success=False,
            error_message="quota",
        )
        store.save_log(log)
        retrieved = store.get_logs()[0]
        assert retrieved.model_dump(exclude={"estimated_cost_usd"}) == log.model_dump(
            exclude={"estimated_cost_usd"}
        )
        assert retrieved.estimated_cost_usd == pytest.approx(log.estimated_cost_usd)

    def test_wal_mode(self, tmp_path: Path):
        UsageStore(db_path=tmp_path / "wal_test.db")
        conn = sqlite3.connect(str(tmp_path / "wal_test.db"))
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        conn.close()
        assert mode == "wal"
