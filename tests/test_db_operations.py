"""Test cases for the profile store."""

from datetime import datetime, timezone

import db
from db import (
    SQLiteProfileStore,
    _conn,
    delete_profile_blob,
    load_profile_blob,
    save_profile_blob,
)
from db_pool import SQLiteConnectionPool
from engines.progression import ProgressionEngine
from schemas import LearningSession, ReadabilityMetrics, WritingAnalysis
from skills import SkillArea


def test_profile_blob_upsert(temp_db):
    assert load_profile_blob("learner") is None

    save_profile_blob('{"level": 1}', "learner")
    save_profile_blob('{"level": 2}', "learner")

    assert load_profile_blob("learner") == '{"level": 2}'
    with _conn() as con:
        rows = con.execute("SELECT storage_key, updated_at FROM profiles").fetchall()
    assert len(rows) == 1
    assert rows[0]["storage_key"] == "learner"
    assert rows[0]["updated_at"] is not None


def test_storage_keys_are_isolated(temp_db):
    save_profile_blob("a", "one")
    save_profile_blob("b", "two")
    assert load_profile_blob("one") == "a"
    assert load_profile_blob("two") == "b"
    assert delete_profile_blob("one") is True
    assert delete_profile_blob("one") is False
    assert load_profile_blob("one") is None


def test_init_is_idempotent(temp_db):
    save_profile_blob("kept", db.DEFAULT_STORAGE_KEY)
    db.init()
    assert load_profile_blob() == "kept"


def test_progression_survives_restart(temp_db):
    store = SQLiteProfileStore()
    now = datetime(2026, 3, 10, 12, tzinfo=timezone.utc)
    engine = ProgressionEngine(store, clock=lambda: now)
    engine.record_session(
        LearningSession(skill_area=SkillArea.TONE, performance_score=0.6, time_spent=120, completed_at=now),
        WritingAnalysis(metrics=ReadabilityMetrics(average_sentence_length=12, sentence_count=3)),
    )

    restored = ProgressionEngine(SQLiteProfileStore(), clock=lambda: now)
    assert restored.profile.total_sessions == 1
    assert restored.profile.total_words_analyzed == 36
    assert restored.history()[0].skill_area is SkillArea.TONE
    assert restored.skill_progress()[SkillArea.TONE].sessions_completed == 1


def test_corrupt_row_gives_fresh_profile(temp_db):
    save_profile_blob("{broken", db.DEFAULT_STORAGE_KEY)
    engine = ProgressionEngine(SQLiteProfileStore())
    assert engine.profile.total_sessions == 0


def test_pool_reuses_connections(tmp_path):
    pool = SQLiteConnectionPool(str(tmp_path / "pool.db"), max_connections=2)
    with pool.get_connection() as first:
        first.execute("CREATE TABLE t (x INTEGER)")
        first.commit()
    with pool.get_connection() as again:
        assert again is first
        again.execute("INSERT INTO t VALUES (1)")
        # not committed: rolled back when returned
    with pool.get_connection() as con:
        assert con.execute("SELECT COUNT(*) FROM t").fetchone()[0] == 0
    assert pool.opened == 1
    pool.close_all()
    assert pool.opened == 0
