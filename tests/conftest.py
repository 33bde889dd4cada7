import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def temp_db(monkeypatch, tmp_path):
    import db

    db_path = tmp_path / "test.db"
    monkeypatch.setattr(db, "DB_PATH", str(db_path))
    # Fresh pool per test so no connection outlives its database file
    monkeypatch.setattr(db, "_pool", db.SQLiteConnectionPool(str(db_path), max_connections=10))
    db.init()
    yield str(db_path)
    db.close()


@pytest.fixture
def now():
    return datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_suggestion():
    from schemas import ImprovementSuggestion
    from skills import SkillArea

    def _make(area=SkillArea.GRAMMAR, priority=0.7, effort=0.5, title=None, **extra):
        return ImprovementSuggestion(
            title=title or f"Improve {SkillArea(area).value}",
            area=area,
            description="",
            before_example="the cat sat on the mat.",
            after_example="The cat sat on the mat.",
            priority=priority,
            learning_effort=effort,
            **extra,
        )

    return _make


@pytest.fixture
def make_analysis():
    from schemas import ReadabilityMetrics, WritingAnalysis

    def _make(suggestions=(), grade=6.0, diversity=0.5, sentence_length=12.0, sentence_count=None):
        return WritingAnalysis(
            metrics=ReadabilityMetrics(
                flesch_kincaid_grade=grade,
                flesch_kincaid_label="Standard",
                average_sentence_length=sentence_length,
                average_word_length=4.5,
                vocabulary_diversity=diversity,
                sentence_count=sentence_count,
            ),
            assessment="ok",
            suggestions=list(suggestions),
            methodology="test",
        )

    return _make
