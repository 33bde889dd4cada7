import json
import unittest
from datetime import datetime, timedelta, timezone

import pytest

from db import DEFAULT_STORAGE_KEY, InMemoryProfileStore
from engines.progression import ProgressionEngine, session_experience, skill_improvement
from schemas import (
    AchievementType,
    GamifiedUserProfile,
    LearningSession,
    ReadabilityMetrics,
    UnlockableFeature,
    WritingAnalysis,
)
from skills import SkillArea

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _analysis(grade=6.0, diversity=0.5, suggestions=()):
    return WritingAnalysis(
        metrics=ReadabilityMetrics(
            flesch_kincaid_grade=grade,
            average_sentence_length=10.0,
            vocabulary_diversity=diversity,
            sentence_count=5,
        ),
        suggestions=list(suggestions),
    )


def _session(score=0.5, time_spent=60.0, skill=SkillArea.GRAMMAR, completed_at=NOW):
    return LearningSession(skill_area=skill, performance_score=score, time_spent=time_spent, completed_at=completed_at)


class _RecordingNotifier:
    def __init__(self):
        self.titles = []

    def notify(self, achievement):
        self.titles.append(achievement.title)


class _BrokenNotifier:
    def notify(self, achievement):
        raise RuntimeError("display unavailable")


class _FailingStore:
    def load(self):
        raise OSError("disk gone")

    def save(self, blob):
        raise OSError("disk gone")


def _store_with(profile):
    return InMemoryProfileStore({DEFAULT_STORAGE_KEY: profile.model_dump_json()})


class ProgressionEngineTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryProfileStore()
        self.notifier = _RecordingNotifier()
        self.engine = ProgressionEngine(self.store, notifier=self.notifier, clock=lambda: NOW)

    def test_fresh_profile_has_every_skill_at_initial_level(self):
        progress = self.engine.skill_progress()
        self.assertEqual(set(progress), set(SkillArea))
        for entry in progress.values():
            self.assertAlmostEqual(entry.current_level, 0.3)
            self.assertEqual(entry.last_practiced, NOW - timedelta(days=30))

    def test_first_perfect_session_awards_both_achievements(self):
        analysis = _analysis()
        session = _session(score=0.95, time_spent=1)
        self.assertEqual(session_experience(session, analysis), 54)

        outcome = self.engine.record_session(session, analysis)

        profile = self.engine.profile
        self.assertEqual(profile.total_sessions, 1)
        self.assertEqual(profile.experience_points, 54 + 25 + 100)
        self.assertEqual(outcome.experience_gained, 179)
        self.assertEqual(
            [a.type for a in outcome.new_achievements],
            [AchievementType.FIRST_TIME, AchievementType.PERFORMANCE],
        )
        self.assertEqual(self.notifier.titles, ["First Steps", "Perfect Performance"])
        self.assertEqual([a.title for a in self.engine.recent_achievements()], ["Perfect Performance", "First Steps"])
        self.assertEqual(profile.skill_levels[SkillArea.GRAMMAR].experience_points, 28)
        self.assertEqual(profile.skill_levels[SkillArea.GRAMMAR].sessions_completed, 1)
        self.assertEqual(profile.total_words_analyzed, 50)
        self.assertFalse(outcome.leveled_up)

    def test_each_session_appends_exactly_one_history_entry(self):
        for index, score in enumerate([0.0, 0.4, 1.0, 0.7]):
            before = self.engine.profile
            self.engine.record_session(_session(score=score, time_spent=index * 500), _analysis())
            after = self.engine.profile
            self.assertEqual(after.total_sessions, before.total_sessions + 1)
            self.assertEqual(len(after.session_history), len(before.session_history) + 1)

    def test_history_is_capped_at_fifty(self):
        sessions = [_session() for _ in range(51)]
        for session in sessions:
            self.engine.record_session(session, _analysis())
        history = self.engine.history()
        self.assertEqual(len(history), 50)
        self.assertEqual(history[0].id, sessions[1].id)
        self.assertEqual(history[-1].id, sessions[-1].id)

    def test_skill_progress_improves_and_caps_at_target(self):
        self.engine.record_session(_session(score=0.5, time_spent=1800), _analysis())
        level = self.engine.skill_progress()[SkillArea.GRAMMAR].current_level
        self.assertAlmostEqual(level, 0.3 + 0.05 + 0.025)

        for _ in range(20):
            self.engine.record_session(_session(score=1.0, time_spent=7200), _analysis())
        progress = self.engine.skill_progress()[SkillArea.GRAMMAR]
        self.assertEqual(progress.current_level, progress.target_level)
        self.assertEqual(progress.sessions_completed, 21)

    def test_readability_and_vocabulary_only_once(self):
        for _ in range(3):
            self.engine.record_session(_session(), _analysis(grade=10.0, diversity=0.9))
        types = [a.type for a in self.engine.profile.earned_achievements]
        self.assertEqual(types.count(AchievementType.READABILITY), 1)
        self.assertEqual(types.count(AchievementType.VOCABULARY), 1)

    def test_level_up_awards_achievement(self):
        engine = ProgressionEngine(_store_with(GamifiedUserProfile(experience_points=790, total_sessions=4)), clock=lambda: NOW)
        outcome = engine.record_session(_session(score=0.5), _analysis())
        self.assertTrue(outcome.leveled_up)
        self.assertEqual(outcome.level_after, 2)
        self.assertIn(AchievementType.LEVEL_UP, [a.type for a in outcome.new_achievements])
        self.assertEqual(outcome.unlocked_features, [])

    def test_reaching_level_five_unlocks_analytics(self):
        start = GamifiedUserProfile(experience_points=4990, level=4, total_sessions=4)
        engine = ProgressionEngine(_store_with(start), clock=lambda: NOW)
        outcome = engine.record_session(_session(score=0.5), _analysis())
        self.assertEqual(outcome.level_after, 5)
        self.assertEqual(outcome.unlocked_features, [UnlockableFeature.ADVANCED_ANALYTICS])
        self.assertIn(UnlockableFeature.ADVANCED_ANALYTICS, engine.profile.unlocked_features)

    def test_profile_persisted_after_each_session(self):
        self.engine.record_session(_session(), _analysis())
        self.engine.record_session(_session(), _analysis())
        self.assertEqual(self.store.saves, 2)

        reloaded = ProgressionEngine(self.store, clock=lambda: NOW)
        self.assertEqual(reloaded.profile.total_sessions, 2)
        self.assertEqual(reloaded.profile.experience_points, self.engine.profile.experience_points)
        self.assertEqual(json.loads(self.store.load())["total_sessions"], 2)

    def test_profile_copy_is_detached(self):
        snapshot = self.engine.profile
        snapshot.experience_points = 10_000
        self.assertEqual(self.engine.profile.experience_points, 0)

    def test_daily_challenges_round_trip(self):
        created = self.engine.generate_daily_challenges()
        self.assertEqual(len(created), 3)
        self.assertEqual(self.engine.generate_daily_challenges(), [])

        started = self.engine.start_challenge(created[0].id)
        self.assertTrue(started.is_active)
        self.assertEqual([c.id for c in self.engine.active_challenges()], [created[0].id])
        self.assertEqual(len(self.engine.available_challenges()), 2)


def test_corrupt_blob_falls_back_to_fresh_profile():
    store = InMemoryProfileStore({DEFAULT_STORAGE_KEY: "{not json"})
    engine = ProgressionEngine(store, clock=lambda: NOW)
    assert engine.profile.total_sessions == 0
    assert set(engine.skill_progress()) == set(SkillArea)


def test_store_failures_never_raise():
    engine = ProgressionEngine(_FailingStore(), clock=lambda: NOW)
    outcome = engine.record_session(_session(), _analysis())
    assert outcome.level_after == 1
    assert engine.profile.total_sessions == 1


def test_notifier_failure_does_not_block_award():
    engine = ProgressionEngine(InMemoryProfileStore(), notifier=_BrokenNotifier(), clock=lambda: NOW)
    outcome = engine.record_session(_session(score=1.0), _analysis())
    assert [a.title for a in outcome.new_achievements] == ["First Steps", "Perfect Performance"]


def test_rejects_non_positive_limits():
    with pytest.raises(ValueError):
        ProgressionEngine(InMemoryProfileStore(), history_limit=0)


@pytest.mark.parametrize("score, time_spent, expected", [(1.0, 0, 0.1), (0.0, 3600, 0.05), (0.5, 7200, 0.1)])
def test_skill_improvement(score, time_spent, expected):
    assert skill_improvement(_session(score=score, time_spent=time_spent)) == pytest.approx(expected)
