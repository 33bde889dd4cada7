"""Gamified progression engine.

The engine is the single owner of the learner's :class:`GamifiedUserProfile`.
It loads the profile once from a store, applies every mutation under one lock
and writes the serialized blob back after each mutating call, so writes are
always ordered after the change that triggered them.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from pydantic import ValidationError

from engines.achievements import AchievementEngine, AchievementNotifier, LoggingNotifier, level_up_achievement
from engines.challenges import ChallengeTracker
from schemas import (
    Achievement,
    GamifiedSkillData,
    GamifiedUserProfile,
    LearningSession,
    UnlockableFeature,
    WritingAnalysis,
    WritingChallenge,
    profile_level_for_experience,
)
from skills import SkillArea, SkillProgress, initial_skill_progress

_LOGGER = logging.getLogger(__name__)

HISTORY_LIMIT = 50
RECENT_ACHIEVEMENTS_LIMIT = 10


def _log_json(event: str, payload: Dict[str, Any]) -> None:
    """Emit one-line JSON records for session and reward events."""

    record = {"event": event, **payload}
    try:
        message = json.dumps(record, ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError):
        fallback = {
            "event": event,
            "error": "serialization_failed",
            "payload_repr": repr(payload),
        }
        message = json.dumps(fallback, ensure_ascii=False, sort_keys=True)
    _LOGGER.info(message)


class ProfileStore(Protocol):
    def load(self) -> Optional[str]:
        ...

    def save(self, blob: str) -> None:
        ...


def session_experience(session: LearningSession, analysis: WritingAnalysis) -> int:
    points = 10
    points += int(session.performance_score * 20)
    points += min(int(session.time_spent / 60), 30)
    if len(analysis.suggestions) >= 3:
        points += 15
    if session.performance_score >= 0.8:
        points += 25
    return points


def skill_experience(session: LearningSession) -> int:
    return int(session.performance_score * 30) + int(session.time_spent / 120)


def skill_improvement(session: LearningSession) -> float:
    base = session.performance_score * 0.1
    time_bonus = min(session.time_spent / 3600, 1.0) * 0.05
    return base + time_bonus


@dataclass
class SessionOutcome:
    """What a single :meth:`ProgressionEngine.record_session` call changed."""

    session: LearningSession
    session_experience: int
    experience_gained: int
    words_estimated: int
    level_before: int
    level_after: int
    new_achievements: List[Achievement] = field(default_factory=list)
    completed_challenge: Optional[WritingChallenge] = None
    unlocked_features: List[UnlockableFeature] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.level_after > self.level_before


class ProgressionEngine:
    """Owns and mutates the persistent learner profile.

    Parameters
    ----------
    store:
        Blob store used for the initial load and the write after every
        mutation. Load and save failures are logged, never raised.
    achievements:
        Rule set evaluated after each session.
    challenges:
        Tracker that advances and pays out active challenges.
    notifier:
        Sink for unlocked achievements; defaults to logging them.
    clock:
        Returns the current time. Shared with the challenge tracker when one
        is not supplied.
    history_limit:
        Number of sessions kept in the profile history (oldest evicted first).
    """

    def __init__(
        self,
        store: ProfileStore,
        achievements: Optional[AchievementEngine] = None,
        challenges: Optional[ChallengeTracker] = None,
        notifier: Optional[AchievementNotifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
        history_limit: int = HISTORY_LIMIT,
        recent_limit: int = RECENT_ACHIEVEMENTS_LIMIT,
    ) -> None:
        if history_limit <= 0:
            raise ValueError("history_limit must be positive")
        if recent_limit <= 0:
            raise ValueError("recent_limit must be positive")

        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.achievements = achievements or AchievementEngine()
        self.challenges = challenges or ChallengeTracker(clock=self._clock)
        self.notifier: AchievementNotifier = notifier or LoggingNotifier()
        self.history_limit = int(history_limit)
        self.recent_limit = int(recent_limit)
        self._lock = threading.RLock()
        self._profile = self._load()

    # ----- read surface -----------------------------------------------
    @property
    def profile(self) -> GamifiedUserProfile:
        """Deep copy of the current profile; mutating it has no effect."""

        with self._lock:
            return self._profile.model_copy(deep=True)

    def skill_progress(self) -> Dict[SkillArea, SkillProgress]:
        with self._lock:
            return {area: p.model_copy() for area, p in self._profile.skill_progress.items()}

    def history(self) -> List[LearningSession]:
        with self._lock:
            return list(self._profile.session_history)

    def recent_achievements(self) -> List[Achievement]:
        with self._lock:
            return list(self._profile.recent_achievements)

    def available_challenges(self) -> List[WritingChallenge]:
        with self._lock:
            return [c.model_copy(deep=True) for c in self._profile.available_challenges]

    def active_challenges(self) -> List[WritingChallenge]:
        with self._lock:
            return [c.model_copy(deep=True) for c in self._profile.active_challenges]

    # ----- public API -------------------------------------------------
    def record_session(self, session: LearningSession, analysis: WritingAnalysis) -> SessionOutcome:
        """Apply one completed session to the profile and persist it."""

        with self._lock:
            profile = self._profile
            now = self._clock()
            xp_before = profile.experience_points
            level_before = profile.level

            profile.total_sessions += 1
            words = analysis.metrics.estimated_word_count
            profile.total_words_analyzed += words
            earned = session_experience(session, analysis)
            profile.experience_points += earned

            skill_data = profile.skill_levels.setdefault(session.skill_area, GamifiedSkillData())
            skill_data.add_experience(skill_experience(session))
            skill_data.sessions_completed += 1

            self._update_skill_progress(session)
            profile.session_history.append(session)
            if len(profile.session_history) > self.history_limit:
                del profile.session_history[: len(profile.session_history) - self.history_limit]
            profile.streak.update_streak(session.completed_at)

            new_achievements: List[Achievement] = []
            unlocked: List[UnlockableFeature] = []
            new_level = profile_level_for_experience(profile.experience_points)
            if new_level > profile.level:
                profile.level = new_level
                achievement = level_up_achievement(new_level, now)
                self._award(achievement)
                new_achievements.append(achievement)
                unlocked = self._unlock_features(new_level)

            for achievement in self.achievements.evaluate(profile, session, analysis, now):
                self._award(achievement)
                new_achievements.append(achievement)

            completed = self.challenges.update_progress(profile, session, words)

            outcome = SessionOutcome(
                session=session,
                session_experience=earned,
                experience_gained=profile.experience_points - xp_before,
                words_estimated=words,
                level_before=level_before,
                level_after=profile.level,
                new_achievements=new_achievements,
                completed_challenge=completed.model_copy(deep=True) if completed else None,
                unlocked_features=unlocked,
            )
            self._persist()

        _log_json(
            "session_recorded",
            {
                "session_id": session.id,
                "skill_area": session.skill_area.value,
                "performance_score": round(session.performance_score, 4),
                "experience_gained": outcome.experience_gained,
                "level": outcome.level_after,
                "achievements": [a.title for a in outcome.new_achievements],
                "completed_challenge": completed.title if completed else None,
            },
        )
        return outcome

    def generate_daily_challenges(self) -> List[WritingChallenge]:
        with self._lock:
            created = self.challenges.generate_daily(self._profile)
            if created:
                self._persist()
            return [c.model_copy(deep=True) for c in created]

    def start_challenge(self, challenge_id: str) -> WritingChallenge:
        with self._lock:
            started = self.challenges.start(self._profile, challenge_id)
            self._persist()
            return started.model_copy(deep=True)

    # ----- internals --------------------------------------------------
    def _update_skill_progress(self, session: LearningSession) -> None:
        progress_map = self._profile.skill_progress
        progress = progress_map.get(session.skill_area)
        if progress is None:
            progress = initial_skill_progress(self._clock(), areas=(session.skill_area,))[session.skill_area]
            progress_map[session.skill_area] = progress
        progress.apply_improvement(skill_improvement(session), session.completed_at)

    def _award(self, achievement: Achievement) -> None:
        profile = self._profile
        profile.earned_achievements.append(achievement)
        profile.experience_points += achievement.experience_reward
        profile.recent_achievements.insert(0, achievement)
        del profile.recent_achievements[self.recent_limit :]
        try:
            self.notifier.notify(achievement)
        except Exception:
            _LOGGER.warning("Achievement notification failed for %s", achievement.title, exc_info=True)

    def _unlock_features(self, level: int) -> List[UnlockableFeature]:
        unlocked: List[UnlockableFeature] = []
        for feature in UnlockableFeature:
            if feature.required_level <= level and feature not in self._profile.unlocked_features:
                self._profile.unlocked_features.add(feature)
                unlocked.append(feature)
        return unlocked

    def _load(self) -> GamifiedUserProfile:
        try:
            blob = self._store.load()
        except Exception:
            _LOGGER.warning("Could not read stored profile; starting fresh", exc_info=True)
            blob = None

        profile: GamifiedUserProfile
        if blob:
            try:
                profile = GamifiedUserProfile.model_validate_json(blob)
            except (ValidationError, ValueError):
                _LOGGER.warning("Stored profile is unreadable; starting fresh")
                profile = GamifiedUserProfile()
        else:
            profile = GamifiedUserProfile()

        defaults = initial_skill_progress(self._clock())
        for area, progress in defaults.items():
            profile.skill_progress.setdefault(area, progress)
        return profile

    def _persist(self) -> None:
        try:
            self._store.save(self._profile.model_dump_json())
        except Exception:
            _LOGGER.warning("Failed to persist learner profile", exc_info=True)


__all__ = [
    "ProfileStore",
    "ProgressionEngine",
    "SessionOutcome",
    "session_experience",
    "skill_experience",
    "skill_improvement",
    "HISTORY_LIMIT",
]
