"""Achievement rules evaluated after every recorded session."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from schemas import (
    Achievement,
    AchievementType,
    GamifiedUserProfile,
    LearningSession,
    WritingAnalysis,
)

_LOGGER = logging.getLogger(__name__)

SESSION_MILESTONES = (10, 25, 50, 100, 250, 500)
PERFECT_PERFORMANCE_THRESHOLD = 0.95
VOCABULARY_THRESHOLD = 0.8
LEVEL_UP_REWARD = 50


class AchievementNotifier(Protocol):
    def notify(self, achievement: Achievement) -> None:
        ...


class LoggingNotifier:
    """Default sink: unlocked achievements end up in the application log."""

    def notify(self, achievement: Achievement) -> None:
        _LOGGER.info(
            "Achievement Unlocked: %s (%s, +%d XP)",
            achievement.title,
            achievement.description,
            achievement.experience_reward,
        )


def level_up_achievement(level: int, now: Optional[datetime] = None) -> Achievement:
    return Achievement(
        title="Level Up!",
        description=f"Reached level {level}",
        type=AchievementType.LEVEL_UP,
        icon_name="star.fill",
        experience_reward=LEVEL_UP_REWARD,
        unlocked_at=now or datetime.now(timezone.utc),
    )


class AchievementEngine:
    """Stateless rule set.

    :meth:`evaluate` only reads the profile; awarding (history, XP, recent
    list, notification) is the progression engine's job.
    """

    def evaluate(
        self,
        profile: GamifiedUserProfile,
        session: LearningSession,
        analysis: WritingAnalysis,
        now: Optional[datetime] = None,
    ) -> List[Achievement]:
        moment = now or datetime.now(timezone.utc)
        earned: List[Achievement] = []

        if profile.total_sessions == 1:
            earned.append(
                Achievement(
                    title="First Steps",
                    description="Completed your first writing analysis",
                    type=AchievementType.FIRST_TIME,
                    icon_name="pencil.circle.fill",
                    experience_reward=25,
                    unlocked_at=moment,
                )
            )

        if profile.total_sessions in SESSION_MILESTONES:
            earned.append(
                Achievement(
                    title="Session Milestone",
                    description=f"Completed {profile.total_sessions} writing sessions",
                    type=AchievementType.MILESTONE,
                    icon_name="target",
                    experience_reward=200 if profile.total_sessions >= 100 else 100,
                    unlocked_at=moment,
                )
            )

        if session.performance_score >= PERFECT_PERFORMANCE_THRESHOLD:
            earned.append(
                Achievement(
                    title="Perfect Performance",
                    description="Achieved 95%+ performance in a session",
                    type=AchievementType.PERFORMANCE,
                    icon_name="star.circle.fill",
                    experience_reward=100,
                    unlocked_at=moment,
                )
            )

        metrics = analysis.metrics
        if 8 <= metrics.flesch_kincaid_grade <= 12 and not profile.has_achievement_type(
            AchievementType.READABILITY
        ):
            earned.append(
                Achievement(
                    title="Perfect Readability",
                    description="Achieved optimal readability level",
                    type=AchievementType.READABILITY,
                    icon_name="eye.fill",
                    experience_reward=75,
                    unlocked_at=moment,
                )
            )

        if metrics.vocabulary_diversity >= VOCABULARY_THRESHOLD and not profile.has_achievement_type(
            AchievementType.VOCABULARY
        ):
            earned.append(
                Achievement(
                    title="Vocabulary Virtuoso",
                    description="Achieved 80%+ vocabulary diversity",
                    type=AchievementType.VOCABULARY,
                    icon_name="book.fill",
                    experience_reward=75,
                    unlocked_at=moment,
                )
            )

        return earned


__all__ = [
    "AchievementEngine",
    "AchievementNotifier",
    "LoggingNotifier",
    "level_up_achievement",
    "SESSION_MILESTONES",
    "LEVEL_UP_REWARD",
]
