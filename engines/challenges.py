"""Challenge lifecycle: daily generation, start, per-session progress and payout.

Challenges move available -> active -> completed. Progress counters advance
once per recorded session; the first active challenge whose completion
predicate holds is finalised and the scan stops there, so at most one
challenge pays out per session.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from schemas import (
    Badge,
    ChallengeRequirements,
    ChallengeRewards,
    ChallengeType,
    Difficulty,
    GamifiedUserProfile,
    LearningSession,
    WritingChallenge,
)
from skills import SKILL_CATALOG, SkillArea

_LOGGER = logging.getLogger(__name__)


class ChallengeNotFoundError(KeyError):
    """Raised when a challenge id is not in the available pool."""


def _local_day(moment: datetime):
    return moment.astimezone().date()


def weakest_skill(profile: GamifiedUserProfile) -> SkillArea:
    """Skill with the lowest gamified level; enum order breaks ties."""

    weakest = SkillArea.GRAMMAR
    lowest: Optional[int] = None
    for skill in SkillArea:
        data = profile.skill_levels.get(skill)
        level = data.level if data is not None else 1
        if lowest is None or level < lowest:
            lowest = level
            weakest = skill
    return weakest


class ChallengeTracker:
    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ----- lifecycle --------------------------------------------------
    def generate_daily(self, profile: GamifiedUserProfile) -> List[WritingChallenge]:
        """Add today's three challenges to the available pool.

        Skipped (returns an empty list) when the pool already holds a
        challenge created today.
        """

        now = self._clock()
        today = _local_day(now)
        if any(_local_day(c.created_at) == today for c in profile.available_challenges):
            return []

        weakest = weakest_skill(profile)
        display = SKILL_CATALOG[weakest].display_name
        challenges = [
            WritingChallenge(
                title="Flash Fiction Friday",
                description="Write a 100-word story in under 15 minutes",
                type=ChallengeType.TIMED,
                difficulty=Difficulty.EASY,
                requirements=ChallengeRequirements(
                    minimum_words=100,
                    maximum_words=100,
                    time_limit=15 * 60,
                    target_skills=[SkillArea.CREATIVITY, SkillArea.STYLE],
                ),
                rewards=ChallengeRewards(experience_points=50, badge=Badge.FAST_WRITER),
                created_at=now,
            ),
            WritingChallenge(
                title=f"Skill Builder: {display}",
                description=f"Complete 3 exercises focusing on {display.lower()}",
                type=ChallengeType.SKILL_FOCUS,
                difficulty=Difficulty.MEDIUM,
                requirements=ChallengeRequirements(exercise_count=3, target_skills=[weakest]),
                rewards=ChallengeRewards(
                    experience_points=75,
                    badge=Badge.SKILL_SPECIALIST,
                    unlockable_content=f"Advanced {display} Techniques",
                ),
                created_at=now,
            ),
            WritingChallenge(
                title="Daily Dedication",
                description="Practice writing for 7 consecutive days",
                type=ChallengeType.CONSISTENCY,
                difficulty=Difficulty.HARD,
                requirements=ChallengeRequirements(consecutive_days=7),
                rewards=ChallengeRewards(
                    experience_points=200,
                    badge=Badge.CONSISTENT,
                    unlockable_content="Habit Mastery Course",
                ),
                created_at=now,
            ),
        ]
        profile.available_challenges.extend(challenges)
        _LOGGER.info("Generated %d daily challenges (weakest skill: %s)", len(challenges), weakest.value)
        return challenges

    def start(self, profile: GamifiedUserProfile, challenge_id: str) -> WritingChallenge:
        for index, challenge in enumerate(profile.available_challenges):
            if challenge.id == challenge_id:
                break
        else:
            raise ChallengeNotFoundError(challenge_id)

        started = challenge.model_copy(update={"start_date": self._clock(), "is_active": True})
        del profile.available_challenges[index]
        profile.active_challenges.append(started)
        return started

    # ----- per-session progress ---------------------------------------
    def advance(self, challenge: WritingChallenge, session: LearningSession, word_count: int) -> None:
        progress = challenge.progress
        targets = challenge.requirements.target_skills
        if challenge.type is ChallengeType.TIMED:
            if session.skill_area in targets:
                progress.sessions_completed += 1
        elif challenge.type is ChallengeType.SKILL_FOCUS:
            if session.skill_area in targets:
                progress.exercises_completed += 1
        elif challenge.type is ChallengeType.CONSISTENCY:
            # counts sessions completed today, not distinct days
            if _local_day(session.completed_at) == _local_day(self._clock()):
                progress.consecutive_days += 1
        elif challenge.type is ChallengeType.WORD_COUNT:
            progress.words_written += word_count
        progress.time_spent += session.time_spent

    def update_progress(
        self,
        profile: GamifiedUserProfile,
        session: LearningSession,
        word_count: int,
    ) -> Optional[WritingChallenge]:
        """Advance active challenges and finalise the first one that completes.

        Returns the completed challenge, or ``None`` when nothing completed.
        Challenges after the completed one are not advanced for this session.
        """

        for index, challenge in enumerate(profile.active_challenges):
            self.advance(challenge, session, word_count)
            if challenge.is_completed:
                self._finalize(profile, index)
                return challenge
        return None

    def _finalize(self, profile: GamifiedUserProfile, index: int) -> None:
        challenge = profile.active_challenges.pop(index)
        challenge.completed_date = self._clock()
        challenge.is_active = False

        rewards = challenge.rewards
        profile.experience_points += rewards.experience_points
        if rewards.badge is not None:
            profile.earned_badges.add(rewards.badge)
        if rewards.unlockable_content and rewards.unlockable_content not in profile.unlocked_content:
            profile.unlocked_content.append(rewards.unlockable_content)
        profile.completed_challenges.append(challenge)
        _LOGGER.info(
            "Challenge completed: %s (+%d XP, badge=%s)",
            challenge.title,
            rewards.experience_points,
            rewards.badge.value if rewards.badge else None,
        )


__all__ = ["ChallengeTracker", "ChallengeNotFoundError", "weakest_skill"]
