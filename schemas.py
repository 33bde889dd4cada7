"""Pydantic schemas for analysis results, learner state and API payloads."""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Set, Type, TypeVar
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError

from skills import ExerciseType, SkillArea, SkillProgress

__all__ = [
    "Difficulty",
    "ResourceType",
    "ResourceReference",
    "ImprovementSuggestion",
    "ReadabilityMetrics",
    "WritingAnalysis",
    "AnalysisOptions",
    "WritingExercise",
    "LearningSession",
    "StreakData",
    "GamifiedSkillData",
    "AchievementType",
    "Achievement",
    "BadgeRarity",
    "Badge",
    "UnlockableFeature",
    "ChallengeType",
    "ChallengeRequirements",
    "ChallengeRewards",
    "ChallengeProgress",
    "WritingChallenge",
    "GamifiedUserProfile",
    "AnalyzeRequest",
    "RoadmapRequest",
    "SubmitExerciseRequest",
    "skill_level_for_experience",
    "profile_level_for_experience",
    "parse_json_safe",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


def _or_default(value: int | None, default: int) -> int:
    return default if value is None else value


def skill_level_for_experience(experience: int) -> int:
    """Skill curve: ``max(1, floor(sqrt(xp / 100)))``."""

    return max(1, math.isqrt(max(0, int(experience)) // 100))


def profile_level_for_experience(experience: int) -> int:
    """Profile curve: ``max(1, floor(sqrt(xp / 200)))``."""

    return max(1, math.isqrt(max(0, int(experience)) // 200))


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_ORDER.index(self)

    @classmethod
    def from_priority(cls, priority: float) -> "Difficulty":
        if priority >= 0.8:
            return cls.HARD
        if priority >= 0.6:
            return cls.MEDIUM
        return cls.EASY

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank >= other.rank


_DIFFICULTY_ORDER = [Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD, Difficulty.EXPERT]


# ---------------------------------------------------------------------------
# Analysis provider payloads
# ---------------------------------------------------------------------------


class ResourceType(str, Enum):
    BOOK = "book"
    ARTICLE = "article"
    VIDEO = "video"
    COURSE = "course"
    PODCAST = "podcast"


class ResourceReference(BaseModel):
    title: str
    author: str = ""
    type: ResourceType = ResourceType.ARTICLE
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)


class ImprovementSuggestion(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    area: SkillArea = Field(description="Skill the suggestion targets; maps 1:1 onto a skill area.")
    description: str = ""
    before_example: str = ""
    after_example: str = ""
    priority: float = Field(ge=0.0, le=1.0, description="How urgent the improvement is (0-1).")
    learning_effort: float = Field(
        ge=0.0,
        le=1.0,
        description="Relative effort needed to close the gap (0-1).",
    )
    resources: List[ResourceReference] = Field(default_factory=list)
    contextual_insights: Dict[str, str] = Field(default_factory=dict)

    model_config = {
        "frozen": True,
    }


class ReadabilityMetrics(BaseModel):
    flesch_kincaid_grade: float = 0.0
    flesch_kincaid_label: str = ""
    average_sentence_length: float = Field(default=0.0, ge=0.0)
    average_word_length: float = Field(default=0.0, ge=0.0)
    vocabulary_diversity: float = Field(default=0.0, ge=0.0, le=1.0)
    sentence_count: int | None = Field(
        default=None,
        ge=0,
        description="Number of sentences in the analysed text when the provider reports it.",
    )

    @property
    def estimated_word_count(self) -> int:
        sentences = self.sentence_count if self.sentence_count else 1
        return int(round(self.average_sentence_length * sentences))


class WritingAnalysis(BaseModel):
    metrics: ReadabilityMetrics = Field(default_factory=ReadabilityMetrics)
    assessment: str = ""
    suggestions: List[ImprovementSuggestion] = Field(default_factory=list)
    methodology: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)


class AnalysisOptions(BaseModel):
    analysis_mode: str = Field(default="Academic Writing", description="Genre the text is judged against.")
    writer_level: str = Field(default="intermediate")
    improvement_foci: List[SkillArea] = Field(
        default_factory=lambda: [SkillArea.GRAMMAR, SkillArea.STYLE, SkillArea.CLARITY]
    )
    temperature: float = Field(default=0.5, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1)


# ---------------------------------------------------------------------------
# Exercises and sessions
# ---------------------------------------------------------------------------


class WritingExercise(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    description: str = ""
    type: ExerciseType
    target_skill: SkillArea
    difficulty: Difficulty = Difficulty.MEDIUM
    instructions: str = ""
    objectives: List[str] = Field(default_factory=list)
    expected_outcome: str = ""
    time_estimate: float = Field(default=600.0, ge=0.0, description="Expected effort in seconds.")
    created_at: datetime = Field(default_factory=_utcnow)
    sample_response: str | None = None


class LearningSession(BaseModel):
    id: str = Field(default_factory=_new_id)
    skill_area: SkillArea
    performance_score: float = Field(ge=0.0, le=1.0)
    time_spent: float = Field(default=0.0, ge=0.0, description="Seconds spent on the session.")
    completed_at: datetime = Field(default_factory=_utcnow)
    exercise_type: str | None = None


class StreakData(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    last_session_date: datetime | None = None

    def update_streak(self, moment: datetime) -> None:
        today = moment.astimezone().date()
        if self.last_session_date is not None:
            days_between = (today - self.last_session_date.astimezone().date()).days
            if days_between == 1:
                self.current_streak += 1
            elif days_between > 1:
                self.current_streak = 1
        else:
            self.current_streak = 1
        self.last_session_date = moment
        self.longest_streak = max(self.longest_streak, self.current_streak)


# ---------------------------------------------------------------------------
# Gamification
# ---------------------------------------------------------------------------


class GamifiedSkillData(BaseModel):
    level: int = Field(default=1, ge=1)
    experience_points: int = Field(default=0, ge=0)
    sessions_completed: int = Field(default=0, ge=0)

    def add_experience(self, amount: int) -> None:
        self.experience_points += max(0, int(amount))
        self.level = max(self.level, skill_level_for_experience(self.experience_points))

    @property
    def experience_to_next_level(self) -> int:
        return self.level * 100 - (self.experience_points % 100)

    @property
    def level_progress(self) -> float:
        return (self.experience_points % 100) / 100.0


class AchievementType(str, Enum):
    FIRST_TIME = "first_time"
    MILESTONE = "milestone"
    PERFORMANCE = "performance"
    CONSISTENCY = "consistency"
    LEVEL_UP = "level_up"
    SKILL_MASTERY = "skill_mastery"
    READABILITY = "readability"
    VOCABULARY = "vocabulary"
    CREATIVITY = "creativity"
    EFFICIENCY = "efficiency"
    SOCIAL = "social"
    CHALLENGE = "challenge"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class Achievement(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    description: str
    type: AchievementType
    icon_name: str = "star.fill"
    experience_reward: int = Field(default=0, ge=0)
    unlocked_at: datetime = Field(default_factory=_utcnow)

    model_config = {
        "frozen": True,
    }


class BadgeRarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class Badge(str, Enum):
    GRAMMAR_GURU = "grammar_guru"
    STYLE_SPECIALIST = "style_specialist"
    CLARITY_CHAMPION = "clarity_champion"
    VOCABULARY_VIRTUOSO = "vocabulary_virtuoso"
    STRUCTURE_SENSEI = "structure_sensei"
    TONE_MASTER = "tone_master"
    CREATIVITY_KING = "creativity_king"
    PERFECTIONIST = "perfectionist"
    FAST_WRITER = "fast_writer"
    MARATHON_WRITER = "marathon_writer"
    CONSISTENT = "consistent"
    IMPROVER = "improver"
    EARLY_ADOPTER = "early_adopter"
    VETERAN = "veteran"
    CHALLENGER = "challenger"
    MENTOR = "mentor"
    COLLABORATOR = "collaborator"
    SKILL_SPECIALIST = "skill_specialist"
    ALL_ROUNDER = "all_rounder"
    TRENDSETTER = "trendsetter"
    COMMUNITY = "community"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def description(self) -> str:
        return _BADGE_DESCRIPTIONS[self]

    @property
    def rarity(self) -> BadgeRarity:
        return _BADGE_RARITY[self]


_BADGE_DESCRIPTIONS: Dict[Badge, str] = {
    Badge.GRAMMAR_GURU: "Master of grammatical excellence",
    Badge.STYLE_SPECIALIST: "Expert in writing style and flow",
    Badge.CLARITY_CHAMPION: "Makes complex ideas crystal clear",
    Badge.VOCABULARY_VIRTUOSO: "Wields words with precision and flair",
    Badge.STRUCTURE_SENSEI: "Architect of well-organized writing",
    Badge.TONE_MASTER: "Controls tone and voice masterfully",
    Badge.CREATIVITY_KING: "Brings imagination to every sentence",
    Badge.PERFECTIONIST: "Achieves excellence in every session",
    Badge.FAST_WRITER: "Completes challenges with lightning speed",
    Badge.MARATHON_WRITER: "Endures long writing sessions",
    Badge.CONSISTENT: "Practices writing regularly",
    Badge.IMPROVER: "Shows continuous improvement",
    Badge.EARLY_ADOPTER: "Among the first to try new features",
    Badge.VETERAN: "Long-time dedicated user",
    Badge.CHALLENGER: "Completes difficult challenges",
    Badge.MENTOR: "Helps others improve their writing",
    Badge.COLLABORATOR: "Works well with others",
    Badge.SKILL_SPECIALIST: "Focuses on specific skill development",
    Badge.ALL_ROUNDER: "Excels across all writing areas",
    Badge.TRENDSETTER: "Influences writing trends",
    Badge.COMMUNITY: "Active community member",
}

_BADGE_RARITY: Dict[Badge, BadgeRarity] = {
    **{
        badge: BadgeRarity.RARE
        for badge in (
            Badge.GRAMMAR_GURU,
            Badge.STYLE_SPECIALIST,
            Badge.CLARITY_CHAMPION,
            Badge.VOCABULARY_VIRTUOSO,
            Badge.STRUCTURE_SENSEI,
            Badge.TONE_MASTER,
            Badge.CREATIVITY_KING,
        )
    },
    **{
        badge: BadgeRarity.EPIC
        for badge in (Badge.PERFECTIONIST, Badge.MARATHON_WRITER, Badge.VETERAN, Badge.MENTOR, Badge.ALL_ROUNDER)
    },
    **{
        badge: BadgeRarity.COMMON
        for badge in (Badge.FAST_WRITER, Badge.CONSISTENT, Badge.IMPROVER, Badge.SKILL_SPECIALIST)
    },
    **{
        badge: BadgeRarity.UNCOMMON
        for badge in (
            Badge.EARLY_ADOPTER,
            Badge.CHALLENGER,
            Badge.COLLABORATOR,
            Badge.TRENDSETTER,
            Badge.COMMUNITY,
        )
    },
}


class UnlockableFeature(str, Enum):
    ADVANCED_ANALYTICS = "advanced_analytics"
    CUSTOM_CHALLENGES = "custom_challenges"
    MENTOR_MODE = "mentor_mode"
    COLLABORATIVE_WRITING = "collaborative_writing"

    @property
    def required_level(self) -> int:
        return {
            "advanced_analytics": 5,
            "custom_challenges": 10,
            "mentor_mode": 15,
            "collaborative_writing": 20,
        }[self.value]

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class ChallengeType(str, Enum):
    TIMED = "timed"
    SKILL_FOCUS = "skill_focus"
    CONSISTENCY = "consistency"
    WORD_COUNT = "word_count"


class ChallengeRequirements(BaseModel):
    minimum_words: int | None = None
    maximum_words: int | None = None
    time_limit: float | None = None
    exercise_count: int | None = None
    consecutive_days: int | None = None
    target_skills: List[SkillArea] = Field(default_factory=list)


class ChallengeRewards(BaseModel):
    experience_points: int = Field(default=0, ge=0)
    badge: Badge | None = None
    unlockable_content: str | None = None


class ChallengeProgress(BaseModel):
    sessions_completed: int = 0
    exercises_completed: int = 0
    words_written: int = 0
    consecutive_days: int = 0
    time_spent: float = 0.0


class WritingChallenge(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    description: str = ""
    type: ChallengeType
    difficulty: Difficulty = Difficulty.MEDIUM
    requirements: ChallengeRequirements = Field(default_factory=ChallengeRequirements)
    rewards: ChallengeRewards = Field(default_factory=ChallengeRewards)
    created_at: datetime = Field(default_factory=_utcnow)
    start_date: datetime | None = None
    completed_date: datetime | None = None
    is_active: bool = False
    progress: ChallengeProgress = Field(default_factory=ChallengeProgress)

    def _counter_and_target(self) -> tuple[int, int]:
        req = self.requirements
        if self.type is ChallengeType.TIMED:
            return self.progress.sessions_completed, _or_default(req.exercise_count, 1)
        if self.type is ChallengeType.SKILL_FOCUS:
            return self.progress.exercises_completed, _or_default(req.exercise_count, 3)
        if self.type is ChallengeType.CONSISTENCY:
            return self.progress.consecutive_days, _or_default(req.consecutive_days, 7)
        return self.progress.words_written, _or_default(req.minimum_words, 1000)

    @property
    def is_completed(self) -> bool:
        value, target = self._counter_and_target()
        return value >= target

    @property
    def progress_percentage(self) -> float:
        value, target = self._counter_and_target()
        if target <= 0:
            return 1.0
        return value / target


class GamifiedUserProfile(BaseModel):
    """Persistent learner state. One instance per storage key."""

    level: int = Field(default=1, ge=1)
    experience_points: int = Field(default=0, ge=0)
    total_sessions: int = Field(default=0, ge=0)
    total_words_analyzed: int = Field(default=0, ge=0)
    join_date: datetime = Field(default_factory=_utcnow)
    skill_levels: Dict[SkillArea, GamifiedSkillData] = Field(default_factory=dict)
    earned_achievements: List[Achievement] = Field(default_factory=list)
    earned_badges: Set[Badge] = Field(default_factory=set)
    completed_challenges: List[WritingChallenge] = Field(default_factory=list)
    unlocked_features: Set[UnlockableFeature] = Field(default_factory=set)
    skill_progress: Dict[SkillArea, SkillProgress] = Field(
        default_factory=dict,
        description="Competence estimate per skill, used for gap analysis and roadmaps.",
    )
    session_history: List[LearningSession] = Field(
        default_factory=list,
        description="Most recent sessions, oldest first.",
    )
    recent_achievements: List[Achievement] = Field(
        default_factory=list,
        description="Newest-first window of recently unlocked achievements.",
    )
    streak: StreakData = Field(default_factory=StreakData)
    available_challenges: List[WritingChallenge] = Field(default_factory=list)
    active_challenges: List[WritingChallenge] = Field(default_factory=list)
    unlocked_content: List[str] = Field(default_factory=list)

    @property
    def experience_to_next_level(self) -> int:
        return (self.level + 1) ** 2 * 200 - self.experience_points

    @property
    def level_progress(self) -> float:
        current = self.level**2 * 200
        following = (self.level + 1) ** 2 * 200
        return (self.experience_points - current) / (following - current)

    @property
    def average_skill_level(self) -> float:
        if not self.skill_levels:
            return 1.0
        return sum(data.level for data in self.skill_levels.values()) / len(self.skill_levels)

    @property
    def total_achievement_points(self) -> int:
        return sum(achievement.experience_reward for achievement in self.earned_achievements)

    def has_achievement_type(self, achievement_type: AchievementType) -> bool:
        return any(item.type is achievement_type for item in self.earned_achievements)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class AnalyzeRequest(BaseModel):
    text: str
    options: AnalysisOptions | None = None


class RoadmapRequest(BaseModel):
    text: str | None = Field(default=None, description="Text to analyse before building the roadmap.")
    analysis: WritingAnalysis | None = Field(
        default=None,
        description="Previously computed analysis; used as-is when supplied.",
    )
    timeframe_weeks: int | None = Field(default=None, ge=1, le=52)


class SubmitExerciseRequest(BaseModel):
    response: str
    time_spent: float = Field(ge=0.0, description="Seconds the learner spent on the exercise.")


_T = TypeVar("_T", bound=BaseModel)


def _find_first_json_object(text: str) -> tuple[str, int, int]:
    start = text.find("{")
    while start != -1:
        depth = 0
        for idx in range(start, len(text)):
            char = text[idx]
            if char == "{" and (idx == 0 or text[idx - 1] != "\\"):
                depth += 1
            elif char == "}" and (idx == 0 or text[idx - 1] != "\\"):
                depth -= 1
                if depth == 0:
                    candidate = text[start : idx + 1]
                    try:
                        json.loads(candidate)
                    except ValueError:
                        break
                    return candidate, start, idx + 1
        start = text.find("{", start + 1)
    raise ValueError("No JSON object found in provided text")


def parse_json_safe(text: str, model: Type[_T]) -> _T:
    """Parse ``text`` into ``model``, extracting an embedded JSON object if needed.

    Model replies often wrap the payload in prose or a fenced block; the
    fallback pass pulls out the first balanced object and validates that.
    """

    first_error: Exception | None = None
    try:
        return model.model_validate_json(text)
    except (ValidationError, ValueError, TypeError) as exc:
        first_error = exc

    try:
        snippet, _, end = _find_first_json_object(text)
    except ValueError:
        if first_error:
            raise first_error
        raise

    trailing = text[end:].strip().strip("`").strip()
    if trailing:
        if isinstance(first_error, ValidationError):
            raise first_error
        raise ValueError("Trailing content detected after JSON object")

    try:
        return model.model_validate_json(snippet)
    except (ValidationError, ValueError):
        if first_error:
            raise first_error
        raise
