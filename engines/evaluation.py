"""Rubric-based scoring of exercise submissions.

Each exercise type owns a fixed rubric: an ordered set of named metrics, the
metric whose weakness triggers a coaching tip, and the tip itself. Metric
scorers are deliberately simple lexical checks over the raw response plus the
readability metrics from the analysis; the contract is the rubric shape, so a
sharper scorer can replace any of them without touching the callers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from schemas import WritingAnalysis, WritingExercise
from skills import ExerciseType, SkillArea

_LOGGER = logging.getLogger(__name__)

IMPROVEMENT_THRESHOLD = 0.7

TRANSITION_WORDS = ("however", "therefore", "furthermore", "additionally", "meanwhile", "consequently")
ENGAGING_MARKS = ("!", "?", '"', "'")
FILLER_WORDS = ("very", "really", "quite", "rather", "somewhat")
GENERIC_WORDS = ("thing", "stuff", "good", "bad", "nice", "big", "small")
STRUCTURE_MARKERS = ("first", "second", "finally", "in conclusion", "to begin")
FIGURATIVE_MARKERS = ("like", "as if", "reminded", "seemed", "appeared")
SENSORY_WORDS = ("bright", "soft", "loud", "sweet", "rough", "smooth", "warm", "cold")


@dataclass(frozen=True)
class ScoringContext:
    exercise: WritingExercise
    response: str
    analysis: WritingAnalysis
    time_spent: float

    @property
    def lowered(self) -> str:
        return self.response.lower()

    @property
    def word_count(self) -> int:
        return len(self.response.split())


Scorer = Callable[[ScoringContext], float]


class PerformanceLevel(str, Enum):
    MASTERY = "mastery"
    PROFICIENT = "proficient"
    DEVELOPING = "developing"
    BEGINNING = "beginning"
    STRUGGLING = "struggling"


@dataclass
class ExercisePerformance:
    overall_score: float
    skill_scores: Dict[str, float]
    time_efficiency: float
    improvement_areas: List[str] = field(default_factory=list)

    @property
    def strength_areas(self) -> List[str]:
        return sorted(name for name, score in self.skill_scores.items() if score >= 0.8)

    @property
    def weakness_areas(self) -> List[str]:
        return sorted(name for name, score in self.skill_scores.items() if score < 0.6)

    @property
    def average_skill_score(self) -> float:
        if not self.skill_scores:
            return 0.0
        return sum(self.skill_scores.values()) / len(self.skill_scores)

    @property
    def performance_level(self) -> PerformanceLevel:
        score = self.overall_score
        if score >= 0.9:
            return PerformanceLevel.MASTERY
        if score >= 0.8:
            return PerformanceLevel.PROFICIENT
        if score >= 0.7:
            return PerformanceLevel.DEVELOPING
        if score >= 0.6:
            return PerformanceLevel.BEGINNING
        return PerformanceLevel.STRUGGLING

    @property
    def grade(self) -> str:
        for threshold, letter in ((0.9, "A"), (0.8, "B"), (0.7, "C"), (0.6, "D")):
            if self.overall_score >= threshold:
                return letter
        return "F"


# ---------------------------------------------------------------------------
# Metric scorers
# ---------------------------------------------------------------------------


def _contains_any(text: str, needles: Sequence[str]) -> bool:
    return any(needle in text for needle in needles)


def _occurrences(text: str, needles: Sequence[str]) -> int:
    return sum(text.count(needle) for needle in needles)


def grammar_accuracy(ctx: ScoringContext) -> float:
    issues = sum(1 for s in ctx.analysis.suggestions if s.area is SkillArea.GRAMMAR)
    return max(0.0, 1.0 - issues * 0.2)


def clarity(ctx: ScoringContext) -> float:
    # Flesch-Kincaid grades 8-12 read best
    grade = ctx.analysis.metrics.flesch_kincaid_grade
    if 8 <= grade <= 12:
        return 1.0
    deviation = min(abs(grade - 10), 5)
    return max(0.0, 1.0 - deviation * 0.1)


def style_variety(ctx: ScoringContext) -> float:
    avg = ctx.analysis.metrics.average_sentence_length
    return 0.8 if 10 < avg < 25 else 0.6


def flow(ctx: ScoringContext) -> float:
    return 0.8 if _contains_any(ctx.lowered, TRANSITION_WORDS) else 0.6


def engagement(ctx: ScoringContext) -> float:
    return 0.8 if _contains_any(ctx.response, ENGAGING_MARKS) else 0.6


def conciseness(ctx: ScoringContext) -> float:
    words = ctx.word_count
    if words == 0:
        return 0.0
    return max(0.0, 1.0 - _occurrences(ctx.lowered, FILLER_WORDS) / words)


def vocabulary_diversity(ctx: ScoringContext) -> float:
    return ctx.analysis.metrics.vocabulary_diversity


def word_precision(ctx: ScoringContext) -> float:
    words = ctx.word_count
    if words == 0:
        return 0.0
    return max(0.0, 1.0 - _occurrences(ctx.lowered, GENERIC_WORDS) / words * 5)


def organization(ctx: ScoringContext) -> float:
    return 0.9 if _contains_any(ctx.lowered, STRUCTURE_MARKERS) else 0.7


def tone_consistency(ctx: ScoringContext) -> float:
    return 0.8


def audience_appropriateness(ctx: ScoringContext) -> float:
    return 0.8


def creativity(ctx: ScoringContext) -> float:
    return 0.9 if _contains_any(ctx.lowered, FIGURATIVE_MARKERS) else 0.7


def imagery(ctx: ScoringContext) -> float:
    return 0.9 if _contains_any(ctx.lowered, SENSORY_WORDS) else 0.6


def originality(ctx: ScoringContext) -> float:
    return min(1.0, len(ctx.response) / 200.0)


def completion(ctx: ScoringContext) -> float:
    return 1.0 if ctx.response.strip() else 0.0


def effort(ctx: ScoringContext) -> float:
    expected = ctx.exercise.time_estimate
    if expected <= 0:
        return 1.0
    return min(ctx.time_spent / expected, 1.0)


# ---------------------------------------------------------------------------
# Rubric table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rubric:
    metrics: Tuple[Tuple[str, Scorer], ...]
    primary_metric: Optional[str] = None
    tip: Optional[str] = None

    @property
    def metric_names(self) -> List[str]:
        return [name for name, _ in self.metrics]

    def tip_for(self, scores: Dict[str, float]) -> Optional[str]:
        if self.tip is None:
            return None
        if self.primary_metric is None:
            return self.tip
        if scores.get(self.primary_metric, 0.0) < IMPROVEMENT_THRESHOLD:
            return self.tip
        return None


_PRACTICE_RUBRIC = Rubric(
    metrics=(("Completion", completion), ("Effort", effort)),
    tip="Regular practice will help improve your writing fluency",
)

RUBRICS: Dict[ExerciseType, Rubric] = {
    ExerciseType.GRAMMAR: Rubric(
        metrics=(("Grammar Accuracy", grammar_accuracy), ("Clarity", clarity)),
        primary_metric="Grammar Accuracy",
        tip="Review basic grammar rules and practice with shorter sentences first",
    ),
    ExerciseType.STYLE: Rubric(
        metrics=(("Style Variety", style_variety), ("Flow", flow), ("Engagement", engagement)),
        primary_metric="Style Variety",
        tip="Try varying your sentence openings and lengths",
    ),
    ExerciseType.CLARITY: Rubric(
        metrics=(("Clarity", clarity), ("Conciseness", conciseness), ("Readability", clarity)),
        primary_metric="Clarity",
        tip="Break complex ideas into smaller, clearer sentences",
    ),
    ExerciseType.VOCABULARY: Rubric(
        metrics=(("Vocabulary Diversity", vocabulary_diversity), ("Word Precision", word_precision)),
        primary_metric="Vocabulary Diversity",
        tip="Challenge yourself to use synonyms and avoid repetition",
    ),
    ExerciseType.STRUCTURE: Rubric(
        metrics=(("Organization", organization), ("Transitions", flow), ("Logic", organization)),
        primary_metric="Organization",
        tip="Create an outline before writing to improve organization",
    ),
    ExerciseType.TONE: Rubric(
        metrics=(
            ("Tone Consistency", tone_consistency),
            ("Audience Appropriateness", audience_appropriateness),
        ),
        primary_metric="Tone Consistency",
        tip="Identify your target audience before writing and stick to appropriate language",
    ),
    ExerciseType.CREATIVE: Rubric(
        metrics=(("Creativity", creativity), ("Imagery", imagery), ("Originality", originality)),
        primary_metric="Creativity",
        tip="Don't be afraid to take risks and explore unusual ideas",
    ),
    ExerciseType.WARM_UP: _PRACTICE_RUBRIC,
    ExerciseType.TIMED: _PRACTICE_RUBRIC,
    ExerciseType.CHALLENGE: _PRACTICE_RUBRIC,
}


def time_efficiency(actual: float, expected: float) -> float:
    if expected <= 0:
        return 1.0
    ratio = actual / expected
    if ratio <= 1.0:
        return 1.0
    if ratio <= 1.5:
        return 0.8
    return 0.6


class ExercisePerformanceEvaluator:
    """Score a submission against the rubric of its exercise type."""

    def __init__(self, rubrics: Optional[Dict[ExerciseType, Rubric]] = None) -> None:
        self.rubrics = dict(rubrics or RUBRICS)

    def rubric_for(self, exercise_type: ExerciseType) -> Rubric:
        return self.rubrics[exercise_type]

    def evaluate(
        self,
        exercise: WritingExercise,
        response: str,
        analysis: WritingAnalysis,
        time_spent: float,
    ) -> ExercisePerformance:
        ctx = ScoringContext(exercise=exercise, response=response, analysis=analysis, time_spent=time_spent)
        rubric = self.rubric_for(exercise.type)
        scores: Dict[str, float] = {name: float(scorer(ctx)) for name, scorer in rubric.metrics}
        overall = sum(scores.values()) / len(scores) if scores else 0.0

        performance = ExercisePerformance(
            overall_score=overall,
            skill_scores=scores,
            time_efficiency=time_efficiency(time_spent, exercise.time_estimate),
            improvement_areas=self._improvement_areas(scores, analysis),
        )
        _LOGGER.debug(
            "Evaluated %s exercise %s: overall=%.3f efficiency=%.1f",
            exercise.type.value,
            exercise.id,
            performance.overall_score,
            performance.time_efficiency,
        )
        return performance

    @staticmethod
    def _improvement_areas(scores: Dict[str, float], analysis: WritingAnalysis) -> List[str]:
        areas = [name for name, score in scores.items() if score < IMPROVEMENT_THRESHOLD]
        areas.extend(s.area.value.capitalize() for s in analysis.suggestions[:2])
        return list(dict.fromkeys(areas))


__all__ = [
    "ScoringContext",
    "PerformanceLevel",
    "ExercisePerformance",
    "Rubric",
    "RUBRICS",
    "ExercisePerformanceEvaluator",
    "time_efficiency",
]
