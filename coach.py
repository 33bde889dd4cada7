"""WritingCoach: the one object the UI layer talks to.

Wires the analysis provider to the pure engines (gaps, roadmap, evaluation,
feedback) and to the progression engine that owns the learner profile.
Profile state only changes after an analysis result is in hand, so a failed
or superseded analysis leaves everything untouched.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from analysis import (
    AnalysisProvider,
    EmptyInputError,
    TokenLimitExceededError,
    WritingAnalysisError,
    build_provider_from_env,
)
from db import DEFAULT_STORAGE_KEY, SQLiteProfileStore
from engines.evaluation import ExercisePerformance, ExercisePerformanceEvaluator
from engines.exercises import ExerciseCatalog
from engines.feedback_engine import ExerciseFeedback, FeedbackEngine
from engines.gap_analyzer import GapAnalyzer, SkillGap
from engines.progression import ProfileStore, ProgressionEngine, SessionOutcome
from engines.roadmap import Roadmap, RoadmapBuilder
from env_validation import get_env_int
from schemas import (
    Achievement,
    AnalysisOptions,
    GamifiedUserProfile,
    LearningSession,
    WritingAnalysis,
    WritingChallenge,
    WritingExercise,
)
from skills import SkillArea, SkillProgress

_LOGGER = logging.getLogger(__name__)


class AnalysisUnavailableError(Exception):
    """No analysis could be obtained; nothing was recorded."""


async def _checked(pending) -> WritingAnalysis:
    """Await a provider call, mapping provider failures to ``AnalysisUnavailableError``.

    Input problems (empty text, too many tokens) propagate unchanged.
    """

    try:
        return await pending
    except (EmptyInputError, TokenLimitExceededError):
        raise
    except WritingAnalysisError as exc:
        _LOGGER.warning("Analysis unavailable: %s", exc)
        raise AnalysisUnavailableError(str(exc)) from exc


@dataclass
class ExerciseResult:
    exercise: WritingExercise
    analysis: WritingAnalysis
    performance: ExercisePerformance
    feedback: ExerciseFeedback
    outcome: SessionOutcome


class WritingCoach:
    """Façade over analysis, planning, practice and progression.

    Parameters
    ----------
    provider:
        Analysis collaborator; any object with ``async analyze(text, options)``.
    progression:
        Owner of the persistent learner profile.
    catalog, gap_analyzer, roadmap_builder, evaluator, feedback:
        Engine overrides, mostly for tests.
    options:
        Default options passed to the provider.
    """

    def __init__(
        self,
        provider: AnalysisProvider,
        progression: ProgressionEngine,
        catalog: Optional[ExerciseCatalog] = None,
        gap_analyzer: Optional[GapAnalyzer] = None,
        roadmap_builder: Optional[RoadmapBuilder] = None,
        evaluator: Optional[ExercisePerformanceEvaluator] = None,
        feedback: Optional[FeedbackEngine] = None,
        options: Optional[AnalysisOptions] = None,
    ) -> None:
        self.provider = provider
        self.progression = progression
        self.catalog = catalog or ExerciseCatalog()
        self.gap_analyzer = gap_analyzer or GapAnalyzer()
        self.roadmap_builder = roadmap_builder or RoadmapBuilder()
        self.evaluator = evaluator or ExercisePerformanceEvaluator()
        self.feedback = feedback or FeedbackEngine()
        self.options = options or AnalysisOptions()

        self.current_roadmap: Optional[Roadmap] = None
        self.last_analysis: Optional[WritingAnalysis] = None
        self._inflight: Optional[asyncio.Task] = None

    @classmethod
    def from_env(cls, store: Optional[ProfileStore] = None) -> "WritingCoach":
        """Build a coach configured from environment variables."""

        if store is None:
            store = SQLiteProfileStore(os.getenv("PROFILE_STORAGE_KEY") or DEFAULT_STORAGE_KEY)
        return cls(
            provider=build_provider_from_env(),
            progression=ProgressionEngine(store),
            roadmap_builder=RoadmapBuilder(default_timeframe_weeks=get_env_int("ROADMAP_TIMEFRAME_WEEKS", 4)),
            options=AnalysisOptions(max_tokens=get_env_int("ANALYSIS_MAX_TOKENS", 2048)),
        )

    # ----- analysis ---------------------------------------------------
    async def analyze(self, text: str, options: Optional[AnalysisOptions] = None) -> WritingAnalysis:
        """Analyse ``text``, cancelling any analysis still in flight.

        Input problems (empty text, too many tokens) propagate unchanged.
        Every other provider failure, and being superseded by a newer
        request, surfaces as :class:`AnalysisUnavailableError`.
        """

        task = asyncio.ensure_future(self.provider.analyze(text, options or self.options))
        previous, self._inflight = self._inflight, task
        if previous is not None and not previous.done():
            _LOGGER.info("Superseding in-flight analysis")
            previous.cancel()

        try:
            analysis = await _checked(task)
        except asyncio.CancelledError:
            if task.cancelled() and self._inflight is not task:
                raise AnalysisUnavailableError("Analysis superseded by a newer request") from None
            raise
        finally:
            if self._inflight is task:
                self._inflight = None

        self.last_analysis = analysis
        return analysis

    # ----- planning ---------------------------------------------------
    def identify_gaps(self, analysis: WritingAnalysis) -> List[SkillGap]:
        return self.gap_analyzer.identify_gaps(analysis, self.progression.skill_progress())

    def generate_roadmap(self, analysis: WritingAnalysis, timeframe_weeks: Optional[int] = None) -> Roadmap:
        progress = self.progression.skill_progress()
        gaps = self.gap_analyzer.identify_gaps(analysis, progress)
        roadmap = self.roadmap_builder.build(
            gaps,
            analysis,
            progress,
            history=self.progression.history(),
            timeframe_weeks=timeframe_weeks,
        )
        self.current_roadmap = roadmap
        return roadmap

    async def roadmap_for_text(self, text: str, timeframe_weeks: Optional[int] = None) -> Roadmap:
        analysis = await self.analyze(text)
        return self.generate_roadmap(analysis, timeframe_weeks)

    # ----- exercises --------------------------------------------------
    def available_exercises(self) -> List[WritingExercise]:
        return self.catalog.available

    def generate_daily_exercises(self) -> List[WritingExercise]:
        return self.catalog.generate_daily()

    def generate_personalized_exercises(self, analysis: Optional[WritingAnalysis] = None) -> List[WritingExercise]:
        source = analysis or self.last_analysis
        if source is None:
            return []
        return self.catalog.generate_personalized(source, self.progression.skill_progress())

    def start_exercise(self, exercise_id: str) -> WritingExercise:
        return self.catalog.start(exercise_id)

    async def submit_exercise(self, exercise_id: str, response: str, time_spent: float) -> ExerciseResult:
        """Analyse, score and record one exercise submission.

        Unknown ids raise ``ExerciseNotFoundError`` before any analysis runs.
        Editor analyses running alongside a submission never cancel it.
        """

        exercise = self.catalog.get(exercise_id)
        analysis = await _checked(self.provider.analyze(response, self.options))
        self.last_analysis = analysis

        performance = self.evaluator.evaluate(exercise, response, analysis, time_spent)
        feedback = self.feedback.generate_feedback(exercise, performance)
        session = LearningSession(
            skill_area=exercise.target_skill,
            performance_score=min(max(performance.overall_score, 0.0), 1.0),
            time_spent=max(time_spent, 0.0),
            exercise_type=exercise.type.value,
        )
        outcome = await asyncio.to_thread(self.progression.record_session, session, analysis)
        self.catalog.finish(exercise_id)
        _LOGGER.info(
            "Exercise %s submitted: score=%.2f grade=%s xp=+%d",
            exercise.id,
            performance.overall_score,
            performance.grade,
            outcome.experience_gained,
        )
        return ExerciseResult(
            exercise=exercise,
            analysis=analysis,
            performance=performance,
            feedback=feedback,
            outcome=outcome,
        )

    # ----- progression read surface -------------------------------------
    @property
    def profile(self) -> GamifiedUserProfile:
        return self.progression.profile

    def skill_progress(self) -> Dict[SkillArea, SkillProgress]:
        return self.progression.skill_progress()

    def history(self) -> List[LearningSession]:
        return self.progression.history()

    def recent_achievements(self) -> List[Achievement]:
        return self.progression.recent_achievements()

    # ----- challenges -------------------------------------------------
    def available_challenges(self) -> List[WritingChallenge]:
        return self.progression.available_challenges()

    def active_challenges(self) -> List[WritingChallenge]:
        return self.progression.active_challenges()

    def generate_daily_challenges(self) -> List[WritingChallenge]:
        return self.progression.generate_daily_challenges()

    def start_challenge(self, challenge_id: str) -> WritingChallenge:
        return self.progression.start_challenge(challenge_id)


__all__ = ["WritingCoach", "ExerciseResult", "AnalysisUnavailableError"]
