"""Learning roadmap construction.

The builder takes the gaps produced by :class:`engines.gap_analyzer.GapAnalyzer`
and turns the highest-priority ones into learning modules, then reorders the
modules so that easy and quick modules come first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import List, Mapping, Sequence

from engines.gap_analyzer import SkillGap
from schemas import LearningSession, ResourceReference, WritingAnalysis
from skills import SKILL_CATALOG, SkillArea, SkillProgress, overall_level

_LOGGER = logging.getLogger(__name__)

MAX_MODULES = 5
BASE_MODULE_SECONDS = 3600.0
DIFFICULTY_TIE_TOLERANCE = 0.1
VELOCITY_WINDOW = 10
STRENGTH_THRESHOLD = 0.7
GENERIC_WEEKLY_GOAL = "Continue practicing your writing skills"


@dataclass
class ModuleExercise:
    description: str
    instructions: str
    expected_outcome: str
    resources: List[ResourceReference] = field(default_factory=list)


@dataclass
class LearningModule:
    title: str
    skill_area: SkillArea
    objectives: List[str]
    estimated_time: float
    difficulty: float
    exercises: List[ModuleExercise]


@dataclass
class RoadmapInsights:
    overall_level: float
    improvement_velocity: float
    focus_areas: List[str]
    estimated_time_to_improvement: float
    strengths: List[str]
    weekly_goal: str


@dataclass
class Roadmap:
    modules: List[LearningModule]
    total_duration: float
    insights: RoadmapInsights


def estimated_time_for(gap: SkillGap) -> float:
    return BASE_MODULE_SECONDS * (1.0 + gap.gap_size)


def _compare_modules(lhs: LearningModule, rhs: LearningModule) -> int:
    if abs(lhs.difficulty - rhs.difficulty) > DIFFICULTY_TIE_TOLERANCE:
        return -1 if lhs.difficulty < rhs.difficulty else 1
    if lhs.estimated_time == rhs.estimated_time:
        return 0
    return -1 if lhs.estimated_time < rhs.estimated_time else 1


class RoadmapBuilder:
    """Build a :class:`Roadmap` from sorted skill gaps.

    Parameters
    ----------
    default_timeframe_weeks:
        Window used when :meth:`build` is called without an explicit timeframe.
    max_modules:
        Number of top gaps that become modules.
    """

    def __init__(self, default_timeframe_weeks: int = 4, max_modules: int = MAX_MODULES) -> None:
        if default_timeframe_weeks <= 0:
            raise ValueError("default_timeframe_weeks must be positive")
        if max_modules <= 0:
            raise ValueError("max_modules must be positive")
        self.default_timeframe_weeks = default_timeframe_weeks
        self.max_modules = max_modules

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def build(
        self,
        gaps: Sequence[SkillGap],
        analysis: WritingAnalysis,
        skill_progress: Mapping[SkillArea, SkillProgress],
        history: Sequence[LearningSession] = (),
        timeframe_weeks: int | None = None,
    ) -> Roadmap:
        weeks = timeframe_weeks or self.default_timeframe_weeks
        modules = [self._module_for_gap(gap) for gap in list(gaps)[: self.max_modules]]
        modules.sort(key=cmp_to_key(_compare_modules))

        insights = self.insights(gaps, skill_progress, history)
        roadmap = Roadmap(
            modules=modules,
            total_duration=float(weeks * 7 * 24 * 3600),
            insights=insights,
        )
        _LOGGER.info(
            "Built roadmap with %d modules over %d weeks (%d suggestions analysed)",
            len(modules),
            weeks,
            len(analysis.suggestions),
        )
        return roadmap

    def insights(
        self,
        gaps: Sequence[SkillGap],
        skill_progress: Mapping[SkillArea, SkillProgress],
        history: Sequence[LearningSession] = (),
    ) -> RoadmapInsights:
        recent = list(history)[-VELOCITY_WINDOW:]
        velocity = sum(s.performance_score for s in recent) / len(recent) if recent else 0.0
        top = list(gaps)[:3]
        strengths = [
            SKILL_CATALOG[area].display_name
            for area, progress in skill_progress.items()
            if progress.current_level > STRENGTH_THRESHOLD
        ]
        if gaps:
            display = SKILL_CATALOG[gaps[0].skill_area].display_name
            weekly_goal = f"Focus on improving {display.lower()} this week"
        else:
            weekly_goal = GENERIC_WEEKLY_GOAL
        return RoadmapInsights(
            overall_level=overall_level(skill_progress),
            improvement_velocity=velocity,
            focus_areas=[gap.skill_area.value for gap in top],
            estimated_time_to_improvement=sum(estimated_time_for(gap) for gap in top),
            strengths=strengths,
            weekly_goal=weekly_goal,
        )

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _module_for_gap(self, gap: SkillGap) -> LearningModule:
        profile = SKILL_CATALOG[gap.skill_area]
        exercise = ModuleExercise(
            description=f"Targeted {gap.skill_area.value.capitalize()} Practice",
            instructions=profile.practice_instructions,
            expected_outcome=f"Improved {gap.skill_area.value} in your writing",
            resources=list(gap.suggestion.resources),
        )
        return LearningModule(
            title=f"{profile.display_name} Mastery",
            skill_area=gap.skill_area,
            objectives=list(profile.objectives),
            estimated_time=estimated_time_for(gap),
            difficulty=gap.gap_size,
            exercises=[exercise],
        )


__all__ = [
    "ModuleExercise",
    "LearningModule",
    "RoadmapInsights",
    "Roadmap",
    "RoadmapBuilder",
    "estimated_time_for",
]
