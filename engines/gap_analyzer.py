"""Skill gap detection from analysis suggestions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping

from schemas import ImprovementSuggestion, WritingAnalysis
from skills import SkillArea, SkillProgress, skill_area_for

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkillGap:
    """Shortfall between the learner's level and the level a suggestion asks for."""

    skill_area: SkillArea
    current_level: float
    target_level: float
    priority: float
    suggestion: ImprovementSuggestion

    @property
    def gap_size(self) -> float:
        return self.target_level - self.current_level


def target_level_for(suggestion: ImprovementSuggestion) -> float:
    return min(suggestion.priority * 0.8 + suggestion.learning_effort * 0.2, 1.0)


class GapAnalyzer:
    """Turns suggestions into prioritised skill gaps.

    Pure computation: the progress map is only read, never mutated, so the
    analyzer can run on any thread.
    """

    def identify_gaps(
        self,
        analysis: WritingAnalysis,
        skill_progress: Mapping[SkillArea, SkillProgress],
    ) -> List[SkillGap]:
        gaps: List[SkillGap] = []
        for suggestion in analysis.suggestions:
            area = skill_area_for(suggestion.area)
            progress = skill_progress.get(area)
            current = progress.current_level if progress is not None else 0.0
            target = target_level_for(suggestion)
            if target <= current:
                continue
            gaps.append(
                SkillGap(
                    skill_area=area,
                    current_level=current,
                    target_level=target,
                    priority=suggestion.priority,
                    suggestion=suggestion,
                )
            )

        # sorted() is stable, so equal priorities keep suggestion order
        gaps = sorted(gaps, key=lambda gap: gap.priority, reverse=True)
        _LOGGER.debug(
            "Identified %d skill gaps from %d suggestions", len(gaps), len(analysis.suggestions)
        )
        return gaps


__all__ = ["SkillGap", "GapAnalyzer", "target_level_for"]
