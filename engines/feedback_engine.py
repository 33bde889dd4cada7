"""Learner-facing feedback for evaluated exercise submissions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from engines.evaluation import RUBRICS, ExercisePerformance, Rubric
from schemas import WritingExercise
from skills import ExerciseType


@dataclass
class ExerciseFeedback:
    overall_message: str
    strengths: List[str] = field(default_factory=list)
    improvement_areas: List[str] = field(default_factory=list)
    tips: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        text = self.overall_message
        if self.strengths:
            text += "\n\nStrengths: " + ", ".join(self.strengths)
        if self.improvement_areas:
            text += "\n\nAreas for improvement: " + ", ".join(self.improvement_areas)
        return text


class FeedbackEngine:
    def __init__(self, rubrics: Optional[Dict[ExerciseType, Rubric]] = None):
        self.rubrics = dict(rubrics or RUBRICS)

    def generate_feedback(self, exercise: WritingExercise, performance: ExercisePerformance) -> ExerciseFeedback:
        """Build strengths, improvement lines, tips and next steps for a result."""

        strengths: List[str] = []
        improvements: List[str] = []
        for metric, score in performance.skill_scores.items():
            if score >= 0.8:
                strengths.append(f"Excellent {metric.lower()}")
            elif score < 0.6:
                improvements.append(f"Focus on improving {metric.lower()}")

        tips: List[str] = []
        rubric = self.rubrics.get(exercise.type)
        if rubric is not None:
            tip = rubric.tip_for(performance.skill_scores)
            if tip:
                tips.append(tip)

        return ExerciseFeedback(
            overall_message=self._overall_message(performance.overall_score),
            strengths=strengths,
            improvement_areas=improvements,
            tips=tips,
            next_steps=self._next_steps(performance),
        )

    def _overall_message(self, score: float) -> str:
        if score >= 0.9:
            return "Outstanding work! You've mastered this exercise."
        elif score >= 0.8:
            return "Excellent performance! You're on the right track."
        elif score >= 0.7:
            return "Good effort! A few improvements will make this even better."
        elif score >= 0.6:
            return "You're making progress! Focus on the improvement areas."
        else:
            return "This is challenging material. Don't give up - practice makes perfect!"

    def _next_steps(self, performance: ExercisePerformance) -> List[str]:
        if performance.overall_score >= 0.8:
            steps = [
                "Try a more advanced exercise in the same area",
                "Apply these skills to a longer writing piece",
            ]
        else:
            steps = [
                "Practice similar exercises to reinforce these skills",
                "Review the feedback and focus on improvement areas",
            ]
        steps.append("Continue daily writing practice")
        return steps


__all__ = ["ExerciseFeedback", "FeedbackEngine"]
