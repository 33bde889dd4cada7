"""Exercise catalog: daily rotation, personalised sets and the start/submit surface."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, List, Mapping, Optional

from schemas import Difficulty, ImprovementSuggestion, WritingAnalysis, WritingExercise
from skills import SKILL_CATALOG, ExerciseType, SkillArea, SkillProgress, skill_area_for

_LOGGER = logging.getLogger(__name__)

WARM_UP_PROMPTS = (
    "Describe your perfect writing environment in exactly 50 words.",
    "Write about a color without naming it, using only sensory descriptions.",
    "Create a sentence that starts with each letter of your first name.",
    "Describe the sound of silence in three different ways.",
    "Write a conversation between two objects in your room.",
)

CREATIVE_THEMES = (
    "Write about a world where colors have sounds",
    "Describe a conversation between past and future you",
    "Create a story told entirely through text messages",
    "Write about the last bookstore on Earth",
    "Describe a museum exhibit of forgotten emotions",
)

SKILL_ROTATION_SIZE = 3
PERSONALIZED_SUGGESTIONS = 3
PERSONALIZED_WEAK_SKILLS = 2


class ExerciseNotFoundError(KeyError):
    """Raised when an exercise id is not in the available list."""


def _local_day(moment: datetime):
    return moment.astimezone().date()


class ExerciseCatalog:
    """In-memory list of exercises the learner can pick from.

    Parameters
    ----------
    rng:
        Random source for prompt selection and the skill rotation.
    clock:
        Returns the current time; exercises are stamped with it and the daily
        rotation compares local calendar days against it.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = Lock()
        self._available: List[WritingExercise] = []
        self.current: Optional[WritingExercise] = None

    # ----- public API -------------------------------------------------
    @property
    def available(self) -> List[WritingExercise]:
        with self._lock:
            return list(self._available)

    def get(self, exercise_id: str) -> WritingExercise:
        with self._lock:
            for exercise in self._available:
                if exercise.id == exercise_id:
                    return exercise
        raise ExerciseNotFoundError(exercise_id)

    def start(self, exercise_id: str) -> WritingExercise:
        exercise = self.get(exercise_id)
        self.current = exercise
        _LOGGER.info("Started exercise %s (%s)", exercise.id, exercise.title)
        return exercise

    def finish(self, exercise_id: str) -> None:
        if self.current is not None and self.current.id == exercise_id:
            self.current = None

    def generate_daily(self) -> List[WritingExercise]:
        """Append today's rotation unless exercises stamped today already exist.

        Returns the newly created exercises (empty when the rotation was skipped).
        """

        now = self._clock()
        today = _local_day(now)
        with self._lock:
            if any(_local_day(item.created_at) == today for item in self._available):
                return []
            skills = list(SkillArea)
            self._rng.shuffle(skills)
            exercises = [self._warm_up(now)]
            exercises.extend(self.skill_exercise(skill, now) for skill in skills[:SKILL_ROTATION_SIZE])
            exercises.append(self._creative(now))
            exercises.append(self._timed(now))
            self._available.extend(exercises)
        _LOGGER.info("Generated %d daily exercises", len(exercises))
        return exercises

    def generate_personalized(
        self,
        analysis: WritingAnalysis,
        skill_progress: Mapping[SkillArea, SkillProgress],
    ) -> List[WritingExercise]:
        """Replace the available list with exercises aimed at the latest analysis."""

        now = self._clock()
        exercises = [
            self.suggestion_exercise(suggestion, now)
            for suggestion in analysis.suggestions[:PERSONALIZED_SUGGESTIONS]
        ]
        weakest = sorted(skill_progress.values(), key=lambda p: p.current_level)
        exercises.extend(
            self.skill_exercise(progress.skill_area, now) for progress in weakest[:PERSONALIZED_WEAK_SKILLS]
        )
        exercises.append(self._creative(now))
        with self._lock:
            self._available = exercises
        return list(exercises)

    # ----- builders ---------------------------------------------------
    def suggestion_exercise(self, suggestion: ImprovementSuggestion, now: Optional[datetime] = None) -> WritingExercise:
        area = skill_area_for(suggestion.area)
        profile = SKILL_CATALOG[area]
        return WritingExercise(
            title=f"Targeted Practice: {suggestion.title}",
            description="Practice exercise based on your specific improvement area",
            type=profile.exercise_type,
            target_skill=area,
            difficulty=Difficulty.from_priority(suggestion.priority),
            instructions=profile.suggestion_instructions.format(example=suggestion.before_example),
            objectives=list(profile.suggestion_objectives),
            expected_outcome=f"Improved {area.value} in your writing",
            time_estimate=suggestion.learning_effort * 30 * 60,
            created_at=now or self._clock(),
            sample_response=suggestion.after_example or None,
        )

    def skill_exercise(self, skill: SkillArea, now: Optional[datetime] = None) -> WritingExercise:
        profile = SKILL_CATALOG[skill]
        template = profile.template
        return WritingExercise(
            title=template.title,
            description=template.description,
            type=profile.exercise_type,
            target_skill=skill,
            difficulty=Difficulty(template.difficulty),
            instructions=template.instructions,
            objectives=list(template.objectives),
            expected_outcome=template.expected_outcome,
            time_estimate=template.time_estimate,
            created_at=now or self._clock(),
            sample_response=template.sample_response,
        )

    def _warm_up(self, now: datetime) -> WritingExercise:
        return WritingExercise(
            title="Daily Warm-Up",
            description="A quick exercise to get your creative juices flowing",
            type=ExerciseType.WARM_UP,
            target_skill=SkillArea.CREATIVITY,
            difficulty=Difficulty.EASY,
            instructions=self._rng.choice(WARM_UP_PROMPTS),
            objectives=[
                "Practice daily writing",
                "Warm up creative thinking",
                "Build writing consistency",
            ],
            expected_outcome="Improved writing readiness and creativity",
            time_estimate=300,
            created_at=now,
        )

    def _creative(self, now: datetime) -> WritingExercise:
        theme = self._rng.choice(CREATIVE_THEMES)
        return WritingExercise(
            title="Creative Challenge",
            description="Push your creative boundaries",
            type=ExerciseType.CREATIVE,
            target_skill=SkillArea.CREATIVITY,
            difficulty=Difficulty.MEDIUM,
            instructions=(
                f"{theme}\n\nWrite 200-300 words exploring this concept. "
                "Focus on unique perspectives and creative expression."
            ),
            objectives=[
                "Explore creative concepts",
                "Develop unique voice",
                "Practice imaginative writing",
                "Experiment with style",
            ],
            expected_outcome="Enhanced creative writing skills",
            time_estimate=1800,
            created_at=now,
        )

    def _timed(self, now: datetime) -> WritingExercise:
        return WritingExercise(
            title="Speed Writing",
            description="Write quickly to overcome perfectionism",
            type=ExerciseType.TIMED,
            target_skill=SkillArea.STYLE,
            difficulty=Difficulty.MEDIUM,
            instructions=(
                'Write continuously for 10 minutes about "A day that changed everything."\n\n'
                "Rules:\n"
                "- Don't stop writing\n"
                "- Don't edit as you go\n"
                '- If you get stuck, write "I\'m stuck" until ideas come\n'
                "- Focus on flow, not perfection"
            ),
            objectives=[
                "Overcome perfectionism",
                "Practice continuous writing",
                "Develop writing fluency",
                "Generate raw material",
            ],
            expected_outcome="Improved writing fluency and confidence",
            time_estimate=600,
            created_at=now,
        )


__all__ = ["ExerciseCatalog", "ExerciseNotFoundError", "WARM_UP_PROMPTS", "CREATIVE_THEMES"]
