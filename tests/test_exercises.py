import random
from datetime import timedelta

import pytest

from engines.exercises import CREATIVE_THEMES, WARM_UP_PROMPTS, ExerciseCatalog, ExerciseNotFoundError
from schemas import Difficulty
from skills import ExerciseType, SkillArea, initial_skill_progress


class _Clock:
    def __init__(self, moment):
        self.moment = moment

    def __call__(self):
        return self.moment


def test_daily_rotation_shape(now):
    catalog = ExerciseCatalog(rng=random.Random(7), clock=_Clock(now))
    created = catalog.generate_daily()

    assert len(created) == 6
    assert created[0].type is ExerciseType.WARM_UP
    assert created[0].instructions in WARM_UP_PROMPTS
    assert created[-2].type is ExerciseType.CREATIVE
    assert any(theme in created[-2].instructions for theme in CREATIVE_THEMES)
    assert created[-1].type is ExerciseType.TIMED
    rotation = created[1:4]
    assert len({e.target_skill for e in rotation}) == 3
    assert all(e.created_at == now for e in created)


def test_daily_rotation_skipped_on_same_day(now):
    clock = _Clock(now)
    catalog = ExerciseCatalog(rng=random.Random(1), clock=clock)
    catalog.generate_daily()
    assert catalog.generate_daily() == []
    assert len(catalog.available) == 6

    clock.moment = now + timedelta(days=1)
    assert len(catalog.generate_daily()) == 6
    assert len(catalog.available) == 12


def test_personalized_exercises(make_analysis, make_suggestion, now):
    suggestions = [
        make_suggestion(SkillArea.GRAMMAR, priority=0.9, effort=0.5),
        make_suggestion(SkillArea.STYLE, priority=0.65, effort=0.2),
        make_suggestion(SkillArea.CLARITY, priority=0.3, effort=1.0),
        make_suggestion(SkillArea.TONE, priority=0.9, effort=1.0),
    ]
    progress = initial_skill_progress(now)
    for area in SkillArea:
        progress[area].current_level = 0.8
    progress[SkillArea.VOCABULARY].current_level = 0.1
    progress[SkillArea.STRUCTURE].current_level = 0.2

    catalog = ExerciseCatalog(rng=random.Random(3), clock=_Clock(now))
    catalog.generate_daily()
    exercises = catalog.generate_personalized(make_analysis(suggestions), progress)

    assert len(exercises) == 6
    assert catalog.available == exercises
    first, second, third = exercises[:3]
    assert first.title == "Targeted Practice: Improve grammar"
    assert first.difficulty is Difficulty.HARD
    assert first.time_estimate == pytest.approx(900)
    assert "the cat sat on the mat." in first.instructions
    assert second.difficulty is Difficulty.MEDIUM
    assert third.difficulty is Difficulty.EASY
    assert third.type is ExerciseType.CLARITY
    assert [e.target_skill for e in exercises[3:5]] == [SkillArea.VOCABULARY, SkillArea.STRUCTURE]
    assert exercises[-1].type is ExerciseType.CREATIVE


def test_start_and_lookup(now):
    catalog = ExerciseCatalog(rng=random.Random(0), clock=_Clock(now))
    exercise = catalog.generate_daily()[2]
    assert catalog.start(exercise.id) is exercise
    assert catalog.current is exercise
    catalog.finish(exercise.id)
    assert catalog.current is None

    with pytest.raises(ExerciseNotFoundError):
        catalog.get("missing")
