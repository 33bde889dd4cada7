import asyncio
import random
from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

import app
from coach import WritingCoach
from db import InMemoryProfileStore
from engines.exercises import ExerciseCatalog
from engines.progression import ProgressionEngine
from schemas import AnalyzeRequest, RoadmapRequest, SubmitExerciseRequest

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class _UnavailableProvider:
    async def analyze(self, text, options=None):
        from analysis import AnalysisNetworkError

        raise AnalysisNetworkError("connection refused")


@pytest.fixture
def coach(monkeypatch):
    from analysis import HeuristicAnalysisProvider

    clock = lambda: NOW  # noqa: E731
    instance = WritingCoach(
        provider=HeuristicAnalysisProvider(),
        progression=ProgressionEngine(InMemoryProfileStore(), clock=clock),
        catalog=ExerciseCatalog(rng=random.Random(2), clock=clock),
    )
    monkeypatch.setattr(app, "COACH", instance)
    return instance


def test_endpoints_require_initialised_coach(monkeypatch):
    monkeypatch.setattr(app, "COACH", None)
    with pytest.raises(HTTPException) as exc:
        app.profile()
    assert exc.value.status_code == 503


def test_analyze_endpoint(coach):
    result = asyncio.run(app.analyze(AnalyzeRequest(text="i like it. it is very good.")))
    assert result.suggestions
    assert coach.last_analysis is result


def test_analyze_empty_text_is_bad_request(coach):
    with pytest.raises(HTTPException) as exc:
        asyncio.run(app.analyze(AnalyzeRequest(text="  ")))
    assert exc.value.status_code == 400
    assert exc.value.detail == "No text provided for analysis"


def test_analysis_failure_maps_to_503(coach, monkeypatch):
    monkeypatch.setattr(coach, "provider", _UnavailableProvider())
    with pytest.raises(HTTPException) as exc:
        asyncio.run(app.analyze(AnalyzeRequest(text="Some words here.")))
    assert exc.value.status_code == 503


def test_exercise_flow(coach):
    daily = app.daily_exercises()
    assert daily["created"] == 6
    exercise = daily["exercises"][0]

    assert app.start_exercise(exercise.id).id == exercise.id
    payload = asyncio.run(
        app.submit_exercise(exercise.id, SubmitExerciseRequest(response="Quiet rain tapped the window.", time_spent=300))
    )

    assert payload["exercise_id"] == exercise.id
    assert payload["performance"]["grade"] == "A"
    assert payload["progression"]["experience_gained"] > 0
    assert payload["feedback"]["next_steps"][-1] == "Continue daily writing practice"
    assert len(app.sessions()) == 1
    assert app.profile()["total_sessions"] == 1
    assert app.recent_achievements()[0].title


def test_unknown_exercise_is_404(coach):
    with pytest.raises(HTTPException) as exc:
        app.start_exercise("missing")
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        asyncio.run(app.submit_exercise("missing", SubmitExerciseRequest(response="Text.", time_spent=1)))
    assert exc.value.status_code == 404


def test_roadmap_endpoints(coach):
    with pytest.raises(HTTPException) as exc:
        app.current_roadmap()
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        asyncio.run(app.create_roadmap(RoadmapRequest()))
    assert exc.value.status_code == 400

    created = asyncio.run(
        app.create_roadmap(RoadmapRequest(text="i think this is very good stuff. it really is.", timeframe_weeks=3))
    )
    assert created["total_duration"] == 3 * 7 * 24 * 3600
    assert created["modules"]
    assert app.current_roadmap() == created


def test_personalized_requires_prior_analysis(coach):
    with pytest.raises(HTTPException) as exc:
        app.personalized_exercises()
    assert exc.value.status_code == 409


def test_skills_and_profile_payloads(coach):
    skills = app.skills()
    assert set(skills) == {"grammar", "style", "clarity", "vocabulary", "structure", "tone", "creativity"}
    assert skills["tone"]["current_level"] == pytest.approx(0.3)

    profile = app.profile()
    assert profile["level"] == 1
    assert profile["experience_to_next_level"] == 800
    assert profile["average_skill_level"] == 1.0


def test_challenge_endpoints(coach):
    created = app.daily_challenges()
    assert created["created"] == 3
    assert app.daily_challenges()["created"] == 0

    challenge_id = created["challenges"][1].id
    assert app.start_challenge(challenge_id).is_active
    listing = app.challenges()
    assert [c.id for c in listing["active"]] == [challenge_id]
    assert len(listing["available"]) == 2

    with pytest.raises(HTTPException) as exc:
        app.start_challenge(challenge_id)
    assert exc.value.status_code == 404
