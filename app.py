# app.py: write-coach HTTP surface
# - one WritingCoach per process, built in the lifespan hook
# - analysis failures map to 503, bad input to 400/413, unknown ids to 404

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException

import db
from analysis import EmptyInputError, TokenLimitExceededError
from coach import AnalysisUnavailableError, ExerciseResult, WritingCoach
from engines.challenges import ChallengeNotFoundError
from engines.exercises import ExerciseNotFoundError
from engines.roadmap import Roadmap
from schemas import AnalyzeRequest, RoadmapRequest, SubmitExerciseRequest, WritingAnalysis

logger = logging.getLogger(__name__)

_ANALYSIS_LOGGER = logging.getLogger("writecoach.analysis")
if not _ANALYSIS_LOGGER.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _ANALYSIS_LOGGER.addHandler(_handler)
_ANALYSIS_LOGGER.setLevel(logging.INFO)
_ANALYSIS_LOGGER.propagate = False

COACH: Optional[WritingCoach] = None


@asynccontextmanager
async def _lifespan(_: FastAPI):
    global COACH
    try:
        # Validate environment variables first
        from env_validation import validate_environment
        validate_environment()

        db.DB_PATH = os.environ["DB_PATH"]
        db.init()
        if COACH is None:
            COACH = WritingCoach.from_env()
        logger.info("write-coach ready (profile level %s)", COACH.profile.level)
        yield
    except Exception as e:
        logger.error("Failed to initialize application: %s", str(e), exc_info=True)
        raise
    finally:
        db.close()


app = FastAPI(title="write-coach", version="1.0.0", lifespan=_lifespan)


def _coach() -> WritingCoach:
    if COACH is None:
        raise HTTPException(status_code=503, detail="coach not initialised")
    return COACH


async def _analysis_or_http_error(coro):
    try:
        return await coro
    except EmptyInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except TokenLimitExceededError as exc:
        raise HTTPException(status_code=413, detail=str(exc)) from exc
    except AnalysisUnavailableError as exc:
        raise HTTPException(status_code=503, detail=f"analysis unavailable: {exc}") from exc


def _roadmap_payload(roadmap: Roadmap) -> Dict[str, Any]:
    return asdict(roadmap)


def _result_payload(result: ExerciseResult) -> Dict[str, Any]:
    performance = result.performance
    feedback = result.feedback
    outcome = result.outcome
    return {
        "exercise_id": result.exercise.id,
        "analysis": result.analysis,
        "performance": {
            "overall_score": performance.overall_score,
            "skill_scores": performance.skill_scores,
            "time_efficiency": performance.time_efficiency,
            "improvement_areas": performance.improvement_areas,
            "strength_areas": performance.strength_areas,
            "weakness_areas": performance.weakness_areas,
            "performance_level": performance.performance_level,
            "grade": performance.grade,
        },
        "feedback": {
            "overall_message": feedback.overall_message,
            "strengths": feedback.strengths,
            "improvement_areas": feedback.improvement_areas,
            "tips": feedback.tips,
            "next_steps": feedback.next_steps,
            "summary": feedback.summary,
        },
        "progression": {
            "session": outcome.session,
            "experience_gained": outcome.experience_gained,
            "words_estimated": outcome.words_estimated,
            "level_before": outcome.level_before,
            "level_after": outcome.level_after,
            "leveled_up": outcome.leveled_up,
            "new_achievements": outcome.new_achievements,
            "completed_challenge": outcome.completed_challenge,
            "unlocked_features": outcome.unlocked_features,
        },
    }


# ----- exercises ------------------------------------------------------
@app.get("/exercises")
def list_exercises():
    return _coach().available_exercises()


@app.post("/exercises/daily")
def daily_exercises():
    coach = _coach()
    created = coach.generate_daily_exercises()
    return {"created": len(created), "exercises": coach.available_exercises()}


@app.post("/exercises/personalized")
def personalized_exercises():
    coach = _coach()
    if coach.last_analysis is None:
        raise HTTPException(status_code=409, detail="no analysis available yet")
    return coach.generate_personalized_exercises()


@app.post("/exercises/{exercise_id}/start")
def start_exercise(exercise_id: str):
    try:
        return _coach().start_exercise(exercise_id)
    except ExerciseNotFoundError:
        raise HTTPException(status_code=404, detail="exercise not found")


@app.post("/exercises/{exercise_id}/submit")
async def submit_exercise(exercise_id: str, body: SubmitExerciseRequest):
    coach = _coach()
    try:
        result = await _analysis_or_http_error(
            coach.submit_exercise(exercise_id, body.response, body.time_spent)
        )
    except ExerciseNotFoundError:
        raise HTTPException(status_code=404, detail="exercise not found")
    return _result_payload(result)


# ----- analysis and planning -----------------------------------------
@app.post("/analyze", response_model=WritingAnalysis)
async def analyze(body: AnalyzeRequest):
    return await _analysis_or_http_error(_coach().analyze(body.text, body.options))


@app.post("/roadmap")
async def create_roadmap(body: RoadmapRequest):
    coach = _coach()
    analysis = body.analysis
    if analysis is None:
        if body.text is None:
            raise HTTPException(status_code=400, detail="text or analysis required")
        analysis = await _analysis_or_http_error(coach.analyze(body.text))
    return _roadmap_payload(coach.generate_roadmap(analysis, body.timeframe_weeks))


@app.get("/roadmap")
def current_roadmap():
    roadmap = _coach().current_roadmap
    if roadmap is None:
        raise HTTPException(status_code=404, detail="no roadmap generated yet")
    return _roadmap_payload(roadmap)


# ----- progression ----------------------------------------------------
@app.get("/skills")
def skills():
    return {area.value: progress.model_dump(mode="json") for area, progress in _coach().skill_progress().items()}


@app.get("/sessions")
def sessions(limit: Optional[int] = None):
    history = _coach().history()
    if limit is not None and limit > 0:
        history = history[-limit:]
    return history


@app.get("/profile")
def profile():
    current = _coach().profile
    payload = current.model_dump(mode="json")
    payload.update(
        {
            "experience_to_next_level": current.experience_to_next_level,
            "level_progress": current.level_progress,
            "average_skill_level": current.average_skill_level,
            "total_achievement_points": current.total_achievement_points,
        }
    )
    return payload


@app.get("/achievements/recent")
def recent_achievements():
    return _coach().recent_achievements()


# ----- challenges -----------------------------------------------------
@app.get("/challenges")
def challenges():
    coach = _coach()
    return {"available": coach.available_challenges(), "active": coach.active_challenges()}


@app.post("/challenges/daily")
def daily_challenges():
    created = _coach().generate_daily_challenges()
    return {"created": len(created), "challenges": created}


@app.post("/challenges/{challenge_id}/start")
def start_challenge(challenge_id: str):
    try:
        return _coach().start_challenge(challenge_id)
    except ChallengeNotFoundError:
        raise HTTPException(status_code=404, detail="challenge not found")


__all__: List[str] = ["app"]
