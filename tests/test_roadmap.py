import pytest

from engines.gap_analyzer import GapAnalyzer, SkillGap
from engines.roadmap import GENERIC_WEEKLY_GOAL, RoadmapBuilder, estimated_time_for
from schemas import LearningSession
from skills import SkillArea, initial_skill_progress


def _gap(make_suggestion, area, current, target, priority):
    return SkillGap(
        skill_area=area,
        current_level=current,
        target_level=target,
        priority=priority,
        suggestion=make_suggestion(area, priority=priority),
    )


def test_empty_gaps_give_generic_goal(make_analysis, now):
    roadmap = RoadmapBuilder().build([], make_analysis(), initial_skill_progress(now))
    assert roadmap.modules == []
    assert roadmap.insights.weekly_goal == GENERIC_WEEKLY_GOAL
    assert roadmap.insights.focus_areas == []
    assert roadmap.total_duration == 4 * 7 * 24 * 3600


def test_at_most_five_modules_for_many_gaps(make_analysis, make_suggestion, now):
    areas = list(SkillArea)
    suggestions = [
        make_suggestion(areas[i % len(areas)], priority=0.5 + (i % 50) / 100, effort=(i % 10) / 10)
        for i in range(100)
    ]
    progress = initial_skill_progress(now)
    analysis = make_analysis(suggestions)
    gaps = GapAnalyzer().identify_gaps(analysis, progress)
    roadmap = RoadmapBuilder().build(gaps, analysis, progress)
    assert len(roadmap.modules) == 5


def test_modules_ordered_by_difficulty_with_tolerance(make_analysis, make_suggestion):
    gaps = [
        _gap(make_suggestion, SkillArea.GRAMMAR, 0.0, 0.9, 0.9),  # difficulty 0.9
        _gap(make_suggestion, SkillArea.STYLE, 0.3, 0.5, 0.8),  # 0.2
        _gap(make_suggestion, SkillArea.CLARITY, 0.3, 0.55, 0.7),  # 0.25, within tolerance of style
        _gap(make_suggestion, SkillArea.TONE, 0.1, 0.7, 0.6),  # 0.6
    ]
    roadmap = RoadmapBuilder().build(gaps, make_analysis(), {})
    difficulties = [m.difficulty for m in roadmap.modules]
    for earlier, later in zip(difficulties, difficulties[1:]):
        assert earlier <= later + 0.1
    assert [m.skill_area for m in roadmap.modules] == [
        SkillArea.STYLE,
        SkillArea.CLARITY,
        SkillArea.TONE,
        SkillArea.GRAMMAR,
    ]


def test_module_content_comes_from_skill_catalog(make_analysis, make_suggestion):
    gap = _gap(make_suggestion, SkillArea.STYLE, 0.3, 0.7, 0.8)
    module = RoadmapBuilder().build([gap], make_analysis(), {}).modules[0]
    assert module.title == "Writing Style Mastery"
    assert module.estimated_time == pytest.approx(3600 * 1.4)
    assert module.exercises[0].description == "Targeted Style Practice"
    assert module.objectives


def test_insights(make_analysis, make_suggestion, now):
    progress = initial_skill_progress(now)
    progress[SkillArea.TONE].current_level = 0.9
    gaps = [
        _gap(make_suggestion, SkillArea.GRAMMAR, 0.3, 0.8, 0.9),
        _gap(make_suggestion, SkillArea.STYLE, 0.3, 0.7, 0.8),
        _gap(make_suggestion, SkillArea.CLARITY, 0.3, 0.6, 0.7),
        _gap(make_suggestion, SkillArea.VOCABULARY, 0.3, 0.5, 0.6),
    ]
    history = [LearningSession(skill_area=SkillArea.GRAMMAR, performance_score=0.5) for _ in range(5)]
    history += [LearningSession(skill_area=SkillArea.GRAMMAR, performance_score=1.0) for _ in range(10)]

    insights = RoadmapBuilder().insights(gaps, progress, history)

    assert insights.focus_areas == ["grammar", "style", "clarity"]
    assert insights.improvement_velocity == pytest.approx(1.0)
    assert insights.strengths == ["Tone"]
    assert insights.weekly_goal == "Focus on improving grammar this week"
    assert insights.estimated_time_to_improvement == pytest.approx(
        sum(estimated_time_for(g) for g in gaps[:3])
    )
    assert insights.overall_level == pytest.approx((0.3 * 6 + 0.9) / 7)


def test_explicit_timeframe_overrides_default(make_analysis):
    roadmap = RoadmapBuilder(default_timeframe_weeks=4).build([], make_analysis(), {}, timeframe_weeks=2)
    assert roadmap.total_duration == 2 * 7 * 24 * 3600
