import itertools

from engines.gap_analyzer import GapAnalyzer, target_level_for
from skills import SkillArea, initial_skill_progress


def test_empty_suggestions_yield_no_gaps(make_analysis, now):
    gaps = GapAnalyzer().identify_gaps(make_analysis(), initial_skill_progress(now))
    assert gaps == []


def test_gaps_sorted_by_priority_and_above_current(make_analysis, make_suggestion, now):
    suggestions = [
        make_suggestion(SkillArea.STYLE, priority=0.6, effort=0.5),
        make_suggestion(SkillArea.GRAMMAR, priority=0.9, effort=0.2),
        make_suggestion(SkillArea.CLARITY, priority=0.75, effort=0.9),
        # target 0.1*0.8 + 0.0 = 0.08 < 0.3 current: dropped
        make_suggestion(SkillArea.TONE, priority=0.1, effort=0.0),
    ]
    progress = initial_skill_progress(now)
    gaps = GapAnalyzer().identify_gaps(make_analysis(suggestions), progress)

    assert [g.skill_area for g in gaps] == [SkillArea.GRAMMAR, SkillArea.CLARITY, SkillArea.STYLE]
    priorities = [g.priority for g in gaps]
    assert priorities == sorted(priorities, reverse=True)
    for gap in gaps:
        assert gap.target_level > gap.current_level
        assert gap.current_level == progress[gap.skill_area].current_level


def test_equal_priorities_keep_suggestion_order(make_analysis, make_suggestion, now):
    suggestions = [
        make_suggestion(SkillArea.VOCABULARY, priority=0.7),
        make_suggestion(SkillArea.STRUCTURE, priority=0.7),
    ]
    gaps = GapAnalyzer().identify_gaps(make_analysis(suggestions), initial_skill_progress(now))
    assert [g.skill_area for g in gaps] == [SkillArea.VOCABULARY, SkillArea.STRUCTURE]


def test_missing_skill_progress_defaults_to_zero(make_analysis, make_suggestion):
    gaps = GapAnalyzer().identify_gaps(make_analysis([make_suggestion(SkillArea.TONE, priority=0.1, effort=0.0)]), {})
    assert len(gaps) == 1
    assert gaps[0].current_level == 0.0
    assert gaps[0].gap_size == gaps[0].target_level


def test_target_level_never_exceeds_one(make_suggestion):
    grid = [i / 10 for i in range(11)]
    for priority, effort in itertools.product(grid, grid):
        assert target_level_for(make_suggestion(priority=priority, effort=effort)) <= 1.0
