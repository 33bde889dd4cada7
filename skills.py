"""Writing skill vocabulary and the per-skill lookup table.

Every place that needs skill-specific content (roadmap objectives, exercise
instructions, and exercise templates) reads it from :data:`SKILL_CATALOG` so the
consumers cannot drift apart. Scoring rubrics and their coaching tips live in
:data:`engines.evaluation.RUBRICS`, keyed by exercise type.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

INITIAL_SKILL_LEVEL = 0.3
DEFAULT_TARGET_LEVEL = 1.0


class SkillArea(str, Enum):
    GRAMMAR = "grammar"
    STYLE = "style"
    CLARITY = "clarity"
    VOCABULARY = "vocabulary"
    STRUCTURE = "structure"
    TONE = "tone"
    CREATIVITY = "creativity"

    @property
    def display_name(self) -> str:
        return SKILL_CATALOG[self].display_name


class ExerciseType(str, Enum):
    GRAMMAR = "grammar"
    STYLE = "style"
    CLARITY = "clarity"
    VOCABULARY = "vocabulary"
    STRUCTURE = "structure"
    TONE = "tone"
    CREATIVE = "creative"
    WARM_UP = "warm_up"
    TIMED = "timed"
    CHALLENGE = "challenge"

    @property
    def display_name(self) -> str:
        if self is ExerciseType.WARM_UP:
            return "Warm-Up"
        return self.value.capitalize()


@dataclass(frozen=True)
class ExerciseTemplate:
    """Canned skill-building exercise offered in the daily rotation."""

    title: str
    description: str
    difficulty: str
    instructions: str
    objectives: Tuple[str, ...]
    expected_outcome: str
    time_estimate: float
    sample_response: Optional[str] = None


@dataclass(frozen=True)
class SkillProfile:
    """Everything the engines need to know about one skill area."""

    area: SkillArea
    display_name: str
    exercise_type: ExerciseType
    objectives: Tuple[str, ...]
    practice_instructions: str
    suggestion_instructions: str
    suggestion_objectives: Tuple[str, ...]
    template: ExerciseTemplate


class SkillProgress(BaseModel):
    """Competence estimate for one skill, kept in [0, target_level]."""

    skill_area: SkillArea
    current_level: float = Field(default=INITIAL_SKILL_LEVEL, ge=0.0, le=1.0)
    target_level: float = Field(default=DEFAULT_TARGET_LEVEL, ge=0.0, le=1.0)
    sessions_completed: int = Field(default=0, ge=0)
    last_practiced: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def progress_percentage(self) -> float:
        if self.target_level <= 0:
            return 0.0
        return self.current_level / self.target_level

    def apply_improvement(self, improvement: float, practiced_at: datetime) -> None:
        # never decreases; capped at the target
        gain = max(0.0, float(improvement))
        self.current_level = min(self.current_level + gain, self.target_level)
        self.sessions_completed += 1
        self.last_practiced = practiced_at


def skill_area_for(area: str | SkillArea) -> SkillArea:
    """Map an analysis improvement area onto its skill (closed, 1:1)."""

    if isinstance(area, SkillArea):
        return area
    return SkillArea(str(area).strip().lower())


def initial_skill_progress(
    now: Optional[datetime] = None,
    areas: Iterable[SkillArea] = tuple(SkillArea),
) -> Dict[SkillArea, SkillProgress]:
    moment = now or datetime.now(timezone.utc)
    last_practiced = moment - timedelta(days=30)
    return {
        area: SkillProgress(
            skill_area=area,
            current_level=INITIAL_SKILL_LEVEL,
            target_level=DEFAULT_TARGET_LEVEL,
            sessions_completed=0,
            last_practiced=last_practiced,
        )
        for area in areas
    }


def overall_level(progress: Mapping[SkillArea, SkillProgress]) -> float:
    if not progress:
        return 0.0
    levels = [entry.current_level for entry in progress.values()]
    return sum(levels) / len(levels)


# ---------------------------------------------------------------------------
# Skill catalog
# ---------------------------------------------------------------------------

SKILL_CATALOG: Dict[SkillArea, SkillProfile] = {
    SkillArea.GRAMMAR: SkillProfile(
        area=SkillArea.GRAMMAR,
        display_name="Grammar",
        exercise_type=ExerciseType.GRAMMAR,
        objectives=(
            "Master subject-verb agreement",
            "Improve punctuation usage",
            "Reduce grammatical errors",
        ),
        practice_instructions=(
            "Review your recent writing and identify 3 grammatical patterns to improve. "
            "Practice with targeted exercises."
        ),
        suggestion_instructions="Rewrite the following sentences to correct any grammatical errors:\n\n{example}",
        suggestion_objectives=(
            "Identify grammatical errors",
            "Apply correct grammar rules",
            "Improve sentence structure",
        ),
        template=ExerciseTemplate(
            title="Grammar Challenge",
            description="Practice identifying and correcting grammatical errors",
            difficulty="medium",
            instructions=(
                "Edit the following sentences to correct any grammatical errors. Pay attention to:\n"
                "- Subject-verb agreement\n"
                "- Punctuation\n"
                "- Sentence fragments\n"
                "- Run-on sentences\n\n"
                "Sentences to edit:\n"
                "1. The team are working on there project.\n"
                "2. Between you and I, this is a difficult task.\n"
                "3. She don't like the new policy changes.\n"
                "4. The presentation went good, everyone were impressed.\n"
                "5. Its important to proofread you're work carefully."
            ),
            objectives=(
                "Identify common grammatical errors",
                "Apply correct grammar rules",
                "Improve overall writing accuracy",
            ),
            expected_outcome="Error-free sentences with proper grammar",
            time_estimate=900,
            sample_response=(
                "1. The team is working on their project.\n"
                "2. Between you and me, this is a difficult task.\n"
                "3. She doesn't like the new policy changes.\n"
                "4. The presentation went well; everyone was impressed.\n"
                "5. It's important to proofread your work carefully."
            ),
        ),
    ),
    SkillArea.STYLE: SkillProfile(
        area=SkillArea.STYLE,
        display_name="Writing Style",
        exercise_type=ExerciseType.STYLE,
        objectives=(
            "Develop consistent writing voice",
            "Vary sentence structure",
            "Improve flow between paragraphs",
        ),
        practice_instructions="Rewrite 3 paragraphs using different sentence structures and rhythms.",
        suggestion_instructions="Rewrite this passage to improve its style and flow:\n\n{example}",
        suggestion_objectives=(
            "Enhance writing style",
            "Improve sentence variety",
            "Create better flow",
        ),
        template=ExerciseTemplate(
            title="Style Enhancement",
            description="Transform bland writing into engaging prose",
            difficulty="medium",
            instructions=(
                "Rewrite the following paragraph to make it more engaging and stylistically interesting:\n\n"
                "\"The meeting was at 9 AM. We talked about the budget. Everyone had opinions. "
                "Some people agreed. Others did not agree. The boss made the final decision. "
                "The meeting ended at 10 AM.\"\n\n"
                "Focus on:\n"
                "- Varying sentence length and structure\n"
                "- Using active voice\n"
                "- Adding descriptive details\n"
                "- Creating better flow between sentences"
            ),
            objectives=(
                "Vary sentence structure",
                "Use active voice effectively",
                "Create engaging prose",
                "Improve rhythm and flow",
            ),
            expected_outcome="More engaging and varied writing style",
            time_estimate=1200,
            sample_response=(
                "At precisely 9 AM, our budget meeting commenced with an animated discussion that "
                "quickly revealed divided opinions across the room. While some team members "
                "enthusiastically supported the proposed allocations, others voiced strong "
                "reservations. After an hour of spirited debate, our boss synthesized the various "
                "perspectives and announced the final decision."
            ),
        ),
    ),
    SkillArea.CLARITY: SkillProfile(
        area=SkillArea.CLARITY,
        display_name="Clarity",
        exercise_type=ExerciseType.CLARITY,
        objectives=(
            "Eliminate ambiguous phrases",
            "Use precise language",
            "Improve logical organization",
        ),
        practice_instructions=(
            "Take a complex paragraph and rewrite it to be 30% shorter while maintaining "
            "all key information."
        ),
        suggestion_instructions="Make this text clearer and more concise:\n\n{example}",
        suggestion_objectives=(
            "Eliminate ambiguity",
            "Use precise language",
            "Improve clarity",
        ),
        template=ExerciseTemplate(
            title="Clarity Challenge",
            description="Make complex ideas crystal clear",
            difficulty="medium",
            instructions=(
                "Simplify and clarify the following complex sentence while maintaining all the "
                "important information:\n\n"
                "\"The implementation of the new software system, which has been under "
                "consideration by the IT department for several months due to various technical "
                "and budgetary constraints that needed to be addressed before moving forward, "
                "will commence next quarter following the completion of staff training programs.\"\n\n"
                "Break it into clearer, more digestible sentences."
            ),
            objectives=(
                "Break down complex sentences",
                "Use simple, clear language",
                "Maintain all important information",
                "Improve readability",
            ),
            expected_outcome="Clear, easy-to-understand writing",
            time_estimate=600,
            sample_response=(
                "The IT department has spent several months evaluating a new software system. "
                "They needed to resolve technical and budgetary constraints before proceeding. "
                "Once staff training is complete, the implementation will begin next quarter."
            ),
        ),
    ),
    SkillArea.VOCABULARY: SkillProfile(
        area=SkillArea.VOCABULARY,
        display_name="Vocabulary",
        exercise_type=ExerciseType.VOCABULARY,
        objectives=(
            "Expand word choice variety",
            "Use domain-specific terms",
            "Improve word precision",
        ),
        practice_instructions=(
            "Replace 10 generic words in your writing with more specific, precise alternatives."
        ),
        suggestion_instructions=(
            "Replace generic words with more specific alternatives in this text:\n\n{example}"
        ),
        suggestion_objectives=(
            "Expand vocabulary usage",
            "Use precise words",
            "Avoid repetition",
        ),
        template=ExerciseTemplate(
            title="Vocabulary Expansion",
            description="Replace generic words with precise alternatives",
            difficulty="medium",
            instructions=(
                "Replace the marked generic words with more specific, precise alternatives:\n\n"
                "\"The *big* company had a *good* meeting about their *nice* product. The *people* "
                "were *happy* about the *things* they discussed. The *stuff* they talked about was "
                "*important* for the *business*.\"\n\n"
                "Choose words that:\n"
                "- Are more specific and descriptive\n"
                "- Match the professional context\n"
                "- Vary in complexity and style\n"
                "- Enhance meaning rather than just replace"
            ),
            objectives=(
                "Use precise vocabulary",
                "Avoid generic words",
                "Match words to context",
                "Enhance meaning through word choice",
            ),
            expected_outcome="More sophisticated and precise language",
            time_estimate=900,
            sample_response=(
                "The multinational corporation conducted a productive meeting regarding their "
                "innovative product line. The executives were enthusiastic about the strategies "
                "they discussed. The initiatives they explored were crucial for the company's "
                "market expansion."
            ),
        ),
    ),
    SkillArea.STRUCTURE: SkillProfile(
        area=SkillArea.STRUCTURE,
        display_name="Structure",
        exercise_type=ExerciseType.STRUCTURE,
        objectives=(
            "Organize ideas logically",
            "Improve paragraph transitions",
            "Create compelling introductions",
        ),
        practice_instructions=(
            "Outline your ideas before writing and practice using clear topic sentences."
        ),
        suggestion_instructions="Reorganize this text for better logical flow:\n\n{example}",
        suggestion_objectives=(
            "Improve organization",
            "Create logical flow",
            "Use effective transitions",
        ),
        template=ExerciseTemplate(
            title="Structure Improvement",
            description="Organize ideas for maximum impact",
            difficulty="hard",
            instructions=(
                "Reorganize the following jumbled paragraph into a logical sequence:\n\n"
                "\"Additionally, proper training reduces workplace accidents. Employee training "
                "programs are essential for business success. Furthermore, trained employees are "
                "more productive and efficient. Companies that invest in training see higher "
                "profits. Without training, employees make more mistakes and work slower. Most "
                "importantly, training improves employee satisfaction and retention.\"\n\n"
                "Create a well-structured paragraph with:\n"
                "- A clear topic sentence\n"
                "- Logical progression of ideas\n"
                "- Appropriate transitions\n"
                "- A strong conclusion"
            ),
            objectives=(
                "Create logical organization",
                "Use effective transitions",
                "Structure arguments clearly",
                "Build to a strong conclusion",
            ),
            expected_outcome="Well-organized, logical writing flow",
            time_estimate=1200,
            sample_response=(
                "Employee training programs are essential for business success. First, trained "
                "employees are more productive and efficient, while untrained workers tend to make "
                "more mistakes and work slower. Additionally, proper training reduces workplace "
                "accidents. Furthermore, companies that invest in comprehensive training see higher "
                "profits. Most importantly, training improves employee satisfaction and retention."
            ),
        ),
    ),
    SkillArea.TONE: SkillProfile(
        area=SkillArea.TONE,
        display_name="Tone",
        exercise_type=ExerciseType.TONE,
        objectives=(
            "Match tone to audience",
            "Maintain consistent voice",
            "Convey appropriate emotion",
        ),
        practice_instructions=(
            "Rewrite the same paragraph for 3 different audiences (casual, professional, academic)."
        ),
        suggestion_instructions=(
            "Adjust the tone of this text to be more appropriate for a professional audience:\n\n{example}"
        ),
        suggestion_objectives=(
            "Match tone to audience",
            "Maintain consistency",
            "Convey appropriate emotion",
        ),
        template=ExerciseTemplate(
            title="Tone Mastery",
            description="Adapt your writing tone for different audiences",
            difficulty="medium",
            instructions=(
                "Rewrite the following message for three different audiences:\n\n"
                "Original: \"Hey, the project deadline got moved up and we need to work faster to "
                "finish everything on time.\"\n\n"
                "1. For your team members (collaborative tone)\n"
                "2. For senior management (professional tone)\n"
                "3. For external clients (diplomatic tone)\n\n"
                "Adjust vocabulary, formality, and approach for each audience."
            ),
            objectives=(
                "Adapt tone to audience",
                "Maintain appropriate formality",
                "Choose suitable vocabulary",
                "Convey the same message effectively",
            ),
            expected_outcome="Audience-appropriate communication",
            time_estimate=1200,
            sample_response=(
                "1. Team: \"Quick update everyone - we've got an accelerated timeline. Let's sync up "
                "to prioritize tasks and hit our new deadline together.\"\n"
                "2. Management: \"Our project timeline has been adjusted to meet the advanced "
                "deadline. The team is implementing optimization strategies to ensure timely delivery.\"\n"
                "3. Client: \"We're pleased to inform you that we're working to deliver your project "
                "ahead of schedule while maintaining our high standards.\""
            ),
        ),
    ),
    SkillArea.CREATIVITY: SkillProfile(
        area=SkillArea.CREATIVITY,
        display_name="Creativity",
        exercise_type=ExerciseType.CREATIVE,
        objectives=(
            "Use vivid imagery",
            "Employ creative metaphors",
            "Develop unique perspectives",
        ),
        practice_instructions=(
            "Add vivid sensory details and creative comparisons to make your writing more engaging."
        ),
        suggestion_instructions="Add creative elements to make this text more engaging:\n\n{example}",
        suggestion_objectives=(
            "Use vivid imagery",
            "Add creative comparisons",
            "Engage the reader",
        ),
        template=ExerciseTemplate(
            title="Creative Expression",
            description="Unleash your creative writing potential",
            difficulty="medium",
            instructions=(
                "Write a short story (150-200 words) that begins with this sentence:\n"
                "\"The last thing Sarah expected to find in her grandmother's attic was a map.\"\n\n"
                "Use:\n"
                "- Vivid sensory details\n"
                "- Creative metaphors or similes\n"
                "- Engaging dialogue (if applicable)\n"
                "- An unexpected twist or revelation\n"
                "- Show, don't tell"
            ),
            objectives=(
                "Use creative storytelling techniques",
                "Employ vivid imagery",
                "Create engaging narratives",
                "Develop creative voice",
            ),
            expected_outcome="An engaging, creative piece of writing",
            time_estimate=1800,
            sample_response=(
                "The last thing Sarah expected to find in her grandmother's attic was a map. Dust "
                "motes danced in the amber light as she unfolded the yellowed parchment. Strange "
                "symbols dotted the familiar streets of her hometown, and a red X marked her own house."
            ),
        ),
    ),
}


__all__ = [
    "INITIAL_SKILL_LEVEL",
    "DEFAULT_TARGET_LEVEL",
    "SkillArea",
    "ExerciseType",
    "ExerciseTemplate",
    "SkillProfile",
    "SkillProgress",
    "SKILL_CATALOG",
    "skill_area_for",
    "initial_skill_progress",
    "overall_level",
]
