# analysis.py: writing analysis providers
# - heuristic provider: readability statistics + rule-derived suggestions (default)
# - llm provider: OpenAI-style chat completions endpoint, JSON reply validated by pydantic

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import time
from typing import Any, Dict, List, Optional, Protocol
from uuid import uuid4

import requests
from pydantic import ValidationError

from engines.caching import AnalysisCache
from env_validation import get_env_int
from schemas import (
    AnalysisOptions,
    ImprovementSuggestion,
    ReadabilityMetrics,
    ResourceReference,
    ResourceType,
    WritingAnalysis,
    parse_json_safe,
)
from skills import SkillArea

logger = logging.getLogger(__name__)

_ANALYSIS_LOGGER = logging.getLogger("writecoach.analysis")

DEFAULT_ANALYSIS_URL = "http://localhost:4891/v1/chat/completions"
DEFAULT_MODEL_ID = "Llama-3-8B-Instruct"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class WritingAnalysisError(Exception):
    """Base class for failures of the analysis collaborator."""


class EmptyInputError(WritingAnalysisError):
    def __init__(self) -> None:
        super().__init__("No text provided for analysis")


class TokenLimitExceededError(WritingAnalysisError):
    def __init__(self, tokens: int, limit: int) -> None:
        super().__init__(f"Text exceeds maximum token limit ({tokens} > {limit})")
        self.tokens = tokens
        self.limit = limit


class AnalysisNetworkError(WritingAnalysisError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Network error: {detail}")


class ModelUnavailableError(WritingAnalysisError):
    def __init__(self) -> None:
        super().__init__("Analysis model is currently unavailable")


class InvalidResponseError(WritingAnalysisError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid response received: {detail}")


class ResponseParsingError(WritingAnalysisError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Failed to parse response: {detail}")


class AnalysisProvider(Protocol):
    async def analyze(self, text: str, options: Optional[AnalysisOptions] = None) -> WritingAnalysis:
        ...


# ---------------------------------------------------------------------------
# Text statistics
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)
_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'-]*")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]+")

_FILLER_WORDS = ("very", "really", "quite", "rather", "somewhat")
_GENERIC_WORDS = ("thing", "stuff", "good", "bad", "nice", "big", "small")
_TRANSITION_WORDS = ("however", "therefore", "furthermore", "additionally", "meanwhile", "consequently")


def count_tokens(text: str) -> int:
    return len(_TOKEN_RE.findall(text))


def validate_input(text: str, max_tokens: int) -> int:
    """Reject empty or oversized input before any provider work; returns the token count."""

    if not text or not text.strip():
        raise EmptyInputError()
    tokens = count_tokens(text)
    if tokens == 0:
        raise EmptyInputError()
    if tokens > max_tokens:
        raise TokenLimitExceededError(tokens, max_tokens)
    return tokens


def _syllables(word: str) -> int:
    lowered = word.lower()
    groups = _VOWEL_GROUP_RE.findall(lowered)
    count = len(groups)
    if lowered.endswith("e") and count > 1 and not lowered.endswith("le"):
        count -= 1
    return max(1, count)


def _grade_label(grade: float) -> str:
    if grade <= 5:
        return "Very Easy"
    if grade <= 8:
        return "Easy"
    if grade <= 12:
        return "Standard"
    if grade <= 16:
        return "Advanced"
    return "Very Difficult"


def readability_metrics(text: str) -> ReadabilityMetrics:
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
    words = _WORD_RE.findall(text)
    sentence_count = max(len(sentences), 1)
    word_count = len(words)
    if word_count == 0:
        return ReadabilityMetrics(
            flesch_kincaid_grade=0.0,
            flesch_kincaid_label=_grade_label(0.0),
            sentence_count=len(sentences),
        )

    syllables = sum(_syllables(w) for w in words)
    words_per_sentence = word_count / sentence_count
    grade = 0.39 * words_per_sentence + 11.8 * (syllables / word_count) - 15.59
    grade = round(max(0.0, grade), 2)
    unique = {w.lower() for w in words}
    return ReadabilityMetrics(
        flesch_kincaid_grade=grade,
        flesch_kincaid_label=_grade_label(grade),
        average_sentence_length=round(words_per_sentence, 2),
        average_word_length=round(sum(len(w) for w in words) / word_count, 2),
        vocabulary_diversity=round(len(unique) / word_count, 4),
        sentence_count=sentence_count,
    )


# ---------------------------------------------------------------------------
# Heuristic provider
# ---------------------------------------------------------------------------


def _first_sentence(text: str) -> str:
    for sentence in _SENTENCE_SPLIT_RE.split(text):
        if sentence.strip():
            return sentence.strip() + "."
    return text.strip()


class HeuristicAnalysisProvider:
    """Deterministic local analysis.

    Computes Flesch-Kincaid statistics and derives suggestions from a handful
    of lexical rules. Used as the default provider and as the test double for
    everything downstream of analysis.
    """

    def __init__(self, max_tokens: int = 2048, cache: Optional[AnalysisCache] = None) -> None:
        self.max_tokens = max_tokens
        self.cache = cache

    async def analyze(self, text: str, options: Optional[AnalysisOptions] = None) -> WritingAnalysis:
        limit = options.max_tokens if options is not None else self.max_tokens
        validate_input(text, limit)
        if self.cache is not None:
            cached = self.cache.get(text)
            if cached is not None:
                return cached

        metrics = readability_metrics(text)
        analysis = WritingAnalysis(
            metrics=metrics,
            assessment=self._assessment(metrics),
            suggestions=self._suggestions(text, metrics),
            methodology="Heuristic readability statistics and lexical rules",
        )
        if self.cache is not None:
            self.cache.add(text, analysis)
        return analysis

    @staticmethod
    def _assessment(metrics: ReadabilityMetrics) -> str:
        if 8 <= metrics.flesch_kincaid_grade <= 12:
            return "Readable writing pitched at a general audience, with room for refinement"
        if metrics.flesch_kincaid_grade > 12:
            return "Dense writing; shorter sentences and plainer words would help readers"
        return "Simple writing; more varied sentences would add depth"

    def _suggestions(self, text: str, metrics: ReadabilityMetrics) -> List[ImprovementSuggestion]:
        lowered = text.lower()
        words = _WORD_RE.findall(lowered)
        example = _first_sentence(text)
        suggestions: List[ImprovementSuggestion] = []

        sentence_starts = [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
        if any(s[0].islower() for s in sentence_starts) or re.search(r"\bi\b", text):
            suggestions.append(
                ImprovementSuggestion(
                    title="Capitalize Sentence Openings",
                    area=SkillArea.GRAMMAR,
                    description="Sentences and the pronoun 'I' should start with a capital letter.",
                    before_example=example,
                    after_example=example[:1].upper() + example[1:],
                    priority=0.8,
                    learning_effort=0.3,
                    resources=[
                        ResourceReference(
                            title="The Elements of Style",
                            author="William Strunk Jr.",
                            type=ResourceType.BOOK,
                            relevance_score=0.8,
                        )
                    ],
                )
            )

        if metrics.average_sentence_length > 25:
            suggestions.append(
                ImprovementSuggestion(
                    title="Shorten Long Sentences",
                    area=SkillArea.CLARITY,
                    description="Split sentences above 25 words so each carries a single idea.",
                    before_example=example,
                    priority=0.75,
                    learning_effort=0.5,
                )
            )
        elif (metrics.sentence_count or 0) >= 2 and metrics.average_sentence_length < 8:
            suggestions.append(
                ImprovementSuggestion(
                    title="Enhance Sentence Variety",
                    area=SkillArea.STYLE,
                    description="Improve writing by varying sentence structure",
                    before_example="The cat sat on the mat. It was warm.",
                    after_example="Settling comfortably on the warm mat, the cat basked in the gentle sunlight.",
                    priority=0.7,
                    learning_effort=0.6,
                    resources=[
                        ResourceReference(
                            title="Style: Toward Clarity and Grace",
                            author="Joseph M. Williams",
                            type=ResourceType.BOOK,
                            relevance_score=0.9,
                        )
                    ],
                )
            )

        fillers = sum(words.count(w) for w in _FILLER_WORDS)
        if fillers:
            suggestions.append(
                ImprovementSuggestion(
                    title="Trim Filler Words",
                    area=SkillArea.CLARITY,
                    description=f"Found {fillers} filler word(s) such as 'very' or 'really'.",
                    before_example=example,
                    priority=min(0.9, 0.4 + 0.1 * fillers),
                    learning_effort=0.3,
                )
            )

        generic = sum(words.count(w) for w in _GENERIC_WORDS)
        if generic:
            suggestions.append(
                ImprovementSuggestion(
                    title="Use Precise Words",
                    area=SkillArea.VOCABULARY,
                    description="Replace generic words like 'thing' or 'good' with specific alternatives.",
                    before_example=example,
                    priority=min(0.9, 0.4 + 0.1 * generic),
                    learning_effort=0.4,
                )
            )
        elif len(words) >= 20 and metrics.vocabulary_diversity < 0.5:
            suggestions.append(
                ImprovementSuggestion(
                    title="Diversify Word Choice",
                    area=SkillArea.VOCABULARY,
                    description="Many words repeat; reach for synonyms to keep the reader engaged.",
                    before_example=example,
                    priority=0.6,
                    learning_effort=0.4,
                )
            )

        if (metrics.sentence_count or 0) >= 4 and not any(t in lowered for t in _TRANSITION_WORDS):
            suggestions.append(
                ImprovementSuggestion(
                    title="Connect Ideas with Transitions",
                    area=SkillArea.STRUCTURE,
                    description="Link sentences with transitions such as 'however' or 'therefore'.",
                    before_example=example,
                    priority=0.5,
                    learning_effort=0.4,
                )
            )

        return suggestions


# ---------------------------------------------------------------------------
# LLM provider
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = (
    "You are a writing coach. Analyse the user's text and reply with ONE JSON object only, "
    "no prose, using exactly these keys:\n"
    '{"metrics": {"flesch_kincaid_grade": float, "flesch_kincaid_label": str, '
    '"average_sentence_length": float, "average_word_length": float, '
    '"vocabulary_diversity": float (0-1), "sentence_count": int}, '
    '"assessment": str, "methodology": str, '
    '"suggestions": [{"title": str, "area": one of '
    '"grammar"|"style"|"clarity"|"vocabulary"|"structure"|"tone"|"creativity", '
    '"description": str, "before_example": str, "after_example": str, '
    '"priority": float (0-1), "learning_effort": float (0-1), '
    '"resources": [{"title": str, "author": str, "type": "book"|"article"|"video"|"course"|"podcast", '
    '"relevance_score": float (0-1)}]}]}'
)


class LLMAnalysisProvider:
    """Analysis through an OpenAI-compatible chat completions endpoint.

    Parameters
    ----------
    url:
        Full chat completions URL.
    model_id:
        Model name sent in the payload.
    timeout:
        Seconds before the HTTP call is abandoned.
    max_tokens:
        Upper bound on input tokens; longer texts are rejected up front.
    cache:
        Optional bounded cache keyed by the analysed text.
    """

    def __init__(
        self,
        url: str = DEFAULT_ANALYSIS_URL,
        model_id: str = DEFAULT_MODEL_ID,
        timeout: int = 120,
        max_tokens: int = 2048,
        cache: Optional[AnalysisCache] = None,
    ) -> None:
        self.url = url
        self.model_id = model_id
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.cache = cache

    async def analyze(self, text: str, options: Optional[AnalysisOptions] = None) -> WritingAnalysis:
        opts = options or AnalysisOptions(max_tokens=self.max_tokens)
        validate_input(text, opts.max_tokens)
        if self.cache is not None:
            cached = self.cache.get(text)
            if cached is not None:
                return cached

        content = await asyncio.to_thread(self._call, text, opts)
        try:
            analysis = parse_json_safe(content, WritingAnalysis)
        except (ValidationError, ValueError) as exc:
            raise ResponseParsingError(str(exc)[:300]) from exc

        if analysis.metrics.sentence_count is None:
            local = readability_metrics(text)
            analysis = analysis.model_copy(
                update={"metrics": analysis.metrics.model_copy(update={"sentence_count": local.sentence_count})}
            )
        if self.cache is not None:
            self.cache.add(text, analysis)
        return analysis

    def _payload(self, text: str, options: AnalysisOptions) -> Dict[str, Any]:
        foci = ", ".join(area.value for area in options.improvement_foci) or "all areas"
        return {
            "model": self.model_id,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Mode: {options.analysis_mode}. Writer level: {options.writer_level}. "
                        f"Focus on: {foci}.\n\nText:\n{text}"
                    ),
                },
            ],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }

    def _call(self, text: str, options: AnalysisOptions) -> str:
        payload = self._payload(text, options)
        request_id = str(uuid4())
        start = time.perf_counter()
        status: Optional[int] = None
        try:
            try:
                r = requests.post(self.url, json=payload, timeout=self.timeout)
                status = r.status_code
                if r.status_code in (404, 503):
                    raise ModelUnavailableError()
                r.raise_for_status()
                data = r.json()
            except requests.HTTPError as e:
                raise AnalysisNetworkError(
                    f"HTTP {e.response.status_code}: {e.response.text[:300]}"
                ) from e
            except ValueError as e:
                raise InvalidResponseError("body is not JSON") from e
            except requests.RequestException as e:
                raise AnalysisNetworkError(str(e)) from e

            try:
                return data["choices"][0]["message"]["content"]
            except (KeyError, IndexError, TypeError):
                try:
                    return data["choices"][0]["text"]
                except (KeyError, IndexError, TypeError):
                    raise InvalidResponseError(f"unexpected payload: {str(data)[:300]}")
        finally:
            record = {
                "event": "analysis_call",
                "request_id": request_id,
                "model": self.model_id,
                "status": status,
                "latency_ms": int((time.perf_counter() - start) * 1000),
                "text_tokens": count_tokens(text),
            }
            _ANALYSIS_LOGGER.info(json.dumps(record, ensure_ascii=False))


def build_provider_from_env() -> AnalysisProvider:
    """Pick the provider named by ``ANALYSIS_PROVIDER`` and configure it from the environment."""

    max_tokens = get_env_int("ANALYSIS_MAX_TOKENS", 2048)
    cache = AnalysisCache(max_size=get_env_int("ANALYSIS_CACHE_SIZE", 100))
    kind = (os.getenv("ANALYSIS_PROVIDER") or "heuristic").strip().lower()
    if kind == "llm":
        provider: AnalysisProvider = LLMAnalysisProvider(
            url=os.getenv("ANALYSIS_URL") or DEFAULT_ANALYSIS_URL,
            model_id=os.getenv("MODEL_ID") or DEFAULT_MODEL_ID,
            timeout=get_env_int("ANALYSIS_TIMEOUT", 120),
            max_tokens=max_tokens,
            cache=cache,
        )
    else:
        provider = HeuristicAnalysisProvider(max_tokens=max_tokens, cache=cache)
    logger.info("Analysis provider in use: %s", type(provider).__name__)
    return provider


__all__ = [
    "WritingAnalysisError",
    "EmptyInputError",
    "TokenLimitExceededError",
    "AnalysisNetworkError",
    "ModelUnavailableError",
    "InvalidResponseError",
    "ResponseParsingError",
    "AnalysisProvider",
    "HeuristicAnalysisProvider",
    "LLMAnalysisProvider",
    "build_provider_from_env",
    "count_tokens",
    "readability_metrics",
    "validate_input",
]
