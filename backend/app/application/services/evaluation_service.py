"""Evaluation service — two-stage LLM scoring of discovered sources.

Stage 1 (metadata) looks only at URL, title and domain and acts as a cheap
pre-filter. Stage 2 (content) reads an excerpt of the fetched document and
extracts catalog metadata. Replies that are not valid JSON or fail schema
validation are replaced by conservative defaults; provider errors propagate.

Scores are advisory: this service never approves or rejects anything.
"""

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.application.interfaces import ChatProvider
from app.application.services.context_hints import ContextHintProvider
from app.application.services.cost_tracker import CostTracker
from app.application.services.evaluation_prompts import (
    build_content_prompt,
    build_metadata_prompt,
)
from app.domain.entities import ChatMessage
from app.domain.entities.discovered_source import combined_confidence
from app.domain.entities.source_config import AuthorityLevel, Priority
from app.domain.entities.usage_metric import TrackedService
from app.domain.exceptions import BudgetExceededError

logger = logging.getLogger(__name__)

# Replies longer than this are not scanned for JSON.
MAX_RESPONSE_CHARS = 50_000

PARSE_FAILURE_MESSAGE = "Failed to parse LLM response"

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


# ── Structured outputs ───────────────────────────────────────────────

class MetadataEvaluation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_relevant: bool = Field(alias="isRelevant")
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    suggested_topic_domains: list[str] = Field(alias="suggestedTopicDomains")
    preliminary_document_type: str = Field(alias="preliminaryDocumentType")

    @classmethod
    def conservative_default(cls) -> "MetadataEvaluation":
        return cls(
            is_relevant=False,
            confidence=0.0,
            reasoning=PARSE_FAILURE_MESSAGE,
            suggested_topic_domains=[],
            preliminary_document_type="Unknown",
        )


class ContentEvaluation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    is_high_quality: bool = Field(alias="isHighQuality")
    confidence: float = Field(ge=0.0, le=1.0)
    document_type: str = Field(alias="documentType")
    topic_domains: list[str] = Field(alias="topicDomains")
    authority_level: AuthorityLevel = Field(alias="authorityLevel")
    priority: Priority
    description: str
    key_topics: list[str] = Field(default_factory=list, alias="keyTopics")
    ngb_id: str | None = Field(default=None, alias="ngbId")

    @classmethod
    def conservative_default(cls) -> "ContentEvaluation":
        return cls(
            is_high_quality=False,
            confidence=0.0,
            document_type="Unknown",
            topic_domains=[],
            authority_level=AuthorityLevel.EDUCATIONAL_GUIDANCE,
            priority=Priority.LOW,
            description=PARSE_FAILURE_MESSAGE,
            key_topics=[],
            ngb_id=None,
        )


def extract_json(raw: str) -> Any:
    """Parse the JSON object in an LLM reply.

    Strips markdown fences; if the reply still has surrounding prose, the
    outermost ``{...}`` span is parsed.

    Raises:
        ValueError: No parseable JSON object was found.
    """
    if len(raw) > MAX_RESPONSE_CHARS:
        raise ValueError(f"LLM response too long ({len(raw)} chars)")

    cleaned = _FENCE.sub("", raw.strip()).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ValueError(f"Could not extract JSON from LLM response: {cleaned[:200]}")
    try:
        return json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in LLM response: {exc}") from exc


class EvaluationService:
    """Scores discovered URLs with an LLM.

    Every call is checked against the LLM budget first and tracked through
    the cost tracker afterwards.
    """

    def __init__(
        self,
        chat_provider: ChatProvider,
        cost_tracker: CostTracker,
        context_hints: ContextHintProvider | None = None,
        *,
        model: str = "anthropic/claude-haiku-4.5",
        max_tokens: int = 1024,
        content_max_chars: int = 8000,
        temperature: float = 0.0,
    ):
        self._chat = chat_provider
        self._cost = cost_tracker
        self._hints = context_hints
        self._model = model
        self._max_tokens = max_tokens
        self._content_max_chars = content_max_chars
        self._temperature = temperature

    async def evaluate_metadata(self, url: str, title: str, domain: str) -> MetadataEvaluation:
        """Stage 1: judge relevance from URL, title and domain alone."""
        hint = await self._context_hint(url)
        prompt = build_metadata_prompt(url, title, domain, hint)
        logger.info("Evaluating metadata for %s (domain=%s, hint=%s)", url, domain, bool(hint))

        raw = await self._complete(prompt, url)
        try:
            result = MetadataEvaluation.model_validate(extract_json(raw))
        except (ValueError, ValidationError) as exc:
            logger.warning("Metadata evaluation for %s unparseable — using defaults: %s", url, exc)
            return MetadataEvaluation.conservative_default()

        logger.info(
            "Metadata evaluation for %s: relevant=%s confidence=%.2f",
            url,
            result.is_relevant,
            result.confidence,
        )
        return result

    async def evaluate_content(self, url: str, title: str, content: str) -> ContentEvaluation:
        """Stage 2: judge quality and extract catalog metadata from the document text."""
        excerpt = content[: self._content_max_chars]
        hint = await self._context_hint(url)
        prompt = build_content_prompt(url, title, excerpt, hint)
        logger.info("Evaluating content for %s (%d chars)", url, len(excerpt))

        raw = await self._complete(prompt, url)
        try:
            result = ContentEvaluation.model_validate(extract_json(raw))
        except (ValueError, ValidationError) as exc:
            logger.warning("Content evaluation for %s unparseable — using defaults: %s", url, exc)
            return ContentEvaluation.conservative_default()

        logger.info(
            "Content evaluation for %s: high_quality=%s confidence=%.2f type=%s",
            url,
            result.is_high_quality,
            result.confidence,
            result.document_type,
        )
        return result

    @staticmethod
    def calculate_combined_confidence(metadata_confidence: float, content_confidence: float) -> float:
        return combined_confidence(metadata_confidence, content_confidence)

    # ── Internals ────────────────────────────────────────────────────

    async def _context_hint(self, url: str) -> str:
        if self._hints is None:
            return ""
        return await self._hints.generate_context_hint(url)

    async def _complete(self, prompt: str, url: str) -> str:
        status = await self._cost.check_budget(TrackedService.LLM)
        if not status.within_budget:
            raise BudgetExceededError([TrackedService.LLM.value])

        try:
            result = await self._chat.complete(
                [ChatMessage(role="user", content=prompt)],
                self._model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except Exception as exc:
            logger.error("LLM evaluation call failed for %s: %s", url, exc)
            raise

        await self._cost.track_llm_call(
            result.usage.prompt_tokens, result.usage.completion_tokens
        )
        return result.content
