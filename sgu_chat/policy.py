"""Routing policy: pick a response strategy for one query.

``RoutingPolicy.route`` is a pure decision over a query and its
``RetrievalResult``. Policy violations (outside links, off-topic questions)
are returned as ``Decision`` values like any other outcome; nothing in here
raises for user input.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Sequence, Tuple

from .config import RoutingConfig
from .data_store import Corpus, TopicEntry
from .detectors import disallowed_links
from .extractors import DEFAULT_EXTRACTORS, FALLBACK_EXTRACTORS, Extractor, run_extractors
from .matcher import Candidate, CandidateKind, RetrievalIndex, RetrievalResult
from .prompts import (
    CLARIFICATION_REPLY,
    LINK_POLICY_REPLY,
    NORMAL_CAVEAT,
    OFF_TOPIC_REPLY,
    WEAK_FOLLOW_UP,
)

logger = logging.getLogger(__name__)

SOURCE_KNOWLEDGE_BASE = "knowledge-base"
SOURCE_GENERATED = "generated"
SOURCE_POLICY = "policy"


class DecisionKind(str, Enum):
    LINK_POLICY_REFUSAL = "link_policy_refusal"
    OFF_TOPIC_REFUSAL = "off_topic_refusal"
    CLARIFICATION_REQUEST = "clarification_request"
    DIRECT_ANSWER = "direct_answer"
    DELEGATE_TO_GENERATION = "delegate_to_generation"


class Tier(str, Enum):
    STRONG = "strong"
    NORMAL = "normal"
    WEAK = "weak"


@dataclass(frozen=True)
class Decision:
    kind: ClassVar[DecisionKind]

    @property
    def reply(self) -> Optional[str]:
        """Text to show the user, or ``None`` when the answer must be generated."""
        return getattr(self, "message", None)


@dataclass(frozen=True)
class LinkPolicyRefusal(Decision):
    kind: ClassVar[DecisionKind] = DecisionKind.LINK_POLICY_REFUSAL
    links: Tuple[str, ...] = ()
    message: str = LINK_POLICY_REPLY


@dataclass(frozen=True)
class OffTopicRefusal(Decision):
    kind: ClassVar[DecisionKind] = DecisionKind.OFF_TOPIC_REFUSAL
    message: str = OFF_TOPIC_REPLY


@dataclass(frozen=True)
class ClarificationRequest(Decision):
    kind: ClassVar[DecisionKind] = DecisionKind.CLARIFICATION_REQUEST
    message: str = CLARIFICATION_REPLY


@dataclass(frozen=True)
class DirectAnswer(Decision):
    kind: ClassVar[DecisionKind] = DecisionKind.DIRECT_ANSWER
    content: str = ""
    tier: Tier = Tier.STRONG
    score: float = 1.0
    matched_question: Optional[str] = None

    @property
    def reply(self) -> str:
        return self.content

    @property
    def confidence_score(self) -> int:
        return round(self.score * 100)


@dataclass(frozen=True)
class DelegateToGeneration(Decision):
    kind: ClassVar[DecisionKind] = DecisionKind.DELEGATE_TO_GENERATION
    faq_hints: Tuple[Candidate, ...] = ()
    topic_hints: Tuple[Candidate, ...] = ()
    best: Optional[Candidate] = None


def format_topic_answer(topic: TopicEntry) -> str:
    parts = [f"**{topic.name}**"]
    if topic.faculty:
        parts.append(f"Faculty: {topic.faculty}")
    if topic.description:
        parts.append(topic.description)
    lecturers = topic.get("lecturers") or ()
    if lecturers:
        parts.append("**Lecturers:**\n" + "\n".join(f"• {l}" for l in lecturers[:3]))
    prospects = topic.get("career_prospects") or ()
    if prospects:
        parts.append("**Career Prospects:**\n" + "\n".join(f"• {c}" for c in prospects))
    return "\n\n".join(parts)


class RoutingPolicy:
    """Decides between a local answer, a refusal, a clarification or generation."""

    def __init__(self, config: Optional[RoutingConfig] = None, corpus: Optional[Corpus] = None,
                 extractors: Sequence[Extractor] = DEFAULT_EXTRACTORS,
                 fallback_extractors: Sequence[Extractor] = FALLBACK_EXTRACTORS):
        self.config = config or RoutingConfig()
        self.corpus = corpus or Corpus()
        self.extractors = tuple(extractors)
        self.fallback_extractors = tuple(fallback_extractors)

    def tier_for(self, score: float) -> Optional[Tier]:
        if score >= self.config.strong_threshold:
            return Tier.STRONG
        if score >= self.config.normal_threshold:
            return Tier.NORMAL
        if score >= self.config.weak_threshold:
            return Tier.WEAK
        return None

    def screen(self, query: str) -> Optional[LinkPolicyRefusal]:
        """Checks that run before retrieval is consulted at all."""
        links = disallowed_links(query, self.config.allowed_link_domains)
        if links:
            logger.info("Link policy refusal for %d link(s)", len(links))
            return LinkPolicyRefusal(links=tuple(links))
        return None

    def _clarification(self) -> ClarificationRequest:
        names = [p.name for p in self.corpus.programs]
        if not names:
            return ClarificationRequest()
        return ClarificationRequest(message=f"{CLARIFICATION_REPLY} Available programs include: {', '.join(names)}.")

    def _direct_answer(self, best: Candidate, tier: Tier) -> DirectAnswer:
        if best.kind is CandidateKind.FAQ:
            body = best.record.answer
        else:
            body = format_topic_answer(best.record)
        if tier is Tier.NORMAL:
            body = f"{body}\n\n{NORMAL_CAVEAT}"
        elif tier is Tier.WEAK:
            body = f"{body}\n\n{WEAK_FOLLOW_UP.format(matched=best.label)}"
        return DirectAnswer(content=body, tier=tier, score=best.score, matched_question=best.label)

    def _extracted(self, query: str, extractors: Sequence[Extractor]) -> Optional[DirectAnswer]:
        extracted = run_extractors(query, self.corpus, extractors)
        if extracted is None:
            return None
        logger.info("Direct answer from %s extractor", extracted.extractor)
        return DirectAnswer(content=extracted.content, tier=Tier.STRONG, score=1.0, matched_question=extracted.topic)

    def route(self, query: str, result: RetrievalResult) -> Decision:
        refusal = self.screen(query)
        if refusal is not None:
            return refusal
        return self._route_screened(query, result)

    def _route_screened(self, query: str, result: RetrievalResult) -> Decision:
        answer = self._extracted(query, self.extractors)
        if answer is not None:
            return answer

        if not result.has_significant_match:
            answer = self._extracted(query, self.fallback_extractors)
            if answer is not None:
                return answer
            if result.domain_relevant:
                logger.info("Clarification: in-domain query without a matching record")
                return self._clarification()
            logger.info("Off-topic refusal (max similarity %.3f)", result.max_similarity)
            return OffTopicRefusal()

        best = result.best
        tier = self.tier_for(best.score) if best is not None else None
        if tier is not None:
            logger.info("Direct answer (%s, %.3f): %s", tier.value, best.score, best.label)
            return self._direct_answer(best, tier)

        logger.info("Delegating to generation with %d hint(s)", len(result.hints))
        return DelegateToGeneration(faq_hints=result.faq_hints, topic_hints=result.topic_hints, best=best)

    def decide(self, query: str, index: RetrievalIndex) -> Decision:
        """Screen, retrieve and route; the index is not consulted for refused queries."""
        refusal = self.screen(query)
        if refusal is not None:
            return refusal
        return self._route_screened(query, index.search(query))
