"""Retrieval over the knowledge corpus.

Every FAQ question and every topic blob is normalized and tokenized once when
the index is built. ``RetrievalIndex.search`` then scores a query against all
records with the exact / substring / Jaccard cascade from ``similarity``.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from .config import RoutingConfig
from .data_store import Corpus, FaqEntry, TopicEntry
from .detectors import has_domain_cue
from .nlp_utils import compact, normalize, tokenize
from .similarity import SUBSTRING_MATCH_SCORE, compact_contains, match_score

logger = logging.getLogger(__name__)


class CandidateKind(str, Enum):
    FAQ = "faq"
    TOPIC = "topic"


@dataclass(frozen=True)
class Candidate:
    kind: CandidateKind
    record: Union[FaqEntry, TopicEntry]
    score: float

    @property
    def label(self) -> str:
        """Question text for FAQs, topic name for topics."""
        return self.record.question if self.kind is CandidateKind.FAQ else self.record.name


@dataclass(frozen=True)
class RetrievalResult:
    best: Optional[Candidate] = None
    faq_hints: Tuple[Candidate, ...] = ()
    topic_hints: Tuple[Candidate, ...] = ()
    domain_relevant: bool = False
    max_similarity: float = 0.0

    @property
    def hints(self) -> Tuple[Candidate, ...]:
        return self.faq_hints + self.topic_hints

    @property
    def has_significant_match(self) -> bool:
        return bool(self.faq_hints or self.topic_hints)


@dataclass(frozen=True)
class _IndexedText:
    canonical: str
    tokens: Tuple[str, ...]


@dataclass(frozen=True)
class _IndexedTopic:
    record: TopicEntry
    blob: _IndexedText
    compact_names: Tuple[str, ...]


class RetrievalIndex:
    """Scores queries against a fixed corpus."""

    def __init__(self, corpus: Corpus, config: Optional[RoutingConfig] = None):
        self.corpus = corpus
        self.config = config or RoutingConfig()
        self._faqs = [(faq, _IndexedText(normalize(faq.question), tokenize(faq.question))) for faq in corpus.faqs]
        self._topics = []
        for topic in corpus.topics:
            blob = topic.search_text()
            names = tuple(c for c in (compact(n) for n in (topic.name,) + topic.aliases) if c)
            self._topics.append(_IndexedTopic(topic, _IndexedText(normalize(blob), tokenize(blob)), names))
        logger.debug("Indexed %d FAQs and %d topics", len(self._faqs), len(self._topics))

    def _topic_score(self, query: _IndexedText, query_compact: str, topic: _IndexedTopic) -> float:
        score = match_score(query.canonical, query.tokens, topic.blob.canonical, topic.blob.tokens)
        if score < SUBSTRING_MATCH_SCORE and any(compact_contains(query_compact, n) for n in topic.compact_names):
            score = SUBSTRING_MATCH_SCORE
        return score

    def _rank(self, candidates: List[Candidate]) -> Tuple[Candidate, ...]:
        significant = [c for c in candidates if c.score >= self.config.significance_floor]
        significant.sort(key=lambda c: c.score, reverse=True)
        return tuple(significant[: self.config.max_hints])

    def search(self, query: str) -> RetrievalResult:
        canonical = normalize(query)
        if not canonical:
            return RetrievalResult()
        q = _IndexedText(canonical, tokenize(query))
        q_compact = canonical.replace(" ", "")

        faq_candidates = [
            Candidate(CandidateKind.FAQ, faq, match_score(q.canonical, q.tokens, text.canonical, text.tokens))
            for faq, text in self._faqs
        ]
        topic_candidates = [
            Candidate(CandidateKind.TOPIC, t.record, self._topic_score(q, q_compact, t))
            for t in self._topics
        ]

        # FAQs first so that they win ties
        best = None
        for cand in faq_candidates + topic_candidates:
            if best is None or cand.score > best.score:
                best = cand
        max_similarity = best.score if best else 0.0
        if best is not None and best.score <= 0.0:
            best = None

        domain_relevant = (
            has_domain_cue(query, self.config.domain_cue_terms)
            or max_similarity >= self.config.relevance_threshold
        )
        result = RetrievalResult(
            best=best,
            faq_hints=self._rank(faq_candidates),
            topic_hints=self._rank(topic_candidates),
            domain_relevant=domain_relevant,
            max_similarity=max_similarity,
        )
        logger.debug(
            "search %r: best=%s score=%.3f relevant=%s",
            query, best.label if best else None, max_similarity, domain_relevant,
        )
        return result


def suggest_questions(corpus: Corpus, limit: int = 5, exclude: Optional[Iterable[str]] = None) -> List[str]:
    """
    Random sample of FAQ questions for a "Try asking" list.
    Questions in ``exclude`` (compared after normalization) are left out.
    """
    excluded = {normalize(q) for q in (exclude or [])}
    questions = [f.question for f in corpus.faqs if normalize(f.question) not in excluded]
    if not questions:
        return []
    return random.sample(questions, k=min(limit, len(questions)))
