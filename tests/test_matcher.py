import pytest

from sgu_chat.config import RoutingConfig
from sgu_chat.matcher import CandidateKind, RetrievalIndex, RetrievalResult, suggest_questions

from conftest import TUITION_ANSWER


def test_exact_faq_match_is_best(index):
    result = index.search("What are the tuition fees?")
    assert result.best.kind is CandidateKind.FAQ
    assert result.best.score == 1.0
    assert result.best.record.answer == TUITION_ANSWER
    assert result.faq_hints[0] is result.best
    assert result.domain_relevant is True


def test_empty_query_gives_empty_result(index):
    assert index.search("") == RetrievalResult()
    assert index.search("  ?! ") == RetrievalResult()


def test_unrelated_query_is_not_domain_relevant(index):
    result = index.search("what's the capital of France")
    assert result.domain_relevant is False
    assert result.faq_hints == ()
    assert result.topic_hints == ()
    assert result.max_similarity < 0.35


def test_domain_cue_without_matching_record(index):
    result = index.search("tell me about the curriculum")
    assert result.domain_relevant is True
    assert not result.has_significant_match


def test_compact_topic_name_boost(index):
    result = index.search("cybersecurity program")
    assert result.best.kind is CandidateKind.TOPIC
    assert result.best.record.name == "IT: Cyber Security"
    assert result.best.score == pytest.approx(0.9)
    assert result.topic_hints[0].record.name == "IT: Cyber Security"


def test_partial_overlap_becomes_hint(index):
    result = index.search("is an internship compulsory for students")
    assert result.best.record.question == "Is an internship required?"
    assert result.best.score == pytest.approx(3 / 7)
    assert [c.record.question for c in result.faq_hints] == ["Is an internship required?"]


def test_hints_are_sorted_and_capped(corpus):
    index = RetrievalIndex(corpus, RoutingConfig(significance_floor=0.0, max_hints=2))
    result = index.search("where is the sgu campus located")
    assert len(result.faq_hints) == 2
    assert len(result.topic_hints) == 2
    scores = [c.score for c in result.faq_hints]
    assert scores == sorted(scores, reverse=True)
    assert result.faq_hints[0].label == "Where is the SGU campus located?"


def test_suggest_questions(corpus):
    picked = suggest_questions(corpus, limit=2, exclude=["what are the tuition fees"])
    assert len(picked) == 2
    assert "What are the tuition fees?" not in picked
    assert set(picked) <= {f.question for f in corpus.faqs}
    assert suggest_questions(corpus.__class__(), limit=3) == []
