import json

import pytest

from sgu_chat.data_store import (
    Corpus,
    FaqEntry,
    corpus_fingerprint,
    corpus_from_data,
    flatten_to_text,
    load_corpus,
)
from sgu_chat.errors import CorpusLoadError

from conftest import FAQS, TOPICS


def test_flatten_to_text_walks_nested_values():
    data = {"a": "one", "b": ["two", {"c": "three"}], "d": 4, "e": None}
    assert flatten_to_text(data) == "one two three 4"


def test_corpus_from_data_builds_records(corpus):
    assert corpus.faqs[0] == FaqEntry("What are the tuition fees?", FAQS[0]["a"])
    assert [t.name for t in corpus.topics] == list(TOPICS)
    assert corpus.about.name == "About SGU"
    assert [p.name for p in corpus.programs] == ["IT: Cyber Security", "Mechatronics Engineering"]


def test_topic_accessors(corpus):
    cyber = corpus.topic("IT: Cyber Security")
    assert cyber.faculty == "Engineering and IT"
    assert cyber.aliases == ("cyber security", "cybersecurity", "cyber")
    assert "Partner Uni B" in cyber.search_text()
    assert cyber.search_text().startswith("IT: Cyber Security")


def test_records_cannot_be_mutated(corpus):
    cyber = corpus.topic("IT: Cyber Security")
    with pytest.raises(TypeError):
        cyber.attributes["faculty"] = "Other"
    assert isinstance(cyber.get("lecturers"), tuple)
    with pytest.raises(AttributeError):
        corpus.faqs[0].answer = "changed"


def test_source_data_changes_do_not_leak_into_corpus():
    topics = {"Topic": {"description": "original", "facts": ["x"]}}
    corpus = corpus_from_data([], topics)
    topics["Topic"]["facts"].append("y")
    topics["Topic"]["description"] = "changed"
    assert corpus.topic("Topic").get("facts") == ("x",)
    assert corpus.topic("Topic").description == "original"


def test_incomplete_faqs_are_skipped():
    corpus = corpus_from_data([{"q": "Question?"}, {"question": "Q2", "answer": "A2"}], {})
    assert corpus.faqs == (FaqEntry("Q2", "A2"),)


def test_load_corpus_from_files(tmp_path):
    faqs_path = tmp_path / "faqs.json"
    topics_path = tmp_path / "topics.json"
    faqs_path.write_text(json.dumps(FAQS), encoding="utf-8")
    topics_path.write_text(json.dumps(TOPICS), encoding="utf-8")

    corpus = load_corpus(str(faqs_path), str(topics_path))
    assert len(corpus.faqs) == len(FAQS)
    assert len(corpus.topics) == len(TOPICS)


def test_load_corpus_reports_bad_files(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(CorpusLoadError):
        load_corpus(str(bad), str(bad))
    with pytest.raises(CorpusLoadError):
        load_corpus(str(tmp_path / "missing.json"), str(bad))


def test_packaged_sample_corpus_loads():
    corpus = load_corpus()
    assert corpus.faqs
    assert corpus.about is not None
    assert corpus.programs


def test_fingerprint_is_stable_and_content_sensitive(corpus):
    same = corpus_from_data(FAQS, TOPICS)
    assert corpus_fingerprint(corpus) == corpus_fingerprint(same)
    changed = corpus_from_data(FAQS[:1], TOPICS)
    assert corpus_fingerprint(corpus) != corpus_fingerprint(changed)
    assert corpus_fingerprint(Corpus()) != corpus_fingerprint(corpus)
