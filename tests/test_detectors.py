import pytest

from sgu_chat.detectors import (
    disallowed_links,
    find_links,
    has_domain_cue,
    is_allowed_link,
    mentions_any,
)

ALLOWED = ("sgu.ac.id",)


def test_find_links_strips_trailing_punctuation():
    assert find_links("see http://malicious-example.com.") == ["http://malicious-example.com"]
    assert find_links("(https://sgu.ac.id/admission), ok") == ["https://sgu.ac.id/admission"]
    assert find_links("no links here, just www dot words") == []


@pytest.mark.parametrize("url, allowed", [
    ("https://sgu.ac.id", True),
    ("https://www.sgu.ac.id/admission?x=1", True),
    ("HTTPS://WWW.SGU.AC.ID/", True),
    ("http://malicious-example.com", False),
    ("https://evilsgu.ac.id", False),
    ("https://sgu.ac.id.evil.com/page", False),
    ("http://", False),
    ("http://[::1", False),
])
def test_is_allowed_link(url, allowed):
    assert is_allowed_link(url, ALLOWED) is allowed


def test_disallowed_links_keeps_only_outside_links():
    text = "Compare https://sgu.ac.id/fees with http://malicious-example.com/fees"
    assert disallowed_links(text, ALLOWED) == ["http://malicious-example.com/fees"]


def test_every_link_is_disallowed_without_allow_list():
    assert disallowed_links("https://sgu.ac.id", ()) == ["https://sgu.ac.id"]


def test_mentions_any_matches_plural_forms():
    assert mentions_any("Can you list all programs?", ("all programs",))
    assert mentions_any("who are the lecturers", ("lecturer",))
    assert not mentions_any("programming basics", ("program",))


def test_domain_cue():
    cues = ("sgu", "curriculum", "double degree")
    assert has_domain_cue("tell me about the curriculum", cues)
    assert has_domain_cue("Double-degree? no, double degree options", cues)
    assert not has_domain_cue("what's the capital of France", cues)
