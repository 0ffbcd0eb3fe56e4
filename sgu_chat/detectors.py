import re
from typing import Iterable, List
from urllib.parse import urlsplit

from .nlp_utils import tokenize
from .similarity import contains_phrase

# scheme://anything-up-to-whitespace
_URL_RE = re.compile(r"\b[a-z][a-z0-9+.\-]*://[^\s<>\"']*", re.IGNORECASE)
_TRAILING_PUNCT = ".,;:!?)]}'\""

PARTNER_TERMS = ("double degree", "joint degree", "partner university", "partner universities")
CURRICULUM_TERMS = ("curriculum", "courses", "syllabus", "subjects")
LECTURER_TERMS = ("lecturer", "lecturers", "professor", "professors", "teaching staff")
PROGRAM_LIST_TERMS = ("all programs", "list programs", "list of programs", "majors", "study programs")
ABOUT_TERMS = ("about sgu", "what is sgu", "swiss german university")


# --------------------------
# --- Link policy ---------
# --------------------------
def find_links(text: str) -> List[str]:
    """Absolute URLs in ``text`` with trailing punctuation removed."""
    return [m.group(0).rstrip(_TRAILING_PUNCT) for m in _URL_RE.finditer(text or "")]


def is_allowed_link(url: str, allowed_domains: Iterable[str]) -> bool:
    """True only if ``url`` parses and its host is (a subdomain of) an allowed domain.

    Anything that fails to parse or has no hostname is disallowed.
    """
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return False
    if not host:
        return False
    host = host.rstrip(".").lower()
    for domain in allowed_domains:
        domain = domain.strip(".").lower()
        if domain and (host == domain or host.endswith("." + domain)):
            return True
    return False


def disallowed_links(text: str, allowed_domains: Iterable[str]) -> List[str]:
    allowed = tuple(allowed_domains)
    return [url for url in find_links(text) if not is_allowed_link(url, allowed)]


# --------------------------
# --- Phrase detectors -----
# --------------------------
def _stemmed(text: str) -> str:
    return " ".join(tokenize(text))


def mentions_any(text: str, phrases: Iterable[str]) -> bool:
    """Whole-word phrase match after normalization and stemming.

    "Which programs ..." matches the phrase "program" and vice versa.
    """
    haystack = _stemmed(text)
    return any(contains_phrase(haystack, _stemmed(p)) for p in phrases)


def has_domain_cue(text: str, cue_terms: Iterable[str]) -> bool:
    return mentions_any(text, cue_terms)
