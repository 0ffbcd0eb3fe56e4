"""Specialized answer builders for query types plain retrieval handles badly.

Each extractor is a pure function ``(query, corpus) -> ExtractedAnswer | None``.
``DEFAULT_EXTRACTORS`` lists the ones the routing policy tries before retrieval,
in order; the first one that returns an answer wins. ``FALLBACK_EXTRACTORS``
run only when retrieval finds nothing significant.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .data_store import Corpus, TopicEntry
from .detectors import (
    ABOUT_TERMS,
    CURRICULUM_TERMS,
    LECTURER_TERMS,
    PARTNER_TERMS,
    PROGRAM_LIST_TERMS,
    mentions_any,
)
from .nlp_utils import normalize
from .similarity import MIN_COMPACT_LENGTH, contains_phrase


@dataclass(frozen=True)
class ExtractedAnswer:
    content: str
    extractor: str
    topic: Optional[str] = None


Extractor = Callable[[str, Corpus], Optional[ExtractedAnswer]]

_JOINT_DEGREE = "joint degree program"
_JOINT_DEGREES = "joint degree programs"
_INTL = "international academic experience"


def _bullets(items) -> str:
    return "\n".join(f"• {item}" for item in items)


def resolve_program(query: str, corpus: Corpus) -> Optional[TopicEntry]:
    """Find the program a query refers to by name or alias.

    Aliases come from each topic's ``aliases`` attribute. The longest
    matching name wins so that "medical biotech" beats "biotech".
    """
    canonical = normalize(query)
    squeezed = canonical.replace(" ", "")
    best, best_len = None, 0
    for topic in corpus.programs:
        for name in (topic.name,) + topic.aliases:
            norm = normalize(name)
            if not norm:
                continue
            squashed = norm.replace(" ", "")
            hit = contains_phrase(canonical, norm) or (len(squashed) >= MIN_COMPACT_LENGTH and squashed in squeezed)
            if hit and len(norm) > best_len:
                best, best_len = topic, len(norm)
    return best


def _mapping(value):
    return value if hasattr(value, "get") else {}


def _joint_degree(program: TopicEntry):
    return _mapping(_mapping(program.get(_INTL)).get(_JOINT_DEGREE))


def _partner_name(partner, key: str) -> Optional[str]:
    """Partner entries are either plain names or records with ``key``."""
    if isinstance(partner, str):
        return partner.strip() or None
    value = _mapping(partner).get(key)
    return str(value) if value else None


def _as_list(value) -> tuple:
    # frozen topic attributes hold lists as tuples
    if value is None:
        return ()
    return value if isinstance(value, tuple) else (value,)


# --------------------------
# --- Partners ------------
# --------------------------
def partner_universities(corpus: Corpus) -> List[str]:
    partners = set()
    about = corpus.about
    if about is not None:
        for partner in _as_list(about.get("double degree partners")):
            name = _partner_name(partner, "university")
            if name and isinstance(partner, str):
                partners.add(name)
            elif name:
                partners.add(f"{name} ({partner.get('country') or 'Unknown'})")
    for program in corpus.programs:
        jd = _joint_degree(program)
        for partner in _as_list(jd.get("partner_university")) + _as_list(jd.get("partner_universities")):
            name = _partner_name(partner, "name")
            if name:
                partners.add(name)
        for other in _as_list(_mapping(program.get(_INTL)).get(_JOINT_DEGREES)):
            name = _partner_name(other, "partner_university")
            if name:
                partners.add(name)
    return sorted(partners)


def double_degree_extractor(query: str, corpus: Corpus) -> Optional[ExtractedAnswer]:
    if not mentions_any(query, PARTNER_TERMS):
        return None

    sections = ["**Double Degree Programs at SGU:**"]
    about = corpus.about
    if about is not None and about.description:
        sections.append(about.description)

    partners = partner_universities(corpus)
    if partners:
        sections.append("**Partner Universities:**\n" + _bullets(partners))

    faq_answers = [
        f"**{faq.question}**\n{faq.answer}"
        for faq in corpus.faqs
        if mentions_any(faq.question, ("double degree", "partner university"))
    ]
    if faq_answers:
        sections.append("**Frequently Asked Questions:**\n\n" + "\n\n".join(faq_answers))

    per_program = []
    for program in corpus.programs:
        jd = _joint_degree(program)
        if not jd:
            continue
        lines = [f"**{program.name}:**"]
        for partner in _as_list(jd.get("partner_university")):
            name = _partner_name(partner, "name")
            if name:
                lines.append(f"• Partner: {name}")
        for partner in _as_list(jd.get("partner_universities")):
            name = _partner_name(partner, "name")
            if not name:
                continue
            if isinstance(partner, str):
                lines.append(f"• Partner: {name}")
            else:
                lines.append(f"• Partner: {name} ({partner.get('duration') or 'Duration varies'})")
        if jd.get("duration"):
            lines.append(f"• Duration: {jd['duration']}")
        degrees = _as_list(jd.get("degrees_awarded"))
        if degrees:
            lines.append(f"• Degrees: {', '.join(str(d) for d in degrees)}")
        per_program.append("\n".join(lines))
    if per_program:
        sections.append("**Program-Specific Double Degree Opportunities:**\n\n" + "\n\n".join(per_program))

    if len(sections) == 1:
        return None
    return ExtractedAnswer("\n\n".join(sections), "double_degree")


# --------------------------
# --- Curriculum ----------
# --------------------------
def _semester_number(label: str) -> int:
    m = re.search(r"\d+", label)
    return int(m.group(0)) if m else 0


def format_curriculum(program_name: str, curriculum) -> str:
    parts = [f"**{program_name} - Complete Curriculum**"]
    for semester in sorted(curriculum.keys(), key=_semester_number):
        data = curriculum[semester]
        courses = data.get("courses") if hasattr(data, "get") else data
        if isinstance(courses, tuple) and courses:
            body = _bullets(courses)
        else:
            body = "• Curriculum details available"
        parts.append(f"**{semester[:1].upper() + semester[1:]}**\n{body}")
    return "\n\n".join(parts)


def curriculum_extractor(query: str, corpus: Corpus) -> Optional[ExtractedAnswer]:
    if not mentions_any(query, CURRICULUM_TERMS):
        return None
    program = resolve_program(query, corpus)
    if program is None or not program.get("curriculum"):
        return None
    return ExtractedAnswer(format_curriculum(program.name, program.get("curriculum")), "curriculum", program.name)


# --------------------------
# --- Lecturers -----------
# --------------------------
def lecturer_extractor(query: str, corpus: Corpus) -> Optional[ExtractedAnswer]:
    if not mentions_any(query, LECTURER_TERMS):
        return None
    program = resolve_program(query, corpus)
    if program is None or not program.get("lecturers"):
        return None
    content = f"**{program.name} - Lecturers**\n\n" + _bullets(program.get("lecturers"))
    return ExtractedAnswer(content, "lecturers", program.name)


# --------------------------
# --- Program list --------
# --------------------------
def program_list_extractor(query: str, corpus: Corpus) -> Optional[ExtractedAnswer]:
    if not mentions_any(query, PROGRAM_LIST_TERMS):
        return None
    programs = corpus.programs
    if not programs:
        return None
    blocks = [
        f"**{p.name}**\nFaculty: {p.faculty or 'Not specified'}\n{p.description or 'No description available'}"
        for p in programs
    ]
    content = (
        "**All Study Programs at Swiss German University**\n\n"
        + "\n\n".join(blocks)
        + f"\n\n**Total: {len(programs)} programs**\n\n"
        + "Ask me about specific programs for more details about curriculum, lecturers, or career prospects!"
    )
    return ExtractedAnswer(content, "program_list")


# --------------------------
# --- About SGU -----------
# --------------------------
def about_extractor(query: str, corpus: Corpus) -> Optional[ExtractedAnswer]:
    if not mentions_any(query, ABOUT_TERMS):
        return None
    about = corpus.about
    if about is None:
        return None
    parts = ["**About Swiss German University (SGU)**"]
    if about.description:
        parts.append(about.description)
    if about.get("vision"):
        parts.append(f"**Vision:** {about.get('vision')}")
    mission = about.get("mission")
    if mission:
        parts.append("**Mission:**\n" + (_bullets(mission) if isinstance(mission, tuple) else str(mission)))
    return ExtractedAnswer("\n\n".join(parts), "about", about.name)


DEFAULT_EXTRACTORS: Sequence[Extractor] = (
    double_degree_extractor,
    curriculum_extractor,
    lecturer_extractor,
    program_list_extractor,
)

# tried only when retrieval finds no significant match
FALLBACK_EXTRACTORS: Sequence[Extractor] = (about_extractor,)


def run_extractors(query: str, corpus: Corpus, extractors: Sequence[Extractor] = DEFAULT_EXTRACTORS) -> Optional[ExtractedAnswer]:
    for extractor in extractors:
        answer = extractor(query, corpus)
        if answer is not None:
            return answer
    return None
