"""Prompt assembly and stream decoding for generated answers.

The orchestrator builds one outbound request (system instructions plus
grounding context, the trailing conversation window, the new question) and
turns the provider's NDJSON events into plain text fragments. Each event
looks like ``{"message": {"content": "..."}, "done": false}``; ``done: true``
is the only end-of-turn signal.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

from .data_store import Corpus
from .errors import IncompleteStreamError
from .matcher import Candidate, CandidateKind
from .prompts import GROUNDING_INSTRUCTIONS, SYSTEM_GUARD

logger = logging.getLogger(__name__)

DESCRIPTION_PREVIEW_CHARS = 100


class ChatProvider(Protocol):
    def stream_chat(self, *, model: str, messages: Sequence[Dict[str, Any]], temperature: float) -> Iterator[str]:
        ...


@dataclass(frozen=True)
class StreamEvent:
    content: str = ""
    done: bool = False


def parse_stream_line(line) -> Optional[StreamEvent]:
    """Decode one NDJSON line; ``None`` for blank, partial or malformed lines."""
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    line = (line or "").strip()
    if not line:
        return None
    try:
        data = json.loads(line)
    except ValueError:
        logger.debug("Skipping unparsable stream line: %r", line[:200])
        return None
    if not isinstance(data, dict):
        return None
    message = data.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    return StreamEvent(content=content if isinstance(content, str) else "", done=bool(data.get("done")))


def _hint_line(candidate: Candidate) -> str:
    if candidate.kind is CandidateKind.FAQ:
        return f"- Q: {candidate.record.question}\n  A: {candidate.record.answer}"
    topic = candidate.record
    desc = topic.description
    if desc:
        desc = desc[:DESCRIPTION_PREVIEW_CHARS] + ("..." if len(desc) > DESCRIPTION_PREVIEW_CHARS else "")
    else:
        desc = "No description available"
    return f"- {topic.name} ({topic.faculty or 'No faculty'}): {desc}"


def build_grounding_context(faq_hints: Sequence[Candidate], topic_hints: Sequence[Candidate],
                            corpus: Optional[Corpus] = None) -> str:
    sections = ["SGU KNOWLEDGE BASE CONTEXT:"]
    if corpus is not None and corpus.programs:
        sections.append("AVAILABLE PROGRAMS: " + ", ".join(p.name for p in corpus.programs))
    if topic_hints:
        sections.append("RELEVANT PROGRAMS:\n" + "\n".join(_hint_line(c) for c in topic_hints))
    if faq_hints:
        sections.append("RELATED FAQS:\n" + "\n".join(_hint_line(c) for c in faq_hints))
    return "\n\n".join(sections)


class GenerationOrchestrator:
    """Builds provider requests and yields text fragments until ``done``."""

    def __init__(self, provider: ChatProvider, *, model: str, temperature: float = 0.1,
                 history_window: int = 10, system_prompt: str = SYSTEM_GUARD):
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.history_window = history_window
        self.system_prompt = system_prompt

    def system_instructions(self) -> str:
        return f"{self.system_prompt}\n\n{GROUNDING_INSTRUCTIONS}"

    def build_messages(self, system_instructions: str, grounding_context: str,
                       conversation_window: Sequence[Dict[str, str]], query: str) -> List[Dict[str, str]]:
        system = system_instructions
        if grounding_context:
            system = f"{system}\n\n{grounding_context}"
        window = list(conversation_window)
        if self.history_window <= 0:
            window = []
        elif len(window) > self.history_window:
            window = window[-self.history_window:]
        return (
            [{"role": "system", "content": system}]
            + [{"role": t["role"], "content": t["content"]} for t in window]
            + [{"role": "user", "content": query}]
        )

    def generate(self, system_instructions: str, grounding_context: str,
                 conversation_window: Sequence[Dict[str, str]], query: str) -> Iterator[str]:
        messages = self.build_messages(system_instructions, grounding_context, conversation_window, query)
        logger.info("Requesting generation from %s (%d messages)", self.model, len(messages))
        lines = self.provider.stream_chat(model=self.model, messages=messages, temperature=self.temperature)
        try:
            for line in lines:
                event = parse_stream_line(line)
                if event is None:
                    continue
                if event.content:
                    yield event.content
                if event.done:
                    return
        finally:
            close = getattr(lines, "close", None)
            if close is not None:
                close()
        raise IncompleteStreamError("generation stream closed before the end-of-turn marker")
