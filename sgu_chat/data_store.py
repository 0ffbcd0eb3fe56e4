import hashlib
import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Tuple

from .config import get_settings
from .errors import CorpusLoadError

logger = logging.getLogger(__name__)

ABOUT_TOPIC_NAME = "About SGU"


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def flatten_to_text(obj: Any) -> str:
    """Concatenate every string value nested anywhere in ``obj``.

    Mapping keys are not included, only values. Numbers are kept so that
    things like semester numbers and years stay searchable.
    """
    if isinstance(obj, str):
        return obj
    if isinstance(obj, bool) or obj is None:
        return ""
    if isinstance(obj, (int, float)):
        return str(obj)
    if isinstance(obj, Mapping):
        parts = (flatten_to_text(v) for v in obj.values())
    elif isinstance(obj, (list, tuple)):
        parts = (flatten_to_text(v) for v in obj)
    else:
        return ""
    return " ".join(p for p in parts if p)


# --------------------------
# --- Records -------------
# --------------------------
@dataclass(frozen=True)
class FaqEntry:
    question: str
    answer: str


@dataclass(frozen=True, eq=False)
class TopicEntry:
    """A hierarchical topic record (a study program or the university itself)."""

    name: str
    attributes: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        object.__setattr__(self, "attributes", _freeze(self.attributes or {}))

    @property
    def faculty(self) -> Optional[str]:
        return self.attributes.get("faculty")

    @property
    def description(self) -> Optional[str]:
        return self.attributes.get("description")

    @property
    def aliases(self) -> Tuple[str, ...]:
        return tuple(a for a in self.attributes.get("aliases", ()) if isinstance(a, str))

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def search_text(self) -> str:
        """Name, faculty, description and every nested value as one blob."""
        return " ".join(p for p in (self.name, flatten_to_text(self.attributes)) if p)


@dataclass(frozen=True)
class Corpus:
    faqs: Tuple[FaqEntry, ...] = ()
    topics: Tuple[TopicEntry, ...] = ()
    about_topic_name: str = ABOUT_TOPIC_NAME

    def __post_init__(self):
        object.__setattr__(self, "faqs", tuple(self.faqs))
        object.__setattr__(self, "topics", tuple(self.topics))

    @property
    def about(self) -> Optional[TopicEntry]:
        return self.topic(self.about_topic_name)

    @property
    def programs(self) -> Tuple[TopicEntry, ...]:
        return tuple(t for t in self.topics if t.name != self.about_topic_name)

    def topic(self, name: str) -> Optional[TopicEntry]:
        return next((t for t in self.topics if t.name == name), None)


def corpus_from_data(faqs: Iterable[Mapping[str, Any]], topics: Mapping[str, Any],
                     about_topic_name: str = ABOUT_TOPIC_NAME) -> Corpus:
    """Build a corpus from the raw JSON shapes.

    ``faqs`` is a list of ``{"q": ..., "a": ...}`` (``question``/``answer``
    are accepted too); ``topics`` maps a topic name to its attribute tree.
    Entries without a question or answer are skipped.
    """
    faq_entries = []
    for raw in faqs or []:
        question = (raw.get("q") or raw.get("question") or "").strip()
        answer = (raw.get("a") or raw.get("answer") or "").strip()
        if question and answer:
            faq_entries.append(FaqEntry(question=question, answer=answer))
        else:
            logger.warning("Skipping incomplete FAQ entry: %r", raw)

    topic_entries = [
        TopicEntry(name=name, attributes=attrs if isinstance(attrs, Mapping) else {"description": flatten_to_text(attrs)})
        for name, attrs in (topics or {}).items()
    ]
    return Corpus(faqs=tuple(faq_entries), topics=tuple(topic_entries), about_topic_name=about_topic_name)


# --------------------------
# --- Load corpus files ----
# --------------------------
def _read_json(path: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as exc:
        raise CorpusLoadError(f"Failed to load {path}: {exc}") from exc


def load_corpus(faqs_path: Optional[str] = None, topics_path: Optional[str] = None) -> Corpus:
    settings = get_settings()
    faqs_path = faqs_path or settings.faqs_path
    topics_path = topics_path or settings.topics_path

    corpus = corpus_from_data(_read_json(faqs_path), _read_json(topics_path))
    logger.info("Loaded corpus: %d FAQs, %d topics", len(corpus.faqs), len(corpus.topics))
    return corpus


# --------------------------
# --- Hash helper ----
# --------------------------
def corpus_fingerprint(corpus: Corpus) -> str:
    """Stable hash of the corpus content, used as a cache key."""
    data = {
        "faqs": [[f.question, f.answer] for f in corpus.faqs],
        "topics": {t.name: _thaw(t.attributes) for t in corpus.topics},
    }
    s = json.dumps(data, sort_keys=True).encode("utf-8")
    return hashlib.sha256(s).hexdigest()
