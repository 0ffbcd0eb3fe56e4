"""In-memory conversation sessions.

A session is an ordered message log. Only the trailing assistant message may
be in the ``streaming`` state; it receives generated text fragment by
fragment and is finalized exactly once. Every operation that names an
unknown session id is a silent no-op, since a session can be deleted while a
reply for it is still streaming.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New chat"
TITLE_MAX_CHARS = 40
ELLIPSIS = "…"

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MessageMeta:
    source: str
    matched_question: Optional[str] = None
    confidence_score: Optional[int] = None


@dataclass
class Message:
    role: str
    content: str = ""
    created_at: datetime = field(default_factory=_now)
    streaming: bool = False
    meta: Optional[MessageMeta] = None

    def as_chat_turn(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class Session:
    id: str
    title: str = DEFAULT_TITLE
    messages: List[Message] = field(default_factory=list)

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    @property
    def draft(self) -> Optional[Message]:
        """The trailing assistant message if it is still streaming."""
        last = self.last_message
        if last is not None and last.role == ROLE_ASSISTANT and last.streaming:
            return last
        return None


def derive_title(text: str) -> str:
    text = " ".join((text or "").split())
    if not text:
        return DEFAULT_TITLE
    if len(text) <= TITLE_MAX_CHARS:
        return text
    return text[:TITLE_MAX_CHARS] + ELLIPSIS


class SessionManager:
    """Owns every session of one conversation context and tracks the current one."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self.current_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def create_session(self) -> str:
        session = Session(id=uuid.uuid4().hex)
        self._sessions[session.id] = session
        self.current_id = session.id
        logger.debug("Created session %s", session.id)
        return session.id

    def ensure_current_session(self) -> str:
        if self.current_id is not None and self.current_id in self._sessions:
            return self.current_id
        return self.create_session()

    def open_session(self, session_id: str) -> None:
        if session_id in self._sessions:
            self.current_id = session_id

    def delete_session(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            return
        if self.current_id == session_id:
            self.current_id = None
        logger.debug("Deleted session %s", session_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_session(self, session_id: Optional[str]) -> Optional[Session]:
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    @property
    def current(self) -> Optional[Session]:
        return self.get_session(self.current_id)

    def list_sessions(self) -> List[Tuple[str, str]]:
        """``(id, title)`` pairs, most recently created first."""
        return [(s.id, s.title) for s in reversed(list(self._sessions.values()))]

    def messages(self, session_id: Optional[str] = None) -> List[Message]:
        """Messages of ``session_id`` (default: the current session); empty if none."""
        session = self.get_session(session_id if session_id is not None else self.current_id)
        return list(session.messages) if session else []

    def is_streaming(self, session_id: str) -> bool:
        session = self.get_session(session_id)
        return bool(session and session.draft)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def append_turn(self, session_id: str, message: Message) -> None:
        session = self.get_session(session_id)
        if session is None:
            return
        if session.draft is not None:
            logger.warning("Finalizing unfinished reply in session %s before appending", session_id)
            session.draft.streaming = False
        if message.role == ROLE_USER and not any(m.role == ROLE_USER for m in session.messages):
            session.title = derive_title(message.content)
        session.messages.append(message)

    def begin_assistant_draft(self, session_id: str) -> None:
        self.append_turn(session_id, Message(role=ROLE_ASSISTANT, content="", streaming=True))

    def apply_fragment(self, session_id: str, text_delta: str) -> None:
        session = self.get_session(session_id)
        if session is None or session.draft is None:
            return
        session.draft.content += text_delta

    def finalize_turn(self, session_id: str, meta: Optional[MessageMeta] = None) -> None:
        session = self.get_session(session_id)
        if session is None or session.draft is None:
            return
        draft = session.draft
        draft.streaming = False
        if meta is not None:
            draft.meta = meta
