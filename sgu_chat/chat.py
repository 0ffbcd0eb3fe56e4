"""Presentation-facing chat operations.

``ChatService`` ties the pieces together for one conversation context
(one browser session in the Streamlit app): it owns a ``SessionManager``,
routes each question and either appends a local answer or streams a
generated one into the current session.
"""

import logging
from contextlib import closing
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import GenerationError, TurnInProgressError
from .generation import GenerationOrchestrator, build_grounding_context
from .logging_utils import set_session_id
from .matcher import RetrievalIndex
from .policy import (
    SOURCE_GENERATED,
    SOURCE_KNOWLEDGE_BASE,
    SOURCE_POLICY,
    Decision,
    DelegateToGeneration,
    DirectAnswer,
    RoutingPolicy,
)
from .prompts import ERROR_REPLY
from .sessions import ROLE_ASSISTANT, ROLE_USER, Message, MessageMeta, SessionManager

logger = logging.getLogger(__name__)

SOURCE_ERROR = "error"


class ChatService:
    def __init__(self, index: RetrievalIndex, policy: RoutingPolicy, orchestrator: GenerationOrchestrator,
                 sessions: Optional[SessionManager] = None):
        self.index = index
        self.policy = policy
        self.orchestrator = orchestrator
        self.sessions = sessions or SessionManager()
        self.last_error: Optional[str] = None
        # session id -> metadata of the reply currently streaming into it
        self._active_turns: Dict[str, MessageMeta] = {}

    # --- Controls ---
    @property
    def model(self) -> str:
        return self.orchestrator.model

    @model.setter
    def model(self, value: str) -> None:
        self.orchestrator.model = value

    @property
    def temperature(self) -> float:
        return self.orchestrator.temperature

    @temperature.setter
    def temperature(self, value: float) -> None:
        self.orchestrator.temperature = value

    # --- Sessions ---
    @property
    def current_session_id(self) -> Optional[str]:
        return self.sessions.current_id

    def new_session(self) -> str:
        return self.sessions.create_session()

    def open_session(self, session_id: str) -> None:
        self.sessions.open_session(session_id)

    def delete_session(self, session_id: str) -> None:
        self.cancel(session_id)
        self.sessions.delete_session(session_id)

    def list_sessions(self) -> List[Tuple[str, str]]:
        return self.sessions.list_sessions()

    def messages(self) -> List[Message]:
        return self.sessions.messages()

    def is_busy(self) -> bool:
        sid = self.sessions.current_id
        return sid is not None and self.sessions.is_streaming(sid)

    def cancel(self, session_id: Optional[str] = None) -> None:
        """Finalize the session's streaming reply with the text received so far.

        The session accepts a new message right away. Fragments the
        cancelled stream still produces are dropped.
        """
        session_id = session_id or self.sessions.current_id
        if session_id is None:
            return
        meta = self._active_turns.pop(session_id, None)
        if self.sessions.is_streaming(session_id):
            logger.info("Reply for session %s cancelled", session_id)
            self.sessions.finalize_turn(session_id, meta)

    # --- Turns ---
    @staticmethod
    def _meta_for(decision: Decision) -> MessageMeta:
        if isinstance(decision, DirectAnswer):
            return MessageMeta(
                source=SOURCE_KNOWLEDGE_BASE,
                matched_question=decision.matched_question,
                confidence_score=decision.confidence_score,
            )
        return MessageMeta(source=SOURCE_POLICY)

    def send_message(self, text: str) -> Iterator[str]:
        """Handle one user message and yield the reply as it is produced.

        Local answers are yielded in one piece; generated answers fragment by
        fragment. The generator must be consumed for the turn to happen.
        Closing it early cancels the reply; the transcript is finalized
        either way. Provider failures are re-raised after an apology message
        has been added to the transcript.
        """
        text = (text or "").strip()
        if not text:
            return
        session_id = self.sessions.ensure_current_session()
        if self.sessions.is_streaming(session_id):
            raise TurnInProgressError(f"session {session_id} is still receiving a reply")
        set_session_id(session_id)
        self.last_error = None

        window = [m.as_chat_turn() for m in self.sessions.messages(session_id) if m.content]
        self.sessions.append_turn(session_id, Message(role=ROLE_USER, content=text))

        decision = self.policy.decide(text, self.index)
        if isinstance(decision, DelegateToGeneration):
            yield from self._stream_generated(session_id, decision, window, text)
            return

        reply = decision.reply
        self.sessions.append_turn(session_id, Message(role=ROLE_ASSISTANT, content=reply, meta=self._meta_for(decision)))
        yield reply

    def _stream_generated(self, session_id: str, decision: DelegateToGeneration, window, text: str) -> Iterator[str]:
        best = decision.best
        meta = MessageMeta(
            source=SOURCE_GENERATED,
            matched_question=best.label if best else None,
            confidence_score=round(best.score * 100) if best else None,
        )
        context = build_grounding_context(decision.faq_hints, decision.topic_hints, self.index.corpus)

        self._active_turns[session_id] = meta
        self.sessions.begin_assistant_draft(session_id)
        fragments = self.orchestrator.generate(self.orchestrator.system_instructions(), context, window, text)
        try:
            with closing(fragments):
                for fragment in fragments:
                    if not self._owns_draft(session_id, meta):
                        logger.debug("Dropping fragments of cancelled reply in session %s", session_id)
                        break
                    self.sessions.apply_fragment(session_id, fragment)
                    yield fragment
        except GenerationError as exc:
            self.last_error = str(exc)
            logger.exception("Generation failed for session %s", session_id)
            if self._owns_draft(session_id, meta):
                self._fail_turn(session_id)
            raise
        finally:
            if self._active_turns.get(session_id) is meta:
                del self._active_turns[session_id]
                self.sessions.finalize_turn(session_id, meta)

    def _owns_draft(self, session_id: str, meta: MessageMeta) -> bool:
        # a cancelled turn may be followed by a new one in the same session
        return self._active_turns.get(session_id) is meta and self.sessions.is_streaming(session_id)

    def _fail_turn(self, session_id: str) -> None:
        session = self.sessions.get_session(session_id)
        if session is None or session.draft is None:
            return
        error_meta = MessageMeta(source=SOURCE_ERROR)
        if not session.draft.content:
            self.sessions.apply_fragment(session_id, ERROR_REPLY)
            self.sessions.finalize_turn(session_id, error_meta)
        else:
            self.sessions.finalize_turn(session_id)
            self.sessions.append_turn(session_id, Message(role=ROLE_ASSISTANT, content=ERROR_REPLY, meta=error_meta))

    def ask(self, text: str) -> str:
        """Send ``text`` and return the complete reply."""
        return "".join(self.send_message(text))
