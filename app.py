import streamlit as st

# --- Imports from package ---
from sgu_chat.chat import ChatService
from sgu_chat.config import get_settings
from sgu_chat.data_store import corpus_fingerprint, load_corpus
from sgu_chat.errors import GenerationError, TurnInProgressError
from sgu_chat.eval_utils import run_offline_eval
from sgu_chat.generation import GenerationOrchestrator
from sgu_chat.logging_utils import configure_logging
from sgu_chat.matcher import RetrievalIndex, suggest_questions
from sgu_chat.policy import RoutingPolicy
from sgu_chat.prompts import WELCOME_MESSAGE
from sgu_chat.provider import OllamaChatProvider

st.set_page_config(page_title="SGU Assistant", layout="centered")

settings = get_settings()


@st.cache_resource(show_spinner=False)
def _configure_logging():
    return configure_logging(settings.log_level)


_configure_logging()


# --- Load corpus ----
@st.cache_resource(show_spinner="Loading SGU knowledge base...")
def _load_corpus():
    return load_corpus(settings.faqs_path, settings.topics_path)


corpus = _load_corpus()


# --- Build index ----
# keyed by the corpus fingerprint so edited corpus files rebuild the index
@st.cache_resource(show_spinner="Indexing knowledge base...")
def _build_index(fingerprint: str):
    return RetrievalIndex(corpus, settings.routing_config())


index = _build_index(corpus_fingerprint(corpus))
policy = RoutingPolicy(index.config, corpus)


def _new_chat_service() -> ChatService:
    provider = OllamaChatProvider(
        base_url=settings.ollama_base_url,
        api_key=settings.ollama_api_key,
        timeout=settings.request_timeout,
    )
    orchestrator = GenerationOrchestrator(
        provider,
        model=settings.model,
        temperature=settings.temperature,
        history_window=settings.history_window,
    )
    return ChatService(index, policy, orchestrator)


# one ChatService per browser session
if "chat" not in st.session_state:
    st.session_state["chat"] = _new_chat_service()
chat: ChatService = st.session_state["chat"]

# --- Streamlit UI ---------
with st.sidebar:
    st.header("Sessions")
    if st.button("New chat", type="primary", use_container_width=True):
        chat.new_session()
        st.rerun()

    sessions = chat.list_sessions()
    if not sessions:
        st.caption("No sessions yet. Start a new chat.")
    for session_id, title in sessions:
        col_title, col_delete = st.columns([4, 1])
        label = f"**{title}**" if session_id == chat.current_session_id else title
        if col_title.button(label, key=f"open-{session_id}", use_container_width=True):
            chat.open_session(session_id)
            st.rerun()
        if col_delete.button("✕", key=f"delete-{session_id}"):
            chat.delete_session(session_id)
            st.rerun()

    st.divider()
    st.subheader("Controls")
    chat.model = st.text_input("Model", value=chat.model)
    chat.temperature = st.slider("Temperature", 0.0, 1.0, float(chat.temperature), 0.05)

    with st.expander("Offline evaluation"):
        if st.button("Run"):
            accuracy, results = run_offline_eval(policy, index, corpus)
            st.metric("FAQ routing accuracy", f"{accuracy:.0%}")
            st.dataframe([r for r in results if not r["ok"]])

st.title("SGU Assistant")
st.subheader("Ask about Swiss German University programs, admissions and campus life")

messages = chat.messages()
if not messages:
    with st.chat_message("assistant"):
        st.write(WELCOME_MESSAGE)
    suggestions = suggest_questions(corpus, limit=5)
    if suggestions:
        st.markdown("**Try asking:**")
        st.markdown("\n".join(f"* {s}" for s in suggestions))

# Display conversation history
for msg in messages:
    with st.chat_message(msg.role):
        st.markdown(msg.content)
        if msg.meta is not None and msg.meta.confidence_score is not None:
            st.caption(f"{msg.meta.source} · confidence {msg.meta.confidence_score}%")

user_prompt = st.chat_input("Ask something about SGU...", disabled=chat.is_busy())

if user_prompt:
    with st.chat_message("user"):
        st.markdown(user_prompt)

    with st.chat_message("assistant"):
        try:
            st.write_stream(chat.send_message(user_prompt))
        except TurnInProgressError:
            st.warning("Please wait for the current reply to finish.")
        except GenerationError:
            st.error(chat.last_error or "Failed to reach the language model.")
        else:
            st.rerun()
