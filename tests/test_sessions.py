import random

from sgu_chat.sessions import (
    DEFAULT_TITLE,
    ROLE_ASSISTANT,
    ROLE_USER,
    Message,
    MessageMeta,
    SessionManager,
    derive_title,
)


def _assert_streaming_invariant(manager):
    for session_id, _ in manager.list_sessions():
        messages = manager.messages(session_id)
        streaming = [i for i, m in enumerate(messages) if m.streaming]
        assert len(streaming) <= 1
        if streaming:
            assert streaming[0] == len(messages) - 1
            assert messages[-1].role == ROLE_ASSISTANT


def test_create_session_becomes_current():
    manager = SessionManager()
    sid = manager.create_session()
    assert manager.current_id == sid
    assert manager.list_sessions() == [(sid, DEFAULT_TITLE)]
    assert manager.messages() == []


def test_ensure_current_session_is_lazy_and_stable():
    manager = SessionManager()
    assert manager.current_id is None
    sid = manager.ensure_current_session()
    assert manager.ensure_current_session() == sid
    assert len(manager.list_sessions()) == 1


def test_title_comes_from_first_user_message():
    manager = SessionManager()
    sid = manager.create_session()
    long_text = "What are the admission requirements for international students?"
    manager.append_turn(sid, Message(role=ROLE_USER, content=long_text))
    manager.append_turn(sid, Message(role=ROLE_USER, content="second question"))
    title = manager.get_session(sid).title
    assert title == long_text[:40] + "…"
    assert derive_title("short one") == "short one"
    assert derive_title("x" * 40) == "x" * 40
    assert derive_title("   ") == DEFAULT_TITLE


def test_assistant_message_does_not_set_title():
    manager = SessionManager()
    sid = manager.create_session()
    manager.append_turn(sid, Message(role=ROLE_ASSISTANT, content="Welcome!"))
    assert manager.get_session(sid).title == DEFAULT_TITLE


def test_streamed_fragments_merge_into_one_message():
    manager = SessionManager()
    sid = manager.create_session()
    manager.append_turn(sid, Message(role=ROLE_USER, content="hi"))
    manager.begin_assistant_draft(sid)
    assert manager.is_streaming(sid)
    for fragment in ["Hel", "lo", " world"]:
        manager.apply_fragment(sid, fragment)
    manager.finalize_turn(sid, MessageMeta(source="generated", confidence_score=40))

    last = manager.messages(sid)[-1]
    assert last.content == "Hello world"
    assert last.streaming is False
    assert last.meta.source == "generated"
    assert not manager.is_streaming(sid)


def test_fragments_after_finalize_are_ignored():
    manager = SessionManager()
    sid = manager.create_session()
    manager.begin_assistant_draft(sid)
    manager.apply_fragment(sid, "done")
    manager.finalize_turn(sid)
    manager.apply_fragment(sid, " late")
    manager.finalize_turn(sid, MessageMeta(source="other"))
    last = manager.messages(sid)[-1]
    assert last.content == "done"
    assert last.meta is None


def test_fragments_need_a_trailing_draft():
    manager = SessionManager()
    sid = manager.create_session()
    manager.append_turn(sid, Message(role=ROLE_USER, content="question"))
    manager.apply_fragment(sid, "stray")
    assert manager.messages(sid)[-1].content == "question"


def test_appending_while_streaming_finalizes_the_draft():
    manager = SessionManager()
    sid = manager.create_session()
    manager.begin_assistant_draft(sid)
    manager.apply_fragment(sid, "partial")
    manager.append_turn(sid, Message(role=ROLE_USER, content="next"))
    manager.begin_assistant_draft(sid)
    manager.begin_assistant_draft(sid)
    _assert_streaming_invariant(manager)
    assert [m.streaming for m in manager.messages(sid)] == [False, False, False, True]


def test_unknown_session_operations_are_noops():
    manager = SessionManager()
    manager.append_turn("missing", Message(role=ROLE_USER, content="x"))
    manager.begin_assistant_draft("missing")
    manager.apply_fragment("missing", "x")
    manager.finalize_turn("missing")
    manager.delete_session("missing")
    manager.open_session("missing")
    assert manager.list_sessions() == []
    assert manager.current_id is None
    assert manager.messages("missing") == []
    assert not manager.is_streaming("missing")


def test_deleting_current_session_clears_transcript_only_for_it():
    manager = SessionManager()
    first = manager.create_session()
    manager.append_turn(first, Message(role=ROLE_USER, content="first question"))
    second = manager.create_session()
    manager.append_turn(second, Message(role=ROLE_USER, content="second question"))

    manager.delete_session(second)

    assert manager.current_id is None
    assert manager.messages() == []
    assert [m.content for m in manager.messages(first)] == ["first question"]
    assert manager.list_sessions() == [(first, "first question")]


def test_deleting_other_session_keeps_current():
    manager = SessionManager()
    first = manager.create_session()
    second = manager.create_session()
    manager.delete_session(first)
    assert manager.current_id == second


def test_open_session_switches_visible_messages():
    manager = SessionManager()
    first = manager.create_session()
    manager.append_turn(first, Message(role=ROLE_USER, content="one"))
    second = manager.create_session()
    assert manager.messages() == []
    manager.open_session(first)
    assert [m.content for m in manager.messages()] == ["one"]
    assert [sid for sid, _ in manager.list_sessions()] == [second, first]


def test_streaming_invariant_holds_for_random_operations():
    rng = random.Random(7)
    manager = SessionManager()
    ids = [manager.create_session() for _ in range(3)]
    for _ in range(500):
        sid = rng.choice(ids + ["missing"])
        op = rng.choice(["user", "draft", "fragment", "finalize", "open", "delete", "create"])
        if op == "user":
            manager.append_turn(sid, Message(role=ROLE_USER, content="q"))
        elif op == "draft":
            manager.begin_assistant_draft(sid)
        elif op == "fragment":
            manager.apply_fragment(sid, "x")
        elif op == "finalize":
            manager.finalize_turn(sid)
        elif op == "open":
            manager.open_session(sid)
        elif op == "delete":
            manager.delete_session(sid)
        else:
            ids.append(manager.create_session())
        _assert_streaming_invariant(manager)
