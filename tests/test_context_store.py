from movie_agent.context_store import CancellationSet, ConversationContextStore
from movie_agent.models import Message, TextPart


def message(message_id, text="hi", role="user"):
    return Message(role=role, parts=[TextPart(text=text)], message_id=message_id)


def test_get_or_create_starts_empty_and_is_stable():
    store = ConversationContextStore()

    history = store.get_or_create("ctx-1")

    assert history == []
    assert store.get_or_create("ctx-1") is history


def test_append_if_absent_is_idempotent():
    store = ConversationContextStore()

    assert store.append_if_absent("ctx-1", message("m1"))
    assert not store.append_if_absent("ctx-1", message("m1", text="again"))
    assert store.append_if_absent("ctx-1", message("m2", role="agent"))

    history = store.get_or_create("ctx-1")
    assert [m.message_id for m in history] == ["m1", "m2"]
    assert history[0].text() == "hi"


def test_contexts_are_isolated():
    store = ConversationContextStore()
    store.append_if_absent("ctx-1", message("m1"))

    assert store.get_or_create("ctx-2") == []


def test_cancellation_set():
    cancellations = CancellationSet()
    cancellations.add("task-1")
    cancellations.add("task-1")

    assert cancellations.is_cancelled("task-1")
    assert "task-1" in cancellations
    assert not cancellations.is_cancelled("task-2")
