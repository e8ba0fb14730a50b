import pytest

from bedrock_kit.content import TextBlock
from bedrock_kit.conversation import ConversationState, TurnState
from bedrock_kit.errors import (
    ProtocolViolation,
    ReadFailure,
    TransportError,
    UnsupportedKindError,
)
from bedrock_kit.messages import Role


def test_two_turns_alternate_roles(fake_client, reply):
    client = fake_client(reply("first"), reply("second"))
    state = ConversationState(client, "model-x", system_prompt="Be brief")

    assert state.say("hello").text == "first"
    assert state.say("and again").text == "second"

    assert [m.role for m in state.messages] == [
        Role.USER,
        Role.ASSISTANT,
        Role.USER,
        Role.ASSISTANT,
    ]
    assert state.state is TurnState.IDLE
    # The whole history travels with every turn.
    assert len(client.sent[0]["messages"]) == 1
    assert len(client.sent[1]["messages"]) == 3
    assert client.sent[1]["system"] == [{"text": "Be brief"}]


def test_unsupported_attachment_aborts_turn(fake_client, reply):
    client = fake_client(reply("first"))
    state = ConversationState(client, "model-x")
    state.say("hello")
    before = state.messages

    with pytest.raises(UnsupportedKindError) as exc:
        state.say("look at this", ["notes.xyz"])

    assert "notes.xyz" in str(exc.value)
    assert state.messages == before
    assert len(client.sent) == 1
    assert state.state is TurnState.ABORTED


def test_unreadable_attachment_is_not_sent(fake_client, tmp_path):
    client = fake_client()
    state = ConversationState(client, "model-x")
    with pytest.raises(ReadFailure):
        state.say("hi", [str(tmp_path / "missing.png")])
    assert state.messages == []
    assert client.sent == []


def test_protocol_violation_leaves_history_unchanged(fake_client):
    client = fake_client('{"output":{"message":{"role":"user","content":[]}}}')
    state = ConversationState(client, "model-x")
    with pytest.raises(ProtocolViolation):
        state.say("hi")
    assert state.messages == []


def test_transport_failure_leaves_history_unchanged(fake_client, reply):
    client = fake_client(TransportError("throttled", status_code=429), reply("ok"))
    state = ConversationState(client, "model-x")
    with pytest.raises(TransportError):
        state.say("hi")
    assert state.messages == []

    # The session recovers on the next turn.
    assert state.say("hi again").text == "ok"
    assert len(state.messages) == 2


def test_prefill_is_replaced_by_reply(fake_client, reply):
    client = fake_client(reply(" leaves drift down"))
    state = ConversationState(client, "model-x")
    state.say("Write a haiku", assistant_prefill="Autumn")

    sent = client.sent[0]["messages"]
    assert [m["role"] for m in sent] == ["user", "assistant"]
    assert sent[1]["content"] == [{"text": "Autumn"}]

    history = state.messages
    assert len(history) == 2
    assert history[1].content == (TextBlock(" leaves drift down"),)


def test_messages_property_is_a_copy(fake_client, reply):
    state = ConversationState(fake_client(reply()), "model-x")
    state.say("hi")
    state.messages.clear()
    assert len(state.messages) == 2


def test_no_overlapping_turns(fake_client):
    state = ConversationState(fake_client(), "model-x")
    state.state = TurnState.AWAITING_REPLY
    with pytest.raises(RuntimeError):
        state.say("hi")
