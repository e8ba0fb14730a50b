"""
Messages, conversations and request bodies.

The first message sent to a model must have the user role, and roles alternate
from there. The free-text prompt is always the first block of the user turn,
followed by attachments in the order given.

Two wire dialects are produced from the same Conversation:

- Nova InvokeModel: https://docs.aws.amazon.com/nova/latest/userguide/complete-request-schema.html
- Converse: https://docs.aws.amazon.com/bedrock/latest/APIReference/API_runtime_Converse.html

Both omit ``system`` and ``inferenceConfig`` entirely when they would be empty;
the remote schema validators reject empty arrays/objects there.
"""

import enum
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Union

from bedrock_kit.content import ContentBlock, TextBlock, block_from_wire, encode_attachment
from bedrock_kit.errors import BuildError
from bedrock_kit.files import AttachmentRef
from bedrock_kit.tracing import LOG


class Role(enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    role: Role
    content: tuple

    def __post_init__(self):
        if not self.content:
            raise ValueError("message content must not be empty")

    def to_wire(self) -> dict:
        return {
            "role": self.role.value,
            "content": [block.to_wire() for block in self.content],
        }


def message_from_wire(wire: dict) -> Message:
    return Message(
        role=Role(wire["role"]),
        content=tuple(block_from_wire(block) for block in wire["content"]),
    )


def check_alternation(messages: Sequence[Message]) -> None:
    """Raise BuildError unless roles go user, assistant, user, ..."""
    if not messages:
        raise BuildError("conversation has no messages")
    for index, msg in enumerate(messages):
        expected = Role.USER if index % 2 == 0 else Role.ASSISTANT
        if msg.role is not expected:
            raise BuildError(
                f"message {index} has role '{msg.role.value}', expected '{expected.value}'"
            )


# --------------------------- Inference config ----------------------------


@dataclass(frozen=True)
class InferenceConfig:
    max_tokens: Optional[int] = None  # (0, 5000]
    temperature: Optional[float] = None  # (0, 1]
    top_p: Optional[float] = None  # (0, 1]
    top_k: Optional[int] = None  # >= 0
    stop_sequences: tuple = ()

    def __post_init__(self):
        if self.max_tokens is not None and not 0 < self.max_tokens <= 5000:
            raise ValueError(f"max_tokens must be in (0, 5000], got {self.max_tokens}")
        if self.temperature is not None and not 0 < self.temperature <= 1:
            raise ValueError(f"temperature must be in (0, 1], got {self.temperature}")
        if self.top_p is not None and not 0 < self.top_p <= 1:
            raise ValueError(f"top_p must be in (0, 1], got {self.top_p}")
        if self.top_k is not None and self.top_k < 0:
            raise ValueError(f"top_k must be >= 0, got {self.top_k}")

    def is_empty(self) -> bool:
        return (
            self.max_tokens is None
            and self.temperature is None
            and self.top_p is None
            and self.top_k is None
            and not self.stop_sequences
        )

    def to_invoke_wire(self) -> dict:
        out = {}
        if self.max_tokens is not None:
            out["max_new_tokens"] = self.max_tokens
        if self.temperature is not None:
            out["temperature"] = self.temperature
        if self.top_p is not None:
            out["top_p"] = self.top_p
        if self.top_k is not None:
            out["top_k"] = self.top_k
        if self.stop_sequences:
            out["stopSequences"] = list(self.stop_sequences)
        return out

    def to_converse_wire(self) -> dict:
        # top_k is not part of Converse's inferenceConfig, see additional_fields()
        out = {}
        if self.max_tokens is not None:
            out["maxTokens"] = self.max_tokens
        if self.temperature is not None:
            out["temperature"] = self.temperature
        if self.top_p is not None:
            out["topP"] = self.top_p
        if self.stop_sequences:
            out["stopSequences"] = list(self.stop_sequences)
        return out

    def additional_fields(self, model_id: str) -> dict:
        if self.top_k is None:
            return {}
        if "anthropic." in model_id:
            return {"top_k": self.top_k}
        if "amazon.nova" in model_id:
            return {"inferenceConfig": {"topK": self.top_k}}
        raise BuildError(f"top_k is not supported for model '{model_id}'")


def supports_top_k(model_id: str) -> bool:
    """Converse only passes top_k through for model families that name it."""
    return "anthropic." in model_id or "amazon.nova" in model_id


# ------------------------------ Conversation -----------------------------


@dataclass
class Conversation:
    model_id: str
    messages: List[Message]
    system_prompt: Optional[str] = None
    inference_config: InferenceConfig = field(default_factory=InferenceConfig)

    def system(self) -> List[dict]:
        if self.system_prompt is None:
            return []
        return [{"text": self.system_prompt}]

    def to_invoke_body(self) -> dict:
        body = {}
        system = self.system()
        if system:
            body["system"] = system
        body["messages"] = [msg.to_wire() for msg in self.messages]
        if not self.inference_config.is_empty():
            body["inferenceConfig"] = self.inference_config.to_invoke_wire()
        return body

    def to_converse_body(self) -> dict:
        body = {}
        system = self.system()
        if system:
            body["system"] = system
        body["messages"] = [msg.to_wire() for msg in self.messages]
        inference = self.inference_config.to_converse_wire()
        if inference:
            body["inferenceConfig"] = inference
        additional = self.inference_config.additional_fields(self.model_id)
        if additional:
            body["additionalModelRequestFields"] = additional
        return body


def build_user_message(
    prompt: str, attachments: Iterable[Union[AttachmentRef, str]] = ()
) -> Message:
    """
    Prompt first, then one block per attachment in order. Any attachment that
    cannot be encoded aborts the whole message.
    """
    content: List[ContentBlock] = [TextBlock(prompt)]
    for attachment in attachments:
        content.append(encode_attachment(attachment))
    return Message(Role.USER, tuple(content))


def build_conversation(
    prompt: str,
    attachments: Iterable[Union[AttachmentRef, str]] = (),
    system_prompt: Optional[str] = None,
    assistant_prefill: Optional[str] = None,
    prior_messages: Sequence[Message] = (),
    *,
    model_id: str = "",
    inference_config: Optional[InferenceConfig] = None,
) -> Conversation:
    """
    Build the next request. ``prior_messages`` is never modified: the new user
    turn (and the optional assistant prefill) go into a fresh list.
    """
    user_msg = build_user_message(prompt, attachments)

    messages = list(prior_messages)
    messages.append(user_msg)

    # Prefill must come last; the model continues from it.
    if assistant_prefill is not None:
        messages.append(Message(Role.ASSISTANT, (TextBlock(assistant_prefill),)))

    check_alternation(messages)

    LOG.debug(
        "Built conversation: model=%s | messages=%d | attachments=%d",
        model_id,
        len(messages),
        len(user_msg.content) - 1,
    )
    return Conversation(
        model_id=model_id,
        messages=messages,
        system_prompt=system_prompt,
        inference_config=inference_config or InferenceConfig(),
    )
