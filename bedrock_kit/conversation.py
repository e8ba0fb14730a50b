"""Multi-turn conversation state for the interactive converse shell."""

import enum
from typing import List, Optional, Sequence

from bedrock_kit.decode import DecodedResponse, decode_message_response
from bedrock_kit.messages import InferenceConfig, Message, build_conversation
from bedrock_kit.tracing import LOG


class TurnState(enum.Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"
    ABORTED = "aborted"


class ConversationState:
    """
    Owns the history of one session. Every turn sends the whole history; the
    new user message and the reply are committed together, and only once the
    reply decoded cleanly. A failed turn leaves history exactly as it was.
    """

    def __init__(
        self,
        client,
        model_id: str,
        system_prompt: Optional[str] = None,
        inference_config: Optional[InferenceConfig] = None,
    ):
        self.client = client
        self.model_id = model_id
        self.system_prompt = system_prompt
        self.inference_config = inference_config or InferenceConfig()
        self.state = TurnState.IDLE
        self._messages: List[Message] = []

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def say(
        self,
        prompt: str,
        attachments: Sequence[str] = (),
        assistant_prefill: Optional[str] = None,
    ) -> DecodedResponse:
        if self.state is TurnState.AWAITING_REPLY:
            raise RuntimeError("a turn is already in progress")

        self.state = TurnState.AWAITING_REPLY
        try:
            conversation = build_conversation(
                prompt,
                attachments,
                system_prompt=self.system_prompt,
                assistant_prefill=assistant_prefill,
                prior_messages=self._messages,
                model_id=self.model_id,
                inference_config=self.inference_config,
            )
            user_msg = conversation.messages[len(self._messages)]
            LOG.debug("model: %s", self.model_id)
            LOG.debug("%s", user_msg)

            raw = self.client.converse(conversation)
            reply = decode_message_response(raw.body, request_id=raw.request_id)
        except BaseException:
            self.state = TurnState.ABORTED
            raise

        # The prefill, if any, is replaced by the real reply.
        self._messages.extend([user_msg, reply.message])
        self.state = TurnState.IDLE
        return reply
