"""
Response decoding.

Text models (Nova InvokeModel and Converse) answer with the same envelope:

    {
      "output": {"message": {"role": "assistant", "content": [{"text": "Hello!"}]}},
      "stopReason": "end_turn",
      "usage": {"inputTokens": 4, "outputTokens": 35, "totalTokens": 39}
    }

Nova Canvas answers with ``{"images": [<base64>, ...], "error": null}``.
"""

import json
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from bedrock_kit.content import block_tag
from bedrock_kit.errors import (
    AmbiguousTextContent,
    MalformedPayloadError,
    ModelReportedError,
    OutputWriteError,
    ProtocolViolation,
    UnsupportedOutputModality,
)
from bedrock_kit.files import expand, write_base64
from bedrock_kit.messages import Message, Role, message_from_wire
from bedrock_kit.tracing import LOG

Payload = Union[bytes, str]


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass
class DecodedResponse:
    text: str
    message: Optional[Message] = None
    stop_reason: Optional[str] = None
    usage: Optional[TokenUsage] = None
    saved_files: List[str] = field(default_factory=list)
    request_id: Optional[str] = None


def _as_text(payload: Payload) -> str:
    if isinstance(payload, bytes):
        return payload.decode("utf-8", errors="replace")
    return payload


def _load_object(payload: Payload) -> Tuple[dict, str]:
    body = _as_text(payload)
    try:
        data = json.loads(body)
    except ValueError as e:
        raise MalformedPayloadError(f"invalid JSON: {e}", body) from e
    if not isinstance(data, dict):
        raise MalformedPayloadError("top level is not an object", body)
    return data, body


def _parse_usage(raw: object, body: str) -> Optional[TokenUsage]:
    if not isinstance(raw, dict):
        return None
    try:
        return TokenUsage(
            input_tokens=int(raw.get("inputTokens", 0)),
            output_tokens=int(raw.get("outputTokens", 0)),
            total_tokens=int(raw.get("totalTokens", 0)),
        )
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError(f"invalid usage: {e}", body) from e


def decode_message_response(
    payload: Payload, request_id: Optional[str] = None
) -> DecodedResponse:
    """Decode a text model reply. Any deviation from one text block fails."""
    data, body = _load_object(payload)

    try:
        raw_msg = data["output"]["message"]
        role = raw_msg["role"]
        blocks = raw_msg["content"]
    except (KeyError, TypeError) as e:
        raise MalformedPayloadError(f"missing field {e}", body) from e

    if role != Role.ASSISTANT.value:
        raise ProtocolViolation(role)

    if not isinstance(blocks, list) or not blocks:
        raise MalformedPayloadError("reply has no content blocks", body)

    texts: List[str] = []
    for block in blocks:
        try:
            tag = block_tag(block)
        except ValueError as e:
            raise MalformedPayloadError(str(e), body) from e
        if tag == "text":
            texts.append(block["text"])
            continue
        LOG.warning("-- %s --", tag)
        raise UnsupportedOutputModality(tag)

    if len(texts) > 1:
        raise AmbiguousTextContent(len(texts))

    try:
        message = message_from_wire(raw_msg)
    except ValueError as e:
        raise MalformedPayloadError(str(e), body) from e

    usage = _parse_usage(data.get("usage"), body)
    if usage:
        LOG.info(
            "Tokens: input=%d output=%d total=%d",
            usage.input_tokens,
            usage.output_tokens,
            usage.total_tokens,
        )
    return DecodedResponse(
        text=texts[0],
        message=message,
        stop_reason=data.get("stopReason"),
        usage=usage,
        request_id=request_id,
    )


def decode(payload: Payload) -> Tuple[str, List[str]]:
    """(display text, saved files) for a text model reply."""
    decoded = decode_message_response(payload)
    return decoded.text, decoded.saved_files


def _discard(paths: List[str]) -> None:
    """Remove images already written for a reply that failed part way."""
    for path in paths:
        try:
            os.remove(expand(path))
        except OSError as e:
            LOG.warning("Could not remove partial output %s: %s", path, e)


def decode_canvas_response(
    payload: Payload, base_write_path: str, request_id: Optional[str] = None
) -> DecodedResponse:
    """
    Decode a Nova Canvas reply and write its images.

    ``base_write_path`` may end in a filename prefix rather than a directory:
    with ``/tmp/abc123-`` the images land in ``/tmp/abc123-0.png``,
    ``/tmp/abc123-1.png``, ...
    """
    data, body = _load_object(payload)

    error = data.get("error")
    if error:
        raise ModelReportedError(str(error))

    images = data.get("images")
    if not isinstance(images, list):
        raise MalformedPayloadError("missing 'images' list", body)

    saved: List[str] = []
    for idx, image in enumerate(images):
        path = f"{base_write_path}{idx}.png"
        try:
            write_base64(path, image)
        except (TypeError, ValueError) as e:
            _discard(saved)
            raise MalformedPayloadError(f"image {idx} is not valid base64: {e}", body) from e
        except OSError as e:
            _discard(saved)
            raise OutputWriteError(path, e) from e
        saved.append(path)
        LOG.info("Saved image to %s", path)

    plural = "s" if len(saved) != 1 else ""
    return DecodedResponse(
        text=f"Generated {len(saved)} image{plural}",
        saved_files=saved,
        request_id=request_id,
    )
