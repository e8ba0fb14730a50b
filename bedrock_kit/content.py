"""
Content blocks and the media encoder.

Bedrock strongly types message content: text, image, video and document blocks
each have their own JSON shape. Callers usually just have a path to some media,
so ``encode_attachment`` does the rote mapping from a classified reference to
the right block. Binary sources are inline base64; only video may instead point
at an ``s3://`` location.

See:
- https://docs.aws.amazon.com/bedrock/latest/APIReference/API_runtime_ContentBlock.html
- https://docs.aws.amazon.com/nova/latest/userguide/complete-request-schema.html
"""

import base64
from dataclasses import dataclass
from typing import Optional, Union

from bedrock_kit.errors import (
    ReadFailure,
    UnsupportedCombinationError,
    UnsupportedKindError,
    UnsupportedOutputModality,
)
from bedrock_kit.files import AttachmentRef, Kind, Location, classify, read_bytes
from bedrock_kit.tracing import LOG

# Extensions whose wire enum value differs from the extension itself.
WIRE_FORMATS = {
    "jpg": "jpeg",
    "3gp": "three_gp",
}


def wire_format(extension: str) -> str:
    ext = extension.lower()
    return WIRE_FORMATS.get(ext, ext)


# ------------------------------ Block types ------------------------------


@dataclass(frozen=True)
class TextBlock:
    text: str

    tag = "text"

    def to_wire(self) -> dict:
        return {"text": self.text}


@dataclass(frozen=True)
class ImageBlock:
    format: str
    data: str  # base64

    tag = "image"

    def to_wire(self) -> dict:
        return {"image": {"format": self.format, "source": {"bytes": self.data}}}

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


@dataclass(frozen=True)
class VideoBlock:
    format: str
    data: Optional[str] = None  # base64
    s3_uri: Optional[str] = None

    tag = "video"

    def __post_init__(self):
        if (self.data is None) == (self.s3_uri is None):
            raise ValueError("VideoBlock needs exactly one of data or s3_uri")

    def to_wire(self) -> dict:
        if self.s3_uri is not None:
            source = {"s3Location": {"uri": self.s3_uri}}
        else:
            source = {"bytes": self.data}
        return {"video": {"format": self.format, "source": source}}


@dataclass(frozen=True)
class DocumentBlock:
    format: str
    name: str
    data: str  # base64

    tag = "document"

    def to_wire(self) -> dict:
        return {
            "document": {
                "format": self.format,
                "name": self.name,
                "source": {"bytes": self.data},
            }
        }

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


ContentBlock = Union[TextBlock, ImageBlock, VideoBlock, DocumentBlock]


def block_tag(wire: dict) -> str:
    """Return the single key that tags a wire content block."""
    if not isinstance(wire, dict) or len(wire) != 1:
        raise ValueError(f"content block must be an object with one key: {wire!r}")
    return next(iter(wire))


def block_from_wire(wire: dict) -> ContentBlock:
    """
    Map a wire content block back to its typed form.

    Raises ValueError for a malformed block and UnsupportedOutputModality for
    tags that have no typed form here.
    """
    tag = block_tag(wire)
    body = wire[tag]
    try:
        if tag == "text":
            if not isinstance(body, str):
                raise ValueError("text block must hold a string")
            return TextBlock(body)
        if tag == "image":
            return ImageBlock(format=body["format"], data=body["source"]["bytes"])
        if tag == "video":
            source = body["source"]
            if "s3Location" in source:
                return VideoBlock(format=body["format"], s3_uri=source["s3Location"]["uri"])
            return VideoBlock(format=body["format"], data=source["bytes"])
        if tag == "document":
            return DocumentBlock(
                format=body["format"], name=body["name"], data=body["source"]["bytes"]
            )
    except (KeyError, TypeError) as e:
        raise ValueError(f"malformed {tag} block: {e}") from e
    raise UnsupportedOutputModality(tag)


# ------------------------------ Media encoder ----------------------------


def _read_b64(ref: AttachmentRef) -> str:
    try:
        blob = read_bytes(ref.path)
    except OSError as e:
        raise ReadFailure(ref.raw, e) from e
    return base64.b64encode(blob).decode("ascii")


def encode_attachment(ref: Union[AttachmentRef, str]) -> ContentBlock:
    """Turn an attachment reference into the content block Bedrock expects."""
    if isinstance(ref, str):
        ref = classify(ref)

    if ref.kind is Kind.UNSUPPORTED:
        raise UnsupportedKindError(ref.raw)

    fmt = wire_format(ref.extension)

    if ref.location is Location.S3:
        if ref.kind is not Kind.VIDEO:
            raise UnsupportedCombinationError(ref.raw, ref.kind.value)
        LOG.info("Added video by reference: %s", ref.raw)
        return VideoBlock(format=fmt, s3_uri=ref.raw)

    data = _read_b64(ref)
    if ref.kind is Kind.IMAGE:
        block = ImageBlock(format=fmt, data=data)
    elif ref.kind is Kind.VIDEO:
        block = VideoBlock(format=fmt, data=data)
    else:
        block = DocumentBlock(format=fmt, name=ref.stem, data=data)
    LOG.info("Added %s: %s", ref.kind.value, ref.raw)
    return block
