"""
File references and file access.

Attachment references are plain strings from the command line: either a local
path (``~`` and environment variables are expanded) or an ``s3://`` URI. The
media kind is derived from the extension alone.
"""

import base64
import enum
import os
from dataclasses import dataclass
from typing import Tuple

from bedrock_kit.tracing import LOG

S3_PREFIX = "s3://"


class Location(enum.Enum):
    LOCAL = "local"
    S3 = "s3"


class Kind(enum.Enum):
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    UNSUPPORTED = "unsupported"


IMAGE_EXT = {"png", "jpg", "jpeg", "gif", "webp"}
VIDEO_EXT = {"mp4", "mov", "mkv", "webm", "flv", "mpeg", "mpg", "wmv", "3gp"}
DOCUMENT_EXT = {"csv", "doc", "docx", "html", "md", "pdf", "txt", "xls", "xlsx"}


def kind_for_extension(extension: str) -> Kind:
    ext = extension.lower()
    if ext in IMAGE_EXT:
        return Kind.IMAGE
    if ext in VIDEO_EXT:
        return Kind.VIDEO
    if ext in DOCUMENT_EXT:
        return Kind.DOCUMENT
    return Kind.UNSUPPORTED


@dataclass(frozen=True)
class AttachmentRef:
    raw: str
    path: str  # expanded for local files, unchanged for s3
    stem: str
    extension: str
    location: Location
    kind: Kind


def expand(filename: str) -> str:
    """Expand ``~`` and environment variables. Relative paths stay relative."""
    return os.path.expandvars(os.path.expanduser(filename))


def split_name(path: str) -> Tuple[str, str]:
    """Return (stem, lowercased extension) of the last path segment."""
    name = path.rstrip("/").rsplit("/", 1)[-1]
    stem, ext = os.path.splitext(name)
    return stem, ext[1:].lower()


def classify(ref: str) -> AttachmentRef:
    """Classify an attachment reference. Pure string work, no file access."""
    if ref.startswith(S3_PREFIX):
        location = Location.S3
        path = ref
    else:
        location = Location.LOCAL
        path = expand(ref)
    stem, extension = split_name(path)
    return AttachmentRef(
        raw=ref,
        path=path,
        stem=stem,
        extension=extension,
        location=location,
        kind=kind_for_extension(extension),
    )


# ------------------------------ File access ------------------------------


def read_bytes(filename: str) -> bytes:
    with open(expand(filename), "rb") as f:
        blob = f.read()
    LOG.debug("Read %s (%d bytes)", os.path.basename(filename), len(blob))
    return blob


def write_bytes(filename: str, data: bytes) -> None:
    path = expand(filename)
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)
    LOG.debug("Wrote %s (%d bytes)", path, len(data))


def read_base64(filename: str) -> str:
    return base64.b64encode(read_bytes(filename)).decode("ascii")


def write_base64(filename: str, contents: str) -> None:
    write_bytes(filename, base64.b64decode(contents, validate=True))
