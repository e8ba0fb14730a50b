"""
Exception taxonomy for bedrock-kit.

Library code raises these; the command line front ends catch BedrockKitError,
report it and exit (or, in the interactive shell, abort only the current turn).
"""

from typing import Optional


class BedrockKitError(Exception):
    """Base class for every error raised by bedrock-kit."""


class ConfigError(BedrockKitError):
    """Missing or invalid configuration (API key, region)."""


# ------------------------------ Building ---------------------------------


class BuildError(BedrockKitError):
    """A request could not be built; the turn is aborted before sending."""


class ClassificationError(BuildError):
    pass


class UnsupportedKindError(ClassificationError):
    def __init__(self, path: str):
        super().__init__(f"Unsupported attachment type: {path}")
        self.path = path


class EncodingError(BuildError):
    pass


class ReadFailure(EncodingError):
    def __init__(self, path: str, reason: object = None):
        message = f"Could not read attachment: {path}"
        if reason is not None:
            message += f" ({reason})"
        super().__init__(message)
        self.path = path


class UnsupportedCombinationError(EncodingError):
    def __init__(self, path: str, kind: str):
        super().__init__(
            f"{kind} attachments must be local files, s3:// is only supported for video: {path}"
        )
        self.path = path
        self.kind = kind


# ------------------------------ Transport --------------------------------


class TransportError(BedrockKitError):
    """HTTP or network level failure talking to Bedrock. Surfaced as-is."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.request_id = request_id


# ------------------------------- Decoding --------------------------------


class DecodeError(BedrockKitError):
    """The response could not be turned into a reply."""


class MalformedPayloadError(DecodeError):
    def __init__(self, reason: str, body: str):
        super().__init__(f"Malformed response ({reason}), body:\n{body}")
        self.reason = reason
        self.body = body


class ProtocolViolation(DecodeError):
    def __init__(self, role: object):
        super().__init__(f"Expected a reply with role 'assistant', got {role!r}")
        self.role = role


class AmbiguousTextContent(DecodeError):
    def __init__(self, count: int):
        super().__init__(
            f"Reply contains {count} text blocks; expected exactly one"
        )
        self.count = count


class UnsupportedOutputModality(DecodeError):
    def __init__(self, kind: str):
        super().__init__(f"Output modality '{kind}' is not supported")
        self.kind = kind


class ModelReportedError(DecodeError):
    def __init__(self, message: str):
        super().__init__(f"Model reported an error: {message}")
        self.message = message


# -------------------------------- Output ---------------------------------


class OutputWriteError(BedrockKitError):
    """A decoded result could not be saved to disk."""

    def __init__(self, path: str, reason: object = None):
        message = f"Could not write output file: {path}"
        if reason is not None:
            message += f" ({reason})"
        super().__init__(message)
        self.path = path
