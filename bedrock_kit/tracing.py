"""Logging setup shared by all bedrock-kit command line tools."""

import logging
import sys

LOG = logging.getLogger("bedrock_kit")

PREVIEW_EDGE = 200


def setup_logging(verbosity: int) -> None:
    """
    verbosity 0 = WARNING, 1 = INFO, 2+ = DEBUG
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    fmt = "[%(levelname)s] %(message)s"
    if level == logging.DEBUG:
        fmt = "[%(levelname)s] %(asctime)s %(name)s: %(message)s"
    handler.setFormatter(logging.Formatter(fmt))

    LOG.setLevel(level)
    LOG.handlers.clear()
    LOG.addHandler(handler)


def preview(body: str, edge: int = PREVIEW_EDGE) -> str:
    """Shorten a (possibly base64-heavy) body to ``head ... tail`` for logs."""
    if len(body) <= 2 * edge:
        return body
    return f"{body[:edge]} ...[{len(body) - 2 * edge} chars]... {body[-edge:]}"
