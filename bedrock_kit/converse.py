#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Hold a multi-turn interactive conversation with a model (Converse API).

Every turn sends the entire conversation so far. Not all models support
Converse; some (e.g. Amazon Nova) are only reachable through an inference
profile id such as us.amazon.nova-lite-v1:0.

Example:
    bedrock-converse -m us.amazon.nova-lite-v1:0 -s "Answer briefly"
    [us.amazon.nova-lite-v1:0]
    > say -f ~/cat.png "What is in this picture?"
"""

import argparse
import atexit
import os
import shlex
import sys
from typing import Callable, List, Optional

from bedrock_kit.config import (
    add_connection_arguments,
    add_inference_arguments,
    inference_config_from_args,
    settings_from_args,
)
from bedrock_kit.conversation import ConversationState
from bedrock_kit.errors import BedrockKitError, BuildError
from bedrock_kit.messages import supports_top_k
from bedrock_kit.tracing import LOG, setup_logging
from bedrock_kit.transport import BedrockClient

DEFAULT_MODEL = "us.anthropic.claude-3-5-sonnet-20241022-v2:0"
HISTORY_FILE = "~/.bedrock_kit_history"
HISTORY_MAX = 1000

SHELL_HELP = """Commands:
  say [-f PATH]... [-a TEXT] PROMPT
                            send the next turn (quote prompts with spaces)
  history                   show the roles and content of every message
  help                      show this help
  quit | exit               end the session"""


class ShellUsageError(Exception):
    pass


class _ShellArgumentParser(argparse.ArgumentParser):
    """argparse that reports problems instead of exiting the process."""

    def error(self, message):
        raise ShellUsageError(f"{self.prog}: {message}")

    def exit(self, status=0, message=None):
        raise ShellUsageError(message or "")


def build_say_parser() -> argparse.ArgumentParser:
    parser = _ShellArgumentParser(prog="say", description="Send a message to the model")
    parser.add_argument(
        "-f",
        "--attach",
        action="append",
        dest="attachments",
        default=[],
        help=(
            "Media file to attach (repeatable). Images: png jpg jpeg gif webp. "
            "Videos: mp4 mov mkv webm flv mpeg mpg wmv 3gp (local or s3://). "
            "Documents: csv doc docx html md pdf txt xls xlsx."
        ),
    )
    parser.add_argument(
        "-a",
        "--assistant",
        help="Prefilled assistant response the model continues from",
    )
    parser.add_argument("prompt", help="The prompt for your next turn")
    return parser


def _setup_line_editing() -> None:
    try:
        import readline
    except ImportError:
        return

    history_file = os.path.expanduser(HISTORY_FILE)
    readline.set_history_length(HISTORY_MAX)
    if os.path.exists(history_file):
        try:
            readline.read_history_file(history_file)
        except OSError as e:
            LOG.debug("Could not read shell history %s: %s", history_file, e)

    def _persist_history() -> None:
        try:
            readline.write_history_file(history_file)
        except OSError as e:
            LOG.debug("Could not write shell history %s: %s", history_file, e)

    atexit.register(_persist_history)


def format_history(state: ConversationState) -> str:
    lines = []
    for idx, msg in enumerate(state.messages):
        kinds = ", ".join(block.tag for block in msg.content)
        lines.append(f"{idx}: {msg.role.value} [{kinds}]")
    return "\n".join(lines) if lines else "(no messages yet)"


def say(state: ConversationState, argv: List[str]) -> None:
    args = build_say_parser().parse_args(argv)
    try:
        reply = state.say(args.prompt, args.attachments, assistant_prefill=args.assistant)
    except BuildError as e:
        print(f"[ERROR] {e}. Aborting turn.", file=sys.stderr)
        return
    except BedrockKitError as e:
        LOG.error("%s", e)
        print(f"[ERROR] {e}", file=sys.stderr)
        return
    print(reply.text)


def handle_line(state: ConversationState, line: str) -> bool:
    """Run one shell command. Returns False when the session should end."""
    try:
        words = shlex.split(line)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return True
    if not words:
        return True

    command, rest = words[0], words[1:]
    if command in ("quit", "exit"):
        return False
    if command == "help":
        print(SHELL_HELP)
    elif command == "history":
        print(format_history(state))
    elif command == "say":
        try:
            say(state, rest)
        except ShellUsageError as e:
            if str(e):
                print(str(e).rstrip(), file=sys.stderr)
    else:
        print(f"Unknown command '{command}'. Type 'help'.", file=sys.stderr)
    return True


def run_shell(state: ConversationState, input_fn: Optional[Callable[[str], str]] = None) -> None:
    input_fn = input_fn or input
    prompt = f"[{state.model_id}]\n> "
    print()
    while True:
        try:
            line = input_fn(prompt)
        except EOFError:
            print()
            return
        except KeyboardInterrupt:
            print()
            continue
        if not handle_line(state, line):
            return


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Hold a multi-turn interactive conversation with a Bedrock model."
    )
    parser.add_argument(
        "-m",
        "--model",
        default=DEFAULT_MODEL,
        help="Model or inference profile id",
    )
    parser.add_argument("-s", "--system", help="System prompt for the entire conversation")
    add_inference_arguments(parser)
    add_connection_arguments(parser)
    args = parser.parse_args(argv)
    if args.debug:
        args.verbose = max(args.verbose, 2)
    setup_logging(args.verbose)

    try:
        inference_config = inference_config_from_args(args)
    except ValueError as e:
        parser.error(str(e))
    if inference_config.top_k is not None and not supports_top_k(args.model):
        parser.error(
            f"--top-k is only supported for Anthropic and Amazon Nova models, not {args.model}"
        )

    try:
        settings = settings_from_args(args)
    except BedrockKitError as e:
        LOG.error("%s", e)
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    state = ConversationState(
        BedrockClient(settings),
        args.model,
        system_prompt=args.system,
        inference_config=inference_config,
    )
    LOG.info("Starting converse | model=%s | region=%s", args.model, settings.region)
    _setup_line_editing()
    run_shell(state)


if __name__ == "__main__":
    main()
