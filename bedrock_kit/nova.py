#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Invoke Amazon's Nova family of text models on Bedrock (InvokeModel).
- Prompt first, then attachments in the order given (-f, repeatable).
- Images, videos and documents are sent inline as base64; videos may also be
  s3:// URIs, which are sent by reference.
- Optional system prompt and assistant prefill.

Creative content models (Canvas, Reel) are not supported by this tool.
Amazon Nova is reached through inference profiles, e.g. us.amazon.nova-lite-v1:0.
See: https://docs.aws.amazon.com/nova/latest/userguide/
"""

import argparse
import json
import sys
from typing import List, Optional

from bedrock_kit.config import (
    add_connection_arguments,
    add_inference_arguments,
    inference_config_from_args,
    settings_from_args,
)
from bedrock_kit.decode import decode_message_response
from bedrock_kit.errors import BedrockKitError, OutputWriteError
from bedrock_kit.files import expand, write_bytes
from bedrock_kit.messages import build_conversation
from bedrock_kit.tracing import LOG, preview, setup_logging
from bedrock_kit.transport import BedrockClient

DEFAULT_MODEL = "us.amazon.nova-lite-v1:0"


def run(args) -> str:
    settings = settings_from_args(args)
    client = BedrockClient(settings)

    conversation = build_conversation(
        args.prompt,
        args.attachments,
        system_prompt=args.system,
        assistant_prefill=args.assistant,
        model_id=args.model,
        inference_config=args.inference_config,
    )
    body = conversation.to_invoke_body()
    LOG.debug("model-id: %s", args.model)
    LOG.debug("%s", preview(json.dumps(body)))

    raw = client.invoke_model(args.model, body)
    reply = decode_message_response(raw.body, request_id=raw.request_id)
    print(reply.text)

    if args.output:
        filename = "response.txt" if args.output is True else args.output
        try:
            write_bytes(filename, reply.text.encode("utf-8"))
        except OSError as e:
            raise OutputWriteError(filename, e) from e
        LOG.info("Saved response to %s", expand(filename))
    return reply.text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Invoke an Amazon Nova text model on Bedrock."
    )
    parser.add_argument("prompt", help="User prompt")
    parser.add_argument(
        "-m",
        "--model",
        default=DEFAULT_MODEL,
        help="Model or inference profile id (e.g. us.amazon.nova-pro-v1:0)",
    )
    parser.add_argument("-s", "--system", help="System prompt")
    parser.add_argument(
        "-a",
        "--assistant",
        help="Prefilled assistant response the model continues from",
    )
    parser.add_argument(
        "-f",
        "--attach",
        action="append",
        dest="attachments",
        default=[],
        help="Image, video or document path; s3:// URIs for video (repeatable)",
    )
    add_inference_arguments(parser)
    parser.add_argument(
        "-o",
        "--output",
        nargs="?",
        const=True,
        default=False,
        metavar="FILE",
        help="Save response to a file. Optional filename; defaults to 'response.txt'",
    )
    add_connection_arguments(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.debug:
        args.verbose = max(args.verbose, 2)
    setup_logging(args.verbose)

    try:
        args.inference_config = inference_config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    LOG.info(
        "Starting nova | model=%s | attachments=%d",
        args.model,
        len(args.attachments),
    )
    try:
        run(args)
    except BedrockKitError as e:
        LOG.error("%s", e)
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
