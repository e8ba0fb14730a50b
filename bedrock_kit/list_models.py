#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""List Bedrock foundation models, optionally for one provider."""

import argparse
import sys
from typing import List, Optional

from bedrock_kit.config import add_connection_arguments, settings_from_args
from bedrock_kit.errors import BedrockKitError
from bedrock_kit.tracing import LOG, setup_logging
from bedrock_kit.transport import BedrockClient


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="List Amazon Bedrock foundation models.")
    parser.add_argument(
        "provider",
        nargs="?",
        help="Case-insensitive provider filter, e.g. Amazon, anthropic",
    )
    add_connection_arguments(parser)
    args = parser.parse_args(argv)
    if args.debug:
        args.verbose = max(args.verbose, 2)
    setup_logging(args.verbose)

    try:
        client = BedrockClient(settings_from_args(args))
        models = client.list_foundation_models(args.provider)
    except BedrockKitError as e:
        LOG.error("%s", e)
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    for model_id in models:
        print(model_id)


if __name__ == "__main__":
    main()
