"""
Settings resolution.

Region (first match wins):
  1. --region
  2. AWS_REGION, then AWS_DEFAULT_REGION
  3. ``region`` of the selected profile in the AWS config file
     (--aws-profile, else AWS_PROFILE, else "default")
  4. us-east-1

Credentials (first match wins):
  1. --aws-profile: that profile's credentials from the AWS shared files
  2. a Bedrock API key in AWS_BEARER_TOKEN_BEDROCK, sent as a bearer token
  3. the standard AWS credential chain (environment keys, AWS_PROFILE,
     ~/.aws/credentials, SSO, container and instance roles)

AWS credentials are used to sign each request with SigV4.
See: https://docs.aws.amazon.com/bedrock/latest/userguide/api-keys.html
"""

import argparse
import os
from dataclasses import dataclass
from typing import Optional

import botocore.session
from botocore.credentials import Credentials
from botocore.exceptions import BotoCoreError, ProfileNotFound

from bedrock_kit.errors import ConfigError
from bedrock_kit.messages import InferenceConfig
from bedrock_kit.tracing import LOG

API_KEY_ENV = "AWS_BEARER_TOKEN_BEDROCK"
DEFAULT_REGION = "us-east-1"
DEFAULT_TIMEOUT = 600


@dataclass(frozen=True)
class Settings:
    region: str
    api_key: Optional[str]
    runtime_url: str
    control_url: str
    timeout: int = DEFAULT_TIMEOUT
    credentials: Optional[Credentials] = None


def profile_region(profile: Optional[str] = None) -> Optional[str]:
    try:
        config = botocore.session.Session(profile=profile).get_scoped_config()
    except ProfileNotFound as e:
        LOG.debug("%s", e)
        return None
    return config.get("region")


def resolve_region(region: Optional[str] = None, profile: Optional[str] = None) -> str:
    return (
        region
        or os.environ.get("AWS_REGION")
        or os.environ.get("AWS_DEFAULT_REGION")
        or profile_region(profile)
        or DEFAULT_REGION
    )


def aws_credentials(profile: Optional[str] = None) -> Optional[Credentials]:
    """Credentials from the standard AWS chain, or None when there are none."""
    try:
        return botocore.session.Session(profile=profile).get_credentials()
    except BotoCoreError as e:
        raise ConfigError(f"Could not load AWS credentials: {e}") from e


def load_settings(
    region: Optional[str] = None,
    profile: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> Settings:
    api_key = None if profile else os.environ.get(API_KEY_ENV)
    credentials = None
    if not api_key:
        credentials = aws_credentials(profile)
        if credentials is None:
            if profile:
                raise ConfigError(f"No credentials found for AWS profile '{profile}'.")
            raise ConfigError(
                f"No credentials to call Amazon Bedrock: set {API_KEY_ENV} "
                "or configure AWS credentials."
            )
        LOG.debug("Signing requests with AWS credentials (%s)", credentials.method)

    region = resolve_region(region, profile)
    runtime_url = (
        endpoint_url
        or os.environ.get("BEDROCK_ENDPOINT_URL")
        or f"https://bedrock-runtime.{region}.amazonaws.com"
    )
    control_url = os.environ.get(
        "BEDROCK_CONTROL_ENDPOINT_URL", f"https://bedrock.{region}.amazonaws.com"
    )
    LOG.debug("Settings: region=%s | runtime=%s | control=%s", region, runtime_url, control_url)
    return Settings(
        region=region,
        api_key=api_key,
        runtime_url=runtime_url.rstrip("/"),
        control_url=control_url.rstrip("/"),
        timeout=timeout,
        credentials=credentials,
    )


def add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    """Flags every tool shares: connection settings and verbosity."""
    parser.add_argument("--region", help="AWS region (default: env, profile, us-east-1)")
    parser.add_argument(
        "--aws-profile",
        help="AWS profile supplying credentials and, when none is given, the region",
    )
    parser.add_argument(
        "--endpoint-url", help="Override the bedrock-runtime endpoint URL"
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        help="HTTP timeout in seconds",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="More output (once = INFO, twice = DEBUG)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Alias for very verbose logging (DEBUG)"
    )


def add_inference_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--max-tokens", type=int, help="Max new tokens, (0, 5000]")
    parser.add_argument("--temperature", type=float, help="Sampling temperature, (0, 1]")
    parser.add_argument("--top-p", type=float, help="Nucleus sampling probability, (0, 1]")
    parser.add_argument("--top-k", type=int, help="Top-k sampling, 0 or greater")
    parser.add_argument(
        "--stop",
        action="append",
        default=[],
        help="Stop sequence (repeatable)",
    )


def inference_config_from_args(args: argparse.Namespace) -> InferenceConfig:
    """Raises ValueError for out-of-range values."""
    return InferenceConfig(
        max_tokens=args.max_tokens,
        temperature=args.temperature,
        top_p=args.top_p,
        top_k=args.top_k,
        stop_sequences=tuple(args.stop),
    )


def settings_from_args(args: argparse.Namespace) -> Settings:
    return load_settings(
        region=args.region,
        profile=args.aws_profile,
        endpoint_url=args.endpoint_url,
        timeout=args.timeout,
    )
