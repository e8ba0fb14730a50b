"""Command line clients for Amazon Bedrock model inference."""

__version__ = "0.1.0"
