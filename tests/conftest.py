import json
import sys
from pathlib import Path

import pytest
import requests

# Ensure project root is importable
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from bedrock_kit.config import Settings  # noqa: E402
from bedrock_kit.transport import RawResponse  # noqa: E402


class DummyResponse:
    def __init__(self, status_code=200, text=None, json_data=None, headers=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(json_data) if json_data is not None else ""
        self.text = text
        self.content = text.encode("utf-8")
        self._json = json_data
        self.headers = headers or {}

    def json(self):
        if self._json is None:
            return json.loads(self.text)
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP error {self.status_code}")


def reply_payload(text="Hello!", role="assistant"):
    return {
        "output": {"message": {"role": role, "content": [{"text": text}]}},
        "stopReason": "end_turn",
        "usage": {"inputTokens": 4, "outputTokens": 35, "totalTokens": 39},
    }


class FakeClient:
    """Stands in for BedrockClient; replays queued bodies and records requests."""

    def __init__(self, *bodies):
        self.bodies = list(bodies)
        self.sent = []

    def converse(self, conversation):
        self.sent.append(conversation.to_converse_body())
        body = self.bodies.pop(0)
        if isinstance(body, Exception):
            raise body
        if isinstance(body, dict):
            body = json.dumps(body)
        return RawResponse(body=body.encode("utf-8"), request_id="req-1")

    def invoke_model(self, model_id, body):
        self.sent.append((model_id, body))
        payload = self.bodies.pop(0)
        if isinstance(payload, dict):
            payload = json.dumps(payload)
        return RawResponse(body=payload.encode("utf-8"), request_id="req-1")


@pytest.fixture
def settings():
    return Settings(
        region="us-east-1",
        api_key="token",
        runtime_url="https://bedrock-runtime.us-east-1.amazonaws.com",
        control_url="https://bedrock.us-east-1.amazonaws.com",
        timeout=30,
    )


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("AWS_BEARER_TOKEN_BEDROCK", "token")
    monkeypatch.setenv("AWS_REGION", "us-west-2")
    monkeypatch.delenv("BEDROCK_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("BEDROCK_CONTROL_ENDPOINT_URL", raising=False)
    return "token"


@pytest.fixture
def dummy_response():
    return DummyResponse


@pytest.fixture
def reply():
    return reply_payload


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture
def no_aws_credentials(monkeypatch, tmp_path):
    """Isolate the AWS credential chain: no keys, empty shared files, no IMDS."""
    for var in (
        "AWS_BEARER_TOKEN_BEDROCK",
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "AWS_PROFILE",
        "AWS_DEFAULT_PROFILE",
        "AWS_CONTAINER_CREDENTIALS_RELATIVE_URI",
        "AWS_CONTAINER_CREDENTIALS_FULL_URI",
        "AWS_WEB_IDENTITY_TOKEN_FILE",
        "AWS_ROLE_ARN",
        "BEDROCK_ENDPOINT_URL",
        "BEDROCK_CONTROL_ENDPOINT_URL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "aws-config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "aws-credentials"))
    monkeypatch.setenv("AWS_EC2_METADATA_DISABLED", "true")
    monkeypatch.setenv("AWS_REGION", "us-west-2")
    return tmp_path


@pytest.fixture
def aws_keys(no_aws_credentials, monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIDEXAMPLE")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    return "AKIDEXAMPLE"
