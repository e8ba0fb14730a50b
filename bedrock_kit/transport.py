"""
HTTP transport to Amazon Bedrock.

- InvokeModel: POST {runtime}/model/{modelId}/invoke
- Converse:    POST {runtime}/model/{modelId}/converse
- Models:      GET  {control}/foundation-models

Requests carry either a Bedrock API key as a bearer token or a SigV4
signature made from AWS credentials. A signature covers the exact body bytes,
so signed requests send the JSON already serialized.

No retries: failures are raised as TransportError for the caller to report.
"""

import json
import time
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote

import requests
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest

from bedrock_kit.config import Settings
from bedrock_kit.errors import TransportError
from bedrock_kit.messages import Conversation
from bedrock_kit.tracing import LOG, preview

REQUEST_ID_HEADER = "x-amzn-RequestId"
ERROR_BODY_MAX = 2048
SIGNING_NAME = "bedrock"
JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


@dataclass(frozen=True)
class RawResponse:
    body: bytes
    request_id: str


def _error_body(resp: requests.Response) -> str:
    try:
        body = resp.text
    except Exception:
        return "<Body not readable>"
    if len(body) > ERROR_BODY_MAX:
        body = body[:ERROR_BODY_MAX] + "\n...[truncated]..."
    return body


class BedrockClient:
    def __init__(self, settings: Settings):
        self.settings = settings

    def _headers(
        self, method: str, url: str, headers: dict, body: Optional[bytes] = None
    ) -> dict:
        if self.settings.api_key:
            return dict(headers, Authorization=f"Bearer {self.settings.api_key}")
        request = AWSRequest(method=method, url=url, data=body, headers=headers)
        credentials = self.settings.credentials.get_frozen_credentials()
        SigV4Auth(credentials, SIGNING_NAME, self.settings.region).add_auth(request)
        return dict(request.headers.items())

    def _post_json(self, url: str, payload: dict) -> RawResponse:
        LOG.debug("POST %s | timeout=%s", url, self.settings.timeout)
        LOG.debug("Payload keys: %s", list(payload.keys()))
        if self.settings.api_key:
            send = {"json": payload}
            headers = self._headers("POST", url, JSON_HEADERS)
        else:
            data = json.dumps(payload).encode("utf-8")
            send = {"data": data}
            headers = self._headers("POST", url, JSON_HEADERS, data)
        start = time.monotonic()
        try:
            resp = requests.post(url, headers=headers, timeout=self.settings.timeout, **send)
        except requests.RequestException as e:
            LOG.error("Request to %s failed: %s", url, e)
            raise TransportError(f"Request to {url} failed: {e}") from e
        dur = time.monotonic() - start
        request_id = resp.headers.get(REQUEST_ID_HEADER) or "UNKNOWN"
        LOG.info("Response %s in %.3fs from %s (request id %s)", resp.status_code, dur, url, request_id)

        if resp.status_code >= 400:
            body = _error_body(resp)
            LOG.warning("Error body (%s):\n---\n%s\n---", url, body)
            raise TransportError(
                f"Bedrock returned HTTP {resp.status_code} for {url}",
                status_code=resp.status_code,
                body=body,
                request_id=request_id,
            )
        LOG.debug("Response body: %s", preview(resp.text))
        return RawResponse(body=resp.content, request_id=request_id)

    def _model_url(self, model_id: str, action: str) -> str:
        return f"{self.settings.runtime_url}/model/{quote(model_id, safe='')}/{action}"

    def invoke_model(self, model_id: str, body: dict) -> RawResponse:
        return self._post_json(self._model_url(model_id, "invoke"), body)

    def converse(self, conversation: Conversation) -> RawResponse:
        return self._post_json(
            self._model_url(conversation.model_id, "converse"),
            conversation.to_converse_body(),
        )

    def list_foundation_models(self, provider: Optional[str] = None) -> List[str]:
        """Model ids, optionally filtered by provider name (case-insensitive)."""
        url = f"{self.settings.control_url}/foundation-models"
        headers = self._headers("GET", url, {})
        try:
            resp = requests.get(url, headers=headers, timeout=self.settings.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            LOG.error("Request to Bedrock models endpoint failed: %s", e)
            raise TransportError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"Models endpoint returned invalid JSON: {e}") from e

        wanted = provider.lower() if provider else None
        ids: List[str] = []
        for item in data.get("modelSummaries", []):
            if wanted and str(item.get("providerName", "")).lower() != wanted:
                continue
            model_id = item.get("modelId")
            if model_id:
                ids.append(model_id)
        return ids
