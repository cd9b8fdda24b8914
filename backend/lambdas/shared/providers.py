"""
Shared helpers for calling the completion providers.

Credentials are resolved from an inline environment variable or from AWS
Secrets Manager and cached for the lifetime of the Lambda container. Calls are
single-shot: there is no retry loop, a failure is reported to the caller as-is.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from botocore.exceptions import BotoCoreError, ClientError
import requests
from requests import RequestException

from .exceptions import ConfigurationError, ExternalServiceError


LOGGER = logging.getLogger(__name__)

GEMINI_ENDPOINT_TEMPLATE = "https://generativelanguage.googleapis.com/v1beta/models/{model_id}:generateContent"
_SECRET_KEY_FIELDS = ("api_key", "apiKey", "key", "token")

_KEY_CACHE: dict[str, str] = {}


def resolve_api_key(
    cache_key: str,
    *,
    inline_key: Optional[str],
    secret_name: Optional[str],
    secrets_manager_client,
) -> str:
    """
    Resolve a provider API key from an inline env var or Secrets Manager.

    Raises ConfigurationError when neither source yields a non-empty key.
    """
    cached = _KEY_CACHE.get(cache_key)
    if cached:
        return cached

    token = (inline_key or "").strip()
    if token:
        _KEY_CACHE[cache_key] = token
        return token

    if not secret_name:
        raise ConfigurationError("API key not configured")

    try:
        response = secrets_manager_client.get_secret_value(SecretId=secret_name)
    except (ClientError, BotoCoreError) as exc:
        raise ConfigurationError(f"Failed to load API key secret: {exc}") from exc

    secret_string = (response.get("SecretString") or "").strip()
    if secret_string.startswith("{"):
        try:
            parsed = json.loads(secret_string)
        except json.JSONDecodeError:
            parsed = {}
        for field in _SECRET_KEY_FIELDS:
            candidate = parsed.get(field)
            if isinstance(candidate, str) and candidate.strip():
                secret_string = candidate.strip()
                break

    if not secret_string:
        raise ConfigurationError("API key secret is empty")

    _KEY_CACHE[cache_key] = secret_string
    return secret_string


@dataclass(frozen=True)
class ProviderReply:
    """Status, body and content type of one upstream response."""

    status_code: int
    text: str
    content_type: str = "application/json"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        try:
            return json.loads(self.text)
        except ValueError as exc:
            raise ExternalServiceError("Failed to parse response") from exc


def post_json(
    url: str,
    *,
    headers: Optional[Mapping[str, str]] = None,
    payload: Optional[Dict[str, Any]] = None,
    data: Optional[str] = None,
    params: Optional[Mapping[str, str]] = None,
    timeout_seconds: float,
) -> ProviderReply:
    """POST either a JSON payload or a pre-encoded body and capture the reply."""
    request_headers = {"Content-Type": "application/json", **(headers or {})}
    try:
        response = requests.post(
            url,
            headers=request_headers,
            params=params,
            json=payload if data is None else None,
            data=data.encode("utf-8") if data is not None else None,
            timeout=timeout_seconds,
        )
    except RequestException as exc:
        # The exception text can embed the request URL, which carries the key for Gemini.
        raise ExternalServiceError(f"Provider request failed: {type(exc).__name__}") from exc

    return ProviderReply(
        status_code=response.status_code,
        text=response.text,
        content_type=response.headers.get("Content-Type") or "application/json",
    )


def call_gemini(
    *,
    api_key: str,
    model_id: str,
    payload: Optional[Dict[str, Any]] = None,
    data: Optional[str] = None,
    timeout_seconds: float,
) -> ProviderReply:
    """Invoke Gemini ``generateContent`` for ``model_id``."""
    reply = post_json(
        GEMINI_ENDPOINT_TEMPLATE.format(model_id=model_id),
        params={"key": api_key},
        payload=payload,
        data=data,
        timeout_seconds=timeout_seconds,
    )
    LOGGER.info("Gemini model=%s returned HTTP %s", model_id, reply.status_code)
    return reply


def call_chat_completion(
    *,
    api_key: str,
    url: str,
    payload: Dict[str, Any],
    timeout_seconds: float,
) -> ProviderReply:
    """Invoke an OpenAI-compatible ``chat/completions`` endpoint."""
    reply = post_json(
        url,
        headers={"Authorization": f"Bearer {api_key}"},
        payload=payload,
        timeout_seconds=timeout_seconds,
    )
    LOGGER.info("Chat completion model=%s returned HTTP %s", payload.get("model"), reply.status_code)
    return reply
