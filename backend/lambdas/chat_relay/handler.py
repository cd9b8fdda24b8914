"""
Chat completion adapter Lambda.

Accepts the same Gemini-shaped request as the Gemini relay, sends the prompt to
an OpenAI-compatible ``chat/completions`` endpoint and re-wraps the answer in
the Gemini response shape, so the browser client can switch providers without
changing its parsing code.
"""
from __future__ import annotations

from typing import Any, Dict

import boto3

from backend.lambdas.shared import (
    ConfigurationError,
    ExternalServiceError,
    InvalidRequestError,
    get_env,
    get_float_env,
    get_int_env,
    get_logger,
)
from backend.lambdas.shared.events import (
    coerce_event,
    error_response,
    json_body,
    json_response,
    raw_response,
    request_method,
    request_path,
)
from backend.lambdas.shared.providers import call_chat_completion, resolve_api_key
from backend.lambdas.shared.schemas import ChatCompletionResponse, extract_prompt_text, normalized_response


LOGGER = get_logger(__name__)

REGION = get_env("AWS_REGION", "us-east-1")
CHAT_API_KEY = get_env("CHAT_API_KEY", "")
CHAT_API_KEY_SECRET_NAME = get_env("CHAT_API_KEY_SECRET_NAME", "")
CHAT_COMPLETIONS_URL = get_env("CHAT_COMPLETIONS_URL", "https://api.groq.com/openai/v1/chat/completions")
CHAT_MODEL_ID = get_env("CHAT_MODEL_ID", "llama-3.3-70b-versatile")
CHAT_MAX_TOKENS = get_int_env("CHAT_MAX_TOKENS", 2048)
CHAT_TEMPERATURE = get_float_env("CHAT_TEMPERATURE", 0.7)
CHAT_TIMEOUT_SECONDS = get_float_env("CHAT_TIMEOUT_SECONDS", 60.0)

secrets_manager = boto3.client("secretsmanager", region_name=REGION)


def _api_key() -> str:
    return resolve_api_key(
        "chat",
        inline_key=CHAT_API_KEY,
        secret_name=CHAT_API_KEY_SECRET_NAME,
        secrets_manager_client=secrets_manager,
    )


def build_chat_request(prompt: str) -> Dict[str, Any]:
    return {
        "model": CHAT_MODEL_ID,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": CHAT_MAX_TOKENS,
        "temperature": CHAT_TEMPERATURE,
    }


def handle(event: Dict[str, Any], _context: Any) -> Dict[str, Any]:
    method = request_method(event)
    LOGGER.info("Received chat relay request method=%s path=%s", method, request_path(event))

    if method != "POST":
        return error_response(405, "Method not allowed")

    try:
        api_key = _api_key()
    except ConfigurationError as exc:
        LOGGER.error("Chat provider credential unavailable: %s", exc)
        return error_response(500, "API key not configured")

    try:
        prompt = extract_prompt_text(json_body(event))
    except InvalidRequestError as exc:
        return error_response(400, str(exc))

    try:
        reply = call_chat_completion(
            api_key=api_key,
            url=CHAT_COMPLETIONS_URL,
            payload=build_chat_request(prompt),
            timeout_seconds=CHAT_TIMEOUT_SECONDS,
        )
        if reply.status_code != 200:
            LOGGER.warning("Chat provider returned HTTP %s", reply.status_code)
            return raw_response(reply.status_code, reply.text, content_type=reply.content_type)
        completion = ChatCompletionResponse.from_payload(reply.json())
    except ExternalServiceError as exc:
        LOGGER.warning("Chat relay failed: %s", exc)
        return error_response(500, str(exc))

    return json_response(200, normalized_response(completion.content or ""))


def lambda_handler(event: Any, context: Any) -> Dict[str, Any]:
    return handle(coerce_event(event), context)
