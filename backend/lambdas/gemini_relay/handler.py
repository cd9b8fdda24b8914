"""
Gemini relay Lambda.

Forwards a browser-built ``generateContent`` request to Gemini so the API key
never leaves the server. The provider's JSON body and status code are returned
unchanged; only the CORS header is added.
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
    get_logger,
)
from backend.lambdas.shared.events import (
    coerce_event,
    error_response,
    raw_response,
    request_body,
    request_method,
    request_path,
)
from backend.lambdas.shared.providers import call_gemini, resolve_api_key


LOGGER = get_logger(__name__)

REGION = get_env("AWS_REGION", "us-east-1")
GEMINI_API_KEY = get_env("GEMINI_API_KEY", "")
GEMINI_API_KEY_SECRET_NAME = get_env("GEMINI_API_KEY_SECRET_NAME", "")
GEMINI_MODEL_ID = get_env("GEMINI_MODEL_ID", "gemini-2.0-flash")
GEMINI_TIMEOUT_SECONDS = get_float_env("GEMINI_TIMEOUT_SECONDS", 60.0)

secrets_manager = boto3.client("secretsmanager", region_name=REGION)


def _api_key() -> str:
    return resolve_api_key(
        "gemini",
        inline_key=GEMINI_API_KEY,
        secret_name=GEMINI_API_KEY_SECRET_NAME,
        secrets_manager_client=secrets_manager,
    )


def handle(event: Dict[str, Any], _context: Any) -> Dict[str, Any]:
    method = request_method(event)
    LOGGER.info("Received relay request method=%s path=%s", method, request_path(event))

    if method != "POST":
        return error_response(405, "Method not allowed")

    try:
        api_key = _api_key()
    except ConfigurationError as exc:
        LOGGER.error("Gemini credential unavailable: %s", exc)
        return error_response(500, "API key not configured")

    try:
        body = request_body(event)
    except InvalidRequestError as exc:
        return error_response(400, str(exc))

    try:
        reply = call_gemini(
            api_key=api_key,
            model_id=GEMINI_MODEL_ID,
            data=body,
            timeout_seconds=GEMINI_TIMEOUT_SECONDS,
        )
        # Relayed verbatim, but only once it parses as JSON.
        reply.json()
    except ExternalServiceError as exc:
        LOGGER.warning("Gemini relay failed: %s", exc)
        return error_response(500, str(exc))

    return raw_response(reply.status_code, reply.text)


def lambda_handler(event: Any, context: Any) -> Dict[str, Any]:
    return handle(coerce_event(event), context)
