"""
Narrator bio Lambda (grounded generation step).

Flow for one request:
- validate ``narratorName`` from the JSON body (OPTIONS answers the CORS preflight)
- render the bio prompt and call Gemini with Google Search grounding enabled
- read the first candidate's text plus any grounding metadata
- clean the text with ``shared.bio_text`` and merge inline ``SOURCE:`` URLs with
  the grounding citations

Upstream failures are returned with the provider's status and raw body so the
client can tell a rejected request from an empty answer.
"""
from __future__ import annotations

from typing import Any, Dict, List

import boto3

from backend.lambdas.shared import (
    ConfigurationError,
    ExternalServiceError,
    InvalidRequestError,
    get_choice_env,
    get_env,
    get_float_env,
    get_int_env,
    get_logger,
)
from backend.lambdas.shared.bio_text import extract_inline_sources, host_label, merge_sources, normalize_bio
from backend.lambdas.shared.events import (
    coerce_event,
    empty_response,
    error_response,
    json_body,
    json_response,
    preflight_headers,
    request_method,
    request_path,
)
from backend.lambdas.shared.providers import ProviderReply, call_gemini, resolve_api_key
from backend.lambdas.shared.schemas import GenerateContentResponse, gemini_prompt_request


LOGGER = get_logger(__name__)

REGION = get_env("AWS_REGION", "us-east-1")
GEMINI_API_KEY = get_env("GEMINI_API_KEY", "")
GEMINI_API_KEY_SECRET_NAME = get_env("GEMINI_API_KEY_SECRET_NAME", "")
BIO_MODEL_ID = get_env("BIO_MODEL_ID", "gemini-2.0-flash")
BIO_TEMPERATURE = get_float_env("BIO_TEMPERATURE", 0.4)
BIO_MAX_OUTPUT_TOKENS = get_int_env("BIO_MAX_OUTPUT_TOKENS", 1024)
BIO_TIMEOUT_SECONDS = get_float_env("BIO_TIMEOUT_SECONDS", 60.0)

PROMPT_TEMPLATES: Dict[str, str] = {
    "sources": (
        'Search the web for the audiobook narrator "{name}" and write a biography of them.\n'
        "Rules:\n"
        "- Write 3-4 sentences in the third person.\n"
        "- Do not begin the first sentence with the narrator's name; open with what they are known for.\n"
        "- Cover their narration work, notable titles, genres, and any awards or training.\n"
        "- Do not include citation markers such as [1] and do not put URLs in the biography text.\n"
        "- Do not add an introduction, a heading, or any commentary about the search.\n"
        "After the biography, list each web page you used on its own line in the form:\n"
        "SOURCE: <url>"
    ),
    "grounded": (
        'Search the web for the audiobook narrator "{name}" and write a biography of them.\n'
        "Rules:\n"
        "- Write 3-4 sentences in the third person.\n"
        "- Do not begin the first sentence with the narrator's name; open with what they are known for.\n"
        "- Cover their narration work, notable titles, genres, and any awards or training.\n"
        "- Do not include citation markers such as [1], URLs, or a list of sources.\n"
        "- Reply with the biography text only."
    ),
}
BIO_PROMPT_VARIANT = get_choice_env("BIO_PROMPT_VARIANT", PROMPT_TEMPLATES, "sources")
SEARCH_TOOLS: List[Dict[str, Any]] = [{"google_search": {}}]
CORS_PREFLIGHT_HEADERS = preflight_headers(("POST", "OPTIONS"))

secrets_manager = boto3.client("secretsmanager", region_name=REGION)


def _api_key() -> str:
    return resolve_api_key(
        "gemini",
        inline_key=GEMINI_API_KEY,
        secret_name=GEMINI_API_KEY_SECRET_NAME,
        secrets_manager_client=secrets_manager,
    )


def _respond(status_code: int, body: Any) -> Dict[str, Any]:
    return json_response(status_code, body, headers=CORS_PREFLIGHT_HEADERS)


def _fail(status_code: int, error: str, **details: Any) -> Dict[str, Any]:
    return error_response(status_code, error, headers=CORS_PREFLIGHT_HEADERS, **details)


def build_prompt(name: str, variant: str | None = None) -> str:
    return PROMPT_TEMPLATES[variant or BIO_PROMPT_VARIANT].format(name=name)


def build_request(name: str, variant: str | None = None) -> Dict[str, Any]:
    return gemini_prompt_request(
        build_prompt(name, variant),
        generation_config={"temperature": BIO_TEMPERATURE, "maxOutputTokens": BIO_MAX_OUTPUT_TOKENS},
        tools=SEARCH_TOOLS,
    )


def _provider_error_message(reply: ProviderReply) -> str:
    try:
        payload = reply.json()
    except ExternalServiceError:
        return f"Provider returned HTTP {reply.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    message = error.get("message") if isinstance(error, dict) else None
    if isinstance(message, str) and message.strip():
        return message.strip()
    return f"Provider returned HTTP {reply.status_code}"


def build_bio_result(response: GenerateContentResponse, raw_text: str) -> Dict[str, Any]:
    """Assemble the success payload from a response known to carry text."""
    grounding = response.grounding
    titles_by_uri: Dict[str, str] = {}
    for chunk in grounding.chunks:
        titles_by_uri.setdefault(chunk.uri, chunk.title or host_label(chunk.uri))

    sources = merge_sources((chunk.uri for chunk in grounding.chunks), extract_inline_sources(raw_text))
    return {
        "bio": normalize_bio(raw_text),
        "sources": sources,
        "sourceTitles": [titles_by_uri.get(url) or host_label(url) for url in sources],
        "groundingUsed": grounding.used,
        "searchQueries": list(grounding.search_queries),
        "model": BIO_MODEL_ID,
    }


def handle(event: Dict[str, Any], _context: Any) -> Dict[str, Any]:
    method = request_method(event)
    LOGGER.info("Received bio request method=%s path=%s", method, request_path(event))

    if method == "OPTIONS":
        return empty_response(200, headers=CORS_PREFLIGHT_HEADERS)
    if method != "POST":
        return _fail(405, "Method not allowed")

    try:
        body = json_body(event)
    except InvalidRequestError as exc:
        return _fail(400, str(exc))

    name = body.get("narratorName")
    if not isinstance(name, str) or not name.strip():
        return _fail(400, "narratorName is required")
    name = name.strip()

    try:
        api_key = _api_key()
    except ConfigurationError as exc:
        LOGGER.error("Gemini credential unavailable: %s", exc)
        return _fail(500, "API key not configured")

    try:
        reply = call_gemini(
            api_key=api_key,
            model_id=BIO_MODEL_ID,
            payload=build_request(name),
            timeout_seconds=BIO_TIMEOUT_SECONDS,
        )
    except ExternalServiceError as exc:
        LOGGER.warning("Bio generation request failed for %s: %s", name, exc)
        return _fail(500, str(exc))

    if not reply.ok:
        LOGGER.warning("Bio generation rejected for %s with HTTP %s", name, reply.status_code)
        return _fail(
            reply.status_code,
            _provider_error_message(reply),
            status=reply.status_code,
            details=reply.text,
        )

    try:
        payload = reply.json()
    except ExternalServiceError as exc:
        return _fail(500, str(exc), details=reply.text)

    response = GenerateContentResponse.from_payload(payload)
    raw_text = response.text
    if raw_text is None:
        LOGGER.warning("Bio generation for %s returned no text", name)
        return _fail(500, "No bio text returned", raw=payload)

    result = build_bio_result(response, raw_text)
    if not result["bio"]:
        LOGGER.warning("Bio for %s was empty after cleanup", name)
        return _fail(500, "No bio text returned", raw=payload)

    LOGGER.info(
        "Generated bio for %s chars=%d sources=%d grounded=%s",
        name,
        len(result["bio"]),
        len(result["sources"]),
        result["groundingUsed"],
    )
    return _respond(200, result)


def lambda_handler(event: Any, context: Any) -> Dict[str, Any]:
    return handle(coerce_event(event), context)
