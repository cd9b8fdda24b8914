"""
Helpers for reading API Gateway / Netlify style events and building responses.

Handlers accept both the HTTP API payload format 2.0 (``requestContext.http``)
and the flatter REST / Netlify shape (``httpMethod``). Every response built
here carries a permissive ``Access-Control-Allow-Origin`` header so the browser
client can call the functions directly.
"""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict, Iterable, Mapping, Optional

from .exceptions import InvalidRequestError

CORS_HEADERS: Dict[str, str] = {"Access-Control-Allow-Origin": "*"}


def preflight_headers(methods: Iterable[str]) -> Dict[str, str]:
    return {
        **CORS_HEADERS,
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": ", ".join(methods),
    }


def _http_context(event: Mapping[str, Any]) -> Dict[str, Any]:
    return (event.get("requestContext") or {}).get("http") or {}


def request_method(event: Mapping[str, Any]) -> str:
    method = _http_context(event).get("method") or event.get("httpMethod") or "GET"
    return str(method).upper()


def request_path(event: Mapping[str, Any]) -> str:
    return _http_context(event).get("path") or event.get("rawPath") or event.get("path") or "/"


def query_params(event: Mapping[str, Any]) -> Dict[str, str]:
    params = event.get("queryStringParameters")
    return dict(params) if isinstance(params, dict) else {}


def request_body(event: Mapping[str, Any]) -> str:
    body = event.get("body")
    if body is None:
        return ""
    if not event.get("isBase64Encoded"):
        return body
    try:
        return base64.b64decode(body).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise InvalidRequestError("Request body is not valid base64 UTF-8") from exc


def json_body(event: Mapping[str, Any]) -> Dict[str, Any]:
    text = request_body(event).strip()
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidRequestError("Request body must be valid JSON") from exc
    if not isinstance(parsed, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return parsed


def raw_response(
    status_code: int,
    body: str,
    *,
    content_type: str = "application/json",
    headers: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    merged = {**CORS_HEADERS, **(headers or {}), "Content-Type": content_type}
    return {"statusCode": status_code, "headers": merged, "body": body}


def json_response(status_code: int, body: Any, headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    return raw_response(status_code, json.dumps(body, ensure_ascii=False), headers=headers)


def text_response(status_code: int, body: str, headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    return raw_response(status_code, body, content_type="text/plain", headers=headers)


def empty_response(status_code: int, headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    return {"statusCode": status_code, "headers": {**CORS_HEADERS, **(headers or {})}, "body": ""}


def error_response(
    status_code: int,
    error: str,
    headers: Optional[Mapping[str, str]] = None,
    **details: Any,
) -> Dict[str, Any]:
    return json_response(status_code, {"error": error, **details}, headers=headers)


def coerce_event(event: Any) -> Dict[str, Any]:
    """Accept events delivered as JSON strings (manual invocations, tests)."""
    if isinstance(event, str):
        event = json.loads(event)
    return event or {}
