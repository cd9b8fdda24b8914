"""
Fetch proxy Lambda.

CORS proxy for pages and images the browser cannot load directly:
- GET ?url=<absolute http(s) URL>
- images come back as JSON with a base64 ``data:`` URI
- everything else comes back as text with status 200; the target's own status
  is carried in ``X-Original-Status`` and the caller judges the content

Hosts containing a denylisted substring are refused. Redirects are followed and
the whole fetch, body included, must finish within ``FETCH_TIMEOUT_SECONDS``.
"""
from __future__ import annotations

import atexit
import base64
import concurrent.futures
import time
from dataclasses import dataclass
from typing import Any, Dict, Tuple
from urllib.parse import urlparse

import requests
from requests import RequestException

from backend.lambdas.shared import InvalidRequestError, get_float_env, get_int_env, get_logger
from backend.lambdas.shared.events import (
    coerce_event,
    empty_response,
    error_response,
    json_response,
    preflight_headers,
    query_params,
    request_method,
    request_path,
    text_response,
)


LOGGER = get_logger(__name__)

FETCH_TIMEOUT_SECONDS = get_float_env("FETCH_TIMEOUT_SECONDS", 25.0)
FETCH_CHUNK_BYTES = get_int_env("FETCH_CHUNK_BYTES", 16384)
FETCH_WORKERS = get_int_env("FETCH_WORKERS", 4)
BLOCKED_HOST_SUBSTRINGS: Tuple[str, ...] = ("localhost", "127.0.0.1", "0.0.0.0")
ALLOWED_SCHEMES = {"http", "https"}
DEFAULT_TEXT_ENCODING = "utf-8"
BROWSER_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}
CORS_PREFLIGHT_HEADERS = preflight_headers(("GET", "POST", "OPTIONS"))

# A single blocking socket read can outlast the deadline; the handler waits on
# the worker with its own timeout and stops waiting once the deadline passes.
_executor = concurrent.futures.ThreadPoolExecutor(max_workers=FETCH_WORKERS, thread_name_prefix="fetch")
atexit.register(_executor.shutdown, wait=False)


@dataclass(frozen=True)
class FetchedTarget:
    status_code: int
    content_type: str
    body: bytes
    encoding: str

    def text(self) -> str:
        try:
            return self.body.decode(self.encoding, errors="replace")
        except LookupError:
            return self.body.decode(DEFAULT_TEXT_ENCODING, errors="replace")


def parse_target(raw_url: str) -> Tuple[str, str]:
    """Return ``(url, hostname)`` for an absolute http(s) URL."""
    try:
        parsed = urlparse(raw_url.strip())
        hostname = parsed.hostname
    except ValueError as exc:
        raise InvalidRequestError("Invalid URL") from exc
    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not hostname:
        raise InvalidRequestError("Invalid URL")
    return raw_url.strip(), hostname.lower()


def is_blocked_host(hostname: str) -> bool:
    # Substring match: "my-localhost-mirror.test" is refused as well.
    return any(blocked in hostname for blocked in BLOCKED_HOST_SUBSTRINGS)


def text_encoding(content_type: str, declared: str | None) -> str:
    """Charset for a text body; UTF-8 unless the Content-Type names one."""
    if "charset=" in content_type.lower() and declared:
        return declared
    return DEFAULT_TEXT_ENCODING


def fetch_target(url: str, deadline: float) -> FetchedTarget:
    """GET ``url`` and read the body, raising ``requests.Timeout`` past ``deadline``."""
    response = requests.get(
        url,
        headers=BROWSER_HEADERS,
        allow_redirects=True,
        stream=True,
        timeout=FETCH_TIMEOUT_SECONDS,
    )
    try:
        chunks = []
        for chunk in response.iter_content(chunk_size=FETCH_CHUNK_BYTES):
            if time.monotonic() > deadline:
                raise requests.Timeout(f"Fetch exceeded {FETCH_TIMEOUT_SECONDS}s")
            chunks.append(chunk)
    finally:
        response.close()

    content_type = response.headers.get("Content-Type") or "text/plain"
    return FetchedTarget(
        status_code=response.status_code,
        content_type=content_type,
        body=b"".join(chunks),
        encoding=text_encoding(content_type, response.encoding),
    )


def _image_response(fetched: FetchedTarget) -> Dict[str, Any]:
    encoded = base64.b64encode(fetched.body).decode("ascii")
    return json_response(
        200,
        {
            "contentType": fetched.content_type,
            "base64": f"data:{fetched.content_type};base64,{encoded}",
            "originalStatus": fetched.status_code,
        },
        headers=CORS_PREFLIGHT_HEADERS,
    )


def _fetch_failed(hostname: str, message: str) -> Dict[str, Any]:
    LOGGER.warning("Fetch failed for host=%s: %s", hostname, message)
    return error_response(502, "Failed to fetch", headers=CORS_PREFLIGHT_HEADERS, message=message)


def handle(event: Dict[str, Any], _context: Any) -> Dict[str, Any]:
    method = request_method(event)
    if method == "OPTIONS":
        return empty_response(200, headers=CORS_PREFLIGHT_HEADERS)

    target = query_params(event).get("url")
    if not target:
        return error_response(400, "Missing ?url= parameter", headers=CORS_PREFLIGHT_HEADERS)

    try:
        url, hostname = parse_target(target)
    except InvalidRequestError as exc:
        return error_response(400, str(exc), headers=CORS_PREFLIGHT_HEADERS)

    if is_blocked_host(hostname):
        LOGGER.warning("Refused fetch for blocked host=%s", hostname)
        return error_response(403, "Domain not allowed", headers=CORS_PREFLIGHT_HEADERS)

    LOGGER.info("Fetching host=%s method=%s path=%s", hostname, method, request_path(event))
    deadline = time.monotonic() + FETCH_TIMEOUT_SECONDS
    future = _executor.submit(fetch_target, url, deadline)
    try:
        fetched = future.result(timeout=FETCH_TIMEOUT_SECONDS)
    except concurrent.futures.TimeoutError:
        future.cancel()
        return _fetch_failed(hostname, f"Fetch exceeded {FETCH_TIMEOUT_SECONDS}s")
    except RequestException as exc:
        return _fetch_failed(hostname, str(exc))

    if fetched.content_type.startswith("image/"):
        return _image_response(fetched)

    text = fetched.text()
    LOGGER.info("Fetched host=%s status=%s bytes=%d", hostname, fetched.status_code, len(fetched.body))
    return text_response(
        200,
        text,
        headers={**CORS_PREFLIGHT_HEADERS, "X-Original-Status": str(fetched.status_code)},
    )


def lambda_handler(event: Any, context: Any) -> Dict[str, Any]:
    return handle(coerce_event(event), context)
