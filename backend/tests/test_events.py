import base64
import json

import pytest

from backend.lambdas.shared import events
from backend.lambdas.shared.exceptions import InvalidRequestError


def test_request_method_prefers_http_api_context():
    assert events.request_method({"requestContext": {"http": {"method": "post"}}, "httpMethod": "GET"}) == "POST"
    assert events.request_method({"httpMethod": "options"}) == "OPTIONS"
    assert events.request_method({}) == "GET"


def test_json_body_decodes_base64_payloads():
    body = base64.b64encode(json.dumps({"narratorName": "Jane"}).encode("utf-8")).decode("ascii")
    assert events.json_body({"body": body, "isBase64Encoded": True}) == {"narratorName": "Jane"}


def test_json_body_empty_and_invalid():
    assert events.json_body({"body": None}) == {}
    with pytest.raises(InvalidRequestError):
        events.json_body({"body": "{not json"})
    with pytest.raises(InvalidRequestError):
        events.json_body({"body": "[1, 2]"})


def test_query_params_tolerates_null():
    assert events.query_params({"queryStringParameters": None}) == {}
    assert events.query_params({"queryStringParameters": {"url": "https://example.com"}}) == {"url": "https://example.com"}


def test_responses_always_carry_cors_origin():
    response = events.error_response(418, "teapot", reason="short")

    assert response["statusCode"] == 418
    assert response["headers"]["Access-Control-Allow-Origin"] == "*"
    assert json.loads(response["body"]) == {"error": "teapot", "reason": "short"}


def test_preflight_headers_list_methods():
    headers = events.preflight_headers(("POST", "OPTIONS"))
    assert headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
    assert headers["Access-Control-Allow-Headers"] == "Content-Type"


def test_coerce_event_accepts_json_strings():
    assert events.coerce_event('{"httpMethod": "POST"}') == {"httpMethod": "POST"}
    assert events.coerce_event(None) == {}


def test_request_path_reads_each_event_shape():
    assert events.request_path({"requestContext": {"http": {"path": "/bio"}}, "path": "/other"}) == "/bio"
    assert events.request_path({"rawPath": "/relay"}) == "/relay"
    assert events.request_path({"path": "/.netlify/functions/fetch"}) == "/.netlify/functions/fetch"
    assert events.request_path({}) == "/"


def test_error_response_accepts_a_message_detail():
    response = events.error_response(502, "Failed to fetch", headers={"X-Test": "1"}, message="refused")

    assert response["headers"]["X-Test"] == "1"
    assert json.loads(response["body"]) == {"error": "Failed to fetch", "message": "refused"}
