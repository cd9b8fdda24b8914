import json

import pytest

from backend.lambdas.gemini_relay import handler as gemini_relay  # noqa: E402
from backend.lambdas.shared.exceptions import ExternalServiceError
from backend.lambdas.shared.providers import ProviderReply


REQUEST_BODY = json.dumps({"contents": [{"parts": [{"text": "Hello"}]}]})


@pytest.fixture(autouse=True)
def _configure_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gemini_relay, "GEMINI_API_KEY", "test-key", raising=False)
    monkeypatch.setattr(gemini_relay, "GEMINI_API_KEY_SECRET_NAME", "", raising=False)


def _event(method: str = "POST", body: str = REQUEST_BODY):
    return {"requestContext": {"http": {"method": method, "path": "/gemini"}}, "body": body}


def _fail_if_called(**kwargs):
    raise AssertionError("provider must not be called")


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "OPTIONS"])
def test_rejects_non_post_without_calling_provider(monkeypatch: pytest.MonkeyPatch, method: str):
    monkeypatch.setattr(gemini_relay, "call_gemini", _fail_if_called)

    response = gemini_relay.handle(_event(method), None)

    assert response["statusCode"] == 405
    assert "error" in json.loads(response["body"])


def test_missing_key_returns_500(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(gemini_relay, "GEMINI_API_KEY", "", raising=False)
    monkeypatch.setattr(gemini_relay, "call_gemini", _fail_if_called)

    response = gemini_relay.handle(_event(), None)

    assert response["statusCode"] == 500
    assert json.loads(response["body"]) == {"error": "API key not configured"}


def test_relays_provider_body_and_status_verbatim(monkeypatch: pytest.MonkeyPatch):
    captured = {}
    provider_body = '{"error": {"code": 429, "message": "Resource exhausted"}}'

    def fake_call(**kwargs):
        captured.update(kwargs)
        return ProviderReply(status_code=429, text=provider_body)

    monkeypatch.setattr(gemini_relay, "call_gemini", fake_call)

    response = gemini_relay.handle(_event(), None)

    assert captured["data"] == REQUEST_BODY
    assert captured["api_key"] == "test-key"
    assert captured["model_id"] == gemini_relay.GEMINI_MODEL_ID
    assert response["statusCode"] == 429
    assert response["body"] == provider_body
    assert response["headers"]["Access-Control-Allow-Origin"] == "*"


def test_unparseable_provider_body_returns_500(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(gemini_relay, "call_gemini", lambda **kwargs: ProviderReply(status_code=200, text="<html>"))

    response = gemini_relay.handle(_event(), None)

    assert response["statusCode"] == 500
    assert json.loads(response["body"]) == {"error": "Failed to parse response"}


def test_transport_failure_returns_500(monkeypatch: pytest.MonkeyPatch):
    def raise_error(**kwargs):
        raise ExternalServiceError("Provider request failed: ConnectTimeout")

    monkeypatch.setattr(gemini_relay, "call_gemini", raise_error)

    response = gemini_relay.handle(_event(), None)

    assert response["statusCode"] == 500
    assert "ConnectTimeout" in json.loads(response["body"])["error"]


@pytest.mark.parametrize("body", ["//4=", "!!notbase64"])
def test_undecodable_body_returns_400_without_calling_provider(monkeypatch: pytest.MonkeyPatch, body: str):
    monkeypatch.setattr(gemini_relay, "call_gemini", _fail_if_called)
    event = {**_event(body=body), "isBase64Encoded": True}

    response = gemini_relay.handle(event, None)

    assert response["statusCode"] == 400
    assert json.loads(response["body"]) == {"error": "Request body is not valid base64 UTF-8"}


def test_lambda_handler_accepts_string_payload(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(gemini_relay, "call_gemini", lambda **kwargs: ProviderReply(status_code=200, text="{}"))

    response = gemini_relay.lambda_handler(json.dumps({"httpMethod": "POST", "body": "{}"}), None)

    assert response["statusCode"] == 200
