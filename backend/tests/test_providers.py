from types import SimpleNamespace

import pytest
import requests
from botocore.exceptions import ClientError

from backend.lambdas.shared import providers
from backend.lambdas.shared.exceptions import ConfigurationError, ExternalServiceError


class StubSecretsManager:
    def __init__(self, secret_string=None, error=None):
        self.secret_string = secret_string
        self.error = error
        self.calls = []

    def get_secret_value(self, *, SecretId):  # noqa: N803
        self.calls.append(SecretId)
        if self.error is not None:
            raise self.error
        return {"SecretString": self.secret_string}


def test_resolve_api_key_prefers_inline_value_and_caches():
    stub = StubSecretsManager("from-secret")

    first = providers.resolve_api_key("gemini", inline_key=" inline ", secret_name="name", secrets_manager_client=stub)
    second = providers.resolve_api_key("gemini", inline_key="", secret_name="", secrets_manager_client=stub)

    assert first == second == "inline"
    assert stub.calls == []


def test_resolve_api_key_reads_json_secret():
    stub = StubSecretsManager('{"apiKey": "abc123"}')

    assert providers.resolve_api_key("chat", inline_key="", secret_name="chat-key", secrets_manager_client=stub) == "abc123"
    assert providers.resolve_api_key("chat", inline_key="", secret_name="chat-key", secrets_manager_client=stub) == "abc123"
    assert stub.calls == ["chat-key"]


def test_resolve_api_key_missing_configuration():
    with pytest.raises(ConfigurationError):
        providers.resolve_api_key("gemini", inline_key="", secret_name="", secrets_manager_client=StubSecretsManager())


def test_resolve_api_key_secret_errors_are_configuration_errors():
    error = ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "nope"}}, "GetSecretValue")

    with pytest.raises(ConfigurationError):
        providers.resolve_api_key(
            "gemini", inline_key="", secret_name="missing", secrets_manager_client=StubSecretsManager(error=error)
        )
    with pytest.raises(ConfigurationError):
        providers.resolve_api_key(
            "gemini", inline_key="", secret_name="empty", secrets_manager_client=StubSecretsManager("  ")
        )


def test_call_gemini_passes_key_as_query_parameter(monkeypatch: pytest.MonkeyPatch):
    captured = {}

    def fake_post(url, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return SimpleNamespace(status_code=200, text='{"candidates": []}', headers={"Content-Type": "application/json"})

    monkeypatch.setattr(providers.requests, "post", fake_post)

    reply = providers.call_gemini(api_key="k", model_id="gemini-test", data='{"contents": []}', timeout_seconds=5)

    assert captured["url"].endswith("/models/gemini-test:generateContent")
    assert captured["params"] == {"key": "k"}
    assert captured["data"] == b'{"contents": []}'
    assert captured["json"] is None
    assert captured["timeout"] == 5
    assert reply.ok
    assert reply.json() == {"candidates": []}


def test_call_chat_completion_sends_bearer_token(monkeypatch: pytest.MonkeyPatch):
    captured = {}

    def fake_post(url, **kwargs):
        captured.update(kwargs)
        return SimpleNamespace(status_code=429, text="slow down", headers={"Content-Type": "text/plain"})

    monkeypatch.setattr(providers.requests, "post", fake_post)

    reply = providers.call_chat_completion(
        api_key="secret", url="https://chat.example/v1", payload={"model": "m"}, timeout_seconds=5
    )

    assert captured["headers"]["Authorization"] == "Bearer secret"
    assert captured["json"] == {"model": "m"}
    assert reply.status_code == 429
    assert reply.content_type == "text/plain"
    assert not reply.ok
    with pytest.raises(ExternalServiceError):
        reply.json()


def test_post_json_wraps_transport_errors_without_leaking_url(monkeypatch: pytest.MonkeyPatch):
    def fake_post(url, **kwargs):
        raise requests.ConnectionError(f"failed to reach {url}?key=secret")

    monkeypatch.setattr(providers.requests, "post", fake_post)

    with pytest.raises(ExternalServiceError) as excinfo:
        providers.post_json("https://example.com", payload={}, timeout_seconds=1)

    assert "secret" not in str(excinfo.value)
