import asyncio

import httpx
import pytest

from healthsync_core.domain.exceptions import AppError
from healthsync_core.domain.models import ChatMessage, ChatRequest
from healthsync_core.providers.http_client import HttpChatProvider
from healthsync_core.providers.registry import LOCAL_CONFIG, OPENAI_CONFIG


class SettingsStub:
    chat_api_key = None
    http_timeout = 1.0


class KeyedSettings(SettingsStub):
    chat_api_key = "sk-test-1234567890"


def make_request():
    return ChatRequest(
        model="gpt-4o-mini",
        messages=[ChatMessage(role="system", content="sys"), ChatMessage(role="user", content="hi")],
    )


class Resp:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def fake_client(resp=None, exc=None, captured=None):
    class Client:
        def __init__(self, *a, **kw):
            if captured is not None:
                captured["client_kwargs"] = kw

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, url, json=None, headers=None, **_):
            if captured is not None:
                captured["url"] = url
                captured["payload"] = json
                captured["headers"] = headers
            if exc is not None:
                raise exc
            return resp

    return Client


def test_local_provider_success(monkeypatch):
    captured = {}
    resp = Resp(payload={"choices": [{"message": {"content": "  Rest and hydrate.  "}}]})
    monkeypatch.setattr("httpx.AsyncClient", fake_client(resp, captured=captured))
    provider = HttpChatProvider(LOCAL_CONFIG, SettingsStub())

    reply = asyncio.run(provider.chat(make_request()))

    assert reply == "Rest and hydrate."
    assert captured["url"] == "http://localhost:3001/api/chat"
    assert captured["payload"]["messages"][1] == {"role": "user", "content": "hi"}
    assert captured["payload"]["max_tokens"] == 500
    assert "Authorization" not in captured["headers"]
    assert captured["client_kwargs"]["timeout"] == 1.0
    assert provider.health_url == "http://localhost:3001/health"


def test_openai_provider_sends_bearer_key(monkeypatch):
    captured = {}
    resp = Resp(payload={"choices": [{"message": {"content": "ok"}}]})
    monkeypatch.setattr("httpx.AsyncClient", fake_client(resp, captured=captured))
    provider = HttpChatProvider(OPENAI_CONFIG, KeyedSettings())

    asyncio.run(provider.chat(make_request()))

    assert captured["url"] == "https://api.openai.com/v1/chat/completions"
    assert captured["headers"]["Authorization"] == "Bearer sk-test-1234567890"
    assert provider.health_url is None


def test_openai_provider_without_key_is_auth_error(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(exc=AssertionError("must not be called")))
    provider = HttpChatProvider(OPENAI_CONFIG, SettingsStub())
    with pytest.raises(AppError) as exc:
        asyncio.run(provider.chat(make_request()))
    assert exc.value.kind == "auth"
    assert exc.value.retryable is False


@pytest.mark.parametrize(
    "status,kind,retryable",
    [
        (400, "bad-request", False),
        (401, "auth", False),
        (403, "auth", False),
        (404, "unknown", True),
        (429, "rate-limit", True),
        (500, "server-error", True),
        (503, "server-error", True),
        (302, "unknown", True),
    ],
)
def test_status_classification(monkeypatch, status, kind, retryable):
    resp = Resp(status_code=status, payload={"error": {"message": "upstream says no"}})
    monkeypatch.setattr("httpx.AsyncClient", fake_client(resp))
    provider = HttpChatProvider(LOCAL_CONFIG, SettingsStub())

    with pytest.raises(AppError) as exc:
        asyncio.run(provider.chat(make_request()))

    assert exc.value.kind == kind
    assert exc.value.retryable is retryable
    assert exc.value.status_code == status
    assert exc.value.details == "upstream says no"


def test_error_detail_falls_back_to_text(monkeypatch):
    resp = Resp(status_code=502, payload=None, text="Bad Gateway")
    monkeypatch.setattr("httpx.AsyncClient", fake_client(resp))
    provider = HttpChatProvider(LOCAL_CONFIG, SettingsStub())
    with pytest.raises(AppError) as exc:
        asyncio.run(provider.chat(make_request()))
    assert exc.value.details == "Bad Gateway"


@pytest.mark.parametrize(
    "exc",
    [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
    ],
)
def test_transport_failures_are_network(monkeypatch, exc):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(exc=exc))
    provider = HttpChatProvider(LOCAL_CONFIG, SettingsStub())
    with pytest.raises(AppError) as err:
        asyncio.run(provider.chat(make_request()))
    assert err.value.kind == "network"
    assert err.value.retryable is True
    assert err.value.status_code is None


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": "   "}}]},
        ["not", "an", "object"],
        {"choices": {"a": 1}},
        {"choices": 5},
    ],
)
def test_malformed_reply_is_unknown(monkeypatch, payload):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(payload=payload)))
    provider = HttpChatProvider(LOCAL_CONFIG, SettingsStub())
    with pytest.raises(AppError) as exc:
        asyncio.run(provider.chat(make_request()))
    assert exc.value.kind == "unknown"
    assert exc.value.retryable is True
