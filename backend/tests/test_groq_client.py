import asyncio
import json

import httpx
import pytest

from assistant.ai.groq_client import (
    ChatOptions,
    GroqClient,
    GroqConfigurationError,
    GroqDecodeError,
    GroqEmptyResponseError,
    GroqTransportError,
    GroqUpstreamError,
)
from assistant.ai.messages import ChatMessage

API_KEY = "gsk_test_key_123"


def _run(coro):
    return asyncio.run(coro)


def _client(handler, **kwargs) -> GroqClient:
    return GroqClient(
        api_key=API_KEY,
        model="llama-3.3-70b-versatile",
        base_url="https://groq.test/openai/v1",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _completion(content: str) -> dict:
    return {
        "id": "chatcmpl-1",
        "model": "llama-3.3-70b-versatile",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


def test_chat_sends_ordered_messages_and_returns_first_choice() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "choices": [
                    {"message": {"role": "assistant", "content": "first"}},
                    {"message": {"role": "assistant", "content": "second"}},
                ]
            },
        )

    client = _client(handler)
    messages = [
        ChatMessage.system("be brief"),
        ChatMessage.user("hi"),
        ChatMessage.assistant("hello"),
        ChatMessage.user("what now?"),
    ]

    reply = _run(client.chat(messages))

    assert reply == "first"
    assert seen["url"] == "https://groq.test/openai/v1/chat/completions"
    assert seen["auth"] == f"Bearer {API_KEY}"
    assert seen["body"] == {
        "model": "llama-3.3-70b-versatile",
        "messages": [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "what now?"},
        ],
        "temperature": 0.7,
        "max_tokens": 1024,
    }


def test_chat_options_override_defaults() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion("ok"))

    client = _client(handler)
    _run(client.chat([ChatMessage.user("hi")], ChatOptions(model="other", temperature=0.1, max_tokens=64)))

    assert seen["body"]["model"] == "other"
    assert seen["body"]["temperature"] == 0.1
    assert seen["body"]["max_tokens"] == 64


def test_chat_with_system_puts_system_message_first() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion("ok"))

    _run(_client(handler).chat_with_system("sys", "usr"))

    assert [m["role"] for m in seen["body"]["messages"]] == ["system", "user"]


def test_non_success_status_raises_upstream_error_with_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text='{"error":"rate limited"}')

    with pytest.raises(GroqUpstreamError) as exc_info:
        _run(_client(handler).quick_chat("hi"))

    assert exc_info.value.status_code == 429
    assert "rate limited" in exc_info.value.body


def test_invalid_json_raises_decode_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(GroqDecodeError):
        _run(_client(handler).quick_chat("hi"))


def test_wrong_shape_raises_decode_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"text": "legacy"}]})

    with pytest.raises(GroqDecodeError):
        _run(_client(handler).quick_chat("hi"))


def test_empty_choices_raises_empty_response_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(GroqEmptyResponseError):
        _run(_client(handler).quick_chat("hi"))


@pytest.mark.parametrize("content", ["", "  \n "])
def test_blank_completion_raises_empty_response_error(content) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion(content))

    with pytest.raises(GroqEmptyResponseError):
        _run(_client(handler).quick_chat("hi"))


def test_undecodable_body_raises_decode_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-encoding": "gzip", "content-type": "application/json"},
            content=b"definitely not gzip",
        )

    with pytest.raises(GroqDecodeError):
        _run(_client(handler).quick_chat("hi"))


def test_connection_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GroqTransportError):
        _run(_client(handler).quick_chat("hi"))


def test_timeout_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(GroqTransportError) as exc_info:
        _run(_client(handler, timeout_seconds=2.5).quick_chat("hi"))

    assert "2.5" in str(exc_info.value)


@pytest.mark.parametrize("api_key", ["", "   ", "your_groq_api_key_here"])
def test_missing_or_placeholder_key_fails_construction(api_key) -> None:
    with pytest.raises(GroqConfigurationError):
        GroqClient(api_key=api_key, model="llama-3.3-70b-versatile")


def test_api_key_never_appears_in_repr_or_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    assert API_KEY not in repr(client)
    with pytest.raises(GroqTransportError) as exc_info:
        _run(client.quick_chat("hi"))
    assert API_KEY not in str(exc_info.value)
