import dataclasses
import json

import httpx
import pytest

from core.errors import RateLimitError, TransportError
from core.stream import EventStreamFraming, NdjsonFraming
from core.types import ConversationTurn
from providers import ChatBackend

TURNS = [
    ConversationTurn(role="system", text="Be brief."),
    ConversationTurn(role="user", text="hi"),
]


async def _read_all(backend: ChatBackend) -> bytes:
    body = b""
    async with backend.stream(TURNS) as chunks:
        async for chunk in chunks:
            body += chunk
    return body


def test_payload_matches_wire_contract(ollama_config):
    payload = ChatBackend(ollama_config).build_payload(TURNS)
    assert payload == {
        "model": "llama3.2:3b",
        "messages": [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "hi"},
        ],
        "stream": True,
    }


def test_framing_follows_backend(ollama_config, openai_config):
    assert isinstance(ChatBackend(ollama_config).framing(), NdjsonFraming)
    assert isinstance(ChatBackend(openai_config).framing(), EventStreamFraming)


def test_unknown_backend_or_missing_key_is_rejected(ollama_config, openai_config):
    with pytest.raises(ValueError):
        ChatBackend(dataclasses.replace(ollama_config, llm_backend="gemini"))
    with pytest.raises(ValueError):
        ChatBackend(dataclasses.replace(openai_config, llm_api_key=""))


def test_read_timeout_follows_config(ollama_config):
    assert ChatBackend(ollama_config)._timeout.read == 120
    assert ChatBackend(dataclasses.replace(ollama_config, stream_timeout_sec=0))._timeout.read is None


@pytest.mark.asyncio
async def test_ollama_request_has_no_auth_header(ollama_config):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=b'{"done":true}\n')

    backend = ChatBackend(ollama_config, transport=httpx.MockTransport(handler))
    assert await _read_all(backend) == b'{"done":true}\n'
    assert seen["url"] == "http://llm.test/api/chat"
    assert "authorization" not in seen["headers"]
    assert seen["body"]["stream"] is True


@pytest.mark.asyncio
async def test_openai_request_sends_bearer_token(openai_config):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, content=b"data: [DONE]\n\n")

    backend = ChatBackend(openai_config, transport=httpx.MockTransport(handler))
    await _read_all(backend)
    assert seen["url"] == "https://api.example.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_error_status_is_a_transport_error(ollama_config):
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="model crashed"))
    backend = ChatBackend(ollama_config, transport=transport)

    with pytest.raises(TransportError) as exc_info:
        await _read_all(backend)

    assert exc_info.value.http_status == 500
    assert exc_info.value.code == "API_ERROR"
    assert "model crashed" in exc_info.value.message


@pytest.mark.asyncio
async def test_rate_limit_status_is_reported_separately(openai_config):
    transport = httpx.MockTransport(lambda request: httpx.Response(429))
    with pytest.raises(RateLimitError):
        await _read_all(ChatBackend(openai_config, transport=transport))


@pytest.mark.asyncio
async def test_connection_failure_is_a_transport_error(ollama_config):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as exc_info:
        await _read_all(ChatBackend(ollama_config, transport=httpx.MockTransport(handler)))
    assert exc_info.value.code == "NETWORK_ERROR"


@pytest.mark.asyncio
async def test_stream_dropped_mid_read_is_a_transport_error(ollama_config):
    async def body():
        yield b'{"message":{"content":"par'
        raise httpx.ReadError("connection reset")

    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body()))
    with pytest.raises(TransportError) as exc_info:
        await _read_all(ChatBackend(ollama_config, transport=transport))
    assert exc_info.value.code == "NETWORK_ERROR"
