"""
relaybot — Streaming LLM backend transport
Single class routing to an Ollama-style or OpenAI-compatible chat endpoint.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from config import Config
from core.constants import BACKEND_CHAT_PATHS, CONNECT_TIMEOUT_SEC
from core.errors import RateLimitError, TransportError
from core.stream import LineFraming, framing_for_backend
from core.types import ConversationTurn

log = logging.getLogger("relaybot.providers")


class ChatBackend:
    """
    Streaming chat-completion transport. Routes by backend name.

    Supported backends:
      - ollama  → POST {url}/api/chat, newline-delimited JSON stream
      - openai  → POST {url}/chat/completions, `data: ` event stream, bearer auth

    A fresh httpx client is opened for every request; nothing is shared
    between concurrent invocations except this read-only object.
    """

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.backend_name = config.llm_backend
        self.model = config.llm_model
        if self.backend_name not in BACKEND_CHAT_PATHS:
            raise ValueError(
                f"Unknown backend: {self.backend_name!r}. "
                f"Supported: {', '.join(sorted(BACKEND_CHAT_PATHS))}"
            )
        if self.backend_name == "openai" and not config.llm_api_key:
            raise ValueError("LLM_API_KEY is required when LLM_BACKEND=openai")

        self.url = f"{config.llm_api_url.rstrip('/')}{BACKEND_CHAT_PATHS[self.backend_name]}"
        self._transport = transport
        read_timeout = float(config.stream_timeout_sec) if config.stream_timeout_sec > 0 else None
        self._timeout = httpx.Timeout(CONNECT_TIMEOUT_SEC, read=read_timeout)
        log.info(f"Initialized {self.backend_name} backend (model: {self.model}, url: {self.url})")

    def framing(self) -> LineFraming:
        return framing_for_backend(self.backend_name)

    def build_payload(self, turns: list[ConversationTurn]) -> dict:
        return {
            "model": self.model,
            "messages": [turn.to_payload() for turn in turns],
            "stream": True,
        }

    def build_headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.backend_name == "openai":
            headers["Authorization"] = f"Bearer {self.config.llm_api_key}"
        return headers

    @asynccontextmanager
    async def stream(self, turns: list[ConversationTurn]) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open the streaming request and yield the raw response byte chunks.

        Raises TransportError for connection failures, error statuses and
        read failures while the caller consumes the chunks.
        """
        payload = self.build_payload(turns)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                async with client.stream(
                    "POST", self.url, json=payload, headers=self.build_headers()
                ) as response:
                    if response.status_code == 429:
                        raise RateLimitError(
                            code="RATE_LIMIT",
                            message=f"{self.backend_name} rate limit",
                            http_status=429,
                        )
                    if response.status_code >= 400:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        raise TransportError(
                            code="API_ERROR",
                            message=body[:500] or response.reason_phrase,
                            http_status=response.status_code,
                        )
                    yield response.aiter_bytes()
        except httpx.HTTPError as e:
            raise TransportError(
                code="NETWORK_ERROR",
                message=f"{type(e).__name__}: {e}",
            ) from e
