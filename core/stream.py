"""Streaming response decoding.

Backends frame their streamed output differently:

- ``ndjson``: one JSON object per line, ``{"message": {"content": ...}, "done": bool}``.
- ``event-stream``: ``data: {...}`` lines carrying OpenAI-style
  ``choices[0].delta.content`` / ``choices[0].finish_reason``; other lines
  (blank lines, comments, the ``[DONE]`` marker) are ignored.

A framing only knows how to turn one complete line into zero or one
DeltaEvent. StreamDecoder owns the byte buffering, so framings never see
a partial line regardless of how the transport chunks the stream.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterable, AsyncIterator, Optional, Protocol

from .constants import EVENT_STREAM_DONE, EVENT_STREAM_PREFIX
from .errors import DecodeError, TransportError
from .logging_setup import log
from .types import DeltaEvent


class LineFraming(Protocol):
    name: str

    def decode_line(self, line: bytes) -> Optional[DeltaEvent]:
        """Decode one complete line; raise ValueError if it is not decodable."""
        ...


def _field(container: dict, key: str, kind: type, default):
    value = container.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ValueError(f"{key!r} should be {kind.__name__}, got {type(value).__name__}")
    return value


def _raise_backend_error(payload: Any) -> None:
    if isinstance(payload, dict) and payload.get("error"):
        err = payload["error"]
        detail = err.get("message") if isinstance(err, dict) else err
        raise TransportError(code="BACKEND_ERROR", message=str(detail))


class NdjsonFraming:
    name = "ndjson"

    def decode_line(self, line: bytes) -> Optional[DeltaEvent]:
        if not line.strip():
            return None
        payload = json.loads(line)
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        _raise_backend_error(payload)
        message = _field(payload, "message", dict, {})
        text = _field(message, "content", str, "")
        return DeltaEvent(text=text, terminal=bool(payload.get("done", False)))


class EventStreamFraming:
    name = "event-stream"

    def decode_line(self, line: bytes) -> Optional[DeltaEvent]:
        text = line.decode("utf-8").rstrip("\r")
        if not text.startswith(EVENT_STREAM_PREFIX):
            return None
        data = text[len(EVENT_STREAM_PREFIX):]
        if data.startswith(" "):
            data = data[1:]
        if not data.strip() or data.strip() == EVENT_STREAM_DONE:
            return None

        payload = json.loads(data)
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        _raise_backend_error(payload)
        choices = _field(payload, "choices", list, [])
        if not choices:
            return None
        choice = choices[0]
        if not isinstance(choice, dict):
            raise ValueError(f"choice should be dict, got {type(choice).__name__}")
        delta = _field(choice, "delta", dict, {})
        return DeltaEvent(
            text=_field(delta, "content", str, ""),
            terminal=choice.get("finish_reason") is not None,
        )


FRAMINGS: dict[str, type] = {
    "ollama": NdjsonFraming,
    "openai": EventStreamFraming,
}


def framing_for_backend(backend: str) -> LineFraming:
    try:
        return FRAMINGS[backend]()
    except KeyError:
        raise ValueError(f"No stream framing for backend {backend!r}") from None


class StreamDecoder:
    """Turns a chunked byte stream into a lazy sequence of DeltaEvents.

    Bytes are buffered until a newline completes a line; only then is the
    line handed to the framing. A complete line that fails to decode is
    logged and dropped. Leftover bytes that still fail to decode once the
    transport is exhausted raise DecodeError.

    The terminal event is always the last one produced: decoding stops as
    soon as it is seen, and a stream that ends without one gets a
    synthetic empty terminal event.
    """

    def __init__(self, framing: LineFraming, session_id: str = "-"):
        self.framing = framing
        self.session_id = session_id

    async def events(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[DeltaEvent]:
        buffer = bytearray()

        async for chunk in chunks:
            if not chunk:
                continue
            buffer.extend(chunk)
            while True:
                newline = buffer.find(b"\n")
                if newline < 0:
                    break
                line = bytes(buffer[:newline])
                del buffer[: newline + 1]
                event = self._decode_complete_line(line)
                if event is None:
                    continue
                yield event
                if event.terminal:
                    return

        if buffer.strip():
            residual = bytes(buffer)
            buffer.clear()
            try:
                event = self.framing.decode_line(residual)
            except ValueError as e:
                raise DecodeError(
                    code="UNDECODABLE_RESIDUAL",
                    message=f"{self.framing.name} stream ended with undecodable data: {e}",
                    residual=residual[:200],
                ) from e
            if event is not None:
                yield event
                if event.terminal:
                    return

        log.warning(f"[{self.session_id}] Backend stream ended without a completion marker")
        yield DeltaEvent(text="", terminal=True)

    def _decode_complete_line(self, line: bytes) -> Optional[DeltaEvent]:
        try:
            return self.framing.decode_line(line)
        except ValueError as e:
            log.warning(
                f"[{self.session_id}] Dropping malformed {self.framing.name} line "
                f"({e}): {line[:120]!r}"
            )
            return None
