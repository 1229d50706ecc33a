"""Error taxonomy for one pipeline invocation.

Every error raised inside the pipeline derives from PipelineError so the
orchestrator can log it with a machine-readable code and end the
invocation without touching other concurrent ones.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for per-invocation failures.

    Attributes:
        code: machine-readable error code (e.g. "MESSAGE_NOT_FOUND").
        message: human-readable description.
        extra: additional context (http_status, depth, ...).
    """

    def __init__(self, code: str, message: str, **extra):
        self.code = code
        self.message = message
        self.extra = extra
        super().__init__(message)


class SurfaceError(PipelineError):
    """Raised by chat-surface adapters on send/edit/fetch failure."""


class ContextResolutionError(PipelineError):
    """A message in the reply chain could not be resolved."""


class ReplyChainTooLongError(ContextResolutionError):
    pass


class ReplyCycleError(ContextResolutionError):
    pass


class TransportError(PipelineError):
    """Connection failure, non-success status or stream I/O failure."""

    def __init__(self, code: str, message: str, http_status: int | None = None, **extra):
        self.http_status = http_status
        super().__init__(code, message, http_status=http_status, **extra)


class RateLimitError(TransportError):
    pass


class DecodeError(PipelineError):
    """Undecodable residual bytes at end of stream."""


class RenderError(PipelineError):
    """A send or edit on the chat surface failed mid-render."""
