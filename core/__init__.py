"""relaybot core package.

Only the platform-independent pieces are re-exported here; the Telegram
adapter lives in `core.bot` and the entry point in `core.app`.
"""

from .context import ContextAssembler
from .errors import (
    ContextResolutionError,
    DecodeError,
    PipelineError,
    RateLimitError,
    RenderError,
    ReplyChainTooLongError,
    ReplyCycleError,
    SurfaceError,
    TransportError,
)
from .logging_setup import log
from .mention import MentionFilter
from .render import ResponseRenderer
from .stream import EventStreamFraming, NdjsonFraming, StreamDecoder, framing_for_backend
from .types import BotIdentity, ChatMessage, ConversationTurn, DeltaEvent, MessageRef

__all__ = [
    "BotIdentity",
    "ChatMessage",
    "ContextAssembler",
    "ContextResolutionError",
    "ConversationTurn",
    "DecodeError",
    "DeltaEvent",
    "EventStreamFraming",
    "framing_for_backend",
    "log",
    "MentionFilter",
    "MessageRef",
    "NdjsonFraming",
    "PipelineError",
    "RateLimitError",
    "RenderError",
    "ReplyChainTooLongError",
    "ReplyCycleError",
    "ResponseRenderer",
    "StreamDecoder",
    "SurfaceError",
    "TransportError",
]
