"""Text-generation backend client package."""

from __future__ import annotations

from .client import GenerationClient  # noqa: F401
from .parsing import parse_completion, parse_stream  # noqa: F401
from .transport import (  # noqa: F401
    GenerationTransport,
    MockGenerationTransport,
    OllamaTransport,
    OpenAIChatTransport,
)
from .types import (  # noqa: F401
    ApiAuthError,
    ApiClientError,
    ApiError,
    ApiRateLimitError,
    ApiServerError,
    ApiTimeoutError,
    ErrorEvent,
    GenerationEvent,
    GenerationRequest,
    MessageDone,
    StreamingParseError,
    TextDelta,
)
