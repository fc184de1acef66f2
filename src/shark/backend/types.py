"""Domain models for the text-generation backend client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from shark.errors import TransportError


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Single prompt submitted to the backend."""

    prompt: str
    model: str | None = None
    stream: bool = True
    format: str | None = None

    def __post_init__(self) -> None:
        if not self.prompt:
            raise ValueError("prompt cannot be empty")
        if isinstance(self.model, str) and not self.model.strip():
            raise ValueError("model cannot be empty string")
        if self.format is not None and self.format != "json":
            raise ValueError("format must be 'json' when provided")


@dataclass(frozen=True, slots=True)
class TextDelta:
    text: str

    def __post_init__(self) -> None:
        if not self.text:
            raise ValueError("text delta cannot be empty")


@dataclass(frozen=True, slots=True)
class MessageDone:
    done_reason: str | None = None


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    error: Exception


GenerationEvent: TypeAlias = TextDelta | MessageDone | ErrorEvent


class ApiError(TransportError):
    """Base class for backend API errors."""


class ApiAuthError(ApiError):
    """Authentication/authorization error."""


class ApiRateLimitError(ApiError):
    """Rate limit exceeded."""


class ApiTimeoutError(ApiError):
    """Network timeout."""


class ApiServerError(ApiError):
    """5xx server error, or an error reported inside the stream."""


class ApiClientError(ApiError):
    """4xx client-side error not covered by other errors."""


class StreamingParseError(ApiError):
    """Raised when a streaming chunk cannot be parsed."""


__all__ = [
    "ApiAuthError",
    "ApiClientError",
    "ApiError",
    "ApiRateLimitError",
    "ApiServerError",
    "ApiTimeoutError",
    "ErrorEvent",
    "GenerationEvent",
    "GenerationRequest",
    "MessageDone",
    "StreamingParseError",
    "TextDelta",
]
