"""Text-generation client: single-shot completions and streaming events."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx

from shark.backend.parsing import parse_completion, parse_stream
from shark.backend.transport import GenerationTransport
from shark.backend.types import (
    ApiAuthError,
    ApiClientError,
    ApiError,
    ApiRateLimitError,
    ApiServerError,
    ApiTimeoutError,
    ErrorEvent,
    GenerationEvent,
    GenerationRequest,
)


class GenerationClient:
    """Async client that submits prompts and yields streaming events."""

    def __init__(self, transport: GenerationTransport, *, default_model: str | None = None) -> None:
        self._transport = transport
        self._default_model = default_model

    async def complete(self, prompt: str, *, model: str | None = None, format: str | None = None) -> str:
        """Send a non-streaming request and return the completed text.

        Raises an ``ApiError`` subclass when the backend cannot serve the request.
        """

        request = GenerationRequest(prompt=prompt, model=model, stream=False, format=format)
        payload = self._build_payload(request)
        try:
            body = await self._transport.generate(payload)
            return parse_completion(body)
        except Exception as exc:
            raise _to_api_error(exc) from exc

    def stream_complete(self, prompt: str, *, model: str | None = None) -> AsyncIterator[GenerationEvent]:
        """Stream the completion of ``prompt`` as events."""

        return self.submit(GenerationRequest(prompt=prompt, model=model))

    async def submit(self, request: GenerationRequest) -> AsyncIterator[GenerationEvent]:
        """Submit a streaming request and yield parsed events.

        Failures never escape as exceptions; they arrive as a final ``ErrorEvent``.
        """

        try:
            payload = self._build_payload(request)
            async for event in parse_stream(self._transport.stream_generate(payload)):
                yield event
        except Exception as exc:
            yield ErrorEvent(error=_to_api_error(exc))

    def _build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        model = request.model or self._default_model
        if not model:
            raise ApiClientError("model is required")

        payload: dict[str, Any] = {
            "model": model,
            "prompt": request.prompt,
            "stream": request.stream,
        }
        if request.format is not None:
            payload["format"] = request.format
        return payload


def _to_api_error(exc: Exception) -> ApiError:
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        err: ApiError = ApiTimeoutError("request timed out")
    elif isinstance(exc, httpx.HTTPStatusError):
        err = _map_status_error(exc)
    elif isinstance(exc, httpx.RequestError):
        err = ApiClientError("request failed")
    else:
        err = ApiError("unexpected error")
    err.__cause__ = exc
    return err


def _map_status_error(exc: httpx.HTTPStatusError) -> ApiError:
    status = exc.response.status_code
    try:
        body = exc.response.text
    except httpx.ResponseNotRead:
        body = ""
    suffix = f" body={body}" if body else ""
    retry_after = exc.response.headers.get("retry-after")
    retry_suffix = f" (retry after {retry_after}s)" if retry_after else ""
    if status in (401, 403):
        return ApiAuthError(f"auth failed with status {status}{suffix}")
    if status == 429:
        return ApiRateLimitError(f"rate limited{retry_suffix}{suffix}")
    if status >= 500:
        return ApiServerError(f"server error {status}{suffix}")
    return ApiClientError(f"request failed with status {status}{suffix}")


__all__ = ["GenerationClient", "_map_status_error"]
