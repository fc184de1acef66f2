"""Transport abstraction for the text-generation backend.

Every transport speaks the NDJSON shape of Ollama's ``/api/generate``:
``stream_generate`` yields raw lines of ``{"response": ..., "done": ...}``
objects and ``generate`` returns one such object with ``"done": true``.
"""

from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from typing import Any, Protocol

import httpx
import openai
from openai import AsyncOpenAI


class GenerationTransport(Protocol):
    """Protocol for single-shot and streaming generation payloads."""

    def stream_generate(self, payload: Mapping[str, Any]) -> AsyncIterator[str | bytes]:
        """Stream raw NDJSON lines returned by the backend."""

    async def generate(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        """Return the decoded body of a non-streaming request."""


DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=5.0)
DEFAULT_OLLAMA_ADDR = "http://localhost:11434"


class OllamaTransport:
    """httpx-based transport for an Ollama server."""

    def __init__(
        self,
        addr: str = DEFAULT_OLLAMA_ADDR,
        *,
        timeout: httpx.Timeout | float | None = None,
        client: httpx.AsyncClient | None = None,
        user_agent: str | None = "shark/0.1.0",
        logger: Callable[[str, dict[str, object]], None] | None = None,
    ) -> None:
        if not addr.strip():
            raise ValueError("addr cannot be empty")

        self.addr = addr.strip().rstrip("/")
        self.timeout = timeout or DEFAULT_TIMEOUT
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.timeout)
        self._user_agent = user_agent
        self._logger = logger

    @property
    def url(self) -> str:
        return f"{self.addr}/api/generate"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._user_agent:
            headers["User-Agent"] = self._user_agent
        return headers

    async def stream_generate(self, payload: Mapping[str, Any]) -> AsyncIterator[str | bytes]:
        body = {**payload, "stream": True}
        start = time.perf_counter()
        async with self._client.stream(
            "POST", self.url, json=body, headers=self._headers(), timeout=self.timeout
        ) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                if not line:
                    continue
                yield line
        self._report(response, start)

    async def generate(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        body = {**payload, "stream": False}
        start = time.perf_counter()
        response = await self._client.post(self.url, json=body, headers=self._headers(), timeout=self.timeout)
        response.raise_for_status()
        self._report(response, start)
        return response.json()

    def _report(self, response: httpx.Response, start: float) -> None:
        if not self._logger:
            return
        self._logger(
            "response_complete",
            {
                "status": response.status_code,
                "duration_sec": time.perf_counter() - start,
                "addr": self.addr,
            },
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> OllamaTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class MockGenerationTransport:
    """In-memory transport that serves scripted replies for tests/offline mode.

    Each request, streaming or not, consumes the next reply. Streaming splits
    the reply into ``chunk_size`` character fragments.
    """

    def __init__(
        self,
        replies: Sequence[str],
        *,
        chunk_size: int = 4,
        status_code: int = 200,
        fail_after: int | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._replies = list(replies)
        self.chunk_size = chunk_size
        self.status_code = status_code
        self.fail_after = fail_after
        self.payloads: list[dict[str, Any]] = []

    def _next_reply(self, payload: Mapping[str, Any]) -> str:
        self.payloads.append(dict(payload))
        if self.status_code >= 400:
            request = httpx.Request("POST", "mock://api/generate")
            response = httpx.Response(self.status_code, request=request)
            raise httpx.HTTPStatusError("mock transport error", request=request, response=response)
        if not self._replies:
            raise RuntimeError("no more replies")
        return self._replies.pop(0)

    async def stream_generate(self, payload: Mapping[str, Any]) -> AsyncIterator[str | bytes]:
        reply = self._next_reply(payload)
        fragments = [reply[i : i + self.chunk_size] for i in range(0, len(reply), self.chunk_size)]
        for index, fragment in enumerate(fragments):
            if self.fail_after is not None and index >= self.fail_after:
                raise httpx.ReadError("mock stream interrupted")
            yield json.dumps({"response": fragment, "done": False})
        yield json.dumps({"response": "", "done": True, "done_reason": "stop"})

    async def generate(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        reply = self._next_reply(payload)
        return {"response": reply, "done": True, "done_reason": "stop"}


class OpenAIChatTransport:
    """Transport for OpenAI-compatible chat completion endpoints via the openai SDK.

    Ollama serves this API under ``{addr}/v1`` as well, so it doubles as a way to
    talk to any OpenAI-compatible server.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        if not api_key.strip():
            raise ValueError("api_key cannot be empty")

        self._client = client or AsyncOpenAI(api_key=api_key.strip(), base_url=base_url, timeout=timeout)

    async def stream_generate(self, payload: Mapping[str, Any]) -> AsyncIterator[str | bytes]:
        try:
            stream = await self._client.chat.completions.create(stream=True, **_chat_arguments(payload))
            async for chunk in stream:
                line = _map_chat_chunk(chunk)
                if line is not None:
                    yield json.dumps(line)
        except openai.APIError as exc:
            raise _to_httpx_error(exc) from exc
        yield json.dumps({"response": "", "done": True})

    async def generate(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        try:
            completion = await self._client.chat.completions.create(stream=False, **_chat_arguments(payload))
        except openai.APIError as exc:
            raise _to_httpx_error(exc) from exc
        choice = completion.choices[0] if completion.choices else None
        content = getattr(getattr(choice, "message", None), "content", None) or ""
        return {"response": content, "done": True, "done_reason": getattr(choice, "finish_reason", None)}

    async def aclose(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            await close()


def _chat_arguments(payload: Mapping[str, Any]) -> dict[str, Any]:
    arguments: dict[str, Any] = {
        "model": payload["model"],
        "messages": [{"role": "user", "content": payload["prompt"]}],
    }
    if payload.get("format") == "json":
        arguments["response_format"] = {"type": "json_object"}
    return arguments


def _map_chat_chunk(chunk: Any) -> dict[str, Any] | None:
    """Convert an SDK chat completion chunk into the NDJSON shape parse_stream expects."""

    choices = getattr(chunk, "choices", None) or []
    if not choices:
        return None
    delta = getattr(choices[0], "delta", None)
    content = getattr(delta, "content", None)
    if isinstance(content, str) and content:
        return {"response": content, "done": False}
    return None


def _to_httpx_error(exc: openai.APIError) -> httpx.HTTPError:
    request = getattr(exc, "request", None) or httpx.Request("POST", "openai://chat/completions")
    if isinstance(exc, openai.APIStatusError):
        body = exc.response.text if exc.response is not None else ""
        return httpx.HTTPStatusError(f"{exc} body={body}", request=request, response=exc.response)
    if isinstance(exc, openai.APITimeoutError):
        return httpx.ReadTimeout(str(exc), request=request)
    return httpx.RequestError(str(exc), request=request)


__all__ = [
    "DEFAULT_OLLAMA_ADDR",
    "GenerationTransport",
    "MockGenerationTransport",
    "OllamaTransport",
    "OpenAIChatTransport",
]
