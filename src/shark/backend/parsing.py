"""Parsers that convert raw NDJSON lines from the backend into events."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

from shark.backend.types import (
    ApiServerError,
    GenerationEvent,
    MessageDone,
    StreamingParseError,
    TextDelta,
)


def _iter_lines(chunk: str) -> Iterable[str]:
    """Split a chunk into individual non-empty lines."""

    for line in chunk.splitlines():
        if line.strip():
            yield line


def handle_json(payload: Any) -> list[GenerationEvent]:
    """Convert one decoded NDJSON object into zero or more events.

    The shape is the one ``/api/generate`` streams:
    ``{"response": "...", "done": false}`` followed by a final object with
    ``"done": true``. An ``"error"`` key reports a failure inside the stream.
    """

    if not isinstance(payload, dict):
        raise StreamingParseError(f"expected JSON object, got {type(payload).__name__}")

    error = payload.get("error")
    if error:
        raise ApiServerError(f"backend error: {error}")

    events: list[GenerationEvent] = []
    text = payload.get("response", "")
    if not isinstance(text, str):
        raise StreamingParseError("response must be a string")
    if text:
        events.append(TextDelta(text=text))

    done = payload.get("done", False)
    if not isinstance(done, bool):
        raise StreamingParseError("done must be a boolean")
    if done:
        reason = payload.get("done_reason")
        if reason is not None and not isinstance(reason, str):
            raise StreamingParseError("done_reason must be a string when provided")
        events.append(MessageDone(done_reason=reason))
    return events


async def parse_stream(chunks: AsyncIterator[str | bytes]) -> AsyncIterator[GenerationEvent]:
    """Parse NDJSON chunks into events, one line at a time."""

    async for raw in chunks:
        text = raw.decode("utf-8") if isinstance(raw, (bytes | bytearray)) else raw
        for line in _iter_lines(text):
            content = line.strip()
            try:
                payload = json.loads(content)
            except json.JSONDecodeError as exc:
                raise StreamingParseError(f"invalid JSON chunk: {content}") from exc

            for event in handle_json(payload):
                yield event


def parse_completion(body: Mapping[str, Any]) -> str:
    """Extract the text of a non-streaming completion."""

    events = handle_json(dict(body))
    return "".join(event.text for event in events if isinstance(event, TextDelta))


__all__ = ["handle_json", "parse_completion", "parse_stream"]
