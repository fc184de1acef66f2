import json
from types import SimpleNamespace
from typing import Any

import httpx
import openai
import pytest

from shark.backend.transport import (
    MockGenerationTransport,
    OllamaTransport,
    OpenAIChatTransport,
    _map_chat_chunk,
)


@pytest.mark.asyncio
async def test_ollama_transport_streams_lines_and_sets_headers(mock_http_client) -> None:
    recorded: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        recorded["url"] = str(request.url)
        recorded["headers"] = request.headers
        recorded["payload"] = json.loads(request.content.decode())
        body = '{"response":"hi","done":false}\n\n{"response":"","done":true}\n'
        return httpx.Response(200, text=body, request=request)

    client = mock_http_client(handler)
    events: list[tuple[str, dict[str, object]]] = []
    transport = OllamaTransport(
        "http://ollama:11434/", client=client, logger=lambda name, data: events.append((name, data))
    )

    chunks = [chunk async for chunk in transport.stream_generate({"model": "m", "prompt": "p"})]
    await transport.aclose()
    await client.aclose()

    assert recorded["url"] == "http://ollama:11434/api/generate"
    assert recorded["payload"] == {"model": "m", "prompt": "p", "stream": True}
    assert recorded["headers"]["user-agent"] == "shark/0.1.0"
    assert chunks == ['{"response":"hi","done":false}', '{"response":"","done":true}']
    assert events and events[0][0] == "response_complete"


@pytest.mark.asyncio
async def test_ollama_transport_generate_returns_json(mock_http_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode())
        assert payload["stream"] is False
        return httpx.Response(200, json={"response": "done", "done": True}, request=request)

    client = mock_http_client(handler)
    transport = OllamaTransport("http://ollama:11434", client=client)

    body = await transport.generate({"model": "m", "prompt": "p", "stream": True})
    await client.aclose()

    assert body == {"response": "done", "done": True}


@pytest.mark.asyncio
async def test_ollama_transport_raises_on_http_errors(mock_http_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom", request=request)

    client = mock_http_client(handler)
    transport = OllamaTransport(client=client)

    with pytest.raises(httpx.HTTPStatusError):
        async for _ in transport.stream_generate({"model": "m", "prompt": "p"}):
            pass
    await client.aclose()


def test_ollama_transport_rejects_empty_addr() -> None:
    with pytest.raises(ValueError):
        OllamaTransport("  ")


@pytest.mark.asyncio
async def test_mock_transport_splits_reply_into_fragments() -> None:
    transport = MockGenerationTransport(["abcdefg"], chunk_size=3)

    lines = [json.loads(line) async for line in transport.stream_generate({"prompt": "x"})]

    assert [line["response"] for line in lines] == ["abc", "def", "g", ""]
    assert lines[-1]["done"] is True
    assert transport.payloads == [{"prompt": "x"}]


@pytest.mark.asyncio
async def test_mock_transport_generate_and_errors() -> None:
    transport = MockGenerationTransport(["one"])
    assert (await transport.generate({}))["response"] == "one"

    failing = MockGenerationTransport([], status_code=503)
    with pytest.raises(httpx.HTTPStatusError):
        await failing.generate({})


@pytest.mark.asyncio
async def test_mock_transport_interrupts_stream() -> None:
    transport = MockGenerationTransport(["abcdefgh"], chunk_size=2, fail_after=2)
    received = []
    with pytest.raises(httpx.ReadError):
        async for line in transport.stream_generate({}):
            received.append(json.loads(line)["response"])
    assert received == ["ab", "cd"]


class _FakeStream:
    def __init__(self, chunks):
        self._chunks = list(chunks)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _FakeCompletions:
    def __init__(self, stream_chunks=None, completion=None, error=None):
        self.stream_chunks = stream_chunks or []
        self.completion = completion
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if kwargs.get("stream"):
            return _FakeStream(self.stream_chunks)
        return self.completion


def _fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


@pytest.mark.asyncio
async def test_openai_transport_maps_stream_chunks() -> None:
    completions = _FakeCompletions(stream_chunks=[_chunk("Hel"), _chunk(None), _chunk("lo")])
    transport = OpenAIChatTransport("key", client=_fake_client(completions))

    lines = [json.loads(line) async for line in transport.stream_generate({"model": "m", "prompt": "p"})]

    assert [line["response"] for line in lines] == ["Hel", "lo", ""]
    assert lines[-1]["done"] is True
    assert completions.calls[0]["messages"] == [{"role": "user", "content": "p"}]
    assert completions.calls[0]["stream"] is True


@pytest.mark.asyncio
async def test_openai_transport_generate_requests_json_format() -> None:
    completion = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content='{"function": null}'), finish_reason="stop")]
    )
    completions = _FakeCompletions(completion=completion)
    transport = OpenAIChatTransport("key", client=_fake_client(completions))

    body = await transport.generate({"model": "m", "prompt": "p", "format": "json"})

    assert body["response"] == '{"function": null}'
    assert completions.calls[0]["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_openai_transport_converts_status_errors() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(401, text="bad key", request=request)
    error = openai.AuthenticationError("unauthorized", response=response, body=None)
    transport = OpenAIChatTransport("key", client=_fake_client(_FakeCompletions(error=error)))

    with pytest.raises(httpx.HTTPStatusError) as excinfo:
        await transport.generate({"model": "m", "prompt": "p"})

    assert excinfo.value.response.status_code == 401


def test_map_chat_chunk_ignores_empty_choices() -> None:
    assert _map_chat_chunk(SimpleNamespace(choices=[])) is None
    assert _map_chat_chunk(_chunk("x")) == {"response": "x", "done": False}


def test_openai_transport_requires_key() -> None:
    with pytest.raises(ValueError):
        OpenAIChatTransport(" ")
