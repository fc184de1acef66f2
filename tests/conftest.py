import logging
import pathlib
import shutil
import sys
from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx
import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"

# Ensure src/ is importable when running tests without installing the package.
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from shark.backend import GenerationClient, MockGenerationTransport  # noqa: E402
from shark.errors import ToolExecutionError  # noqa: E402
from shark.templates import TemplateRenderer  # noqa: E402
from shark.tools.base import Tool, ToolRequest  # noqa: E402
from shark.tools.catalog import ToolCatalog  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_shark_home(monkeypatch: pytest.MonkeyPatch):
    """Point SHARK_HOME at a repo-local sandbox so we never touch the real FS."""

    home = PROJECT_ROOT / ".work"
    if home.exists():
        shutil.rmtree(home, ignore_errors=True)
    home.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("SHARK_HOME", str(home))
    for name in ("SHARK_CONFIG", "OLLAMA_HOST", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """configure_base_logging replaces root handlers; put them back after each test."""

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("shark").setLevel(logging.NOTSET)


class EchoRequest(ToolRequest):
    question: str


class EchoTool(Tool[EchoRequest]):
    name = "echo"
    description = "Echo the question back"
    InputModel = EchoRequest

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def execute(self, request: EchoRequest) -> str:
        self.calls.append(request.question)
        return f"echo: {request.question}"


class StaticTool(Tool[EchoRequest]):
    """Tool that always returns the same output."""

    description = "Return a fixed value"
    InputModel = EchoRequest

    def __init__(self, name: str, output: str) -> None:
        self.name = name  # type: ignore[misc]
        self.output = output

    async def execute(self, request: EchoRequest) -> str:
        return self.output


class FailingTool(Tool[EchoRequest]):
    name = "broken"
    description = "Always fails"
    InputModel = EchoRequest

    async def execute(self, request: EchoRequest) -> str:
        raise ToolExecutionError("process exited with status 1")


@pytest.fixture
def echo_tool() -> EchoTool:
    return EchoTool()


@pytest.fixture
def static_tool():
    """Factory fixture for tools returning a fixed output."""

    return StaticTool


@pytest.fixture
def failing_tool() -> FailingTool:
    return FailingTool()


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def make_catalog():
    """Build a ToolCatalog from tool instances keyed by their names."""

    def _make(*tools: Tool) -> ToolCatalog:
        return ToolCatalog({tool.name: tool for tool in tools})

    return _make


@pytest.fixture
def mock_backend():
    """Factory returning (transport, client) serving scripted replies in order."""

    def _make(*replies: str, **kwargs: Any) -> tuple[MockGenerationTransport, GenerationClient]:
        transport = MockGenerationTransport(list(replies), **kwargs)
        return transport, GenerationClient(transport, default_model="test-model")

    return _make


class CapturingTransport:
    """Transport that records payloads and streams predefined lines."""

    def __init__(self, lines: list[str], body: Mapping[str, Any] | None = None) -> None:
        self.lines = lines
        self.body = body or {"response": "", "done": True}
        self.payloads: list[Mapping[str, Any]] = []

    async def stream_generate(self, payload: Mapping[str, Any]) -> AsyncIterator[str]:
        self.payloads.append(payload)
        for line in self.lines:
            yield line

    async def generate(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        self.payloads.append(payload)
        return self.body


@pytest.fixture
def capturing_transport():
    """Factory fixture for CapturingTransport."""

    return CapturingTransport


@pytest.fixture
def mock_http_client():
    """Factory fixture that provides an httpx.AsyncClient with MockTransport."""

    def _client(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _client
