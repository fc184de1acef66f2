"""Switch the default Rust toolchain through ``rustup``."""

from __future__ import annotations

import asyncio
import re
from typing import Any

from pydantic import Field

from shark.errors import ToolExecutionError
from shark.tools.base import Tool, ToolRequest, to_json_text
from shark.tools.limits import decode_process_output
from shark.tools.registry import ToolRegistration

_TOOLCHAIN_PATTERN = re.compile(
    r"\b(stable|beta|nightly(?:-\d{4}-\d{2}-\d{2})?|\d+\.\d+(?:\.\d+)?)\b",
    re.IGNORECASE,
)


def extract_toolchain(question: str) -> str | None:
    """Return the first toolchain name mentioned in ``question``."""

    match = _TOOLCHAIN_PATTERN.search(question)
    return match.group(1).lower() if match else None


class ToolchainInput(ToolRequest):
    toolchain: str = Field(
        min_length=1,
        pattern=r"^[A-Za-z0-9._-]+$",
        description="The toolchain you want to switch to.",
    )
    timeout_ms: int = Field(default=120_000, ge=1, description="Timeout in milliseconds.")


class RustToolchainSwitcher(Tool[ToolchainInput]):
    name = "rust_toolchain_switcher"
    description = "Switch rust toolchain between 'stable', 'nightly' and others"
    InputModel = ToolchainInput

    def __init__(self, executable: str = "rustup") -> None:
        self.executable = executable

    def input_from_question(self, question: str) -> dict[str, Any]:
        toolchain = extract_toolchain(question)
        if toolchain is None:
            raise ToolExecutionError("could not find a toolchain name in the question")
        return {"toolchain": toolchain}

    async def execute(self, request: ToolchainInput) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                "default",
                request.toolchain,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise ToolExecutionError(f"{self.executable} is not installed") from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=request.timeout_ms / 1000)
        except TimeoutError as exc:
            process.kill()
            await process.wait()
            raise ToolExecutionError(f"{self.executable} timed out after {request.timeout_ms}ms") from exc

        return to_json_text(
            {
                "result": decode_process_output(stdout),
                "error": decode_process_output(stderr),
            }
        )


def tool_registrations() -> list[ToolRegistration]:
    return [
        ToolRegistration(
            name=RustToolchainSwitcher.name,
            factory=RustToolchainSwitcher,
        )
    ]


__all__ = ["RustToolchainSwitcher", "ToolchainInput", "extract_toolchain", "tool_registrations"]
