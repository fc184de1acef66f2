"""Abstract base class for tools the orchestrator can delegate to."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from shark.errors import ToolExecutionError


class ToolRequest(BaseModel):
    """Marker base class for tool inputs."""


Req = TypeVar("Req", bound=ToolRequest)


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Metadata advertised for a tool."""

    name: str
    description: str
    parameter_schema: Mapping[str, Any]


class Tool(Generic[Req], ABC):
    """Abstract tool with a typed request and a text result."""

    name: ClassVar[str]
    description: ClassVar[str]
    InputModel: ClassVar[type[ToolRequest]]

    def parameters(self) -> dict[str, Any]:
        params = self.InputModel.model_json_schema()
        params.setdefault("additionalProperties", False)
        return params

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(name=self.name, description=self.description, parameter_schema=self.parameters())

    def input_from_question(self, question: str) -> dict[str, Any]:
        """Build the run payload from a free-text question."""

        return {"question": question}

    async def run(self, payload: Mapping[str, Any]) -> str:
        """Validate ``payload`` and execute the tool.

        Every failure surfaces as ``ToolExecutionError``.
        """

        try:
            request = self.InputModel.model_validate(dict(payload))
        except ValidationError as exc:
            raise ToolExecutionError(f"invalid input for tool {self.name}: {exc}") from exc

        try:
            return await self.execute(request)  # type: ignore[arg-type]
        except ToolExecutionError:
            raise
        except Exception as exc:
            raise ToolExecutionError(f"tool {self.name} failed: {exc}") from exc

    @abstractmethod
    async def execute(self, request: Req) -> str:
        """Run the tool and return its text output."""


def to_json_text(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


__all__ = ["Req", "Tool", "ToolDescriptor", "ToolExecutionError", "ToolRequest", "to_json_text"]
