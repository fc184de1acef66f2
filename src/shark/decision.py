"""Decision contract: which tool, if any, should handle a question.

The backend must answer the decision prompt with exactly one JSON object
``{"function": <string> | null}``. Anything else is a contract violation. A
null or absent function, the string ``"null"`` in any casing or quoting, and a
name missing from the catalog all mean no tool.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, ValidationError

from shark.errors import DecisionContractError
from shark.tools.catalog import normalize_tool_name


@dataclass(frozen=True, slots=True)
class NoTool:
    """Answer the question directly."""


@dataclass(frozen=True, slots=True)
class UseTool:
    """Run the named tool before answering."""

    name: str

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("tool name cannot be empty")


Decision: TypeAlias = NoTool | UseTool

_QUOTES = "\"'`"


class DecisionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    function: str | None = None


def normalize_function_name(value: str) -> str:
    """Trim, lower-case and strip surrounding quote characters."""

    return normalize_tool_name(value).strip(_QUOTES).strip()


def parse_decision(raw: str, catalog: Mapping[str, Any]) -> Decision:
    """Parse backend output into a ``Decision``.

    Raises ``DecisionContractError`` when ``raw`` is not a JSON object of the
    expected shape.
    """

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecisionContractError(f"decision is not valid JSON: {raw!r}") from exc
    if not isinstance(document, dict):
        raise DecisionContractError(f"decision must be a JSON object, got {type(document).__name__}")

    try:
        payload = DecisionPayload.model_validate(document)
    except ValidationError as exc:
        raise DecisionContractError(f"decision does not match the contract: {exc}") from exc

    if payload.function is None:
        return NoTool()
    name = normalize_function_name(payload.function)
    if not name or name == "null":
        return NoTool()
    if name not in catalog:
        return NoTool()
    return UseTool(name=name)


__all__ = ["Decision", "DecisionPayload", "NoTool", "UseTool", "normalize_function_name", "parse_decision"]
