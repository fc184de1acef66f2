"""Shared tool registration structures.

Tool modules expose registrations via ``tool_registrations``; the catalog
builder consumes them to instantiate the configured tools.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from shark.tools.base import Tool


@dataclass(frozen=True)
class ToolRegistration:
    name: str
    factory: Callable[[], Tool]


__all__ = ["ToolRegistration"]
