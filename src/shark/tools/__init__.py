"""Tool registry and aggregation.

Each tool module exports ``tool_registrations`` which yields one or more
``ToolRegistration`` instances. ``get_tool_registrations`` aggregates them for
the catalog builder.
"""

from __future__ import annotations

from shark.tools.base import Tool, ToolDescriptor, ToolExecutionError
from shark.tools.registry import ToolRegistration
from shark.tools.rust_toolchain import tool_registrations as rust_toolchain_registrations
from shark.tools.web_search import tool_registrations as web_search_registrations


def get_tool_registrations() -> list[ToolRegistration]:
    registrations: list[ToolRegistration] = []
    registrations.extend(web_search_registrations())
    registrations.extend(rust_toolchain_registrations())
    return registrations


__all__ = ["get_tool_registrations", "Tool", "ToolDescriptor", "ToolExecutionError", "ToolRegistration"]
