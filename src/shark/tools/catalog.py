"""Immutable catalog of the tools enabled for this process.

The catalog is built once at startup from the configured tool names and then
shared read-only by every request.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from shark.tools import get_tool_registrations
from shark.tools.base import Tool, ToolDescriptor
from shark.tools.registry import ToolRegistration


def normalize_tool_name(name: str) -> str:
    return name.strip().lower()


class ToolCatalog(Mapping[str, Tool]):
    """Read-only mapping from normalized tool name to tool instance."""

    def __init__(self, tools: Mapping[str, Tool] | None = None) -> None:
        self._tools: Mapping[str, Tool] = MappingProxyType(
            {normalize_tool_name(name): tool for name, tool in (tools or {}).items()}
        )

    def __getitem__(self, name: str) -> Tool:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        return f"ToolCatalog({sorted(self._tools)!r})"

    def lookup(self, name: str) -> Tool | None:
        """Return the tool registered under ``name`` after normalization."""

        return self._tools.get(normalize_tool_name(name))

    def descriptions(self) -> dict[str, str]:
        return {name: tool.description for name, tool in self._tools.items()}

    def descriptors(self) -> list[ToolDescriptor]:
        return [tool.descriptor() for tool in self._tools.values()]


def build_catalog(
    names: Iterable[str],
    *,
    registrations: Iterable[ToolRegistration] | None = None,
    logger: logging.Logger | None = None,
) -> ToolCatalog:
    """Instantiate the requested tools; unknown names are logged and skipped."""

    log = logger or logging.getLogger("shark.tools")
    known = {
        normalize_tool_name(reg.name): reg
        for reg in (registrations if registrations is not None else get_tool_registrations())
    }

    tools: dict[str, Tool] = {}
    for raw_name in names:
        name = normalize_tool_name(raw_name)
        if name in tools:
            continue
        registration = known.get(name)
        if registration is None:
            log.warning("unknown tool: %s", name or raw_name)
            continue
        tools[name] = registration.factory()
        log.debug("tool enabled: %s", name)

    return ToolCatalog(tools)


__all__ = ["ToolCatalog", "build_catalog", "normalize_tool_name"]
