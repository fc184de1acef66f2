"""DuckDuckGo web search tool."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from ddgs import DDGS
from pydantic import Field

from shark.errors import ToolExecutionError
from shark.tools.base import Tool, ToolRequest, to_json_text
from shark.tools.registry import ToolRegistration

MAX_RESULTS_CAP = 10


class SearchInput(ToolRequest):
    query: str = Field(min_length=1, description="Search query.")
    max_results: int = Field(default=5, ge=1, le=MAX_RESULTS_CAP, description="Number of results to return.")


class WebSearchTool(Tool[SearchInput]):
    name = "ddg_searcher"
    description = "Search the web with DuckDuckGo and return the top results (title, url, snippet)."
    InputModel = SearchInput

    def __init__(self, ddgs_factory: Callable[[], Any] = DDGS) -> None:
        self._ddgs_factory = ddgs_factory

    def input_from_question(self, question: str) -> dict[str, Any]:
        return {"query": question.strip()}

    async def execute(self, request: SearchInput) -> str:
        rows = await asyncio.to_thread(self._blocking_search, request.query, request.max_results)
        return to_json_text(rows)

    def _blocking_search(self, query: str, max_results: int) -> list[dict[str, str]]:
        rows: list[dict[str, str]] = []
        try:
            with self._ddgs_factory() as ddgs:
                for hit in ddgs.text(query, max_results=max_results):
                    url = (hit.get("href") or hit.get("url") or "").strip()
                    if not url:
                        continue
                    rows.append(
                        {
                            "title": hit.get("title", ""),
                            "url": url,
                            "snippet": hit.get("body", "") or hit.get("description", ""),
                        }
                    )
                    if len(rows) >= max_results:
                        break
        except Exception as exc:
            raise ToolExecutionError(f"web search failed: {exc}") from exc
        return rows


def tool_registrations() -> list[ToolRegistration]:
    return [
        ToolRegistration(
            name=WebSearchTool.name,
            factory=WebSearchTool,
        )
    ]


__all__ = ["SearchInput", "WebSearchTool", "tool_registrations"]
