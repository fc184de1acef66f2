"""Prompt templates rendered with Jinja2.

Three templates are required: ``decision`` asks the backend which tool to use,
``generation`` answers a question directly and ``summary`` turns a tool's
output into an answer. Any of them can be replaced from configuration.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import jinja2

from shark.errors import TemplateError

DECISION_TEMPLATE = """
You are a router deciding whether a tool is needed to answer the user's question.
Available tools, as a JSON object mapping tool name to description:
{{ tool_descriptions }}

Question: {{ question }}

Reply with exactly one JSON object and nothing else:
{"function": "<tool name>"} if one of the tools is required, or {"function": null} otherwise.
"""

GENERATION_TEMPLATE = """
You are a helpful assistant called shark🦈, answer the question given by user: {{ question }}
"""

SUMMARY_TEMPLATE = """
You are a helpful assistant called shark🦈, given user's question: {{ question }} and the answer of the question: {{ answer }}, try to give a short summary.
Just response your summary content.
"""

DEFAULT_TEMPLATES: Mapping[str, str] = {
    "decision": DECISION_TEMPLATE,
    "generation": GENERATION_TEMPLATE,
    "summary": SUMMARY_TEMPLATE,
}


class TemplateRenderer:
    """Render named templates; undefined variables are errors."""

    def __init__(self, templates: Mapping[str, str] | None = None) -> None:
        sources = dict(DEFAULT_TEMPLATES)
        sources.update(templates or {})
        self._env = jinja2.Environment(
            loader=jinja2.DictLoader(sources),
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._templates: dict[str, jinja2.Template] = {}
        for name in sources:
            try:
                self._templates[name] = self._env.get_template(name)
            except jinja2.TemplateSyntaxError as exc:
                raise TemplateError(f"template {name!r} is malformed: {exc}") from exc

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._templates)

    def render(self, template_name: str, variables: Mapping[str, Any]) -> str:
        template = self._templates.get(template_name)
        if template is None:
            raise TemplateError(f"unknown template {template_name!r}")
        try:
            return template.render(**variables)
        except jinja2.TemplateError as exc:
            raise TemplateError(f"failed to render template {template_name!r}: {exc}") from exc


__all__ = ["DEFAULT_TEMPLATES", "TemplateRenderer"]
