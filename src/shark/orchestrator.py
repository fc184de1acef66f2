"""Decide, optionally call a tool, and stream the final answer.

Each question walks a small state machine::

    INIT -> DECIDING -> INVOKING -> SUMMARIZING -> STREAMING -> DONE
                     \\-> GENERATING ------------/

``INVOKING -> GENERATING`` happens when a tool fails and the tool failure
policy is ``fallback``. ``ERRORED`` is reachable from ``DECIDING``,
``INVOKING`` (policy ``propagate``) and ``STREAMING``. ``CANCELLED`` is reached
when the caller's cancel event is set between fragments.

The orchestrator keeps no per-request state; everything about one question
lives in its ``AnswerStream``, so concurrent ``answer`` calls are safe.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from enum import Enum

from shark.backend.client import GenerationClient
from shark.backend.types import ErrorEvent, MessageDone, TextDelta
from shark.config import FailurePolicy
from shark.decision import Decision, NoTool, UseTool, parse_decision
from shark.errors import DecisionError, TemplateError, ToolExecutionError, TransportError
from shark.templates import TemplateRenderer
from shark.tools.base import Tool
from shark.tools.catalog import ToolCatalog


class AnswerState(str, Enum):
    INIT = "init"
    DECIDING = "deciding"
    INVOKING = "invoking"
    SUMMARIZING = "summarizing"
    GENERATING = "generating"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"


class AnswerStream:
    """Lazy, single-pass sequence of answer fragments for one question.

    Nothing happens until the first fragment is requested. Errors raised before
    the first fragment mean nothing was streamed; errors raised later leave the
    fragments already delivered untouched.
    """

    def __init__(self, orchestrator: Orchestrator, question: str, cancel: asyncio.Event | None = None) -> None:
        self.question = question
        self.state = AnswerState.INIT
        self.transitions: list[AnswerState] = [AnswerState.INIT]
        self.decision: Decision | None = None
        self.error: BaseException | None = None
        self._logger = orchestrator.logger
        self._iterator = orchestrator._run(self, cancel)

    def __aiter__(self) -> AnswerStream:
        return self

    async def __anext__(self) -> str:
        return await self._iterator.__anext__()

    async def aclose(self) -> None:
        await self._iterator.aclose()

    def enter(self, state: AnswerState) -> None:
        self._logger.debug("answer state: %s -> %s", self.state.value, state.value)
        self.state = state
        self.transitions.append(state)


class Orchestrator:
    """Sequence decision, optional tool call and streaming generation."""

    def __init__(
        self,
        client: GenerationClient,
        catalog: ToolCatalog,
        renderer: TemplateRenderer,
        *,
        model: str | None = None,
        tool_failure_policy: FailurePolicy = FailurePolicy.FALLBACK,
        decision_failure_policy: FailurePolicy = FailurePolicy.PROPAGATE,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.catalog = catalog
        self.renderer = renderer
        self.model = model
        self.tool_failure_policy = tool_failure_policy
        self.decision_failure_policy = decision_failure_policy
        self.logger = logger or logging.getLogger("shark.orchestrator")

    def answer(self, question: str, *, cancel: asyncio.Event | None = None) -> AnswerStream:
        """Return the streaming answer to ``question``."""

        return AnswerStream(self, question, cancel)

    async def decide(self, question: str) -> Decision:
        """Ask the backend whether a tool should handle ``question``.

        Raises ``DecisionContractError`` when the reply breaks the JSON contract
        and ``DecisionError`` when the prompt cannot be rendered or the backend
        call itself fails.
        """

        if not self.catalog:
            return NoTool()

        try:
            prompt = self._render_prompt(
                "decision",
                {
                    "question": question,
                    "tool_descriptions": json.dumps(self.catalog.descriptions(), ensure_ascii=False),
                },
            )
        except TemplateError as exc:
            raise DecisionError(f"decision prompt failed: {exc}") from exc
        try:
            raw = await self.client.complete(prompt, model=self.model, format="json")
        except TransportError as exc:
            raise DecisionError(f"decision request failed: {exc}") from exc

        decision = parse_decision(raw, self.catalog)
        self.logger.info("decision: %s", decision)
        return decision

    async def run_tool(self, tool: Tool, question: str) -> str:
        """Run ``tool`` with a payload derived from ``question``."""

        self.logger.info("tool request: %s", tool.name)
        payload = tool.input_from_question(question)
        output = await tool.run(payload)
        self.logger.debug("tool response: %s result=%s", tool.name, _clip(output))
        return output

    async def invoke(self, tool: Tool, question: str) -> str:
        """Run ``tool`` and return the summarization prompt built from its output."""

        output = await self.run_tool(tool, question)
        return self.summary_prompt(question, output)

    def summary_prompt(self, question: str, answer: str) -> str:
        return self._render_prompt("summary", {"question": question, "answer": answer})

    def generation_prompt(self, question: str) -> str:
        return self._render_prompt("generation", {"question": question})

    def _render_prompt(self, name: str, variables: dict[str, str]) -> str:
        prompt = self.renderer.render(name, variables)
        if not prompt.strip():
            raise TemplateError(f"template {name!r} rendered an empty prompt")
        return prompt

    async def _run(self, stream: AnswerStream, cancel: asyncio.Event | None) -> AsyncIterator[str]:
        try:
            prompt = await self._prepare_prompt(stream)
            if cancel is not None and cancel.is_set():
                stream.enter(AnswerState.CANCELLED)
                return

            stream.enter(AnswerState.STREAMING)
            async with aclosing(self._stream_prompt(prompt)) as fragments:
                async for fragment in fragments:
                    if cancel is not None and cancel.is_set():
                        stream.enter(AnswerState.CANCELLED)
                        return
                    yield fragment
            stream.enter(AnswerState.DONE)
        except Exception as exc:
            stream.error = exc
            stream.enter(AnswerState.ERRORED)
            self.logger.error("answer failed in state %s: %s", stream.transitions[-2].value, exc)
            raise

    async def _prepare_prompt(self, stream: AnswerStream) -> str:
        question = stream.question
        stream.enter(AnswerState.DECIDING)
        try:
            decision = await self.decide(question)
        except DecisionError as exc:
            if self.decision_failure_policy is FailurePolicy.PROPAGATE:
                raise
            self.logger.warning("decision failed, answering directly: %s", exc)
            decision = NoTool()
        stream.decision = decision

        if isinstance(decision, UseTool):
            tool = self.catalog[decision.name]
            stream.enter(AnswerState.INVOKING)
            try:
                output = await self.run_tool(tool, question)
            except ToolExecutionError as exc:
                if self.tool_failure_policy is FailurePolicy.PROPAGATE:
                    raise
                self.logger.warning("tool %s failed, answering directly: %s", tool.name, exc)
            else:
                stream.enter(AnswerState.SUMMARIZING)
                return self.summary_prompt(question, output)

        stream.enter(AnswerState.GENERATING)
        return self.generation_prompt(question)

    async def _stream_prompt(self, prompt: str) -> AsyncIterator[str]:
        async with aclosing(self.client.stream_complete(prompt, model=self.model)) as events:
            async for event in events:
                if isinstance(event, TextDelta):
                    yield event.text
                elif isinstance(event, MessageDone):
                    return
                elif isinstance(event, ErrorEvent):
                    if isinstance(event.error, TransportError):
                        raise event.error
                    raise TransportError(str(event.error)) from event.error


def _clip(text: str, limit: int = 2000) -> str:
    if len(text) > limit:
        return f"{text[:limit]}... [truncated]"
    return text


__all__ = ["AnswerState", "AnswerStream", "Orchestrator"]
