"""Console entrypoint for shark.

``shark what is the capital of France`` joins the words into one question,
lets the orchestrator pick a tool if needed and streams the answer in color.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import tomllib
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError
from rich.color import Color
from rich.console import COLOR_SYSTEMS, Console
from rich.style import Style

from shark import __version__
from shark.backend import GenerationClient, GenerationTransport, OllamaTransport, OpenAIChatTransport
from shark.config import DEFAULT_ADDR, BackendKind, FailurePolicy, LogLevel, Settings, load_settings
from shark.errors import SharkError, TemplateError
from shark.logging import close_logger, configure_base_logging, configure_run_logger, generate_run_id
from shark.orchestrator import AnswerState, AnswerStream, Orchestrator
from shark.templates import TemplateRenderer
from shark.tools import get_tool_registrations
from shark.tools.catalog import ToolCatalog, build_catalog

_PALETTE = {
    "purple": (202, 158, 230),
    "red": (231, 130, 132),
    "green": (166, 209, 137),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shark",
        description="Ask a question; shark may call a tool first and streams the answer.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show version and exit.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging on stderr.")
    parser.add_argument("--config-path", dest="config_path", help="Path to config.toml")
    parser.add_argument("--backend", choices=[e.value for e in BackendKind], help="Backend override")
    parser.add_argument("--addr", help="Backend address override")
    parser.add_argument("--model", help="Override default model id")
    parser.add_argument("--color", help="Answer color: purple, red or green")
    parser.add_argument(
        "--tool",
        action="append",
        dest="tools",
        metavar="NAME",
        help="Enable a tool (repeatable); replaces the configured list.",
    )
    parser.add_argument(
        "--tool-failure",
        choices=[e.value for e in FailurePolicy],
        dest="tool_failure_policy",
        help="What to do when a tool fails",
    )
    parser.add_argument(
        "--decision-failure",
        choices=[e.value for e in FailurePolicy],
        dest="decision_failure_policy",
        help="What to do when the tool decision fails",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        dest="answer_timeout",
        metavar="SECONDS",
        help="Stop streaming the answer after this many seconds.",
    )
    parser.add_argument(
        "--log-level",
        choices=[e.value for e in LogLevel],
        dest="log_level",
        help="Log level override",
    )
    parser.add_argument("--list-tools", action="store_true", help="Print the known tools and exit.")
    parser.add_argument("--print-config", action="store_true", help="Print resolved settings and exit.")
    parser.add_argument("prompt", nargs="*", help="The question to ask.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = _collect_overrides(args)
    try:
        settings = load_settings(cli_overrides=overrides, config_path=args.config_path, create_if_missing=True)
    except (ValidationError, tomllib.TOMLDecodeError) as exc:
        print(f"error: invalid configuration: {exc}", file=sys.stderr)
        return 2

    configure_base_logging(debug_enabled=args.debug, shark_level=settings.log_level)

    if args.print_config:
        return _run_print_config(settings)
    if args.list_tools:
        return _run_list_tools(settings)

    question = " ".join(args.prompt).strip()
    if not question:
        parser.error("a question is required")

    catalog = build_catalog(settings.tools)
    try:
        return asyncio.run(run_answer(settings, catalog, question))
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return 130


async def run_answer(
    settings: Settings,
    catalog: ToolCatalog,
    question: str,
    *,
    transport: GenerationTransport | None = None,
    console: Console | None = None,
) -> int:
    """Answer one question and render it; returns the process exit status."""

    logger = configure_run_logger(generate_run_id(), log_level=settings.log_level)
    logger.info(
        "question: %s | backend=%s model=%s tools=%s",
        question,
        settings.backend.value,
        settings.model,
        list(catalog),
    )
    try:
        renderer = TemplateRenderer(settings.templates)
    except TemplateError as exc:
        print(f"error: {exc}", file=sys.stderr)
        close_logger(logger)
        return 2

    transport_instance = transport or build_transport(settings, _transport_logger(logger))
    orchestrator = Orchestrator(
        GenerationClient(transport_instance, default_model=settings.model),
        catalog,
        renderer,
        model=settings.model,
        tool_failure_policy=settings.tool_failure_policy,
        decision_failure_policy=settings.decision_failure_policy,
        logger=logger,
    )

    cancel = asyncio.Event()
    timer = None
    if settings.answer_timeout:
        timer = asyncio.get_running_loop().call_later(settings.answer_timeout, cancel.set)

    try:
        stream = orchestrator.answer(question, cancel=cancel)
        return await render_answer(stream, console or Console(highlight=False), parse_color(settings.color))
    finally:
        if timer is not None:
            timer.cancel()
        aclose = getattr(transport_instance, "aclose", None)
        if callable(aclose):
            await aclose()
        close_logger(logger)


async def render_answer(stream: AnswerStream, console: Console, style: Style) -> int:
    """Write fragments as they arrive; mark failures without retracting output."""

    emitted = False
    try:
        async for fragment in stream:
            _write_fragment(console, fragment, style)
            emitted = True
    except SharkError as exc:
        if not emitted:
            print(f"error: {exc}", file=sys.stderr)
            return 2 if isinstance(exc, TemplateError) else 1
        console.print(f"\n[error: {exc}]", style="bold red", markup=False, highlight=False)
        return 1

    if stream.state is AnswerState.CANCELLED:
        console.print("\n[cancelled]", style="dim", markup=False, highlight=False, end="")
    console.print()
    return 0


def _write_fragment(console: Console, fragment: str, style: Style) -> None:
    """Write a fragment verbatim; only the color escape codes are added."""

    color_system = COLOR_SYSTEMS.get(console.color_system) if console.color_system else None
    console.file.write(style.render(fragment, color_system=color_system))
    console.file.flush()


def build_transport(
    settings: Settings, logger: Callable[[str, dict[str, object]], None] | None = None
) -> GenerationTransport:
    if settings.backend is BackendKind.OPENAI:
        if not settings.api_key:
            raise SystemExit("OPENAI_API_KEY not set and backend=openai")
        base_url = settings.addr if settings.addr != DEFAULT_ADDR else None
        return OpenAIChatTransport(settings.api_key, base_url=base_url, timeout=settings.request_timeout)
    return OllamaTransport(settings.addr, timeout=settings.request_timeout, logger=logger)


def parse_color(color: str) -> Style:
    rgb = _PALETTE.get(color.strip().lower())
    if rgb is None:
        return Style(color="green")
    return Style(color=Color.from_rgb(*rgb))


def _transport_logger(logger: logging.Logger) -> Callable[[str, dict[str, object]], None]:
    def _log(event: str, data: dict[str, object]) -> None:
        logger.info("transport %s %s", event, json.dumps(data, default=str))

    return _log


def _run_print_config(settings: Settings) -> int:
    data = settings.model_dump(mode="json")
    if data.get("api_key"):
        data["api_key"] = "***"
    print(json.dumps(data, indent=2))
    return 0


def _run_list_tools(settings: Settings) -> int:
    enabled = {name.strip().lower() for name in settings.tools}
    catalog = build_catalog([reg.name for reg in get_tool_registrations()])
    rows = [
        {
            "name": descriptor.name,
            "description": descriptor.description,
            "parameters": dict(descriptor.parameter_schema),
            "enabled": descriptor.name in enabled,
        }
        for descriptor in catalog.descriptors()
    ]
    print(json.dumps(rows, indent=2))
    return 0


def _collect_overrides(args: argparse.Namespace) -> dict[str, Any]:
    log_level_override = args.log_level or (LogLevel.DEBUG.value if args.debug else None)
    return {
        "backend": args.backend,
        "addr": args.addr,
        "model": args.model,
        "color": args.color,
        "tools": args.tools,
        "tool_failure_policy": args.tool_failure_policy,
        "decision_failure_policy": args.decision_failure_policy,
        "answer_timeout": args.answer_timeout,
        "log_level": log_level_override,
    }


if __name__ == "__main__":
    sys.exit(main())
