"""Error taxonomy shared by the orchestrator, backend and tools."""

from __future__ import annotations


class SharkError(Exception):
    """Base class for every error raised by shark."""


class TransportError(SharkError):
    """Backend unreachable or failed while serving a request."""


class TemplateError(SharkError):
    """Prompt template is malformed or was rendered with missing variables."""


class DecisionError(SharkError):
    """The decision round trip failed."""


class DecisionContractError(DecisionError):
    """Backend output for the decision phase is not ``{"function": <string> | null}``."""


class ToolExecutionError(SharkError):
    """A tool failed to run."""


__all__ = [
    "DecisionContractError",
    "DecisionError",
    "SharkError",
    "TemplateError",
    "ToolExecutionError",
    "TransportError",
]
