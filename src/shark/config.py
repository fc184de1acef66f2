"""Configuration models and enums for shark.

Single source of truth for settings and defaults. Values resolve in order:
CLI overrides, environment, config file, built-in defaults.
"""

from __future__ import annotations

import os
import stat
import tomllib
from collections.abc import Mapping, Sequence
from enum import Enum
from pathlib import Path
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shark.backend.transport import DEFAULT_OLLAMA_ADDR
from shark.paths import get_shark_home


class BackendKind(str, Enum):
    OLLAMA = "ollama"
    OPENAI = "openai"


class FailurePolicy(str, Enum):
    FALLBACK = "fallback"
    PROPAGATE = "propagate"


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


TEMPLATE_NAMES = ("decision", "generation", "summary")

DEFAULT_ADDR = DEFAULT_OLLAMA_ADDR
DEFAULT_MODEL = "llama3.1"
DEFAULT_COLOR = "green"
DEFAULT_TIMEOUT_SEC = 60.0


class Settings(BaseModel):
    """Resolved shark settings."""

    model_config = ConfigDict(frozen=True, validate_default=True, extra="forbid")

    backend: BackendKind = BackendKind.OLLAMA
    addr: str = DEFAULT_ADDR
    model: str = DEFAULT_MODEL
    api_key: str | None = None
    request_timeout: float = Field(default=DEFAULT_TIMEOUT_SEC, gt=0)
    answer_timeout: float | None = Field(default=None, gt=0)
    color: str = DEFAULT_COLOR
    tools: tuple[str, ...] = Field(default_factory=tuple)
    tool_failure_policy: FailurePolicy = FailurePolicy.FALLBACK
    decision_failure_policy: FailurePolicy = FailurePolicy.PROPAGATE
    templates: dict[str, str] = Field(default_factory=dict)
    log_level: LogLevel = LogLevel.INFO

    @field_validator("api_key")
    @classmethod
    def _strip_api_key(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped if stripped else None

    @field_validator("model", "addr")
    @classmethod
    def _validate_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("value cannot be empty")
        return value.strip()

    @field_validator("templates")
    @classmethod
    def _validate_templates(cls, value: dict[str, str]) -> dict[str, str]:
        unknown = sorted(set(value) - set(TEMPLATE_NAMES))
        if unknown:
            raise ValueError(f"unknown templates: {', '.join(unknown)}")
        return value


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    env = os.environ if env is None else env
    configured = _clean_str(env.get("SHARK_CONFIG"))
    if configured:
        return Path(configured).expanduser()
    return get_shark_home() / "config.toml"


EXPECTED_FILE_MODE = stat.S_IRUSR | stat.S_IWUSR  # 0o600


def load_settings(
    cli_overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
    config_path: Path | str | None = None,
    *,
    create_if_missing: bool = False,
) -> Settings:
    env = os.environ if env is None else env
    cli_overrides = cli_overrides or {}
    path = Path(config_path) if config_path else default_config_path(env)

    created_new = False
    if not path.exists() and create_if_missing:
        path.parent.mkdir(parents=True, exist_ok=True)
        write_config(Settings(), path)
        created_new = True

    config_data: dict[str, Any] = {}
    if path.exists() and not created_new:
        _ensure_permissions(path)
        config_data = _read_toml(path)

    defaults = Settings()

    backend = _first_value(
        _clean_str(cli_overrides.get("backend")),
        _clean_str(_get_config_value(config_data, "backend", "kind")),
        defaults.backend,
    )

    addr = _first_value(
        _clean_str(cli_overrides.get("addr")),
        _clean_str(env.get("OLLAMA_HOST")),
        _clean_str(_get_config_value(config_data, "backend", "addr")),
        defaults.addr,
    )

    model = _first_value(
        _clean_str(cli_overrides.get("model")),
        _clean_str(_get_config_value(config_data, "backend", "model")),
        defaults.model,
    )

    api_key = _first_value(
        _clean_str(cli_overrides.get("api_key")),
        _clean_str(env.get("OPENAI_API_KEY")),
        _clean_str(_get_config_value(config_data, "backend", "api_key")),
        defaults.api_key,
    )

    request_timeout = _first_value(
        _get_config_value(config_data, "backend", "timeout"),
        defaults.request_timeout,
    )

    answer_timeout = _first_value(
        cli_overrides.get("answer_timeout"),
        _get_config_value(config_data, "backend", "answer_timeout"),
    )

    color = _first_value(
        _clean_str(cli_overrides.get("color")),
        _clean_str(_get_config_value(config_data, "ui", "color")),
        defaults.color,
    )

    tools = _first_value(
        cli_overrides.get("tools"),
        _get_config_value(config_data, "tools", "enabled"),
        defaults.tools,
    )

    tool_failure = _first_value(
        _clean_str(cli_overrides.get("tool_failure_policy")),
        _clean_str(_get_config_value(config_data, "policy", "tool_failure")),
    )

    decision_failure = _first_value(
        _clean_str(cli_overrides.get("decision_failure_policy")),
        _clean_str(_get_config_value(config_data, "policy", "decision_failure")),
    )

    log_level = _first_value(
        _clean_str(cli_overrides.get("log_level")),
        _clean_str(_get_config_value(config_data, "logging", "log_level")),
        defaults.log_level,
    )

    templates_section = config_data.get("templates", {})
    templates = {
        key: value for key, value in templates_section.items() if isinstance(value, str) and value.strip()
    } if isinstance(templates_section, dict) else {}

    backend_enum = cast(BackendKind, _coerce_enum(backend, BackendKind, BackendKind.OLLAMA))
    log_level_enum = cast(LogLevel, _coerce_enum(log_level, LogLevel, LogLevel.INFO))
    tool_policy = cast(FailurePolicy, _coerce_enum(tool_failure, FailurePolicy, defaults.tool_failure_policy))
    decision_policy = cast(
        FailurePolicy, _coerce_enum(decision_failure, FailurePolicy, defaults.decision_failure_policy)
    )

    return Settings(
        backend=backend_enum,
        addr=addr,
        model=model,
        api_key=api_key,
        request_timeout=request_timeout,
        answer_timeout=answer_timeout,
        color=color,
        tools=_coerce_names(tools),
        tool_failure_policy=tool_policy,
        decision_failure_policy=decision_policy,
        templates=templates,
        log_level=log_level_enum,
    )


def write_config(settings: Settings, config_path: Path | str | None = None) -> Path:
    path = Path(config_path) if config_path else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    sections: list[str] = []

    _append_section(
        sections,
        "backend",
        {
            "kind": settings.backend.value,
            "addr": settings.addr,
            "model": settings.model,
            "api_key": settings.api_key,
            "timeout": settings.request_timeout,
            "answer_timeout": settings.answer_timeout,
        },
    )
    _append_section(sections, "ui", {"color": settings.color})
    _append_section(sections, "tools", {"enabled": list(settings.tools)})
    _append_section(
        sections,
        "policy",
        {
            "tool_failure": settings.tool_failure_policy.value,
            "decision_failure": settings.decision_failure_policy.value,
        },
    )
    _append_section(sections, "templates", settings.templates)
    _append_section(sections, "logging", {"log_level": settings.log_level.value})

    content = "\n\n".join(filter(None, sections)) + "\n"
    path.write_text(content, encoding="utf-8")
    path.chmod(EXPECTED_FILE_MODE)
    return path


def _ensure_permissions(path: Path) -> None:
    current_mode = stat.S_IMODE(path.stat().st_mode)
    if current_mode != EXPECTED_FILE_MODE:
        path.chmod(EXPECTED_FILE_MODE)


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _get_config_value(config: Mapping[str, Any], section: str, key: str) -> Any:
    section_data = config.get(section)
    if not isinstance(section_data, dict):
        return None
    return section_data.get(key)


def _clean_str(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return value


def _first_value(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def _coerce_enum(value: Any, enum_cls: type[Enum], default: Enum | None = None) -> Enum | None:
    if value is None:
        return default
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.lower())
        except ValueError:
            return default
    return default


def _coerce_names(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, Sequence):
        return ()
    return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


def _toml_string(value: str) -> str:
    if "\n" in value:
        return '"""' + value.replace("\\", "\\\\").replace('"""', '\\"\\"\\"') + '"""'
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _append_section(parts: list[str], name: str, values: Mapping[str, Any]) -> None:
    filtered = {k: v for k, v in values.items() if v is not None and v != [] and v != ()}
    if not filtered:
        return
    lines = [f"[{name}]"]
    for key, val in filtered.items():
        if isinstance(val, Enum):
            lines.append(f'{key} = "{val.value}"')
        elif isinstance(val, str):
            lines.append(f"{key} = {_toml_string(val)}")
        elif isinstance(val, list | tuple):
            joined = ", ".join(_toml_string(str(item)) for item in val)
            lines.append(f"{key} = [{joined}]")
        else:
            lines.append(f"{key} = {val}")
    parts.append("\n".join(lines))


__all__ = [
    "BackendKind",
    "FailurePolicy",
    "LogLevel",
    "Settings",
    "TEMPLATE_NAMES",
    "default_config_path",
    "load_settings",
    "write_config",
]
