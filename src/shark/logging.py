"""Logging setup for shark.

Console logging is configured once by the CLI. Each run additionally writes to
``~/.shark/logs/<run-id>.log``; that logger is isolated (no propagation) and
avoids duplicate handlers across repeated initializations.
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from shark.config import LogLevel
from shark.paths import logs_dir

DEFAULT_MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def generate_run_id(now: datetime | None = None) -> str:
    """Return a run id in the form YYYYMMDDHHMM-uuid4."""

    instant = now or datetime.now(UTC)
    return f"{instant.strftime('%Y%m%d%H%M')}-{uuid4()}"


def run_log_path(run_id: str, base_dir: Path | None = None) -> Path:
    return (base_dir or logs_dir()) / f"{run_id}.log"


def configure_run_logger(
    run_id: str,
    *,
    log_level: LogLevel | str = LogLevel.INFO,
    base_dir: Path | None = None,
    max_bytes: int = DEFAULT_MAX_LOG_BYTES,
) -> logging.Logger:
    """Configure and return a file logger scoped to one run.

    Subsequent calls with the same run_id return the same logger without
    duplicating handlers. An existing log file larger than ``max_bytes`` is
    emptied first.
    """

    logger = logging.getLogger(f"shark.run.{run_id}")

    level_value = _to_logging_level(log_level)
    logger.setLevel(level_value)
    logger.propagate = False

    if not logger.handlers:
        path = run_log_path(run_id, base_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists() and path.stat().st_size > max_bytes:
            path.write_text("", encoding="utf-8")

        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(level_value)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger


def close_logger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        try:
            handler.flush()
        finally:
            handler.close()
        logger.removeHandler(handler)


def configure_base_logging(*, debug_enabled: bool, shark_level: LogLevel | str) -> None:
    """Send shark's own records to stderr; keep client libraries quiet."""

    root_level = logging.INFO if debug_enabled else logging.WARNING
    logging.basicConfig(level=root_level, stream=sys.__stderr__, format=LOG_FORMAT, force=True)

    logging.getLogger("shark").setLevel(_to_logging_level(shark_level))

    for noisy in ("httpx", "httpcore", "openai", "primp"):
        noisy_logger = logging.getLogger(noisy)
        noisy_logger.setLevel(logging.WARNING)
        noisy_logger.propagate = False


def _to_logging_level(value: LogLevel | str) -> int:
    mapping = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
    }
    if isinstance(value, LogLevel):
        return mapping[value]
    if isinstance(value, str):
        try:
            return mapping[LogLevel(value)]
        except ValueError:
            return logging.WARNING
    return logging.WARNING


__all__ = [
    "close_logger",
    "configure_base_logging",
    "configure_run_logger",
    "generate_run_id",
    "run_log_path",
    "_to_logging_level",
]
