"""Common path utilities for shark."""

from __future__ import annotations

import os
from pathlib import Path


def get_shark_home() -> Path:
    """Return the base shark directory, honoring SHARK_HOME if set."""

    env_path = os.environ.get("SHARK_HOME")
    return Path(env_path).expanduser() if env_path else Path.home() / ".shark"


def logs_dir(home: Path | None = None) -> Path:
    return (home or get_shark_home()) / "logs"


__all__ = ["get_shark_home", "logs_dir"]
