"""Output caps for text returned by tools."""

from __future__ import annotations

DEFAULT_MAX_BYTES = 8_192
DEFAULT_MAX_LINES = 200


def truncate_output(
    text: str,
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
    max_lines: int = DEFAULT_MAX_LINES,
    marker: str = "[truncated]",
) -> tuple[str, bool]:
    """Truncate text by UTF-8 bytes and lines, returning (result, was_truncated).

    Whichever limit triggers first stops output; a marker line is appended
    when anything was dropped.
    """

    collected: list[str] = []
    bytes_used = 0
    truncated = False

    for idx, line in enumerate(text.splitlines(keepends=True)):
        size = len(line.encode("utf-8"))
        if idx >= max_lines or bytes_used + size > max_bytes:
            truncated = True
            break
        collected.append(line)
        bytes_used += size

    result = "".join(collected)
    if truncated:
        if result and not result.endswith("\n"):
            result += "\n"
        result += marker
    return result, truncated


def decode_process_output(raw: bytes | None, **limits: int) -> str:
    """Decode captured process output and apply ``truncate_output`` limits."""

    if not raw:
        return ""
    text, _ = truncate_output(raw.decode("utf-8", errors="replace"), **limits)
    return text


__all__ = ["DEFAULT_MAX_BYTES", "DEFAULT_MAX_LINES", "decode_process_output", "truncate_output"]
