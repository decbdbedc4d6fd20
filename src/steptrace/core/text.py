"""Small text helpers shared by the step and result code."""
from __future__ import annotations

import re

_ANSI_PATTERN = re.compile(
    r"[\u001b\u009b][\[()#;?]*(?:[0-9]{1,4}(?:;[0-9]{0,4})*)?[0-9A-ORZcf-nqry=><]"
)
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def strip_ansi(text: str) -> str:
    """Remove terminal colour and cursor escape sequences."""

    return _ANSI_PATTERN.sub("", text)


def sanitize_name(name: str, *, default: str = "evidence") -> str:
    """Reduce ``name`` to ``[A-Za-z0-9._-]``, replacing anything else with ``_``."""

    safe = _UNSAFE_CHARS.sub("_", name.strip())
    if not safe.strip("."):
        return default
    return safe


def format_duration(seconds: float) -> str:
    total = max(int(seconds), 0)
    minutes, secs = divmod(total, 60)
    return f"{minutes}m {secs}s"


def error_message(exc: BaseException) -> str:
    message = strip_ansi(str(exc)).strip()
    return message or type(exc).__name__
