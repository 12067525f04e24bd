"""Structured event logging for the translation subsystem.

Responsibilities:
- Emit concise, deterministic key/value event lines through `loguru`.
- Keep payload text (translated strings) out of log context by convention.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


def configure_logging(sink: TextIO | None = None, level: str = "INFO") -> None:
    """Replace loguru handlers with one message-only sink for CLI runs."""

    logger.remove()
    logger.add(sink or sys.stderr, format="{message}", level=level, colorize=False)


class EventLogger:
    """Emit `[translate]` event lines for one subsystem component."""

    def __init__(self, component: str) -> None:
        """Bind the logger to a component label such as `scheduler` or `cache`."""

        self.component = component

    def emit(self, level: str, event: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = (
            f"[translate] level={level} component={self.component} "
            f"event={event}{_format_context(context)}"
        )
        logger.log(level, line)

    def debug(self, event: str, **context: object) -> None:
        self.emit("DEBUG", event, **context)

    def info(self, event: str, **context: object) -> None:
        self.emit("INFO", event, **context)

    def warning(self, event: str, **context: object) -> None:
        self.emit("WARNING", event, **context)

    def error(self, event: str, **context: object) -> None:
        self.emit("ERROR", event, **context)
