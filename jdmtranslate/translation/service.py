"""Caller-facing translation entry points.

Two policies are offered on top of the scheduler:

- `translate_text` is the raw call. Scheduler rejections (exhausted retries on
  network failure) propagate to the caller.
- `translate_or_fallback` never raises. Any failure is logged and the source
  text is returned, so rendering code can always show something.
"""

from __future__ import annotations

from typing import Mapping

from ..languages import SOURCE_LANGUAGE, resolve_language_code
from ..telemetry.logger import EventLogger
from .scheduler import TranslationScheduler


_MAX_LENGTH_PRIORITY = 100

_log = EventLogger("service")


def priority_for_text(text: str) -> int:
    """Shorter texts (UI labels) get more urgent priorities than long blocks."""

    return min(len(text) // 10, _MAX_LENGTH_PRIORITY)


async def translate_text(
    scheduler: TranslationScheduler, text: str, target_lang: str
) -> str:
    """Translate through the scheduler; errors propagate."""

    if not text:
        return ""
    language_code = resolve_language_code(target_lang)
    if language_code == SOURCE_LANGUAGE:
        return text
    return await scheduler.schedule(text, language_code, priority_for_text(text))


async def translate_or_fallback(
    scheduler: TranslationScheduler, text: str, target_lang: str
) -> str:
    """Translate through the scheduler, returning `text` on any failure."""

    try:
        return await translate_text(scheduler, text, target_lang)
    except Exception as exc:
        _log.warning("fallback_to_source", error_type=type(exc).__name__)
        return text


async def translate_mapping(
    scheduler: TranslationScheduler,
    mapping: Mapping[str, str],
    target_lang: str,
) -> dict[str, str]:
    """Translate every value of a string mapping, one key at a time."""

    if not target_lang or resolve_language_code(target_lang) == SOURCE_LANGUAGE:
        return dict(mapping)

    translated: dict[str, str] = {}
    for key, value in mapping.items():
        translated[key] = await translate_or_fallback(scheduler, value, target_lang)
    return translated
