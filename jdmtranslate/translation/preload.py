"""Background cache warm-up for frequently displayed phrases.

Responsibilities:
- Keep a registry of common site phrases grouped by category.
- Translate uncached phrases in small concurrent batches with pauses between them.
- Report progress so callers can surface warm-up status.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

from ..languages import SOURCE_LANGUAGE
from ..telemetry.logger import EventLogger
from .cache import PersistentCache
from .scheduler import TranslationScheduler
from .service import translate_text


_log = EventLogger("preload")

_DEFAULT_PHRASES: dict[str, tuple[str, ...]] = {
    "ui": (
        "Home", "About", "Contact", "Search", "Login", "Register", "Profile",
        "Settings", "Logout", "Menu", "Close", "Back", "Next", "Submit", "Cancel",
        "Save", "Delete", "Edit", "View", "More", "Less", "Loading...",
        "Please wait...", "Error", "Success", "Warning", "Info",
    ),
    "cars": (
        "Car", "Vehicle", "Engine", "Transmission", "Manual", "Automatic", "Turbo",
        "Horsepower", "Mileage", "Year", "Model", "Make", "Color", "Price",
        "Condition", "New", "Used", "Import", "Export", "JDM", "Japanese",
        "Auction", "Bid", "Buy", "Sell",
    ),
    "messages": (
        "Thank you for your interest",
        "Please fill out the form",
        "We will contact you shortly",
        "Your request has been submitted",
        "An error occurred",
        "Please try again later",
        "No results found",
        "Loading more results",
    ),
}


class PreloadPhrases:
    """Mutable registry of phrases to warm per category."""

    def __init__(self, phrases: dict[str, Iterable[str]] | None = None) -> None:
        source = _DEFAULT_PHRASES if phrases is None else phrases
        self._phrases: dict[str, list[str]] = {
            category: list(items) for category, items in source.items()
        }

    def categories(self) -> list[str]:
        return list(self._phrases)

    def phrases(self, category: str) -> list[str]:
        return list(self._phrases.get(category, ()))

    def add(self, category: str, phrases: Iterable[str]) -> None:
        """Append phrases to a category, skipping ones already present."""

        existing = self._phrases.setdefault(category, [])
        for phrase in phrases:
            if phrase not in existing:
                existing.append(phrase)


@dataclass(frozen=True, slots=True)
class PreloadReport:
    """Outcome counters for one preload run."""

    language: str
    total: int
    completed: int
    translated: int
    failed: int


async def preload_translations(
    scheduler: TranslationScheduler,
    cache: PersistentCache,
    language_code: str,
    categories: Iterable[str] | None = None,
    *,
    registry: PreloadPhrases | None = None,
    batch_size: int = 3,
    batch_delay_seconds: float = 1.0,
    sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PreloadReport:
    """Warm the cache for registry phrases in `language_code`.

    Phrases already cached count as completed without a request. Results equal
    to the source text are never written, so fallbacks cannot poison the cache.
    """

    if language_code == SOURCE_LANGUAGE:
        return PreloadReport(language=language_code, total=0, completed=0, translated=0, failed=0)
    if batch_size <= 0:
        raise ValueError("`batch_size` must be a positive integer.")

    phrase_registry = registry if registry is not None else PreloadPhrases()
    selected = list(categories) if categories is not None else phrase_registry.categories()
    queue = [phrase for category in selected for phrase in phrase_registry.phrases(category)]
    total = len(queue)

    _log.info("start", language=language_code, total=total)
    cache.init()
    counters = {"completed": 0, "translated": 0, "failed": 0}

    async def _preload_one(text: str) -> None:
        cache_key = PersistentCache.make_key(text, language_code)
        if cache.get(cache_key):
            counters["completed"] += 1
            return
        try:
            translated = await translate_text(scheduler, text, language_code)
        except Exception as exc:
            counters["failed"] += 1
            _log.warning("phrase_failed", error_type=type(exc).__name__)
        else:
            if translated != text:
                cache.set(cache_key, translated)
                counters["translated"] += 1
        counters["completed"] += 1

    for start in range(0, total, batch_size):
        batch = queue[start : start + batch_size]
        await asyncio.gather(*(_preload_one(text) for text in batch))
        _log.info(
            "progress",
            language=language_code,
            completed=counters["completed"],
            total=total,
            percent=round(counters["completed"] / total * 100),
        )
        if start + batch_size < total:
            await sleeper(batch_delay_seconds)

    _log.info("finished", language=language_code)
    return PreloadReport(
        language=language_code,
        total=total,
        completed=counters["completed"],
        translated=counters["translated"],
        failed=counters["failed"],
    )
