"""Application-wide translation state shared by all translated text.

Responsibilities:
- Track the active language and persist the user's choice.
- Memoize translations for the session in front of the persistent cache.
- Flush stale queued work and warm common phrases on language switches.
- Notify subscribed components about language changes.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from ..languages import SOURCE_LANGUAGE, get_language_display_name
from ..preferences import LanguagePreferenceStore
from ..telemetry.logger import EventLogger
from .cache import PersistentCache
from .preload import PreloadPhrases, preload_translations
from .scheduler import TranslationScheduler
from .service import translate_or_fallback


LanguageListener = Callable[[str], None]

_IMMEDIATE_PRELOAD_CATEGORIES = ("ui",)
_DEFERRED_PRELOAD_CATEGORIES = ("cars", "messages")

_log = EventLogger("context")


class TranslationContext:
    """Translation provider state used by `ReactiveText` components."""

    def __init__(
        self,
        scheduler: TranslationScheduler,
        cache: PersistentCache,
        preferences: LanguagePreferenceStore,
        *,
        preload_enabled: bool = True,
        preload_delay_seconds: float = 5.0,
        preload_registry: PreloadPhrases | None = None,
    ) -> None:
        """Initialize the context; call `initialize()` before first use."""

        self.scheduler = scheduler
        self.cache = cache
        self.preferences = preferences
        self.preload_enabled = preload_enabled
        self.preload_delay_seconds = preload_delay_seconds
        self.preload_registry = preload_registry if preload_registry is not None else PreloadPhrases()
        self.current_language_code = SOURCE_LANGUAGE
        self._memory_cache: dict[str, str] = {}
        self._listeners: list[LanguageListener] = []
        self._preload_tasks: set[asyncio.Task[object]] = set()

    def initialize(self) -> None:
        """Load the persistent cache and adopt the stored language preference."""

        self.cache.init()
        stored = self.preferences.get_user_language()
        if stored != self.current_language_code:
            self._apply_language(stored)

    @property
    def current_language(self) -> str:
        return get_language_display_name(self.current_language_code)

    @property
    def queue_size(self) -> int:
        return self.scheduler.status().pending

    @property
    def is_loading(self) -> bool:
        return self.queue_size > 0

    async def translate(self, text: str) -> str:
        """Translate into the current language; never raises."""

        language = self.current_language_code
        if not text or language == SOURCE_LANGUAGE:
            return text

        memory_key = PersistentCache.make_key(text, language)
        memoized = self._memory_cache.get(memory_key)
        if memoized:
            return memoized

        result = await translate_or_fallback(self.scheduler, text, language)
        if result != text and language == self.current_language_code:
            self._memory_cache[memory_key] = result
        return result

    def set_language(self, language_code: str) -> None:
        """Switch language, flush stale work, save the preference, and notify."""

        if language_code == self.current_language_code:
            return
        self.scheduler.clear_queue()
        self.preferences.save_user_language(language_code)
        self._apply_language(language_code)

    def clear_translation_cache(self) -> None:
        """Drop session memoization and the persistent cache."""

        self._memory_cache = {}
        self.cache.clear()

    def subscribe(self, listener: LanguageListener) -> Callable[[], None]:
        """Register a language-change listener and return its unsubscribe callable."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def aclose(self) -> None:
        """Cancel background preload tasks."""

        tasks = tuple(self._preload_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._preload_tasks.clear()

    def _apply_language(self, language_code: str) -> None:
        self._memory_cache = {}
        self.current_language_code = language_code
        _log.info("language_changed", language=language_code)
        for listener in tuple(self._listeners):
            listener(language_code)
        if language_code != SOURCE_LANGUAGE:
            self._start_preload(language_code)

    def _start_preload(self, language_code: str) -> None:
        """Warm UI phrases now and the remaining categories after a delay."""

        if not self.preload_enabled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _log.debug("preload_skipped_no_loop", language=language_code)
            return

        self._track(loop.create_task(self._preload(language_code, _IMMEDIATE_PRELOAD_CATEGORIES)))
        self._track(
            loop.create_task(
                self._preload(
                    language_code,
                    _DEFERRED_PRELOAD_CATEGORIES,
                    delay_seconds=self.preload_delay_seconds,
                )
            )
        )

    def _track(self, task: asyncio.Task[object]) -> None:
        self._preload_tasks.add(task)
        task.add_done_callback(self._preload_tasks.discard)

    async def _preload(
        self,
        language_code: str,
        categories: tuple[str, ...],
        delay_seconds: float = 0.0,
    ) -> None:
        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
        if language_code != self.current_language_code:
            return
        try:
            await preload_translations(
                self.scheduler,
                self.cache,
                language_code,
                categories,
                registry=self.preload_registry,
            )
        except Exception as exc:
            _log.error("preload_failed", language=language_code, error_type=type(exc).__name__)
