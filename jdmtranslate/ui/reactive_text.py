"""Reactive binding of one displayed string to its translation.

Responsibilities:
- Show source text immediately and swap in the translation once it arrives.
- Stagger first requests so simultaneously mounted texts do not burst the scheduler.
- Cap attempts per instance and stop retrying after an implicit or explicit failure.
- Ignore late results after unmount or after text/language changes.

Note: a translation identical to its source (proper nouns, model numbers) is
treated as a failure. This is a known false-positive source of the heuristic.
"""

from __future__ import annotations

import asyncio
import itertools
import random
from enum import Enum
from typing import Awaitable, Callable

from ..languages import SOURCE_LANGUAGE
from ..telemetry.logger import EventLogger
from ..translation.context import TranslationContext


MAX_ATTEMPTS = 3
MIN_INITIAL_DELAY_SECONDS = 0.020
MAX_INITIAL_DELAY_SECONDS = 0.200
_STAGGER_SLOTS = 10
_STAGGER_STEP_SECONDS = 0.020
_LENGTH_FACTOR_CAP = 5.0
_LENGTH_STEP_SECONDS = 0.020
_JITTER_SECONDS = 0.050

_log = EventLogger("reactive_text")


class TextState(str, Enum):
    """Lifecycle of one reactive text binding."""

    IDLE = "idle"
    SKIPPED = "skipped"
    WAITING = "waiting"
    ATTEMPTING = "attempting"
    RESOLVED = "resolved"
    FAILED = "failed"


class ReactiveText:
    """One UI string kept in sync with the context's current language."""

    _instance_ids = itertools.count()

    def __init__(
        self,
        context: TranslationContext,
        text: str,
        *,
        skip_translation: bool = False,
        on_change: Callable[[str], None] | None = None,
        random_source: Callable[[], float] = random.random,
        sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.context = context
        self.text = text
        self.skip_translation = skip_translation
        self.instance_id = next(ReactiveText._instance_ids)
        self.displayed_text = text
        self.state = TextState.IDLE
        self.attempts = 0
        self.failed = False
        self._on_change = on_change
        self._random = random_source
        self._sleeper = sleeper
        self._language = context.current_language_code
        self._mounted = False
        self._generation = 0
        self._pending: asyncio.Task[None] | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def mounted(self) -> bool:
        return self._mounted

    def mount(self) -> None:
        """Start tracking the context language and run the first translation."""

        if self._mounted:
            return
        self._mounted = True
        self._unsubscribe = self.context.subscribe(self._on_language_change)
        self._run_effect()

    def unmount(self) -> None:
        """Stop tracking, cancel the pending attempt, and drop late results."""

        self._mounted = False
        self._generation += 1
        self._cancel_pending()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def set_text(self, text: str) -> None:
        """Bind a new source string and restart translation when it changed."""

        if text == self.text:
            return
        self.text = text
        self.attempts = 0
        self.failed = False
        self._set_displayed(text)
        if self._mounted:
            self._run_effect()

    def refresh(self) -> None:
        """Re-run the effect with unchanged inputs; counts toward the attempt cap."""

        if self._mounted and not self.failed:
            self._run_effect()

    async def settle(self) -> None:
        """Wait until the pending attempt (if any) has finished."""

        while self._pending is not None and not self._pending.done():
            await asyncio.gather(self._pending, return_exceptions=True)

    def initial_delay(self) -> float:
        """Staggered delay before the first attempt, bounded to 200ms."""

        base = MIN_INITIAL_DELAY_SECONDS + (self.instance_id % _STAGGER_SLOTS) * _STAGGER_STEP_SECONDS
        length_factor = min(len(self.text) / 100, _LENGTH_FACTOR_CAP)
        jitter = self._random() * _JITTER_SECONDS
        return min(base + length_factor * _LENGTH_STEP_SECONDS + jitter, MAX_INITIAL_DELAY_SECONDS)

    def _on_language_change(self, language_code: str) -> None:
        if language_code == self._language:
            return
        self._language = language_code
        self.attempts = 0
        self.failed = False
        self._set_displayed(self.text)
        if self._mounted:
            self._run_effect()

    def _run_effect(self) -> None:
        self._generation += 1
        self._cancel_pending()

        if self._language == SOURCE_LANGUAGE or self.skip_translation:
            self.state = TextState.SKIPPED
            self._set_displayed(self.text)
            return

        self.state = TextState.WAITING
        generation = self._generation
        self._pending = asyncio.get_running_loop().create_task(
            self._attempt(generation, self.text, self._language)
        )

    async def _attempt(self, generation: int, text: str, language: str) -> None:
        await self._sleeper(self.initial_delay())
        if not self._is_current(generation):
            return

        if self.attempts >= MAX_ATTEMPTS:
            _log.warning("max_attempts_reached", instance=self.instance_id)
            self.failed = True
            self.state = TextState.FAILED
            return

        self.attempts += 1
        self.state = TextState.ATTEMPTING
        try:
            result = await self.context.translate(text)
        except Exception as exc:
            if self._is_current(generation):
                _log.error("translate_failed", instance=self.instance_id, error_type=type(exc).__name__)
                self.failed = True
                self.state = TextState.FAILED
                self._set_displayed(text)
            return

        if not self._is_current(generation):
            return
        self._set_displayed(result)
        if result == text and language != SOURCE_LANGUAGE:
            self.failed = True
            self.state = TextState.FAILED
        else:
            self.state = TextState.RESOLVED

    def _is_current(self, generation: int) -> bool:
        return self._mounted and generation == self._generation

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def _set_displayed(self, value: str) -> None:
        if value == self.displayed_text:
            return
        self.displayed_text = value
        if self._on_change is not None:
            self._on_change(value)
