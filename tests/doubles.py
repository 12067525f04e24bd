"""Shared deterministic test doubles for scheduler-driven tests."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, TypeVar

from jdmtranslate.config import SchedulerSettings
from jdmtranslate.io.local_storage import MemoryLocalStorage
from jdmtranslate.translation.cache import PersistentCache
from jdmtranslate.translation.client import TranslateResponse
from jdmtranslate.translation.scheduler import TranslationScheduler

_T = TypeVar("_T")

Outcome = TranslateResponse | BaseException | Callable[[str, str], TranslateResponse]

_TEST_TIMEOUT_SECONDS = 5.0


class VirtualClock:
    """Monotonic clock whose time only moves when a sleeper asks it to."""

    def __init__(self, start: float = 1000.0) -> None:
        """Initialize the clock at an arbitrary non-zero instant."""

        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        """Yield once to the event loop, then advance virtual time.

        A sleep cancelled while yielding leaves the clock untouched, matching a
        real timer that was interrupted before it fired.
        """

        self.sleeps.append(seconds)
        await asyncio.sleep(0)
        self.now += max(0.0, seconds)


class FakeTransport:
    """Scripted translate transport recording calls, timing, and concurrency."""

    def __init__(self, clock: VirtualClock | None = None) -> None:
        """Initialize an empty script; unscripted texts get a default translation."""

        self.clock = clock
        self.script: dict[str, list[Outcome]] = {}
        self.calls: list[tuple[str, str]] = []
        self.dispatch_times: list[float] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate: asyncio.Event | None = None

    def respond(self, text: str, *outcomes: Outcome) -> None:
        """Queue outcomes returned (or raised) for consecutive calls with `text`."""

        self.script.setdefault(text, []).extend(outcomes)

    async def translate(self, text: str, target_lang: str) -> TranslateResponse:
        self.calls.append((text, target_lang))
        if self.clock is not None:
            self.dispatch_times.append(self.clock())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            outcomes = self.script.get(text)
            if not outcomes:
                return TranslateResponse(translated_text=f"{text} [{target_lang}]")
            outcome = outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            if callable(outcome):
                return outcome(text, target_lang)
            return outcome
        finally:
            self.in_flight -= 1


def make_scheduler(
    transport: FakeTransport,
    clock: VirtualClock,
    cache: PersistentCache | None = None,
    **settings: Any,
) -> TranslationScheduler:
    """Build a scheduler over memory storage driven by the virtual clock."""

    resolved_cache = cache if cache is not None else PersistentCache(MemoryLocalStorage())
    return TranslationScheduler(
        transport,
        resolved_cache,
        SchedulerSettings(**settings),
        clock=clock,
        sleeper=clock.sleep,
    )


async def drain_loop(iterations: int = 200) -> None:
    """Yield to the event loop repeatedly so background tasks can progress."""

    for _ in range(iterations):
        await asyncio.sleep(0)


def run(coro: Coroutine[Any, Any, _T]) -> _T:
    """Run a coroutine to completion with a hard real-time safety timeout."""

    return asyncio.run(asyncio.wait_for(coro, timeout=_TEST_TIMEOUT_SECONDS))
