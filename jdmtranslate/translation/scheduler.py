"""Prioritised, rate-controlled translation request scheduler.

Responsibilities:
- Serve cached translations immediately and queue the rest by priority.
- Enforce a global concurrency cap and minimum spacing between endpoint calls.
- Back off after rate-limit responses and retry transient failures.
- Flush queued work with source-text results when the target language changes.

Key types:
- `TranslationRequest`: one queued translation awaiting dispatch.
- `SchedulerState`: all mutable queue, pacing, and backoff state of one scheduler.
- `QueueStatus`: read-only snapshot for UI loading indicators.
- `TranslationScheduler`: the scheduler, driven by a single background worker task.

Every request is settled exactly once: translated text on success, source text
on rate-limit exhaustion or language flush, an exception on failure exhaustion.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field, replace
from time import monotonic
from typing import Awaitable, Callable
from uuid import uuid4

from ..config import SchedulerSettings
from ..errors import TranslationServiceError
from ..telemetry.logger import EventLogger
from .cache import PersistentCache
from .client import TranslateResponse, TranslationTransport


DEFAULT_PRIORITY = 50

_log = EventLogger("scheduler")


@dataclass(slots=True)
class TranslationRequest:
    """One pending translation; retries replace it with an updated copy.

    Attributes:
        id: Opaque request token used in logs.
        text: Source text.
        target_lang: Target language code.
        priority: Queue priority; lower numbers dequeue first.
        future: Future settled with the caller's result.
        retries: Retry count so far.
        timestamp: Scheduler clock value when the request was (re)queued.
    """

    id: str
    text: str
    target_lang: str
    priority: int
    future: asyncio.Future[str]
    retries: int = 0
    timestamp: float = 0.0

    def resolve(self, value: str) -> None:
        if not self.future.done():
            self.future.set_result(value)

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


@dataclass(slots=True)
class SchedulerState:
    """Mutable state owned by exactly one scheduler instance."""

    request_queue: list[TranslationRequest] = field(default_factory=list)
    active_requests: int = 0
    last_request_time: float | None = None
    rate_limit_hit: bool = False
    rate_limit_reset_time: float = 0.0
    backoff_seconds: float = 1.0
    resume_at: float = 0.0
    current_language: str = "en"
    last_language_change_time: float | None = None


@dataclass(frozen=True, slots=True)
class QueueStatus:
    """Snapshot of scheduler load for loading indicators."""

    queue_length: int
    active_requests: int
    rate_limit_hit: bool
    rate_limit_reset_time: float
    backoff_seconds: float

    @property
    def pending(self) -> int:
        return self.queue_length + self.active_requests


class TranslationScheduler:
    """Single-process scheduler throttling calls to the translate endpoint."""

    def __init__(
        self,
        transport: TranslationTransport,
        cache: PersistentCache,
        settings: SchedulerSettings | None = None,
        *,
        clock: Callable[[], float] = monotonic,
        sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
        state: SchedulerState | None = None,
    ) -> None:
        """Initialize scheduler dependencies and state.

        Args:
            transport: Endpoint client performing one translate request.
            cache: Persistent cache consulted before queueing and written on success.
            settings: Pacing, retry, and backoff policy.
            clock: Monotonic time source in seconds.
            sleeper: Awaitable sleep used for timed waits between queue passes.
            state: Optional pre-built state, mainly for tests.
        """

        self.transport = transport
        self.cache = cache
        self.settings = settings if settings is not None else SchedulerSettings()
        self.settings.validate()
        self._clock = clock
        self._sleeper = sleeper
        self.state = state if state is not None else SchedulerState(
            backoff_seconds=self.settings.backoff_initial_seconds,
            current_language=self.settings.source_language,
        )
        self._worker: asyncio.Task[None] | None = None
        self._wakeup: asyncio.Event | None = None
        self._inflight: set[asyncio.Task[None]] = set()

    async def schedule(
        self, text: str, target_lang: str, priority: int = DEFAULT_PRIORITY
    ) -> str:
        """Return `text` translated into `target_lang`, queueing on cache miss.

        Empty text and the source language short-circuit without cache or
        network access. A cache hit returns without suspending.
        """

        if not text or target_lang == self.settings.source_language:
            return text

        if target_lang != self.state.current_language:
            self.change_language(target_lang)

        effective_priority = self._boosted_priority(priority)

        cached = self.cache.get(PersistentCache.make_key(text, target_lang))
        if cached:
            return cached

        loop = asyncio.get_running_loop()
        request = TranslationRequest(
            id=uuid4().hex[:12],
            text=text,
            target_lang=target_lang,
            priority=effective_priority,
            future=loop.create_future(),
            timestamp=self._clock(),
        )
        self._enqueue(request)
        return await request.future

    def change_language(self, target_lang: str) -> None:
        """Record a language switch and flush queued requests for the old one."""

        self.state.current_language = target_lang
        self.clear_queue()

    def clear_queue(self) -> None:
        """Resolve every queued request with its source text and reset backoff."""

        state = self.state
        flushed = state.request_queue
        state.request_queue = []
        for request in flushed:
            request.resolve(request.text)

        state.rate_limit_hit = False
        state.backoff_seconds = self.settings.backoff_initial_seconds
        state.resume_at = 0.0
        state.last_language_change_time = self._clock()
        if flushed:
            _log.info("queue_flushed", flushed=len(flushed), language=state.current_language)
        self._wake()

    def status(self) -> QueueStatus:
        state = self.state
        return QueueStatus(
            queue_length=len(state.request_queue),
            active_requests=state.active_requests,
            rate_limit_hit=state.rate_limit_hit,
            rate_limit_reset_time=state.rate_limit_reset_time,
            backoff_seconds=state.backoff_seconds,
        )

    async def aclose(self) -> None:
        """Flush the queue, drain in-flight requests, and stop the worker."""

        self.clear_queue()
        while self._inflight:
            await asyncio.gather(*tuple(self._inflight), return_exceptions=True)
            self.clear_queue()

        worker = self._worker
        self._worker = None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

    def _boosted_priority(self, priority: int) -> int:
        """Lower the priority number for requests made just after a language change."""

        changed_at = self.state.last_language_change_time
        if changed_at is None:
            return priority
        window = self.settings.language_boost_window_seconds
        boost_max = self.settings.language_boost_max
        elapsed = self._clock() - changed_at
        if boost_max <= 0 or window <= 0 or elapsed >= window:
            return priority
        step = window / boost_max
        boost = max(0, boost_max - math.floor(elapsed / step))
        return max(1, priority - boost)

    def _enqueue(self, request: TranslationRequest) -> None:
        queue = self.state.request_queue
        queue.append(request)
        queue.sort(key=lambda queued: queued.priority)
        self._ensure_worker()
        self._wake()

    def _requeue_front(self, request: TranslationRequest, priority_boost: int) -> None:
        """Put a retried copy of a request back at the head of the queue."""

        retried = replace(
            request,
            retries=request.retries + 1,
            priority=request.priority - priority_boost,
            timestamp=self._clock(),
        )
        self.state.request_queue.insert(0, retried)

    def _ensure_worker(self) -> None:
        if self._worker is not None and not self._worker.done():
            return
        self._wakeup = asyncio.Event()
        self._worker = asyncio.get_running_loop().create_task(self._run_worker())

    def _wake(self) -> None:
        if self._wakeup is not None:
            self._wakeup.set()

    async def _run_worker(self) -> None:
        """Run queue passes until cancelled, sleeping between them."""

        assert self._wakeup is not None
        wakeup = self._wakeup
        while True:
            wakeup.clear()
            delay = self._process_queue()
            if delay is None:
                await wakeup.wait()
            elif delay > 0:
                await self._wait(delay, wakeup)

    async def _wait(self, delay: float, wakeup: asyncio.Event) -> None:
        """Sleep for `delay` seconds or until woken, whichever comes first."""

        sleeper = asyncio.ensure_future(self._sleeper(delay))
        waker = asyncio.ensure_future(wakeup.wait())
        try:
            await asyncio.wait({sleeper, waker}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waker.cancel()

    def _process_queue(self) -> float | None:
        """Run one queue pass.

        Returns:
            Seconds to wait before the next pass, `0.0` to run again right away,
            or `None` to idle until the next wake-up.
        """

        state = self.state
        settings = self.settings
        now = self._clock()

        if state.rate_limit_hit and now < state.rate_limit_reset_time:
            wait_seconds = state.rate_limit_reset_time - now
            _log.debug("cooldown_wait", wait_seconds=f"{wait_seconds:.3f}")
            return wait_seconds
        if state.rate_limit_hit:
            state.rate_limit_hit = False

        if not state.request_queue:
            return None

        if now < state.resume_at:
            return state.resume_at - now

        if state.active_requests >= settings.max_concurrent_requests:
            return settings.concurrency_poll_seconds

        if state.last_request_time is not None:
            since_last = now - state.last_request_time
            if since_last < settings.request_interval_seconds:
                return settings.request_interval_seconds - since_last

        request = state.request_queue.pop(0)
        if request.future.done():
            # caller went away (cancelled) or the request was settled elsewhere
            return 0.0

        state.active_requests += 1
        state.last_request_time = now
        task = asyncio.get_running_loop().create_task(self._process_request(request))
        self._inflight.add(task)
        task.add_done_callback(self._on_request_done)
        return 0.0

    def _on_request_done(self, task: asyncio.Task[None]) -> None:
        self._inflight.discard(task)
        state = self.state
        state.active_requests -= 1
        if state.rate_limit_hit:
            state.resume_at = self._clock() + state.backoff_seconds
        if not task.cancelled() and task.exception() is not None:
            _log.error("dispatch_crashed", error_type=type(task.exception()).__name__)
        self._wake()

    async def _process_request(self, request: TranslationRequest) -> None:
        """Perform one endpoint call and settle, retry, or fall back."""

        try:
            response = await self._call_transport(request)
        except Exception as exc:
            self._handle_failure(request, exc)
            return

        if response.rate_limited:
            self._handle_rate_limit(request, response)
            return

        translated_text = response.translated_text or request.text
        if translated_text != request.text:
            self.cache.set(PersistentCache.make_key(request.text, request.target_lang), translated_text)

        state = self.state
        if not state.rate_limit_hit and state.backoff_seconds > self.settings.backoff_initial_seconds:
            state.backoff_seconds = max(
                state.backoff_seconds / 2, self.settings.backoff_initial_seconds
            )
        request.resolve(translated_text)

    async def _call_transport(self, request: TranslationRequest) -> TranslateResponse:
        timeout = self.settings.request_timeout_seconds
        try:
            return await asyncio.wait_for(
                self.transport.translate(request.text, request.target_lang),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise TranslationServiceError(
                f"Translate request timed out after {timeout}s.",
                failure_kind="timeout",
            ) from exc

    def _handle_rate_limit(self, request: TranslationRequest, response: TranslateResponse) -> None:
        state = self.state
        settings = self.settings
        cooldown = (
            response.retry_after_ms / 1000
            if response.retry_after_ms
            else settings.rate_limit_cooldown_seconds
        )
        state.rate_limit_hit = True
        state.rate_limit_reset_time = self._clock() + cooldown
        state.backoff_seconds = min(state.backoff_seconds * 2, settings.backoff_max_seconds)
        _log.warning(
            "rate_limited",
            request_id=request.id,
            retries=request.retries,
            cooldown_seconds=f"{cooldown:.3f}",
            backoff_seconds=f"{state.backoff_seconds:.3f}",
        )

        if request.retries < settings.max_retries:
            self._requeue_front(request, priority_boost=10)
            return

        _log.warning("max_retries_fallback", request_id=request.id)
        request.resolve(request.text)

    def _handle_failure(self, request: TranslationRequest, error: Exception) -> None:
        _log.error(
            "request_failed",
            request_id=request.id,
            retries=request.retries,
            error_type=type(error).__name__,
        )
        if request.retries < self.settings.max_retries:
            self._requeue_front(request, priority_boost=5)
            return
        request.reject(error)
