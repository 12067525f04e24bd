"""Runtime wiring for the translation subsystem.

Responsibilities:
- Build storage, cache, endpoint client, scheduler, preferences, and context
  from one `TranslationConfig`.
- Keep CLI and application code independent from concrete construction details.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import TranslationConfig
from .io.local_storage import FileLocalStorage, LocalStorage
from .preferences import LanguagePreferenceStore
from .translation.cache import PersistentCache
from .translation.client import TranslateEndpointClient, TranslationTransport
from .translation.context import TranslationContext
from .translation.scheduler import TranslationScheduler


@dataclass(slots=True)
class TranslationRuntime:
    """Fully wired translation components sharing one configuration."""

    config: TranslationConfig
    storage: LocalStorage
    cache: PersistentCache
    transport: TranslationTransport
    scheduler: TranslationScheduler
    preferences: LanguagePreferenceStore
    context: TranslationContext

    async def aclose(self) -> None:
        """Stop background work and release the HTTP session."""

        await self.context.aclose()
        await self.scheduler.aclose()
        if isinstance(self.transport, TranslateEndpointClient):
            self.transport.close()


def build_runtime(
    config: TranslationConfig,
    *,
    storage: LocalStorage | None = None,
    transport: TranslationTransport | None = None,
) -> TranslationRuntime:
    """Create a runtime from config, with optional storage/transport overrides."""

    config.validate()
    resolved_storage = (
        storage
        if storage is not None
        else FileLocalStorage(config.storage_dir, quota_bytes=config.storage_quota_bytes)
    )
    cache = PersistentCache(
        resolved_storage,
        cache_key=config.cache_key,
        expiry_seconds=config.cache_expiry_seconds,
    )

    if transport is None:
        timeout = config.scheduler.request_timeout_seconds
        transport = TranslateEndpointClient(
            config.endpoint_url,
            timeout_seconds=timeout if timeout is not None else 60.0,
        )

    cookie_jar = transport.session.cookies if isinstance(transport, TranslateEndpointClient) else None
    preferences = LanguagePreferenceStore(
        resolved_storage,
        cookie_jar,
        default_language=config.default_language,
    )
    scheduler = TranslationScheduler(transport, cache, config.scheduler)
    context = TranslationContext(
        scheduler,
        cache,
        preferences,
        preload_enabled=config.preload_enabled,
    )
    return TranslationRuntime(
        config=config,
        storage=resolved_storage,
        cache=cache,
        transport=transport,
        scheduler=scheduler,
        preferences=preferences,
        context=context,
    )
