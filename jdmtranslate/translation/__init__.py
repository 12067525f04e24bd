"""Translation scheduling, caching, and endpoint access.

This package holds the persistent cache, the rate-controlled scheduler, the
endpoint client, and the caller-facing translation helpers.
"""

from .cache import CacheEntry, PersistentCache
from .client import TranslateEndpointClient, TranslateResponse, TranslationTransport
from .context import TranslationContext
from .preload import PreloadPhrases, PreloadReport, preload_translations
from .scheduler import QueueStatus, SchedulerState, TranslationRequest, TranslationScheduler
from .service import translate_mapping, translate_or_fallback, translate_text

__all__ = [
    "CacheEntry",
    "PersistentCache",
    "TranslateEndpointClient",
    "TranslateResponse",
    "TranslationTransport",
    "TranslationContext",
    "PreloadPhrases",
    "PreloadReport",
    "preload_translations",
    "QueueStatus",
    "SchedulerState",
    "TranslationRequest",
    "TranslationScheduler",
    "translate_mapping",
    "translate_or_fallback",
    "translate_text",
]
