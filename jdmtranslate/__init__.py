"""Top-level package for jdmtranslate.

This package implements the translation subsystem of the JDM import
marketplace: a persistent TTL cache, a prioritised and rate-controlled
translation scheduler, and reactive text bindings for UI strings. The main
wiring entry point is `build_runtime`.
"""

from .config import SchedulerSettings, TranslationConfig
from .runtime import TranslationRuntime, build_runtime

__all__ = [
    "SchedulerSettings",
    "TranslationConfig",
    "TranslationRuntime",
    "build_runtime",
    "__version__",
]

__version__ = "0.1.0"
