"""UI-facing bindings for translated text."""

from .reactive_text import ReactiveText, TextState

__all__ = ["ReactiveText", "TextState"]
