"""Storage backends used by the translation cache and preference store."""

from .local_storage import FileLocalStorage, LocalStorage, MemoryLocalStorage

__all__ = ["LocalStorage", "MemoryLocalStorage", "FileLocalStorage"]
