"""Local key/value storage backends.

Responsibilities:
- Provide a small string key/value interface modelled on browser local storage.
- Enforce a byte quota so callers can exercise storage-pressure handling.
- Offer an in-memory backend and a file-per-key filesystem backend.

Key types:
- `LocalStorage`: storage interface.
- `MemoryLocalStorage`: dict-backed storage with an optional quota.
- `FileLocalStorage`: directory-backed storage, one file per key.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote, unquote

from ..errors import StorageError, StorageQuotaExceededError


DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024
_ITEM_SUFFIX = ".item"


def _item_size(key: str, value: str) -> int:
    """Return the accounted byte size of one stored key/value pair."""

    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class LocalStorage:
    """Interface for string key/value persistence."""

    def get_item(self, key: str) -> str | None:
        """Return the stored value for a key, or `None` when missing."""

        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        """Persist a value under a key, replacing any previous value."""

        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        """Delete a key; missing keys are ignored."""

        raise NotImplementedError

    def keys(self) -> list[str]:
        """Return stored keys in deterministic order."""

        raise NotImplementedError


class MemoryLocalStorage(LocalStorage):
    """Process-local storage used for tests and ephemeral sessions."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        """Initialize empty storage with an optional byte quota."""

        self.quota_bytes = quota_bytes
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        """Store a value, raising `StorageQuotaExceededError` over quota."""

        if self.quota_bytes is not None:
            used = sum(
                _item_size(existing_key, existing_value)
                for existing_key, existing_value in self._items.items()
                if existing_key != key
            )
            required = used + _item_size(key, value)
            if required > self.quota_bytes:
                raise StorageQuotaExceededError(key, required, self.quota_bytes)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)


class FileLocalStorage(LocalStorage):
    """Filesystem storage writing one file per key under a root directory."""

    def __init__(self, root: Path, quota_bytes: int | None = DEFAULT_QUOTA_BYTES) -> None:
        """Initialize storage rooted at a directory, created lazily on first write."""

        self.root = root
        self.quota_bytes = quota_bytes

    def _path_for(self, key: str) -> Path:
        """Map a storage key to a filesystem-safe file path."""

        return self.root / f"{quote(key, safe='')}{_ITEM_SUFFIX}"

    def get_item(self, key: str) -> str | None:
        """Read a stored value, mapping OS failures to `StorageError`."""

        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read storage item `{key}`: {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        """Write a value after checking the directory quota."""

        if self.quota_bytes is not None:
            required = self._used_bytes(excluding=key) + _item_size(key, value)
            if required > self.quota_bytes:
                raise StorageQuotaExceededError(key, required, self.quota_bytes)

        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(value, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Failed to write storage item `{key}`: {exc}") from exc

    def remove_item(self, key: str) -> None:
        """Delete a stored item, mapping OS failures to `StorageError`."""

        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to remove storage item `{key}`: {exc}") from exc

    def keys(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            unquote(path.name[: -len(_ITEM_SUFFIX)])
            for path in self.root.glob(f"*{_ITEM_SUFFIX}")
        )

    def _used_bytes(self, *, excluding: str) -> int:
        """Return accounted bytes for all stored items except one key."""

        total = 0
        for key in self.keys():
            if key == excluding:
                continue
            value = self.get_item(key)
            if value is not None:
                total += _item_size(key, value)
        return total
