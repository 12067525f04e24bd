"""Domain exceptions for translation, storage, and CLI diagnostics."""

from __future__ import annotations


class TranslationServiceError(RuntimeError):
    """Raised when a translate endpoint request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        """Initialize endpoint error metadata for retry and diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code


class StorageError(RuntimeError):
    """Raised when a local storage backend cannot read or persist an item."""


class StorageQuotaExceededError(StorageError):
    """Raised when persisting an item would exceed the storage quota."""

    def __init__(self, key: str, required_bytes: int, quota_bytes: int) -> None:
        """Initialize quota error with the offending key and byte accounting."""

        super().__init__(
            f"Storing `{key}` needs {required_bytes} bytes; quota is {quota_bytes} bytes."
        )
        self.key = key
        self.required_bytes = required_bytes
        self.quota_bytes = quota_bytes


class CommandError(RuntimeError):
    """Raised when a CLI command fails at a specific stage."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped command error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint
