"""HTTP client for the site's translate endpoint.

Responsibilities:
- Send `POST /api/translate` requests with `{text, targetLang}` JSON bodies.
- Normalize responses into `TranslateResponse`, including rate-limit signals.
- Raise actionable `TranslationServiceError` exceptions for transport failures.

The endpoint itself lives outside this package; only its consumed contract is
implemented here.
"""

from __future__ import annotations

import asyncio
import json
import socket
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from ..errors import TranslationServiceError


_MAX_ERROR_MESSAGE_CHARS = 180


@dataclass(frozen=True, slots=True)
class TranslateResponse:
    """Normalized translate endpoint response.

    Attributes:
        translated_text: Translated text, or `None` when the endpoint omitted it.
        rate_limited: Whether the endpoint asked the caller to slow down.
        retry_after_ms: Server-suggested cooldown in milliseconds, if provided.
        cached: Whether the endpoint served the result from its own cache.
    """

    translated_text: str | None = None
    rate_limited: bool = False
    retry_after_ms: int | None = None
    cached: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> TranslateResponse:
        """Validate a decoded JSON payload and build a response."""

        if not isinstance(payload, dict):
            raise TranslationServiceError(
                "Translate endpoint returned a non-object JSON payload.",
                failure_kind="invalid_payload",
            )

        translated_text = payload.get("translatedText")
        if translated_text is not None and not isinstance(translated_text, str):
            raise TranslationServiceError(
                "Translate endpoint returned a non-string `translatedText`.",
                failure_kind="invalid_payload",
            )

        retry_after = payload.get("retryAfter")
        retry_after_ms: int | None = None
        if isinstance(retry_after, int | float) and not isinstance(retry_after, bool):
            retry_after_ms = max(0, int(retry_after))

        return cls(
            translated_text=translated_text,
            rate_limited=payload.get("rateLimited") is True,
            retry_after_ms=retry_after_ms,
            cached=payload.get("cached") is True,
        )


class TranslationTransport(Protocol):
    """Protocol for anything able to perform one translate request."""

    async def translate(self, text: str, target_lang: str) -> TranslateResponse:
        """Translate one text into the target language."""


class TranslateEndpointClient:
    """Requests-based client for the translate endpoint, awaited off-loop."""

    def __init__(
        self,
        base_url: str,
        *,
        endpoint_path: str = "/api/translate",
        timeout_seconds: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize endpoint settings and the shared HTTP session."""

        self.base_url = base_url.rstrip("/")
        self.endpoint_path = endpoint_path
        self.timeout_seconds = timeout_seconds
        self.session = session if session is not None else requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{self.endpoint_path}"

    async def translate(self, text: str, target_lang: str) -> TranslateResponse:
        """Translate one text without blocking the event loop."""

        return await asyncio.to_thread(self.translate_sync, text, target_lang)

    def translate_sync(self, text: str, target_lang: str) -> TranslateResponse:
        """Issue one blocking translate request and normalize the response."""

        try:
            response = self.session.post(
                self.endpoint,
                json={"text": text, "targetLang": target_lang},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = "Translate request timed out."
            else:
                detail = f"Translate request transport error: {self._short_message(str(exc))}"
            raise TranslationServiceError(detail, failure_kind=failure_kind) from exc

        if response.status_code == 429:
            return self._rate_limited_response(response)

        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._http_error_to_service_error(response) from exc

        try:
            payload = json.loads(bytes(response.content).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TranslationServiceError(
                "Translate endpoint returned invalid JSON payload.",
                failure_kind="invalid_payload",
                status_code=response.status_code,
            ) from exc
        return TranslateResponse.from_payload(payload)

    def close(self) -> None:
        """Close the underlying HTTP session."""

        self.session.close()

    @classmethod
    def _rate_limited_response(cls, response: requests.Response) -> TranslateResponse:
        """Map an HTTP 429 into a rate-limited response, honoring `Retry-After`."""

        retry_after_ms: int | None = None
        try:
            body = json.loads(bytes(response.content).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            body = None
        if isinstance(body, dict):
            parsed = TranslateResponse.from_payload(body)
            retry_after_ms = parsed.retry_after_ms

        if retry_after_ms is None:
            header_value = response.headers.get("Retry-After", "").strip()
            if header_value.isdigit():
                retry_after_ms = int(header_value) * 1000

        return TranslateResponse(rate_limited=True, retry_after_ms=retry_after_ms)

    @classmethod
    def _http_error_to_service_error(cls, response: requests.Response) -> TranslationServiceError:
        """Convert an HTTP error response into a normalized service error."""

        status_code = response.status_code
        message = ""
        try:
            body = json.loads(bytes(response.content).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            message = cls._short_message(body["error"])

        failure_kind = "timeout" if status_code in {408, 504} else "http_error"
        headline = "Translate request timed out" if failure_kind == "timeout" else (
            "Translate request failed"
        )
        detail = f"{headline} (HTTP {status_code})"
        detail = f"{detail}: {message}" if message else f"{detail}."
        return TranslationServiceError(detail, failure_kind=failure_kind, status_code=status_code)

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @staticmethod
    def _short_message(text: str) -> str:
        """Normalize and cap user-facing error message length."""

        compact = " ".join(text.split())
        if len(compact) <= _MAX_ERROR_MESSAGE_CHARS:
            return compact
        return f"{compact[: _MAX_ERROR_MESSAGE_CHARS - 1]}..."
