"""Configuration model and loaders for jdmtranslate.

Responsibilities:
- Define scheduler pacing and retry policy as a typed, validated dataclass.
- Define runtime configuration for endpoint, storage, and cache settings.
- Provide loader entry points for YAML- and environment-based configuration.

Key types:
- `SchedulerSettings`: concurrency, spacing, retry, and backoff policy.
- `TranslationConfig`: normalized runtime settings for one process.
- `ConfigLoader`: static construction helpers for `TranslationConfig`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import (
    normalize_language_code,
    normalize_optional_string,
    parse_non_negative_float,
    parse_permissive_boolean,
    parse_positive_int,
)


_DEFAULT_ENDPOINT_URL = "http://localhost:3000"
_DEFAULT_STORAGE_DIR = Path(".jdmtranslate")
_DEFAULT_CACHE_KEY = "jdm-translation-cache"
_DEFAULT_CACHE_EXPIRY_SECONDS = 24 * 60 * 60
_DEFAULT_STORAGE_QUOTA_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True, slots=True)
class SchedulerSettings:
    """Pacing, retry, and backoff policy for the translation scheduler.

    Attributes:
        max_concurrent_requests: Upper bound on in-flight endpoint calls.
        request_interval_seconds: Minimum global spacing between dispatches.
        max_retries: Retries per request before fallback or rejection.
        backoff_initial_seconds: Backoff floor; also the reset value.
        backoff_max_seconds: Backoff ceiling.
        rate_limit_cooldown_seconds: Cooldown when the endpoint omits `retryAfter`.
        concurrency_poll_seconds: Re-check delay while the concurrency cap is reached.
        request_timeout_seconds: Per-request bound, `None` disables it.
        language_boost_window_seconds: Window after a language change with boosted priority.
        language_boost_max: Largest priority boost, right after a language change.
        source_language: Language of source strings; never translated.
    """

    max_concurrent_requests: int = 2
    request_interval_seconds: float = 0.5
    max_retries: int = 3
    backoff_initial_seconds: float = 1.0
    backoff_max_seconds: float = 30.0
    rate_limit_cooldown_seconds: float = 10.0
    concurrency_poll_seconds: float = 0.1
    request_timeout_seconds: float | None = 15.0
    language_boost_window_seconds: float = 5.0
    language_boost_max: int = 40
    source_language: str = "en"

    def validate(self) -> None:
        """Validate scheduler settings before constructing a scheduler."""

        if self.max_concurrent_requests <= 0:
            raise ValueError("`max_concurrent_requests` must be a positive integer.")
        if self.max_retries < 0:
            raise ValueError("`max_retries` must be zero or a positive integer.")
        for name in (
            "request_interval_seconds",
            "backoff_initial_seconds",
            "backoff_max_seconds",
            "rate_limit_cooldown_seconds",
            "concurrency_poll_seconds",
            "language_boost_window_seconds",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"`{name}` must be a non-negative number.")
        if self.backoff_max_seconds < self.backoff_initial_seconds:
            raise ValueError(
                "`backoff_max_seconds` must be greater than or equal to "
                "`backoff_initial_seconds`."
            )
        if self.request_timeout_seconds is not None and self.request_timeout_seconds <= 0:
            raise ValueError("`request_timeout_seconds` must be positive when set.")
        if self.language_boost_max < 0:
            raise ValueError("`language_boost_max` must be zero or a positive integer.")
        if not self.source_language.strip():
            raise ValueError("`source_language` must be a non-empty string.")


@dataclass(slots=True)
class TranslationConfig:
    """Runtime configuration for one translation process.

    Attributes:
        endpoint_url: Base URL of the site exposing `POST /api/translate`.
        storage_dir: Directory backing local storage (cache and preferences).
        cache_key: Local-storage key holding the serialized translation cache.
        cache_expiry_seconds: Cache entry time-to-live.
        storage_quota_bytes: Local storage quota; `None` disables the quota.
        default_language: Language used when no preference is stored.
        preload_enabled: Whether language switches warm the cache in the background.
        scheduler: Scheduler pacing and retry policy.
    """

    endpoint_url: str = _DEFAULT_ENDPOINT_URL
    storage_dir: Path = _DEFAULT_STORAGE_DIR
    cache_key: str = _DEFAULT_CACHE_KEY
    cache_expiry_seconds: float = _DEFAULT_CACHE_EXPIRY_SECONDS
    storage_quota_bytes: int | None = _DEFAULT_STORAGE_QUOTA_BYTES
    default_language: str = "en"
    preload_enabled: bool = True
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)

    def validate(self) -> None:
        """Validate runtime configuration values."""

        if not self.endpoint_url.startswith(("http://", "https://")):
            raise ValueError("`endpoint_url` must be an http(s) URL.")
        if not self.cache_key.strip():
            raise ValueError("`cache_key` must be a non-empty string.")
        if self.cache_expiry_seconds <= 0:
            raise ValueError("`cache_expiry_seconds` must be positive.")
        if self.storage_quota_bytes is not None and self.storage_quota_bytes <= 0:
            raise ValueError("`storage_quota_bytes` must be positive when set.")
        if not self.default_language.strip():
            raise ValueError("`default_language` must be a non-empty string.")
        self.scheduler.validate()


class ConfigLoader:
    """Factory methods for creating `TranslationConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "endpoint_url",
            "storage_dir",
            "cache_key",
            "cache_expiry_seconds",
            "storage_quota_bytes",
            "default_language",
            "preload_enabled",
            "scheduler",
        }
    )
    _FLOAT_SCHEDULER_KEYS = frozenset(
        {
            "request_interval_seconds",
            "backoff_initial_seconds",
            "backoff_max_seconds",
            "rate_limit_cooldown_seconds",
            "concurrency_poll_seconds",
            "language_boost_window_seconds",
        }
    )
    _INT_SCHEDULER_KEYS = frozenset({"max_concurrent_requests"})
    _NON_NEGATIVE_INT_SCHEDULER_KEYS = frozenset({"max_retries", "language_boost_max"})

    @staticmethod
    def from_yaml(path: Path) -> TranslationConfig:
        """Create a validated config from a YAML file."""

        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return ConfigLoader.from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_mapping(payload: Mapping[str, Any], source_label: str) -> TranslationConfig:
        """Build a validated config from a mapping payload."""

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")

        config = TranslationConfig()
        endpoint_url = normalize_optional_string(payload.get("endpoint_url"))
        if endpoint_url is not None:
            config.endpoint_url = endpoint_url.rstrip("/")
        storage_dir = normalize_optional_string(payload.get("storage_dir"))
        if storage_dir is not None:
            config.storage_dir = Path(storage_dir)
        cache_key = normalize_optional_string(payload.get("cache_key"))
        if cache_key is not None:
            config.cache_key = cache_key
        if payload.get("cache_expiry_seconds") is not None:
            config.cache_expiry_seconds = ConfigLoader._labelled(
                parse_non_negative_float,
                payload["cache_expiry_seconds"],
                "cache_expiry_seconds",
                source_label,
            )
        if "storage_quota_bytes" in payload:
            raw_quota = payload["storage_quota_bytes"]
            config.storage_quota_bytes = (
                None
                if raw_quota is None
                else ConfigLoader._labelled(
                    parse_positive_int, raw_quota, "storage_quota_bytes", source_label
                )
            )
        default_language = normalize_language_code(payload.get("default_language"))
        if default_language is not None:
            config.default_language = default_language
        if "preload_enabled" in payload:
            parsed = parse_permissive_boolean(payload["preload_enabled"])
            if parsed is None:
                raise ValueError(
                    f"{source_label} field `preload_enabled` must be a boolean value "
                    "(`true`/`false`, `1`/`0`, `yes`/`no`)."
                )
            config.preload_enabled = parsed

        scheduler_payload = payload.get("scheduler")
        if scheduler_payload is not None:
            if not isinstance(scheduler_payload, Mapping):
                raise ValueError(f"{source_label} field `scheduler` must be a mapping/object.")
            config.scheduler = ConfigLoader._scheduler_from_mapping(
                scheduler_payload, source_label
            )

        config.validate()
        return config

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> TranslationConfig:
        """Create a validated config from `JDMTRANSLATE_*` environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for key in ConfigLoader._SUPPORTED_YAML_KEYS - {"scheduler"}:
            value = normalize_optional_string(env_map.get(f"JDMTRANSLATE_{key.upper()}"))
            if value is not None:
                payload[key] = value

        scheduler_payload: dict[str, Any] = {}
        for scheduler_field in fields(SchedulerSettings):
            env_key = f"JDMTRANSLATE_SCHEDULER_{scheduler_field.name.upper()}"
            value = normalize_optional_string(env_map.get(env_key))
            if value is not None:
                scheduler_payload[scheduler_field.name] = value
        if scheduler_payload:
            payload["scheduler"] = scheduler_payload

        return ConfigLoader.from_mapping(payload, source_label="environment")

    @staticmethod
    def _scheduler_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> SchedulerSettings:
        """Parse a nested `scheduler` mapping into validated settings."""

        supported = {scheduler_field.name for scheduler_field in fields(SchedulerSettings)}
        unknown = sorted(set(payload).difference(supported))
        if unknown:
            raise ValueError(
                f"{source_label} field `scheduler` includes unsupported key(s): "
                f"{', '.join(unknown)}."
            )

        values: dict[str, Any] = {}
        for key, raw_value in payload.items():
            label = f"scheduler.{key}"
            if key in ConfigLoader._FLOAT_SCHEDULER_KEYS:
                values[key] = ConfigLoader._labelled(
                    parse_non_negative_float, raw_value, label, source_label
                )
            elif key in ConfigLoader._INT_SCHEDULER_KEYS:
                values[key] = ConfigLoader._labelled(
                    parse_positive_int, raw_value, label, source_label
                )
            elif key in ConfigLoader._NON_NEGATIVE_INT_SCHEDULER_KEYS:
                parsed = ConfigLoader._labelled(
                    parse_non_negative_float, raw_value, label, source_label
                )
                if parsed != int(parsed):
                    raise ValueError(f"{source_label} field `{label}` must be an integer.")
                values[key] = int(parsed)
            elif key == "request_timeout_seconds":
                normalized = normalize_optional_string(raw_value)
                if normalized is None or normalized.lower() in {"none", "off"}:
                    values[key] = None
                else:
                    values[key] = ConfigLoader._labelled(
                        parse_non_negative_float, raw_value, label, source_label
                    )
            elif key == "source_language":
                language = normalize_language_code(raw_value)
                if language is None:
                    raise ValueError(f"{source_label} field `{label}` must be non-empty.")
                values[key] = language

        settings = SchedulerSettings(**values)
        try:
            settings.validate()
        except ValueError as exc:
            raise ValueError(f"{source_label}: {exc}") from exc
        return settings

    @staticmethod
    def _labelled(parser, raw_value: object, field_name: str, source_label: str):
        """Run a value parser and prefix its error with the config source label."""

        try:
            return parser(raw_value, field_name)
        except ValueError as exc:
            raise ValueError(f"{source_label} field {exc}") from exc
