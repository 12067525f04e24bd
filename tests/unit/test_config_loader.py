"""Unit tests for YAML/environment configuration loader behavior."""

from __future__ import annotations

from pathlib import Path

import pytest

from jdmtranslate.config import ConfigLoader, SchedulerSettings, TranslationConfig


def test_config_loader_from_yaml_loads_and_normalizes_values(tmp_path: Path) -> None:
    """YAML loader should parse top-level and nested scheduler values."""

    config_path = tmp_path / "jdmtranslate.yml"
    config_path.write_text(
        """
endpoint_url: " https://jdm.example/ "
storage_dir: " state "
cache_expiry_seconds: "3600"
storage_quota_bytes: 2048
default_language: " JA "
preload_enabled: " no "
scheduler:
  max_concurrent_requests: "3"
  request_interval_seconds: 0.25
  max_retries: 5
  request_timeout_seconds: "off"
""".strip(),
        encoding="utf-8",
    )

    config = ConfigLoader.from_yaml(config_path)

    assert config.endpoint_url == "https://jdm.example"
    assert config.storage_dir == Path("state")
    assert config.cache_expiry_seconds == 3600.0
    assert config.storage_quota_bytes == 2048
    assert config.default_language == "ja"
    assert config.preload_enabled is False
    assert config.scheduler == SchedulerSettings(
        max_concurrent_requests=3,
        request_interval_seconds=0.25,
        max_retries=5,
        request_timeout_seconds=None,
    )


def test_config_loader_empty_yaml_uses_defaults(tmp_path: Path) -> None:
    """An empty YAML document should produce the default configuration."""

    config_path = tmp_path / "empty.yml"
    config_path.write_text("", encoding="utf-8")

    assert ConfigLoader.from_yaml(config_path) == TranslationConfig()


def test_config_loader_rejects_unknown_and_invalid_values(tmp_path: Path) -> None:
    """Loader should fail clearly on unknown keys and invalid field values."""

    unknown_path = tmp_path / "unknown.yml"
    unknown_path.write_text("endpoint_url: http://x\nvoice: echo\n", encoding="utf-8")
    with pytest.raises(ValueError, match=r"unsupported key\(s\): voice"):
        ConfigLoader.from_yaml(unknown_path)

    with pytest.raises(ValueError, match=r"`scheduler\.max_concurrent_requests` must be a positive"):
        ConfigLoader.from_mapping({"scheduler": {"max_concurrent_requests": 0}}, "test")

    with pytest.raises(ValueError, match=r"`scheduler\.max_retries` must be an integer"):
        ConfigLoader.from_mapping({"scheduler": {"max_retries": 1.5}}, "test")

    with pytest.raises(ValueError, match="`backoff_max_seconds` must be greater"):
        ConfigLoader.from_mapping(
            {"scheduler": {"backoff_initial_seconds": 10, "backoff_max_seconds": 5}}, "test"
        )

    with pytest.raises(ValueError, match="`preload_enabled` must be a boolean"):
        ConfigLoader.from_mapping({"preload_enabled": "maybe"}, "test")

    with pytest.raises(ValueError, match="`endpoint_url` must be an http"):
        ConfigLoader.from_mapping({"endpoint_url": "ftp://x"}, "test")

    list_path = tmp_path / "list.yml"
    list_path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="top-level mapping"):
        ConfigLoader.from_yaml(list_path)


def test_config_loader_from_env_reads_prefixed_variables() -> None:
    """Environment loader should read `JDMTRANSLATE_*` and scheduler-prefixed variables."""

    config = ConfigLoader.from_env(
        {
            "JDMTRANSLATE_ENDPOINT_URL": "https://jdm.example",
            "JDMTRANSLATE_CACHE_KEY": "custom-cache",
            "JDMTRANSLATE_PRELOAD_ENABLED": "false",
            "JDMTRANSLATE_SCHEDULER_REQUEST_INTERVAL_SECONDS": "1.5",
            "JDMTRANSLATE_SCHEDULER_SOURCE_LANGUAGE": "EN",
            "UNRELATED": "ignored",
        }
    )

    assert config.endpoint_url == "https://jdm.example"
    assert config.cache_key == "custom-cache"
    assert config.preload_enabled is False
    assert config.scheduler.request_interval_seconds == 1.5
    assert config.scheduler.source_language == "en"
    assert ConfigLoader.from_env({}) == TranslationConfig()
