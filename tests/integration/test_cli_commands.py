"""CLI integration tests for translate, preload, cache, and language commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from jdmtranslate.cli import app
from jdmtranslate.errors import TranslationServiceError
from jdmtranslate.translation.client import TranslateEndpointClient, TranslateResponse


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Write a fast, isolated config pointing storage at a temp directory."""

    path = tmp_path / "jdmtranslate.yml"
    path.write_text(
        f"""
endpoint_url: http://shop.test
storage_dir: "{(tmp_path / "state").as_posix()}"
scheduler:
  request_interval_seconds: 0
  max_retries: 0
""".strip(),
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def _mock_endpoint(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str]]:
    """Mock translate endpoint calls with deterministic bracketed translations."""

    calls: list[tuple[str, str]] = []

    async def _mock_translate(self, text: str, target_lang: str) -> TranslateResponse:
        """Record the call and return a deterministic translation."""

        _ = self
        calls.append((text, target_lang))
        return TranslateResponse(translated_text=f"{text} [{target_lang}]")

    monkeypatch.setattr(TranslateEndpointClient, "translate", _mock_translate)
    return calls


def test_translate_command_prints_rows_and_caches_results(
    config_path: Path, _mock_endpoint: list[tuple[str, str]]
) -> None:
    """Translate should print one row per text and reuse the persistent cache on rerun."""

    runner = CliRunner()

    first = runner.invoke(
        app, ["translate", "Home", "Engine", "--lang", "ja", "--config", str(config_path)]
    )
    second = runner.invoke(
        app, ["translate", "Home", "--lang", "日本語", "--config", str(config_path)]
    )

    assert first.exit_code == 0, first.output
    assert "Home => Home [ja]" in first.output
    assert "Engine => Engine [ja]" in first.output
    assert "Queue: 0 queued, 0 active" in first.output
    assert second.exit_code == 0, second.output
    assert "Home => Home [ja]" in second.output
    assert sorted(_mock_endpoint) == [("Engine", "ja"), ("Home", "ja")]


def test_translate_command_falls_back_or_fails_in_strict_mode(
    config_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Endpoint failures should fall back to source text unless `--strict` is set."""

    async def _failing_translate(self, text: str, target_lang: str) -> TranslateResponse:
        """Raise a transport failure for every request."""

        _ = (self, text, target_lang)
        raise TranslationServiceError("connection refused", failure_kind="transport")

    monkeypatch.setattr(TranslateEndpointClient, "translate", _failing_translate)
    runner = CliRunner()

    lenient = runner.invoke(
        app, ["translate", "Mileage", "--lang", "ja", "--config", str(config_path)]
    )
    strict = runner.invoke(
        app, ["translate", "Mileage", "--lang", "ja", "--strict", "--config", str(config_path)]
    )

    assert lenient.exit_code == 0, lenient.output
    assert "Mileage => Mileage" in lenient.output
    assert strict.exit_code == 1
    assert "translate failed: connection refused" in strict.output


def test_translate_command_reports_missing_config_file(tmp_path: Path) -> None:
    """A missing `--config` path should fail with stage-aware diagnostics."""

    runner = CliRunner()
    result = runner.invoke(
        app, ["translate", "Home", "--config", str(tmp_path / "missing.yml")]
    )

    assert result.exit_code == 1
    assert "translate failed at stage `config`" in result.output
    assert "Hint: Provide an existing path via `--config <path.yaml>`." in result.output


def test_preload_then_cache_maintenance_commands(
    config_path: Path, _mock_endpoint: list[tuple[str, str]]
) -> None:
    """Preload should warm the cache, which cache commands then inspect and trim."""

    runner = CliRunner()

    preload = runner.invoke(
        app,
        [
            "preload",
            "--lang",
            "ja",
            "--category",
            "messages",
            "--batch-delay",
            "0",
            "--config",
            str(config_path),
        ],
    )
    stats = runner.invoke(app, ["cache-stats", "--config", str(config_path)])
    prune = runner.invoke(app, ["cache-prune", "--percent", "25", "--config", str(config_path)])
    clean = runner.invoke(app, ["cache-clean", "--config", str(config_path)])
    clear = runner.invoke(app, ["cache-clear", "--config", str(config_path)])
    after_clear = runner.invoke(app, ["cache-stats", "--config", str(config_path)])

    assert preload.exit_code == 0, preload.output
    assert "Language: ja" in preload.output
    assert "Phrases: 8/8 completed" in preload.output
    assert "Translated: 8" in preload.output
    assert "Failed: 0" in preload.output
    assert len(_mock_endpoint) == 8
    assert stats.exit_code == 0, stats.output
    assert "Cache key: jdm-translation-cache" in stats.output
    assert "Entries: 8" in stats.output
    assert "Pruned: 2" in prune.output
    assert "Entries remaining: 6" in clean.output
    assert "Cache cleared." in clear.output
    assert "Entries: 0" in after_clear.output


def test_preload_rejects_unknown_category(config_path: Path) -> None:
    """Unknown phrase categories should fail before any request is made."""

    runner = CliRunner()
    result = runner.invoke(
        app,
        ["preload", "--lang", "ja", "--category", "wheels", "--config", str(config_path)],
    )

    assert result.exit_code == 1
    assert "preload failed at stage `preload`: Unknown phrase categories: wheels." in result.output
    assert "Hint: Use one of: ui, cars, messages." in result.output


def test_language_command_saves_and_shows_preference(config_path: Path) -> None:
    """Language command should persist the preference across invocations."""

    runner = CliRunner()

    initial = runner.invoke(app, ["language", "--config", str(config_path)])
    saved = runner.invoke(app, ["language", "--set", "日本語", "--config", str(config_path)])
    shown = runner.invoke(app, ["language", "--config", str(config_path)])

    assert initial.exit_code == 0, initial.output
    assert "Language: en (English)" in initial.output
    assert saved.exit_code == 0, saved.output
    assert "Language: ja (日本語)" in shown.output
