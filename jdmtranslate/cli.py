"""Command-line interface for jdmtranslate.

Responsibilities:
- Expose user-facing commands for translating text, warming and maintaining
  the cache, and managing the language preference.
- Convert CLI arguments into `TranslationConfig` and a wired runtime.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import (
    echo_cache_stats,
    echo_preload_report,
    echo_queue_status,
    echo_translations,
    exit_with_command_error,
)
from .config import ConfigLoader, TranslationConfig
from .errors import CommandError
from .languages import get_language_display_name, resolve_language_code
from .runtime import TranslationRuntime, build_runtime
from .telemetry.logger import configure_logging
from .translation.preload import PreloadReport, preload_translations
from .translation.service import translate_or_fallback, translate_text

app = typer.Typer(
    name="jdmtranslate",
    no_args_is_help=True,
    help="JDM marketplace translation CLI.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with runtime defaults."),
]
EndpointOption = Annotated[
    str | None,
    typer.Option("--endpoint", help="Base URL of the site exposing `/api/translate`."),
]
StorageDirOption = Annotated[
    Path | None,
    typer.Option("--storage-dir", help="Directory for the persistent cache and preferences."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Emit scheduler and cache event logs to stderr."),
]


def _load_config(
    config_file: Path | None,
    endpoint: str | None,
    storage_dir: Path | None,
) -> TranslationConfig:
    """Load YAML or environment config and apply explicit CLI overrides."""

    try:
        if config_file is not None:
            config = ConfigLoader.from_yaml(config_file)
        else:
            config = ConfigLoader.from_env()
    except FileNotFoundError as exc:
        raise CommandError(
            stage="config",
            detail=f"Config file not found: `{config_file}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise CommandError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc

    if endpoint is not None:
        config.endpoint_url = endpoint.rstrip("/")
    if storage_dir is not None:
        config.storage_dir = storage_dir
    try:
        config.validate()
    except ValueError as exc:
        raise CommandError(stage="config", detail=str(exc)) from exc
    return config


def _open_runtime(
    config_file: Path | None,
    endpoint: str | None,
    storage_dir: Path | None,
    verbose: bool,
) -> TranslationRuntime:
    configure_logging(level="DEBUG" if verbose else "WARNING")
    runtime = build_runtime(_load_config(config_file, endpoint, storage_dir))
    runtime.cache.init()
    return runtime


def _resolve_language(runtime: TranslationRuntime, lang: str | None) -> str:
    if lang is None:
        return runtime.preferences.get_user_language()
    return resolve_language_code(lang.strip())


async def _translate_all(
    runtime: TranslationRuntime,
    texts: list[str],
    language: str,
    strict: bool,
) -> list[tuple[str, str]]:
    """Schedule all texts at once and collect results in input order."""

    translate = translate_text if strict else translate_or_fallback
    try:
        results = await asyncio.gather(
            *(translate(runtime.scheduler, text, language) for text in texts)
        )
    finally:
        await runtime.aclose()
    return list(zip(texts, results))


async def _preload(
    runtime: TranslationRuntime,
    language: str,
    categories: list[str] | None,
    batch_delay: float,
) -> PreloadReport:
    try:
        return await preload_translations(
            runtime.scheduler,
            runtime.cache,
            language,
            categories,
            registry=runtime.context.preload_registry,
            batch_delay_seconds=batch_delay,
        )
    finally:
        await runtime.aclose()


@app.command("translate")
def translate_command(
    texts: Annotated[list[str], typer.Argument(help="Source texts to translate.")],
    lang: Annotated[
        str | None,
        typer.Option("--lang", help="Target language code or display name (default: preference)."),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Fail instead of falling back to source text."),
    ] = False,
    config_file: ConfigOption = None,
    endpoint: EndpointOption = None,
    storage_dir: StorageDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Translate texts through the rate-controlled scheduler."""

    try:
        runtime = _open_runtime(config_file, endpoint, storage_dir, verbose)
        language = _resolve_language(runtime, lang)
        rows = asyncio.run(_translate_all(runtime, texts, language, strict))
    except Exception as exc:
        exit_with_command_error("translate", exc)

    echo_translations(rows)
    echo_queue_status(runtime.scheduler.status())


@app.command("preload")
def preload_command(
    lang: Annotated[str, typer.Option("--lang", help="Target language code or display name.")],
    categories: Annotated[
        list[str] | None,
        typer.Option("--category", help="Phrase category to warm (repeatable; default: all)."),
    ] = None,
    batch_delay: Annotated[
        float,
        typer.Option("--batch-delay", min=0.0, help="Pause between preload batches in seconds."),
    ] = 1.0,
    config_file: ConfigOption = None,
    endpoint: EndpointOption = None,
    storage_dir: StorageDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Warm the persistent cache with common site phrases."""

    try:
        runtime = _open_runtime(config_file, endpoint, storage_dir, verbose)
        language = _resolve_language(runtime, lang)
        unknown = sorted(set(categories or ()) - set(runtime.context.preload_registry.categories()))
        if unknown:
            raise CommandError(
                stage="preload",
                detail=f"Unknown phrase categories: {', '.join(unknown)}.",
                hint="Use one of: "
                + ", ".join(runtime.context.preload_registry.categories())
                + ".",
            )
        report = asyncio.run(_preload(runtime, language, categories, batch_delay))
    except Exception as exc:
        exit_with_command_error("preload", exc)

    echo_preload_report(report)


@app.command("cache-stats")
def cache_stats_command(
    config_file: ConfigOption = None,
    storage_dir: StorageDirOption = None,
) -> None:
    """Show persistent cache statistics."""

    try:
        runtime = _open_runtime(config_file, None, storage_dir, False)
    except Exception as exc:
        exit_with_command_error("cache-stats", exc)

    echo_cache_stats(runtime.cache)


@app.command("cache-clean")
def cache_clean_command(
    config_file: ConfigOption = None,
    storage_dir: StorageDirOption = None,
) -> None:
    """Remove expired cache entries."""

    try:
        runtime = _open_runtime(config_file, None, storage_dir, False)
        runtime.cache.clean_expired()
    except Exception as exc:
        exit_with_command_error("cache-clean", exc)

    typer.echo(f"Entries remaining: {len(runtime.cache)}")


@app.command("cache-prune")
def cache_prune_command(
    percent: Annotated[
        float,
        typer.Option("--percent", min=0.0, max=100.0, help="Share of oldest entries to remove."),
    ] = 25.0,
    config_file: ConfigOption = None,
    storage_dir: StorageDirOption = None,
) -> None:
    """Remove the oldest share of cache entries."""

    try:
        runtime = _open_runtime(config_file, None, storage_dir, False)
        before = len(runtime.cache)
        runtime.cache.prune(percent)
    except Exception as exc:
        exit_with_command_error("cache-prune", exc)

    typer.echo(f"Pruned: {before - len(runtime.cache)}")
    typer.echo(f"Entries remaining: {len(runtime.cache)}")


@app.command("cache-clear")
def cache_clear_command(
    config_file: ConfigOption = None,
    storage_dir: StorageDirOption = None,
) -> None:
    """Delete every cached translation."""

    try:
        runtime = _open_runtime(config_file, None, storage_dir, False)
        runtime.cache.clear()
    except Exception as exc:
        exit_with_command_error("cache-clear", exc)

    typer.echo("Cache cleared.")


@app.command("language")
def language_command(
    set_language: Annotated[
        str | None,
        typer.Option("--set", help="Language code or display name to save as preference."),
    ] = None,
    config_file: ConfigOption = None,
    storage_dir: StorageDirOption = None,
) -> None:
    """Show or save the preferred site language."""

    try:
        runtime = _open_runtime(config_file, None, storage_dir, False)
        if set_language is not None:
            language = resolve_language_code(set_language.strip())
            if not language:
                raise CommandError(stage="language", detail="Language code must be non-empty.")
            runtime.preferences.save_user_language(language)
        current = runtime.preferences.get_user_language()
    except Exception as exc:
        exit_with_command_error("language", exc)

    typer.echo(f"Language: {current} ({get_language_display_name(current)})")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
