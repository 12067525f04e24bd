"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
translation rows, preload reports, and cache statistics.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import CommandError
from .translation.cache import PersistentCache
from .translation.preload import PreloadReport
from .translation.scheduler import QueueStatus


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, CommandError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_translations(rows: list[tuple[str, str]]) -> None:
    """Print one `source => translated` row per input text."""

    for source, translated in rows:
        typer.echo(f"{source} => {translated}")


def echo_queue_status(status: QueueStatus) -> None:
    typer.echo(
        f"Queue: {status.queue_length} queued, {status.active_requests} active, "
        f"backoff {status.backoff_seconds:.1f}s"
    )


def echo_preload_report(report: PreloadReport) -> None:
    """Print preload counters for one language."""

    typer.echo(f"Language: {report.language}")
    typer.echo(f"Phrases: {report.completed}/{report.total} completed")
    typer.echo(f"Translated: {report.translated}")
    typer.echo(f"Failed: {report.failed}")


def echo_cache_stats(cache: PersistentCache) -> None:
    typer.echo(f"Cache key: {cache.cache_key}")
    typer.echo(f"Entries: {len(cache)}")
    typer.echo(f"Expiry (s): {cache.expiry_ms // 1000}")
