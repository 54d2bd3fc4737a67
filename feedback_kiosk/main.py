"""Feedback kiosk CLI entry point and dependency wiring."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click
from pydantic import ValidationError

from feedback_kiosk.analytics.service import GradeCounts
from feedback_kiosk.config import KioskSettings, load_config
from feedback_kiosk.core.clock import to_local, utc_now
from feedback_kiosk.core.logging import setup_logging
from feedback_kiosk.errors import RemoteServiceError
from feedback_kiosk.kiosk.runtime import KioskRuntime
from feedback_kiosk.models.feedback import GRADE_LABELS, Grade
from feedback_kiosk.persistence.kv_store import SQLiteKeyValueStore
from feedback_kiosk.remote.auth import AuthClient
from feedback_kiosk.remote.client import AccessTokenProvider, SupabaseRestClient

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = "config/kiosk.yaml"

T = TypeVar("T")

Credentials = tuple[str, str]


def _load_settings(config_path: str) -> KioskSettings:
    try:
        settings = load_config(config_path)
    except (FileNotFoundError, ValueError, ValidationError) as exc:
        raise click.ClickException(str(exc)) from exc
    setup_logging(settings.logging.level, json_output=settings.logging.json_output)
    return settings


async def _open_store(settings: KioskSettings) -> SQLiteKeyValueStore:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    store = SQLiteKeyValueStore(settings.db_path)
    await store.initialize()
    return store


def build_runtime(
    settings: KioskSettings,
    store: SQLiteKeyValueStore,
    client: SupabaseRestClient | None = None,
    access_token: AccessTokenProvider | None = None,
) -> tuple[KioskRuntime, SupabaseRestClient]:
    rest_client = client or SupabaseRestClient(settings.remote, access_token=access_token)
    return KioskRuntime(settings, rest_client, store), rest_client


async def _with_runtime(
    settings: KioskSettings,
    action: Callable[[KioskRuntime], Awaitable[T]],
    credentials: Credentials | None = None,
) -> T:
    """Run ``action`` against a fresh runtime.

    With ``credentials`` the data service is queried as that administrator
    and the session is signed out afterwards; otherwise the anon key is used.
    """
    store = await _open_store(settings)
    auth = AuthClient(settings.remote) if credentials else None
    try:
        if auth is not None and credentials is not None:
            await auth.sign_in_with_password(*credentials)
        runtime, client = build_runtime(settings, store, access_token=auth.access_token if auth else None)
        try:
            return await action(runtime)
        finally:
            await client.close()
    finally:
        if auth is not None:
            await auth.sign_out()
            await auth.close()


def _admin_credentials(email: str | None) -> Credentials | None:
    if not email:
        return None
    return email, click.prompt("Password", hide_input=True)


def _format_counts(counts: GradeCounts) -> str:
    parts = [f"{GRADE_LABELS[grade]}: {counts.get(grade)}" for grade in Grade]
    return " | ".join([*parts, f"Total: {counts.total}"])


def _run(coro: Awaitable[T]) -> T:
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except RemoteServiceError as exc:
        raise click.ClickException(f"data service error: {exc.message}") from exc


@click.group()
def cli() -> None:
    """Feedback kiosk CLI."""


@cli.command("init")
@click.option("--config", "config_path", default=_DEFAULT_CONFIG, show_default=True)
def init_command(config_path: str) -> None:
    """Create the data directory and the local store."""
    settings = _load_settings(config_path)
    asyncio.run(_open_store(settings))
    click.echo(f"Local store ready at {settings.db_path}")


@cli.command("submit")
@click.argument("grade", type=click.Choice([g.value for g in Grade]))
@click.option("--config", "config_path", default=_DEFAULT_CONFIG, show_default=True)
def submit_command(grade: str, config_path: str) -> None:
    """Record one satisfaction tap."""
    settings = _load_settings(config_path)
    result = _run(_with_runtime(settings, lambda rt: rt.submit(Grade(grade))))
    if result is None:
        raise click.ClickException("another submission is in progress")
    click.echo(f"{result.outcome.value}: {result.message.text} (id {result.event.id})")


@cli.command("flush")
@click.option("--config", "config_path", default=_DEFAULT_CONFIG, show_default=True)
def flush_command(config_path: str) -> None:
    """Send pending taps to the data service."""
    settings = _load_settings(config_path)
    report = _run(_with_runtime(settings, lambda rt: rt.flush()))
    click.echo(f"sent {report.sent} of {report.attempted}, {report.remaining} pending")
    if report.denied:
        click.echo("Pending taps were rejected by the data service access policies.", err=True)


@cli.command("status")
@click.option("--config", "config_path", default=_DEFAULT_CONFIG, show_default=True)
def status_command(config_path: str) -> None:
    """Show pending count and data service reachability."""
    settings = _load_settings(config_path)

    async def _status(runtime: KioskRuntime) -> tuple[int, bool]:
        return await runtime.pending_count(), await runtime.connectivity.probe()

    pending, online = _run(_with_runtime(settings, _status))
    state = "Online" if online else "Offline"
    suffix = "pendentes" if online else "em fila"
    click.echo(f"{state} • {pending} {suffix}" if pending else state)
    click.echo(f"project: {settings.remote.project_id or '—'}")


@cli.command("summary")
@click.option("--config", "config_path", default=_DEFAULT_CONFIG, show_default=True)
@click.option("--email", default=None, help="Sign in as this administrator; the password is prompted.")
def summary_command(config_path: str, email: str | None) -> None:
    """Print today's public summary."""
    settings = _load_settings(config_path)
    credentials = _admin_credentials(email)
    today = to_local(utc_now(), settings.tz).date()
    summary = _run(_with_runtime(settings, lambda rt: rt.analytics.public_summary(today), credentials))
    click.echo(f"Hoje ({summary.date}): {_format_counts(summary.today)}")
    click.echo(f"Total histórico: {summary.total}")
    click.echo(f"Último registo: {summary.last_id or '—'}")


@cli.command("compare")
@click.argument("p1_start")
@click.argument("p1_end")
@click.argument("p2_start")
@click.argument("p2_end")
@click.option("--config", "config_path", default=_DEFAULT_CONFIG, show_default=True)
@click.option("--email", default=None, help="Sign in as this administrator; the password is prompted.")
def compare_command(
    p1_start: str, p1_end: str, p2_start: str, p2_end: str, config_path: str, email: str | None
) -> None:
    """Compare grade counts between two date ranges (YYYY-MM-DD)."""
    settings = _load_settings(config_path)
    credentials = _admin_credentials(email)
    try:
        comparison = _run(
            _with_runtime(
                settings,
                lambda rt: rt.analytics.compare_periods(p1_start, p1_end, p2_start, p2_end),
                credentials,
            )
        )
    except ValueError as exc:
        raise click.ClickException(f"invalid date: {exc}") from exc
    click.echo(f"Período 1: {_format_counts(comparison.period1)}")
    click.echo(f"Período 2: {_format_counts(comparison.period2)}")
    variation = " | ".join(f"{key}: {value:+d}%" for key, value in comparison.variation.items())
    click.echo(f"Variação: {variation}")


async def _serve(settings: KioskSettings) -> None:
    store = await _open_store(settings)
    runtime, client = build_runtime(settings, store)
    try:
        await runtime.start()
        await asyncio.Event().wait()
    finally:
        runtime.stop()
        await client.close()


@cli.command("run")
@click.option("--config", "config_path", default=_DEFAULT_CONFIG, show_default=True)
def run_command(config_path: str) -> None:
    """Run the kiosk background sync until interrupted."""
    settings = _load_settings(config_path)
    try:
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        click.echo("Shutting down.")


__all__ = ["build_runtime", "cli"]


if __name__ == "__main__":
    cli()
