"""Candle maintenance commands for the candlesync CLI."""

from __future__ import annotations

import typer

from candlesync.core.config import CandleSyncConfig, build_repository, build_updater, load_provider
from candlesync.core.exceptions import CandleSyncError, ConfigurationError
from candlesync.core.services.candles import CandleUpdaterContract
from candlesync.core.services.history import HistorySeeder

from .utils import emit_error, get_config, report_failure

FAILURE_EXIT_CODE = 1


def register(app: typer.Typer) -> None:
    """Register candle commands on the provided application."""

    app.command("refresh")(refresh_command)
    app.command("seed-history")(seed_history_command)


def get_updater(config: CandleSyncConfig) -> CandleUpdaterContract:
    """Factory hook for obtaining the incremental updater."""

    return build_updater(config, load_provider(config))


def get_seeder(config: CandleSyncConfig) -> HistorySeeder:
    """Factory hook for obtaining the history seeder."""

    return HistorySeeder(load_provider(config), build_repository(config))


def _resolve_pairs(pair: str | None, config: CandleSyncConfig) -> list[str]:
    if pair:
        return [pair]
    return list(config.sync.markets)


def refresh_command(
    ctx: typer.Context,
    pair: str | None = typer.Argument(None, help="Pair to refresh; every configured market when omitted."),
    interval: str = typer.Option("5min", "--interval", help="Candle interval."),
    bootstrap: int | None = typer.Option(
        None, "--bootstrap", help="Bars to fetch when the cache is empty; defaults to sync.bootstrap_limits."
    ),
) -> None:
    """Refresh cached candles using the incremental updater."""

    config = get_config(ctx)
    pairs = _resolve_pairs(pair, config)
    if not pairs:
        emit_error("No markets configured.", "MARKETS_MISSING")
        raise typer.Exit(code=FAILURE_EXIT_CODE)

    try:
        updater = get_updater(config)
    except ConfigurationError as error:
        report_failure(error)
        raise typer.Exit(code=FAILURE_EXIT_CODE) from error

    if bootstrap is None:
        bootstrap = config.sync.bootstrap_limit(interval)

    typer.echo(f"Refreshing candles ({interval}): {', '.join(pairs)}")
    failures = 0
    for market in pairs:
        try:
            bars = updater.sync(
                market,
                interval,
                bootstrap,
                config.sync.overlap(interval),
                config.sync.tail_fetch_limit(interval),
            )
        except CandleSyncError as error:
            failures += 1
            report_failure(error, market)
        except Exception as error:  # provider implementations may raise anything
            failures += 1
            emit_error(str(error), "UNEXPECTED_ERROR", market=market)
        else:
            typer.echo(f"ok {market}: {len(bars)} bars")

    typer.echo(f"Complete: {len(pairs) - failures} successful, {failures} failed")
    if failures:
        raise typer.Exit(code=FAILURE_EXIT_CODE)


def seed_history_command(
    ctx: typer.Context,
    pair: str | None = typer.Argument(None, help="Pair to seed; every configured market when omitted."),
    years: int = typer.Option(3, "--years", min=1, help="How many years back to seed."),
    no_rate_limit: bool = typer.Option(False, "--no-rate-limit", help="Skip the pause between upstream calls."),
) -> None:
    """Backfill the durable store with 5min and 30min session candles."""

    config = get_config(ctx)
    pairs = _resolve_pairs(pair, config)
    if not pairs:
        emit_error("No markets configured.", "MARKETS_MISSING")
        raise typer.Exit(code=FAILURE_EXIT_CODE)

    try:
        seeder = get_seeder(config)
    except ConfigurationError as error:
        report_failure(error)
        raise typer.Exit(code=FAILURE_EXIT_CODE) from error

    failures = 0
    total = 0
    for market in pairs:
        typer.echo(f"Seeding {years} years of candles for {market}...")
        try:
            report = seeder.seed(market, years=years, rate_limit=not no_rate_limit)
        except CandleSyncError as error:
            failures += 1
            report_failure(error, market)
            continue

        total += report.total_inserted
        for interval, inserted in report.inserted.items():
            existing = report.existing.get(interval, 0)
            typer.echo(f"  {interval}: inserted {inserted}, already present {existing}")
        if report.failed_chunks:
            typer.echo(f"  {report.failed_chunks} chunk(s) failed, see logs")

    typer.echo(f"Complete: {total} new candles inserted")
    if failures:
        raise typer.Exit(code=FAILURE_EXIT_CODE)
