"""Main entry point for the candlesync command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from candlesync.core.config import CandleSyncConfig, ConfigManager, load_config_from_env
from candlesync.core.exceptions import ConfigurationError
from candlesync.core.logging import configure_logging

from .candles import register as register_candle_commands
from .utils import report_failure


def load_config(config_path: Path | None = None) -> CandleSyncConfig:
    """Read the TOML file (if any) and overlay ``CANDLESYNC_*`` environment variables."""

    manager = ConfigManager(config_path)
    env_overrides = load_config_from_env()
    if env_overrides:
        manager.update_config(**env_overrides)
    return manager.get_config()


def create_app() -> typer.Typer:
    """Create a Typer application instance for candlesync."""

    app = typer.Typer(add_completion=False, help="candlesync command line interface")

    @app.callback()
    def main(
        ctx: typer.Context,
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Path to a TOML configuration file.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            help="Logging level (defaults to the configured level).",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        try:
            config = load_config(config_path)
        except ConfigurationError as exc:
            report_failure(exc)
            raise typer.Exit(code=1) from exc

        level = (log_level or config.logging.level).upper()
        configure_logging(level=level, console=config.logging.console, file=config.logging.file)
        ctx.obj.update({"config": config, "log_level": level})

    register_candle_commands(app)
    return app


app = create_app()
