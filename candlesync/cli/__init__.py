"""candlesync command line interface."""

from candlesync.cli.main import app, create_app

__all__ = ["app", "create_app"]
