"""candlesync web interface."""

from candlesync.web.app import create_app

__all__ = ["create_app"]
