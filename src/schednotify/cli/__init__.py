"""schednotify command line interface."""

from schednotify.cli.app import app

__all__ = ["app"]
