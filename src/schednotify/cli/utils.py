"""
CLI utility helpers: consoles, settings, input loading.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console

from schednotify.core.errors import ConfigError, ManifestError, NotifierError
from schednotify.core.logging import configure_logging
from schednotify.core.settings import NotifierSettings, get_settings
from schednotify.domain.workload import MonitoredEvent
from schednotify.stores.manifests import ManifestStore

console = Console()
err_console = Console(stderr=True)


def fail(message: str, error: NotifierError | None = None) -> typer.Exit:
    """Print an error and return an exit to raise."""
    detail = f": {error.message}" if error is not None else ""
    err_console.print(f"[bold red]Error[/bold red] {message}{detail}")
    return typer.Exit(code=1)


def load_settings() -> NotifierSettings:
    """Load settings and configure logging from them."""
    try:
        settings = get_settings()
    except ConfigError as e:
        raise fail("invalid settings", e) from e
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=settings.service_name,
    )
    return settings


def load_store(manifests: Path | None, settings: NotifierSettings) -> ManifestStore:
    path = manifests or settings.manifests_dir
    if path is None:
        raise fail("no manifest directory (pass --manifests or set SCHEDNOTIFY_MANIFESTS_DIR)")
    try:
        return ManifestStore.from_directory(path)
    except ManifestError as e:
        raise fail("cannot load manifests", e) from e


def load_event(path: Path) -> MonitoredEvent:
    """Read ``{instance: ..., owner: ...}`` from a YAML or JSON file."""
    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise fail(f"cannot read event file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise fail(f"event file {path} is not valid YAML/JSON: {e}") from e

    if not isinstance(doc, dict) or not isinstance(doc.get("instance"), dict) or not isinstance(doc.get("owner"), dict):
        raise fail(f"event file {path} must contain 'instance' and 'owner' objects")
    try:
        return MonitoredEvent.from_objects(doc["instance"], doc["owner"])
    except ManifestError as e:
        raise fail("invalid event", e) from e


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


__all__ = [
    "console",
    "err_console",
    "fail",
    "load_settings",
    "load_store",
    "load_event",
    "print_json",
]
