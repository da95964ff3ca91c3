"""
Root Typer application for the schednotify CLI.

Commands:
    check   validate manifests and show what the engine would load
    notify  run one notify pass for an event file
    render  render a template against an event
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from schednotify.cli.utils import (
    console,
    err_console,
    fail,
    load_event,
    load_settings,
    load_store,
    print_json,
)
from schednotify.core.errors import RuleSelectorError, TemplateError
from schednotify.domain.selectors import compile_selector
from schednotify.engine.classifier import classify
from schednotify.engine.notifier import Notifier, NotifyReport, OutcomeState
from schednotify.engine.templates import RenderContext, TemplateRenderer
from schednotify.framework.channels.dry_run import DryRunChannel
from schednotify.stores.mounted import MountedSecretStore

app = typer.Typer(
    name="schednotify",
    help="schednotify: status notifications for scheduled jobs and workflows.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from schednotify import __version__

        typer.echo(f"schednotify {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """schednotify CLI: validate rules, dry-run and send notifications."""


# ------------------------------------------------------------------ #
# check
# ------------------------------------------------------------------ #


@app.command("check")
def check(
    manifests: Path | None = typer.Option(None, "--manifests", "-m", help="Manifest directory"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Validate rule, destination and secret manifests."""
    settings = load_settings()
    store = load_store(manifests, settings)

    rules = store.all_rules()
    selector_errors: list[tuple[str, RuleSelectorError]] = []
    warnings: list[str] = []
    rows = []
    for rule in rules:
        try:
            selector = str(compile_selector(rule.spec.label_selector)) or "<all>"
        except RuleSelectorError as e:
            selector_errors.append((rule.key, e))
            selector = "[red]invalid[/red]"
        if rule.spec.target_kind is None:
            warnings.append(f"{rule.key}: unsupported targetResource {rule.spec.target_resource!r}")
        destination = rule.spec.destination_ref.name
        if not any(d.name == destination for d in store.list_destinations(rule.namespace)):
            warnings.append(f"{rule.key}: destination {destination!r} not found in {rule.namespace}")
        rows.append((rule, selector))

    if json_out:
        print_json(
            {
                "rules": [r.key for r in rules],
                "destinations": [d.key for d in store.list_destinations()],
                "errors": [e.to_dict() for e in store.errors]
                + [{**e.to_dict(), "rule": key} for key, e in selector_errors],
                "warnings": warnings,
            }
        )
    else:
        table = Table(title="Notification Rules")
        table.add_column("Rule", style="cyan")
        table.add_column("Target")
        table.add_column("Selector")
        table.add_column("Destination")
        table.add_column("Statuses")
        for rule, selector in rows:
            table.add_row(
                rule.key,
                rule.spec.target_resource,
                selector,
                rule.spec.destination_ref.name,
                ", ".join(n.status for n in rule.spec.notifications) or "-",
            )
        console.print(table)

        dest_table = Table(title="Destinations")
        dest_table.add_column("Destination", style="cyan")
        dest_table.add_column("Auth")
        dest_table.add_column("Channel")
        for dest in store.list_destinations():
            dest_table.add_row(dest.key, dest.spec.auth_type.value, dest.spec.channel or "-")
        console.print(dest_table)

        for warning in warnings:
            console.print(f"[yellow]![/yellow] {warning}")
        for error in store.errors:
            err_console.print(f"[bold red]✗[/bold red] {error.message}")
        for key, error in selector_errors:
            err_console.print(f"[bold red]✗[/bold red] {key}: {error.message}")

    if store.errors or selector_errors:
        raise typer.Exit(code=1)
    if not json_out:
        console.print(f"[green]✓[/green] {len(rules)} rule(s) OK")


# ------------------------------------------------------------------ #
# notify
# ------------------------------------------------------------------ #


@app.command("notify")
def notify(
    event_file: Path = typer.Option(..., "--event", "-e", help="YAML/JSON file with 'instance' and 'owner'"),
    manifests: Path | None = typer.Option(None, "--manifests", "-m", help="Manifest directory"),
    secrets_dir: Path | None = typer.Option(None, "--secrets-dir", help="Mounted secrets root"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Build messages without sending"),
    timeout: float | None = typer.Option(None, "--timeout", help="Overall deadline in seconds"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run one notify pass for an event."""
    settings = load_settings()
    store = load_store(manifests, settings)
    event = load_event(event_file)

    secrets_root = secrets_dir or settings.secrets_dir
    secret_store = MountedSecretStore(secrets_root) if secrets_root else store

    if dry_run:
        notifier = Notifier(
            store,
            secret_store,
            token_channel=DryRunChannel(require_channel=True),
            webhook_channel=DryRunChannel(),
            fallback_text=settings.fallback_text,
            max_parallel=settings.max_parallel_dispatch,
        )
    else:
        notifier = Notifier.from_settings(settings, store, secret_store)

    with notifier:
        report = notifier.notify(event, timeout=timeout)

    if json_out:
        print_json(report.to_dict())
    else:
        _print_report(report, dry_run=dry_run)

    if report.error is not None or report.failed:
        raise typer.Exit(code=1)


def _print_report(report: NotifyReport, *, dry_run: bool) -> None:
    console.print(
        f"[bold]{report.owner}[/bold] instance {report.instance} "
        f"status [bold]{report.status or '-'}[/bold] ({report.rules_evaluated} rule(s) evaluated)"
    )
    if report.error is not None:
        err_console.print(f"[bold red]Error[/bold red]: {report.error.message}")
        return
    if not report.outcomes:
        console.print("[dim]No notifications activated.[/dim]")
        return

    table = Table(title="Dispatch (dry run)" if dry_run else "Dispatch")
    table.add_column("Rule", style="cyan")
    table.add_column("#", justify="right")
    table.add_column("State")
    table.add_column("Channel")
    table.add_column("Title / Error")
    styles = {OutcomeState.SENT: "green", OutcomeState.FAILED: "red", OutcomeState.SKIPPED: "dim"}
    for outcome in report.outcomes:
        if outcome.error is not None:
            detail = f"{type(outcome.error).__name__}: {outcome.error.message}"
        elif outcome.message is not None:
            detail = outcome.message.title or outcome.message.fallback
        else:
            detail = outcome.reason or ""
        table.add_row(
            outcome.rule,
            str(outcome.index),
            f"[{styles[outcome.state]}]{outcome.state.value}[/{styles[outcome.state]}]",
            (outcome.message.channel if outcome.message and outcome.message.channel else "-"),
            detail,
        )
    console.print(table)


# ------------------------------------------------------------------ #
# render
# ------------------------------------------------------------------ #


@app.command("render")
def render(
    template: str = typer.Argument(..., help="Template text, e.g. '{{ .OwnerName }} failed'"),
    event_file: Path = typer.Option(..., "--event", "-e", help="YAML/JSON file with 'instance' and 'owner'"),
) -> None:
    """Render a template against an event."""
    event = load_event(event_file)
    ctx = RenderContext.from_event(event, classify(event))
    try:
        text = TemplateRenderer().render(template, ctx)
    except TemplateError as e:
        raise fail("template", e) from e
    typer.echo(text)


__all__ = ["app"]
