"""CLI: slack-reporter queue show|flush|drop-head|clear|dead-letters"""

import json

import click
from rich.console import Console
from rich.table import Table

from slack_reporter.client import AsyncSlackReporter
from slack_reporter.config import ReporterConfig
from slack_reporter.store import DeadLetterLog, QueueStore

console = Console()


def _load_config(ctx: click.Context) -> ReporterConfig:
    from slack_reporter.cli.main import _load_config
    return _load_config(ctx.obj["config_path"])


def _run(coro):
    from slack_reporter.cli.main import _run
    return _run(coro)


@click.group()
def queue():
    """Upload queue management."""


@queue.command("show")
@click.option("--json-output", "--json", is_flag=True)
@click.pass_context
def queue_show(ctx, json_output):
    """List pending submissions, head first."""
    cfg = _load_config(ctx)
    pending = QueueStore(cfg.queue_path).load()
    if json_output:
        click.echo(json.dumps([e.to_row() for e in pending], indent=2))
        return
    table = Table(title=f"Pending uploads ({len(pending)})")
    table.add_column("#", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Mode")
    table.add_column("Channel")
    table.add_column("Fields", justify="right")
    for i, envelope in enumerate(pending, start=1):
        fields = envelope.payload.get("fields")
        table.add_row(
            str(i),
            envelope.name,
            envelope.mode,
            envelope.channel,
            str(len(fields)) if isinstance(fields, list) else "",
        )
    console.print(table)


@queue.command("flush")
@click.pass_context
def queue_flush(ctx):
    """Try to deliver the backlog now."""

    async def _flush():
        reporter = AsyncSlackReporter(_load_config(ctx))
        try:
            with console.status("Uploading..."):
                await reporter.start()
            remaining = await reporter.coordinator.pending()
        finally:
            await reporter.close()
        if remaining:
            console.print(f"[yellow]{len(remaining)} submission(s) still pending ({reporter.upload_state.value}).[/yellow]")
        else:
            console.print("[green]Queue is empty.[/green]")

    _run(_flush())


@queue.command("drop-head")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def queue_drop_head(ctx, yes):
    """Remove the submission at the head of the queue without sending it."""
    store = QueueStore(_load_config(ctx).queue_path)
    head = store.peek_first()
    if head is None:
        console.print("[dim]Queue is empty.[/dim]")
        return
    if not yes:
        click.confirm(f"Drop {head.name or 'unnamed submission'!r}?", abort=True)
    store.remove_first()
    console.print("[green]Head of queue removed.[/green]")


@queue.command("clear")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def queue_clear(ctx, yes):
    """Remove every pending submission."""
    store = QueueStore(_load_config(ctx).queue_path)
    count = len(store.load())
    if count and not yes:
        click.confirm(f"Drop {count} pending submission(s)?", abort=True)
    store.clear()
    console.print(f"[green]Removed {count} submission(s).[/green]")


@queue.command("dead-letters")
@click.option("--json-output", "--json", is_flag=True)
@click.pass_context
def queue_dead_letters(ctx, json_output):
    """Show submissions that were dropped after too many failed attempts."""
    entries = DeadLetterLog(_load_config(ctx).dead_letter_path).entries()
    if json_output:
        click.echo(json.dumps(entries, indent=2))
        return
    table = Table(title=f"Dead letters ({len(entries)})")
    table.add_column("When")
    table.add_column("Name", style="bold")
    table.add_column("Attempts", justify="right")
    table.add_column("Reason")
    for entry in entries:
        row = entry.get("row") or ["", {}, "", ""]
        name = row[3] if isinstance(row, list) and len(row) == 4 else ""
        table.add_row(entry.get("ts", ""), name, str(entry.get("attempts", "")), entry.get("reason", ""))
    console.print(table)
