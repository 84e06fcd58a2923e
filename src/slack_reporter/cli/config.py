"""CLI: slack-reporter config show|set"""

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from slack_reporter.config import ReporterConfig, save_config

console = Console()

SECRET_KEYS = {"default_token"}


def _load_config(ctx: click.Context) -> ReporterConfig:
    from slack_reporter.cli.main import _load_config
    return _load_config(ctx.obj["config_path"])


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


@click.group()
def config():
    """Reporter configuration."""


@config.command("show")
@click.option("--reveal", is_flag=True, help="Print the token unmasked")
@click.pass_context
def config_show(ctx, reveal):
    """Show the effective configuration."""
    cfg = _load_config(ctx)
    table = Table(title=str(ctx.obj["config_path"]))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in cfg.model_dump(mode="json").items():
        text = "" if value is None else str(value)
        if key in SECRET_KEYS and text and not reveal:
            text = _mask(text)
        table.add_row(key, text)
    console.print(table)


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key, value):
    """Set one configuration KEY to VALUE."""
    if key not in ReporterConfig.model_fields:
        raise click.BadParameter(f"unknown key {key!r}", param_hint="KEY")
    cfg = _load_config(ctx)
    data = cfg.model_dump(mode="json")
    data[key] = None if value.lower() in ("none", "null") else value
    try:
        updated = ReporterConfig.model_validate(data)
    except ValidationError as e:
        raise click.BadParameter(e.errors()[0]["msg"], param_hint="VALUE")
    save_config(updated, ctx.obj["config_path"])
    console.print(f"[green]{key} updated.[/green]")
