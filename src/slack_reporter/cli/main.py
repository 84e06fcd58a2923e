"""
Slack Reporter CLI: `slack-reporter` command.

Commands:
  slack-reporter config show|set      Inspect or edit ~/.slack_reporter/config.json
  slack-reporter queue show           List pending submissions
  slack-reporter queue flush          Try to deliver the backlog now
  slack-reporter queue drop-head      Remove a stuck head-of-line submission
  slack-reporter queue clear          Remove every pending submission
  slack-reporter queue dead-letters   Show submissions dropped by the retry policy
"""

import asyncio
import logging
from pathlib import Path

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install slack-reporter[cli]")

from slack_reporter.config import CONFIG_FILE, ReporterConfig, load_config

console = Console()


def _load_config(path: Path) -> ReporterConfig:
    return load_config(path)


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=CONFIG_FILE,
              show_default=True, help="Reporter config file")
@click.option("-v", "--verbose", is_flag=True, help="Log queue activity to stderr")
@click.pass_context
def main(ctx: click.Context, config_path: Path, verbose: bool):
    """Slack Reporter CLI: inspect and flush the feedback upload queue."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")


# Register subcommands from separate modules
from slack_reporter.cli.config import config
from slack_reporter.cli.queue import queue

main.add_command(config)
main.add_command(queue)


if __name__ == "__main__":
    main()
