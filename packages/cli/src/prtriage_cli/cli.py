"""CLI entry point for prtriage.

Commands:
  fetch: print unresolved threads, bot summaries and nitpicks as JSON
  mark: record a local status (done / skip / later) for a thread or nitpick
  reply: reply to / resolve / mark a single thread or nitpick
  batch: apply a JSON list of reply / resolve / mark requests
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prtriage_cli.commands.batch import batch_cmd
from prtriage_cli.commands.fetch import fetch_cmd
from prtriage_cli.commands.mark import mark_cmd
from prtriage_cli.commands.reply import reply_cmd

console = Console(stderr=True)


def _build_store(config: dict, persist: bool = True):
    """Instantiate the state store.

    persist=False → MemoryStore, for runs that must leave no trace on disk.
    Otherwise a JsonFileStore rooted at ``state_dir`` from .prtriage.yml.
    """
    if not persist:
        from prtriage_store.memory import MemoryStore

        return MemoryStore()

    from prtriage_store.json_file import JsonFileStore

    return JsonFileStore(root=config.get("state_dir", "~/.cursor/reviews"))


@click.group()
@click.version_option(
    version=importlib.metadata.version("prtriage"),
    prog_name="prtriage",
)
@click.option(
    "--config",
    "config_path",
    default=".prtriage.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRTRIAGE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Triage bot review feedback on GitHub pull requests."""
    from prtriage_core.config import load_config
    from prtriage_cli.auth import resolve_github_token

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config


main.add_command(fetch_cmd)
main.add_command(mark_cmd)
main.add_command(reply_cmd)
main.add_command(batch_cmd)
