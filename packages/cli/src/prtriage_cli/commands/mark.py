"""mark command: record a local status for a thread or nitpick."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from prtriage_store.models import KINDS, STATUSES

console = Console(stderr=True)


@click.command("mark")
@click.argument("kind", type=click.Choice(KINDS))
@click.argument("item_id")
@click.argument("status", type=click.Choice(STATUSES))
@click.argument("note", required=False)
@click.option("--pr", "pr_url", default=None, help="Pull request URL. Defaults to the current branch's PR.")
@click.pass_context
def mark_cmd(ctx, kind: str, item_id: str, status: str, note: str | None, pr_url: str | None):
    """Mark a thread or nitpick as done, skip or later.

    The status only lives in the local state file; nothing is posted to
    GitHub. Marked items are hidden by `prtriage fetch` (done / skip).
    """
    from prtriage_cli.cli import _build_store
    from prtriage_cli.context import require_pr_ref

    ref = require_pr_ref(pr_url)
    store = _build_store(ctx.obj["config"])

    state = store.load(str(ref))
    state.pr = str(ref)
    state.mark(kind, item_id, status, note)
    store.save(str(ref), state)

    console.print(f"Marked {kind} [bold]{escape(item_id)}[/bold] as [cyan]{status}[/cyan] in {store.location(str(ref))}")
