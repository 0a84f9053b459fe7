"""reply command: reply to, resolve and/or mark a single thread or nitpick."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from prtriage_core.mutations import MutationAPI, MutationRequest, SequentialStrategy, apply_mutations
from prtriage_store.models import KINDS, STATUSES

console = Console(stderr=True)


def _mutation_api(config: dict, needs_remote: bool):
    """Return the GitHub mutation API, or a local-only stand-in when no request talks to GitHub."""
    from prtriage_core.gh.pull_request import GithubGraphQL, GithubMutationAPI

    if not needs_remote:
        return _LocalOnlyAPI()
    token = config.get("github_token")
    if not token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")
    return GithubMutationAPI(GithubGraphQL(token))


def _needs_remote(requests: list[MutationRequest]) -> bool:
    return any(r.kind == "thread" and (r.reply or r.resolve) for r in requests)


class _LocalOnlyAPI(MutationAPI):
    """Stand-in for runs that only mark locally; any remote call is a bug."""

    def add_reply(self, thread_id: str, body: str) -> None:
        raise RuntimeError(f"unexpected reply to {thread_id} in a local-only run")

    def resolve_thread(self, thread_id: str) -> None:
        raise RuntimeError(f"unexpected resolve of {thread_id} in a local-only run")


@click.command("reply")
@click.argument("kind", type=click.Choice(KINDS))
@click.argument("item_id")
@click.argument("reply", required=False)
@click.option("--resolve", is_flag=True, help="Resolve the thread after replying.")
@click.option("--status", type=click.Choice(STATUSES), default=None, help="Local status to record.")
@click.option("--note", default=None, help="Note stored alongside the status.")
@click.option("--pr", "pr_url", default=None, help="Pull request URL. Defaults to the current branch's PR.")
@click.option("--no-save", is_flag=True, help="Do not write the local state file.")
@click.pass_context
def reply_cmd(
    ctx,
    kind: str,
    item_id: str,
    reply: str | None,
    resolve: bool,
    status: str | None,
    note: str | None,
    pr_url: str | None,
    no_save: bool,
):
    """Reply to a review thread, resolve it and/or mark it locally.

    \b
    Examples:
      prtriage reply thread PRRT_abc "Fixed in 1a2b3c" --resolve --status done
      prtriage reply nitpick src/app.py:42 --status skip --note "False positive"

    Nitpicks have no GitHub thread: for them only --status / --note apply.
    """
    from prtriage_cli.cli import _build_store
    from prtriage_cli.context import require_pr_ref

    config = ctx.obj["config"]
    ref = require_pr_ref(pr_url)
    request = MutationRequest(id=item_id, kind=kind, reply=reply, resolve=resolve, status=status, note=note)
    api = _mutation_api(config, _needs_remote([request]))

    store = _build_store(config, persist=not no_save)
    state = store.load(str(ref))
    state.pr = str(ref)

    console.print(f"Processing {kind}: {escape(item_id[:30])}...")
    outcome = apply_mutations([request], state, api, SequentialStrategy(pause=0))
    result = outcome.results[0]
    if not result.ok:
        console.print(f"[red]Error: {escape(result.error or '')}[/red]")
        ctx.exit(1)

    if reply and kind == "thread":
        console.print("  Replied.")
    if resolve and kind == "thread":
        console.print("  Resolved.")
    if status:
        console.print(f"  Marked as [cyan]{status}[/cyan].")

    store.save(str(ref), outcome.state)
    console.print(f"[green]Done.[/green] State saved to {store.location(str(ref))}")
