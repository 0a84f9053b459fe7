"""batch command: apply a JSON list of reply / resolve / mark requests."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.markup import escape

from prtriage_core.mutations import ConcurrentStrategy, MutationRequest, SequentialStrategy, apply_mutations

console = Console(stderr=True)


def _load_requests(stream) -> list[MutationRequest]:
    try:
        data = json.load(stream)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="FILE")
    if not isinstance(data, list):
        raise click.BadParameter("expected a JSON array of requests", param_hint="FILE")
    try:
        return [MutationRequest.from_dict(d) for d in data]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="FILE")


@click.command("batch")
@click.argument("requests_file", metavar="FILE", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--sequential", is_flag=True, help="Apply one request at a time with a pause in between.")
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="Requests per concurrent batch.")
@click.option("--pr", "pr_url", default=None, help="Pull request URL. Defaults to the current branch's PR.")
@click.option("--no-save", is_flag=True, help="Do not write the local state file.")
@click.pass_context
def batch_cmd(ctx, requests_file, sequential: bool, concurrency: int | None, pr_url: str | None, no_save: bool):
    """Apply a batch of requests read from FILE (or stdin when FILE is - or omitted).

    \b
    Each request is an object:
      {"id": "PRRT_abc", "type": "thread", "reply": "Fixed", "resolve": true,
       "status": "done", "note": "..."}

    Progress goes to stderr, the JSON outcome to stdout. Exits with status 1
    if any request failed; requests that succeeded are kept.
    """
    from prtriage_cli.cli import _build_store
    from prtriage_cli.commands.reply import _mutation_api, _needs_remote
    from prtriage_cli.context import require_pr_ref

    config = ctx.obj["config"]
    requests = _load_requests(requests_file)
    ref = require_pr_ref(pr_url)
    api = _mutation_api(config, _needs_remote(requests))

    if sequential:
        strategy = SequentialStrategy(pause=config.get("pause_seconds", 0.5))
    else:
        strategy = ConcurrentStrategy(width=concurrency or config.get("concurrency", 3))

    store = _build_store(config, persist=not no_save)
    state = store.load(str(ref))
    state.pr = str(ref)

    def report(index: int, total: int, request: MutationRequest, result) -> None:
        label = f"[{index}/{total}] {escape(request.id[:30])}"
        if result.ok:
            console.print(f"{label} [green]OK[/green]")
        else:
            console.print(f"{label} [red]FAILED[/red] {escape(result.error or '')}")

    console.print(f"Processing {len(requests)} request(s)...")
    outcome = apply_mutations(requests, state, api, strategy, on_result=report)
    console.print(f"\nSummary: {outcome.succeeded} OK, {outcome.failed} failed")

    store.save(str(ref), outcome.state)
    location = store.location(str(ref))
    console.print(f"State saved to {location}")

    click.echo(json.dumps({**outcome.to_dict(), "statePath": location}, indent=2))
    if not outcome.ok:
        ctx.exit(1)
