"""fetch command: print the triage report for a pull request as JSON."""

from __future__ import annotations

import json

import click
from rich.console import Console

from prtriage_core.collect import SECTIONS, ReportOptions, collect_report
from prtriage_core.gh.pull_request import GithubGraphQL, GithubReviewClient

console = Console(stderr=True)


def _parse_only(ctx, param, value: str | None) -> list[str]:
    if not value:
        return []
    sections = [s.strip() for s in value.split(",") if s.strip()]
    unknown = [s for s in sections if s not in SECTIONS]
    if unknown:
        raise click.BadParameter(f"unknown section(s) {', '.join(unknown)}; choose from {', '.join(SECTIONS)}")
    return sections


@click.command("fetch")
@click.argument("pr_url", required=False)
@click.option("--owner", default=None, help="Repository owner (instead of a PR URL).")
@click.option("--repo", default=None, help="Repository name (instead of a PR URL).")
@click.option("--number", type=int, default=None, help="Pull request number (instead of a PR URL).")
@click.option("--all", "show_all", is_flag=True, help="Include resolved threads.")
@click.option("--include-done", is_flag=True, help="Include items already marked done or skip.")
@click.option("--with-resolved", is_flag=True, help="Include resolved threads and their user comments.")
@click.option(
    "--only",
    callback=_parse_only,
    default=None,
    help=f"Comma-separated sections to include ({', '.join(SECTIONS)}).",
)
@click.pass_context
def fetch_cmd(
    ctx,
    pr_url: str | None,
    owner: str | None,
    repo: str | None,
    number: int | None,
    show_all: bool,
    include_done: bool,
    with_resolved: bool,
    only: list[str],
):
    """Fetch review threads, bot summaries and nitpicks for a pull request.

    Comment bodies are stripped of bot noise; items already marked done or
    skip locally are hidden unless --include-done is given. The report is
    printed to stdout as JSON.
    """
    from prtriage_cli.cli import _build_store
    from prtriage_cli.context import require_pr_ref

    config = ctx.obj["config"]
    ref = require_pr_ref(pr_url, owner=owner, repo=repo, number=number)

    token = config.get("github_token")
    if not token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")

    store = _build_store(config)
    state = store.load(str(ref))
    options = ReportOptions(show_all=show_all, include_done=include_done, with_resolved=with_resolved, only=only)

    console.print(f"[dim]Fetching review data for {ref}...[/dim]")
    client = GithubReviewClient(GithubGraphQL(token))
    try:
        report = collect_report(ref, client, state, options, config, state_path=store.location(str(ref)))
    except ValueError as e:
        raise click.UsageError(str(e))

    summary = report["summary"]
    console.print(
        f"[dim]{summary['filteredCount']} thread(s), {summary['nitpicksCount']} nitpick(s), "
        f"{summary['userCommentsCount']} user comment(s).[/dim]"
    )
    click.echo(json.dumps(report, indent=2))
