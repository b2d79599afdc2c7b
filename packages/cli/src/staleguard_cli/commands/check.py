"""check command: the per-run stale approval pipeline.

ResolveTrigger → LoadPriorState → compare / reconcile → PersistState.
State is saved only when everything before it succeeded, so a run that
fails halfway leaves the previous state as the baseline for the next run.
"""

from __future__ import annotations

import click
import requests
from github import GithubException
from rich.console import Console
from rich.markup import escape

from staleguard_core.checker import CheckSummary, run_check
from staleguard_core.errors import StaleGuardError
from staleguard_core.gh.context import load_trigger_context
from staleguard_core.gh.pull_request import get_repo
from staleguard_core.models import RevisionPair
from staleguard_store.errors import StoreError
from staleguard_store.models import StateRecord

console = Console()


def _record_to_pair(record: StateRecord | None) -> RevisionPair | None:
    """Map a stored StateRecord to the core's RevisionPair.

    The CLI owns this mapping. staleguard_core has no store knowledge and
    staleguard_store has no core knowledge. The CLI bridges the two.
    """
    if record is None:
        return None
    return RevisionPair(head=record.head_sha, base=record.base_sha)


def _pair_to_record(pair: RevisionPair) -> StateRecord:
    return StateRecord(head_sha=pair.head, base_sha=pair.base)


def _annotate(level: str, message: str) -> None:
    """Emit a GitHub Actions workflow command (::error:: / ::warning::)."""
    click.echo(f"::{level}::{message}")


def _fail(message: str) -> click.ClickException:
    _annotate("error", message)
    return click.ClickException(message)


def _report(summary: CheckSummary) -> None:
    result = summary.reconciliation
    if result is None:
        return
    for outcome in result.failed:
        _annotate("warning", f"Could not dismiss review {outcome.review_id} by {outcome.login}: {outcome.error}")
    if result.re_request_error is not None:
        _annotate("warning", f"Could not re-request reviews: {result.re_request_error}")
    if result.re_requested_logins:
        console.print(f"[bold]Dismissed reviews from: {escape(', '.join(result.re_requested_logins))}[/bold]")


@click.command("check")
@click.option("--re-request/--no-re-request", "re_request", default=None, help="Re-request dismissed reviewers.")
@click.option("--ignore-bots/--include-bots", "ignore_bots", default=None, help="Never dismiss reviews by bots.")
@click.option(
    "--dismiss-change-requested/--keep-change-requested",
    "dismiss_change_requested",
    default=None,
    help="Also dismiss 'changes requested' reviews.",
)
@click.option("--fetch-depth", type=int, default=None, help="History depth fetched for each compared commit.")
@click.option("--dismiss-message", default=None, help="Message attached to each dismissal.")
@click.option("--summary/--no-summary", "show_summary", default=None, help="Write a job summary.")
@click.option("--workflow", default=None, help="Workflow name to search for prior state. Defaults to this run's.")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Compare and report only: do not dismiss, re-request or save state.",
)
@click.pass_context
def check_cmd(
    ctx,
    re_request: bool | None,
    ignore_bots: bool | None,
    dismiss_change_requested: bool | None,
    fetch_depth: int | None,
    dismiss_message: str | None,
    show_summary: bool | None,
    workflow: str | None,
    dry_run: bool,
):
    """Dismiss stale approvals on the pull request that triggered this run.

    Meant to run in a GitHub Actions job triggered by pull_request events,
    after actions/checkout.

    \b
    Required environment variables:
      GITHUB_TOKEN           token with pull-requests: write and actions: read
      ACTIONS_RUNTIME_TOKEN  provided to actions; expose it to run steps to save state
    """
    from staleguard_cli.auth import resolve_github_token
    from staleguard_cli.cli import _build_store
    from staleguard_core.config import load_config

    config_path = (ctx.obj or {}).get("config_path", ".staleguard.yml")
    try:
        config = load_config(
            config_path,
            cli_overrides={
                "re_request": re_request,
                "ignore_bots": ignore_bots,
                "dismiss_change_requested": dismiss_change_requested,
                "fetch_depth": fetch_depth,
                "dismiss_message": dismiss_message,
                "show_summary": show_summary,
                "workflow": workflow,
            },
        )
    except StaleGuardError as e:
        raise _fail(str(e))

    token = resolve_github_token()
    if not token:
        raise click.UsageError("No GitHub token found. Pass GITHUB_TOKEN to this step's environment.")

    try:
        trigger = load_trigger_context()
    except StaleGuardError as e:
        raise _fail(str(e))

    console.print(f"[bold]staleguard[/bold] {trigger.repo}#{trigger.pr_number} on {trigger.branch}")

    try:
        repo = get_repo(trigger.repo, token=token)
        store = _build_store(repo, config.workflow or trigger.workflow_name, token, config, run_id=trigger.run_id)
        try:
            if not dry_run:
                store.check_writable()
            previous = _record_to_pair(store.load_previous(trigger.branch))
            summary = run_check(trigger, previous, config, repo, dry_run=dry_run)
            if dry_run:
                console.print("[yellow]Dry run: state not saved.[/yellow]")
            else:
                store.save(_pair_to_record(summary.current))
        finally:
            store.close()
    except (StaleGuardError, StoreError, GithubException, requests.RequestException) as e:
        raise _fail(f"{type(e).__name__}: {e}")

    _report(summary)
