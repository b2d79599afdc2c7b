"""history command: show the revision state recorded by recent runs."""

from __future__ import annotations

import click
from github import GithubException
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()


@click.command("history")
@click.option("--repo", required=True, help="GitHub repository (owner/name).")
@click.option("--branch", required=True, help="Pull request head branch.")
@click.option("--workflow", required=True, help="Name of the workflow that runs `staleguard check`.")
@click.option("--limit", default=10, show_default=True, help="Maximum number of runs to show.")
@click.pass_context
def history_cmd(ctx, repo: str, branch: str, workflow: str, limit: int):
    """Show which recent successful runs carry a state artifact.

    Useful to see what the next `check` would compare against: it uses the
    first row that has a state.
    """
    from staleguard_cli.auth import resolve_github_token
    from staleguard_cli.cli import _build_store
    from staleguard_core.config import load_config
    from staleguard_core.errors import StaleGuardError
    from staleguard_core.gh.pull_request import get_repo
    from staleguard_store.errors import StoreError, WorkflowNotFoundError

    token = resolve_github_token(allow_gh_cli=True)
    if not token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")

    try:
        config = load_config((ctx.obj or {}).get("config_path", ".staleguard.yml"))
    except StaleGuardError as e:
        raise click.ClickException(str(e))

    try:
        store = _build_store(get_repo(repo, token=token), workflow, token, config)
        try:
            states = store.list_states(branch, limit)
        finally:
            store.close()
    except WorkflowNotFoundError as e:
        raise click.UsageError(str(e))
    except (StoreError, GithubException) as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")

    if not states:
        console.print(f"[yellow]No successful runs found for branch {branch!r}.[/yellow]")
        return

    table = Table(title=f"State History: {repo} ({branch})", show_header=True, header_style="bold cyan")
    table.add_column("Run", style="bold")
    table.add_column("Created At", width=20)
    table.add_column("Artifact", justify="right")
    table.add_column("Head", width=8)
    table.add_column("Base", width=8)

    for s in states:
        created = s.created_at.strftime("%Y-%m-%d %H:%M:%S") if s.created_at else ""
        if s.error is not None:
            table.add_row(str(s.run_id), created, f"{s.artifact_id} [red]unreadable[/red]", "", "")
        elif s.record is None:
            table.add_row(str(s.run_id), created, "[dim]no state[/dim]", "", "")
        else:
            table.add_row(str(s.run_id), created, str(s.artifact_id), s.record.head_sha[:7], s.record.base_sha[:7])

    console.print(table)
    for s in states:
        if s.error is not None:
            console.print(f"[red]Run {s.run_id}: {escape(s.error)}[/red]")
