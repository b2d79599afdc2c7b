"""Core stale-approval check orchestration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from rich.console import Console

from staleguard_core.config import Config
from staleguard_core.detector import is_significant
from staleguard_core.gh.context import TriggerContext
from staleguard_core.gh.pull_request import fetch_reviews, get_pull
from staleguard_core.git import Git
from staleguard_core.models import ReconciliationResult, RevisionPair
from staleguard_core.reconciler import reconcile

console = Console()
logger = logging.getLogger(__name__)

SUMMARY_HEADING = "Stale Approvals"


@dataclass
class CheckSummary:
    """Result returned by run_check, enough for the CLI to report and persist.

    Decoupled from staleguard_store: the CLI converts `current` into a
    StateRecord before saving it.
    """

    current: RevisionPair
    previous: RevisionPair | None = None
    significant: bool = False
    inconclusive: bool = False
    range_diff: str = ""
    reconciliation: ReconciliationResult | None = None

    @property
    def first_evaluation(self) -> bool:
        return self.previous is None


def build_summary(summary: CheckSummary) -> str:
    """Render the markdown block written to the job summary."""
    lines = [f"## {SUMMARY_HEADING}\n"]

    if summary.first_evaluation:
        lines.append("No previous evaluation found for this branch. Recorded the current state.")
        return "\n".join(lines) + "\n"

    if not summary.significant:
        lines.append("No changes detected.")
        if summary.inconclusive:
            lines.append("\n_The commit range comparison produced no output._")
        return "\n".join(lines) + "\n"

    lines.append("Changes/Diff detected, removing reviews:\n")
    result = summary.reconciliation
    logins = result.re_requested_logins if result else []
    failed = {o.login for o in result.failed} if result else set()
    if logins:
        for login in logins:
            suffix = " (dismissal failed)" if login in failed else ""
            lines.append(f"- @{login}{suffix}")
    else:
        lines.append("_No approvals to dismiss._")

    lines.append("")
    lines.append("```")
    lines.append(summary.range_diff.rstrip("\n"))
    lines.append("```")
    return "\n".join(lines) + "\n"


def write_summary(summary: CheckSummary, environ: Mapping[str, str] | None = None) -> None:
    """Append the summary to GITHUB_STEP_SUMMARY, or print it outside Actions."""
    environ = os.environ if environ is None else environ
    body = build_summary(summary)
    target = environ.get("GITHUB_STEP_SUMMARY")
    if not target:
        console.print(body, markup=False)
        return
    with open(target, "a", encoding="utf-8") as f:
        f.write(body)


def run_check(
    trigger: TriggerContext,
    previous: RevisionPair | None,
    config: Config,
    repo_obj,
    git: Git | None = None,
    dry_run: bool = False,
    environ: Mapping[str, str] | None = None,
) -> CheckSummary:
    """Compare the previous evaluation with the current one and act on it.

    Does not persist anything: the caller saves `summary.current` once this
    returns. Errors from git or the GitHub API propagate, so a failed
    comparison never leads to a new state being recorded.
    """
    current = trigger.revision
    summary = CheckSummary(current=current, previous=previous)

    if previous is None:
        console.print(f"[yellow]No previous state for branch {trigger.branch!r}. First evaluation.[/yellow]")
    else:
        console.print(
            f"Comparing {previous.head[:7]} (base {previous.base[:7]}) "
            f"with {current.head[:7]} (base {current.base[:7]})"
        )
        verdict = is_significant(previous, current, git or Git(), config.fetch_depth)
        summary.significant = verdict.significant
        summary.inconclusive = verdict.inconclusive
        summary.range_diff = verdict.range_diff

        if not verdict.significant:
            console.print("[green]No substantive changes detected.[/green]")
        elif dry_run:
            console.print("[yellow]Changes detected. Dry run: leaving reviews untouched.[/yellow]")
        else:
            console.print("[yellow]Changes detected. Dismissing stale reviews.[/yellow]")
            pr = get_pull(repo_obj, trigger.pr_number)
            reviews = fetch_reviews(pr)
            console.print(f"Found {len(reviews)} review(s).")
            summary.reconciliation = reconcile(pr, reviews, config)

    if config.show_summary:
        write_summary(summary, environ)

    return summary
