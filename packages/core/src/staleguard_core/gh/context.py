"""Resolve the triggering GitHub Actions event into an explicit input value.

The event payload and the GITHUB_* variables are read exactly once, here.
Everything downstream receives the resulting TriggerContext and never looks
at the environment again.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from staleguard_core.errors import TriggerError
from staleguard_core.models import RevisionPair

_BRANCH_REF_PREFIX = "refs/heads/"


@dataclass(frozen=True)
class TriggerContext:
    repo: str  # owner/name
    pr_number: int
    head_sha: str
    base_sha: str
    branch: str
    workflow_name: str
    run_id: int | None = None

    @property
    def revision(self) -> RevisionPair:
        return RevisionPair(head=self.head_sha, base=self.base_sha)


def _read_event(event_path: str | None) -> dict:
    if not event_path:
        return {}
    path = Path(event_path)
    if not path.exists():
        raise TriggerError(f"Event payload not found at {event_path}")
    try:
        return json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as e:
        raise TriggerError(f"Event payload at {event_path} is not valid JSON: {e}")


def load_trigger_context(environ: Mapping[str, str] | None = None) -> TriggerContext:
    """Build a TriggerContext from the GitHub Actions environment.

    Raises TriggerError when the run was not caused by a pull request event,
    since there is no revision set to evaluate.
    """
    environ = os.environ if environ is None else environ
    event = _read_event(environ.get("GITHUB_EVENT_PATH"))

    pull_request = event.get("pull_request") or {}
    pr_number = pull_request.get("number")
    if not pr_number:
        raise TriggerError("No pull request found in the triggering event.")

    head = pull_request.get("head") or {}
    base = pull_request.get("base") or {}
    head_sha = head.get("sha")
    base_sha = base.get("sha")
    if not head_sha or not base_sha:
        raise TriggerError(f"Pull request #{pr_number} event is missing head or base SHA.")

    repo = environ.get("GITHUB_REPOSITORY") or (event.get("repository") or {}).get("full_name")
    if not repo:
        raise TriggerError("Cannot determine the repository (GITHUB_REPOSITORY is not set).")

    branch = head.get("ref") or environ.get("GITHUB_REF", "")
    if branch.startswith(_BRANCH_REF_PREFIX):
        branch = branch[len(_BRANCH_REF_PREFIX) :]
    if not branch:
        raise TriggerError(f"Cannot determine the head branch of pull request #{pr_number}.")

    run_id = environ.get("GITHUB_RUN_ID")

    return TriggerContext(
        repo=repo,
        pr_number=int(pr_number),
        head_sha=head_sha,
        base_sha=base_sha,
        branch=branch,
        workflow_name=environ.get("GITHUB_WORKFLOW", ""),
        run_id=int(run_id) if run_id else None,
    )
