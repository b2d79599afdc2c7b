"""GitHub token lookup for the two commands.

`check` runs inside a pull request workflow and takes its token from the job
environment only, so a run never acts with whatever account happens to be
logged into `gh` on the machine. `history` is mostly run from a laptop, so it
may also borrow the GitHub CLI session.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

# GITHUB_TOKEN is what the workflow passes in; GH_TOKEN is the name gh itself reads.
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("gh CLI unavailable: %s", e)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token(allow_gh_cli: bool = False) -> str | None:
    """Return a GitHub token, or None when no source has one.

    Never raises. Callers turn None into a UsageError.
    """
    for name in TOKEN_ENV_VARS:
        token = os.environ.get(name)
        if token:
            logger.debug("Using GitHub token from %s.", name)
            return token

    if allow_gh_cli:
        token = _gh_cli_token()
        if token:
            logger.debug("Using GitHub token from the gh CLI session.")
            return token

    return None
