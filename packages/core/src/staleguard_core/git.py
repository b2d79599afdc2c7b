"""Thin wrapper over the git plumbing commands the detector relies on.

Only the documented input/output contract of `git fetch`, `git merge-base`
and `git range-diff` is used. Every failure raises GitError and is left to
propagate: a comparison we could not run must never be reported as
"unchanged".
"""

from __future__ import annotations

import logging
import subprocess

from staleguard_core.errors import GitError

logger = logging.getLogger(__name__)


class Git:
    """Runs git in a working tree (the current directory by default)."""

    def __init__(self, cwd: str | None = None, executable: str = "git"):
        self._cwd = cwd
        self._executable = executable

    def run(self, *args: str) -> str:
        cmd = [self._executable, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, cwd=self._cwd, capture_output=True, text=True)
        except FileNotFoundError:
            raise GitError(cmd, 127, f"{self._executable} executable not found")
        if result.returncode != 0:
            raise GitError(cmd, result.returncode, result.stderr)
        return result.stdout

    def fetch(self, *shas: str, depth: int, remote: str = "origin") -> None:
        """Make sure the given commits (and `depth` of their history) exist locally."""
        self.run("fetch", "--no-tags", remote, f"--depth={depth}", *shas)

    def merge_base(self, a: str, b: str) -> str:
        return self.run("merge-base", a, b).strip()

    def range_diff(self, old_range: str, new_range: str) -> str:
        return self.run("range-diff", old_range, new_range)
