"""Exceptions raised by staleguard_core.

Everything the core raises on purpose derives from StaleGuardError so the CLI
can tell an expected, reportable failure apart from a programming error.
"""

from __future__ import annotations


class StaleGuardError(Exception):
    """Base class for all staleguard core failures."""


class TriggerError(StaleGuardError):
    """The triggering event carries no pull request to evaluate."""


class ConfigError(StaleGuardError):
    """A configuration value is missing or has the wrong shape."""


class GitError(StaleGuardError):
    """A git plumbing command exited non-zero."""

    def __init__(self, args: list[str], returncode: int, stderr: str = ""):
        self.command = args
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"`{' '.join(args)}` failed: {detail}")
