"""Abstract store interface.

The revision state has to survive between CI jobs that share nothing but
what they leave behind. Any backend that can keep a small blob per execution
and find it again later (Actions artifacts, a bucket, a database) implements
this interface; the CLI depends on BaseStateStore, not on a concrete backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from staleguard_store.models import RunState, StateRecord


class BaseStateStore(ABC):
    """Pluggable persistence layer for evaluated revision state.

    Implementations are append-only: save() adds a new entry for the current
    execution and never rewrites an older one.
    """

    @abstractmethod
    def load_previous(self, branch: str) -> StateRecord | None:
        """Return the most recent recorded state for a branch.

        Returns None when nothing was recorded yet. Absence is not an error.
        """

    @abstractmethod
    def save(self, record: StateRecord) -> None:
        """Record the state evaluated by the current execution."""

    @abstractmethod
    def list_states(self, branch: str, limit: int) -> list[RunState]:
        """Return up to `limit` recent executions on a branch, newest first."""

    def check_writable(self) -> None:
        """Fail early if save() cannot succeed in this environment.

        Called before any side effect of a run, so a missing credential stops
        the run before reviews are touched. Default is a no-op.
        """

    def close(self) -> None:
        """Release any resources held by the store (temp dirs, sessions).

        Optional. Subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
