"""Persisted revision state models.

Decoupled from staleguard_core so the store layer can be used on its own
and the core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from staleguard_store.errors import StateFormatError


@dataclass(frozen=True)
class StateRecord:
    """The head/base SHA pair recorded at the end of a successful execution.

    On disk it is two lines: head first, then base.
    """

    head_sha: str
    base_sha: str

    def to_text(self) -> str:
        return f"{self.head_sha}\n{self.base_sha}"

    @classmethod
    def from_text(cls, text: str) -> StateRecord:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if len(lines) < 2:
            raise StateFormatError(f"Expected head and base SHA on two lines, got {text!r}")
        return cls(head_sha=lines[0], base_sha=lines[1])


@dataclass
class RunState:
    """One scanned workflow run and the state it carries, if any."""

    run_id: int
    created_at: datetime | None
    artifact_id: int | None = None
    record: StateRecord | None = None
    error: str | None = None
