"""Value types shared by the detector, the reconciler and the check pipeline.

Decoupled from staleguard_store: the store persists its own StateRecord and
the CLI maps between the two.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

APPROVED = "APPROVED"
CHANGES_REQUESTED = "CHANGES_REQUESTED"
COMMENTED = "COMMENTED"
DISMISSED = "DISMISSED"
PENDING = "PENDING"


@dataclass(frozen=True)
class RevisionPair:
    """The exact content under evaluation: a pull request's head and base SHAs."""

    head: str
    base: str


@dataclass(frozen=True)
class ReviewAuthor:
    id: int
    login: str
    is_bot: bool = False


@dataclass(frozen=True)
class Review:
    """One submitted review on a pull request.

    An author may have many; only the most recent one reflects their
    current stance on the pull request.
    """

    id: int
    author: ReviewAuthor
    state: str  # APPROVED | CHANGES_REQUESTED | COMMENTED | DISMISSED | PENDING
    submitted_at: datetime | None = None


@dataclass(frozen=True)
class DismissalOutcome:
    """Settlement of a single dismissal request: error is None on success."""

    review_id: int
    login: str
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ReconciliationResult:
    """What the reconciler attempted in one execution.

    re_requested_logins lists every author whose review we tried to dismiss,
    whether or not that dismissal went through. Check `failed` for the ones
    that did not.
    """

    dismissed_review_ids: set[int] = field(default_factory=set)
    re_requested_logins: list[str] = field(default_factory=list)
    outcomes: list[DismissalOutcome] = field(default_factory=list)
    re_request_error: Exception | None = None

    @property
    def failed(self) -> list[DismissalOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed and self.re_request_error is None
