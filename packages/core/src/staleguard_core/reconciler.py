"""Dismiss stale reviews and ask the same people to review again."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from rich.console import Console
from rich.markup import escape

from staleguard_core.config import Config
from staleguard_core.gh.pull_request import dismiss_review, request_reviewers
from staleguard_core.models import (
    APPROVED,
    CHANGES_REQUESTED,
    DismissalOutcome,
    ReconciliationResult,
    Review,
)

console = Console()
logger = logging.getLogger(__name__)

_MAX_DISMISS_WORKERS = 8
_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def _submitted_key(review: Review) -> datetime:
    ts = review.submitted_at
    if ts is None:
        return _NEVER
    # PyGithub returns aware datetimes; tolerate naive ones from other callers.
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def latest_reviews_by_author(reviews: list[Review]) -> list[Review]:
    """Keep only each author's most recent review.

    On equal timestamps the review seen later in the input wins, which for
    paginated API results means the one GitHub returned last.
    """
    latest: dict[int, Review] = {}
    for review in reviews:
        current = latest.get(review.author.id)
        if current is None or _submitted_key(current) <= _submitted_key(review):
            latest[review.author.id] = review
    return list(latest.values())


def dismissal_states(config: Config) -> frozenset[str]:
    if config.dismiss_change_requested:
        return frozenset({APPROVED, CHANGES_REQUESTED})
    return frozenset({APPROVED})


def select_stale(reviews: list[Review], config: Config) -> list[Review]:
    """Return the latest review of every author that should be dismissed."""
    states = dismissal_states(config)
    selected = []
    for review in latest_reviews_by_author(reviews):
        logger.debug(
            "Review %s by %s: %s at %s", review.id, review.author.login, review.state, review.submitted_at
        )
        if config.ignore_bots and review.author.is_bot:
            continue
        if review.state not in states:
            continue
        selected.append(review)
    return selected


def _dismiss_one(pr, review: Review, message: str) -> DismissalOutcome:
    try:
        dismiss_review(pr, review.id, message)
    except Exception as e:
        # One failed dismissal must not stop the others.
        logger.warning("Could not dismiss review %s by %s: %s", review.id, review.author.login, e)
        return DismissalOutcome(review_id=review.id, login=review.author.login, error=e)
    return DismissalOutcome(review_id=review.id, login=review.author.login)


def reconcile(pr, reviews: list[Review], config: Config) -> ReconciliationResult:
    """Dismiss every stale review and optionally re-request those reviewers.

    All dismissals are sent concurrently and every one of them is waited for,
    whatever the others do. The returned result lists every author we tried
    to dismiss; `result.failed` tells which attempts did not go through.
    """
    stale = select_stale(reviews, config)
    result = ReconciliationResult()
    if not stale:
        console.print("No stale reviews to dismiss.")
        return result

    for review in stale:
        # Candidates are recorded on attempt, not on success.
        result.dismissed_review_ids.add(review.id)
        result.re_requested_logins.append(review.author.login)
        console.print(f"Dismissing review {review.id} ({escape(review.author.login)}, {review.state})")

    workers = min(_MAX_DISMISS_WORKERS, len(stale))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_dismiss_one, pr, review, config.dismiss_message) for review in stale]
        result.outcomes = [f.result() for f in futures]

    for outcome in result.failed:
        console.print(
            f"  [red]Dismissal of review {outcome.review_id} ({escape(outcome.login)}) "
            f"failed: {escape(str(outcome.error))}[/red]"
        )

    if config.re_request:
        logins = result.re_requested_logins
        console.print(f"Re-requesting review from: {escape(', '.join(logins))}")
        try:
            request_reviewers(pr, logins)
        except Exception as e:
            logger.warning("Re-request for %s failed: %s", ", ".join(logins), e)
            console.print(f"  [red]Could not re-request reviews: {escape(str(e))}[/red]")
            result.re_request_error = e

    return result
