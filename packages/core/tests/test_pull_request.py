"""Tests for GitHub pull request helper functions."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

from staleguard_core.gh.pull_request import (
    REVIEWS_PAGE_SIZE,
    dismiss_review,
    fetch_reviews,
    get_repo,
    request_reviewers,
)

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _raw_review(review_id, login="alice", user_id=1, user_type="User", state="APPROVED"):
    r = MagicMock()
    r.id = review_id
    r.user.id = user_id
    r.user.login = login
    r.user.type = user_type
    r.state = state
    r.submitted_at = T0
    return r


def _pr_with_pages(pages):
    pr = MagicMock()
    pr.get_reviews.return_value.get_page.side_effect = lambda n: pages[n] if n < len(pages) else []
    return pr


class TestFetchReviews:
    def test_single_short_page(self):
        pr = _pr_with_pages([[_raw_review(1), _raw_review(2)]])

        reviews = fetch_reviews(pr)

        assert [r.id for r in reviews] == [1, 2]
        pr.get_reviews.return_value.get_page.assert_called_once_with(0)

    def test_full_pages_continue_until_short_page(self):
        first = [_raw_review(i) for i in range(REVIEWS_PAGE_SIZE)]
        second = [_raw_review(i) for i in range(REVIEWS_PAGE_SIZE, 2 * REVIEWS_PAGE_SIZE)]
        third = [_raw_review(2 * REVIEWS_PAGE_SIZE)]
        pr = _pr_with_pages([first, second, third])

        reviews = fetch_reviews(pr)

        assert [r.id for r in reviews] == list(range(2 * REVIEWS_PAGE_SIZE + 1))
        assert pr.get_reviews.return_value.get_page.call_count == 3

    def test_exact_multiple_fetches_one_empty_page(self):
        pr = _pr_with_pages([[_raw_review(i) for i in range(REVIEWS_PAGE_SIZE)]])

        reviews = fetch_reviews(pr)

        assert len(reviews) == REVIEWS_PAGE_SIZE
        assert pr.get_reviews.return_value.get_page.call_count == 2

    def test_page_size_matches_client_per_page(self, mocker):
        github = mocker.patch("staleguard_core.gh.pull_request.Github")

        get_repo("owner/repo", token="tok")

        assert github.call_args.kwargs["per_page"] == REVIEWS_PAGE_SIZE

    def test_maps_bot_authors(self):
        pr = _pr_with_pages([[_raw_review(1, login="renovate[bot]", user_type="Bot")]])

        review = fetch_reviews(pr)[0]

        assert review.author.is_bot is True
        assert review.author.login == "renovate[bot]"
        assert review.state == "APPROVED"
        assert review.submitted_at == T0

    def test_skips_reviews_from_deleted_users(self):
        ghost = _raw_review(2)
        ghost.user = None
        pr = _pr_with_pages([[_raw_review(1), ghost]])

        assert [r.id for r in fetch_reviews(pr)] == [1]


def test_dismiss_review_calls_dismiss_with_message():
    pr = MagicMock()
    dismiss_review(pr, 42, "stale")
    pr.get_review.assert_called_once_with(42)
    pr.get_review.return_value.dismiss.assert_called_once_with("stale")


def test_request_reviewers_batches_logins():
    pr = MagicMock()
    request_reviewers(pr, ["alice", "bob"])
    pr.create_review_request.assert_called_once_with(reviewers=["alice", "bob"])
