from __future__ import annotations

from github import Auth, Github

from staleguard_core.models import Review, ReviewAuthor

REVIEWS_PAGE_SIZE = 100


def get_repo(repo_name: str, token: str):
    return Github(auth=Auth.Token(token), per_page=REVIEWS_PAGE_SIZE).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def _to_review(raw) -> Review:
    user = raw.user
    return Review(
        id=raw.id,
        author=ReviewAuthor(id=user.id, login=user.login, is_bot=user.type == "Bot"),
        state=raw.state,
        submitted_at=raw.submitted_at,
    )


def fetch_reviews(pr) -> list[Review]:
    """Return every review on the pull request in API order.

    Pages are requested one at a time until a short page comes back, so the
    result order is the order GitHub returned them in, page after page.
    `pr` must come from get_repo() so its pages hold REVIEWS_PAGE_SIZE items.
    Reviews whose author account was deleted (user is None) are dropped.
    """
    paginated = pr.get_reviews()
    reviews: list[Review] = []
    page = 0
    while True:
        batch = paginated.get_page(page)
        reviews.extend(_to_review(r) for r in batch if r.user is not None)
        if len(batch) < REVIEWS_PAGE_SIZE:
            break
        page += 1
    return reviews


def dismiss_review(pr, review_id: int, message: str) -> None:
    pr.get_review(review_id).dismiss(message)


def request_reviewers(pr, logins: list[str]) -> None:
    pr.create_review_request(reviewers=logins)
