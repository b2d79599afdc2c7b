"""Tests for the check pipeline and its job summary."""

from unittest.mock import MagicMock

from staleguard_core.checker import CheckSummary, build_summary, run_check
from staleguard_core.config import Config
from staleguard_core.gh.context import TriggerContext
from staleguard_core.models import DismissalOutcome, ReconciliationResult, RevisionPair

HEAD = "a" * 40
BASE = "b" * 40
OLD_HEAD = "c" * 40

EDITED = "1:  1111111 ! 1:  2222222 Change parser\n"
UNCHANGED = "1:  1111111 = 1:  2222222 Change parser\n"


def _config(**overrides):
    values = {
        "fetch_depth": 50,
        "re_request": True,
        "dismiss_message": "stale",
        "ignore_bots": True,
        "dismiss_change_requested": False,
        "show_summary": False,
        "artifact_name": "staleguard-state",
        "search_depth": 10,
    }
    values.update(overrides)
    return Config(**values)


def _trigger():
    return TriggerContext(
        repo="owner/repo",
        pr_number=5,
        head_sha=HEAD,
        base_sha=BASE,
        branch="feature",
        workflow_name="PR checks",
        run_id=99,
    )


def _git(range_diff):
    git = MagicMock()
    git.merge_base.return_value = "d" * 40
    git.range_diff.return_value = range_diff
    return git


class TestRunCheck:
    def test_first_evaluation_skips_comparison(self, mocker):
        reconcile = mocker.patch("staleguard_core.checker.reconcile")
        git = _git(EDITED)

        summary = run_check(_trigger(), None, _config(), MagicMock(), git=git)

        assert summary.first_evaluation
        assert summary.current == RevisionPair(head=HEAD, base=BASE)
        assert summary.significant is False
        git.fetch.assert_not_called()
        reconcile.assert_not_called()

    def test_unchanged_skips_reconcile(self, mocker):
        reconcile = mocker.patch("staleguard_core.checker.reconcile")

        summary = run_check(
            _trigger(), RevisionPair(head=OLD_HEAD, base=BASE), _config(), MagicMock(), git=_git(UNCHANGED)
        )

        assert summary.significant is False
        reconcile.assert_not_called()

    def test_significant_change_reconciles_reviews(self, mocker):
        pr = MagicMock()
        mocker.patch("staleguard_core.checker.get_pull", return_value=pr)
        mocker.patch("staleguard_core.checker.fetch_reviews", return_value=["r1"])
        result = ReconciliationResult(dismissed_review_ids={1}, re_requested_logins=["alice"])
        reconcile = mocker.patch("staleguard_core.checker.reconcile", return_value=result)
        config = _config()

        summary = run_check(_trigger(), RevisionPair(head=OLD_HEAD, base=BASE), config, MagicMock(), git=_git(EDITED))

        assert summary.significant is True
        assert summary.range_diff == EDITED
        reconcile.assert_called_once_with(pr, ["r1"], config)
        assert summary.reconciliation is result

    def test_dry_run_leaves_reviews_untouched(self, mocker):
        get_pull = mocker.patch("staleguard_core.checker.get_pull")
        reconcile = mocker.patch("staleguard_core.checker.reconcile")

        summary = run_check(
            _trigger(), RevisionPair(head=OLD_HEAD, base=BASE), _config(), MagicMock(), git=_git(EDITED), dry_run=True
        )

        assert summary.significant is True
        get_pull.assert_not_called()
        reconcile.assert_not_called()

    def test_summary_appended_to_step_summary_file(self, tmp_path):
        target = tmp_path / "summary.md"
        target.write_text("existing\n")

        run_check(
            _trigger(),
            RevisionPair(head=OLD_HEAD, base=BASE),
            _config(show_summary=True),
            MagicMock(),
            git=_git(UNCHANGED),
            environ={"GITHUB_STEP_SUMMARY": str(target)},
        )

        content = target.read_text()
        assert content.startswith("existing\n")
        assert "## Stale Approvals" in content
        assert "No changes detected." in content

    def test_summary_not_written_when_disabled(self, tmp_path):
        target = tmp_path / "summary.md"

        run_check(
            _trigger(),
            None,
            _config(show_summary=False),
            MagicMock(),
            environ={"GITHUB_STEP_SUMMARY": str(target)},
        )

        assert not target.exists()


class TestBuildSummary:
    def test_changed_lists_authors_and_range_diff(self):
        result = ReconciliationResult(
            dismissed_review_ids={1, 2},
            re_requested_logins=["alice", "bob"],
            outcomes=[
                DismissalOutcome(review_id=1, login="alice"),
                DismissalOutcome(review_id=2, login="bob", error=RuntimeError("boom")),
            ],
        )
        summary = CheckSummary(
            current=RevisionPair(HEAD, BASE),
            previous=RevisionPair(OLD_HEAD, BASE),
            significant=True,
            range_diff=EDITED,
            reconciliation=result,
        )

        body = build_summary(summary)

        assert "Changes/Diff detected" in body
        assert "- @alice\n" in body
        assert "- @bob (dismissal failed)" in body
        assert "```\n" + EDITED.rstrip("\n") + "\n```" in body

    def test_first_evaluation_message(self):
        body = build_summary(CheckSummary(current=RevisionPair(HEAD, BASE)))
        assert "No previous evaluation" in body

    def test_inconclusive_note(self):
        summary = CheckSummary(
            current=RevisionPair(HEAD, BASE), previous=RevisionPair(OLD_HEAD, BASE), inconclusive=True
        )
        assert "produced no output" in build_summary(summary)
