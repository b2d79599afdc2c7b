"""Decide whether a pull request update changed what reviewers looked at.

Comparing head SHAs is not enough: a rebase onto a newer base, or a force
push that only reorders commits, changes every SHA while leaving the patches
identical. Instead we compare the two commit ranges the pull request
introduced, each anchored at its own merge base, with `git range-diff`.

range-diff prints one header line per commit pair:

    1:  0a1b2c3 = 1:  4d5e6f7 Add parser
    2:  8a9b0c1 ! 2:  2d3e4f5 Fix tokenizer
    -:  ------- > 3:  6a7b8c9 New commit

The third column is the status: `=` means the patch is unchanged, anything
else (`!`, `<`, `>`) means a commit was edited, dropped or added.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rich.console import Console

from staleguard_core.git import Git
from staleguard_core.models import RevisionPair

console = Console()
logger = logging.getLogger(__name__)

_UNCHANGED_MARKER = "="


@dataclass(frozen=True)
class Significance:
    """Verdict of one comparison, plus the raw range-diff for reporting."""

    significant: bool
    range_diff: str = ""
    # True when range-diff printed nothing at all, which usually means both
    # ranges were empty or the fetch did not bring in the commits we expected.
    inconclusive: bool = False

    def __bool__(self) -> bool:
        return self.significant


def was_modified(range_diff: str) -> bool:
    """Return True if any range-diff record has a status other than `=`.

    Lines with fewer than three columns (blank separators) carry no status
    and are ignored.
    """
    for line in range_diff.splitlines():
        cols = line.split()
        if len(cols) > 2 and cols[2] != _UNCHANGED_MARKER:
            return True
    return False


def is_significant(
    previous: RevisionPair,
    current: RevisionPair,
    git: Git,
    fetch_depth: int,
) -> Significance:
    """Compare the previously evaluated pair against the current one."""
    if previous == current:
        console.print("[dim]Head and base are unchanged since the last evaluation.[/dim]")
        return Significance(significant=False)

    git.fetch(previous.base, previous.head, current.base, current.head, depth=fetch_depth)

    merge_base_old = git.merge_base(previous.base, previous.head)
    merge_base_new = git.merge_base(current.base, current.head)
    console.print(f"Merge bases: previous {merge_base_old[:7]}, current {merge_base_new[:7]}")

    range_diff = git.range_diff(
        f"{merge_base_old}..{previous.head}",
        f"{merge_base_new}..{current.head}",
    )

    if not range_diff.strip():
        logger.warning(
            "range-diff between %s..%s and %s..%s produced no output; treating as unchanged",
            merge_base_old[:7],
            previous.head[:7],
            merge_base_new[:7],
            current.head[:7],
        )
        return Significance(significant=False, range_diff=range_diff, inconclusive=True)

    return Significance(significant=was_modified(range_diff), range_diff=range_diff)
