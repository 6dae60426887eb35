"""ASCII branch-lane graph for a PR's commit history.

Commits arrive newest first. Each commit is pulled to lane 0, a row is
emitted with one marker per open lane (``*`` for the commit's lane, ``|``
for the others), then the commit's lane is handed over to its parents.

This is a display approximation, not a minimal or planar layout. Ties in
lane order follow the parent order given by the API.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import CommitRecord

SHORT_SHA_LENGTH = 7


@dataclass(frozen=True)
class CommitGraphRow:
    graph: str
    short_sha: str
    summary: str
    author: str | None = None
    date: str | None = None


def _dedupe(lanes: list[str]) -> list[str]:
    """Stable de-duplication, first occurrence wins."""
    seen: set[str] = set()
    out = []
    for sha in lanes:
        if sha not in seen:
            seen.add(sha)
            out.append(sha)
    return out


class LaneTracker:
    """Tracks the open lanes while walking history newest to oldest."""

    def __init__(self) -> None:
        self.active: list[str] = []

    def enter(self, sha: str) -> None:
        """Bring ``sha`` to lane 0, opening a lane if it is not yet tracked."""
        if sha in self.active:
            idx = self.active.index(sha)
            self.active[0], self.active[idx] = self.active[idx], self.active[0]
        else:
            self.active.insert(0, sha)

    def prefix(self) -> str:
        return "".join("* " if i == 0 else "| " for i in range(len(self.active)))

    def leave(self, sha: str, parents: tuple[str, ...] | list[str]) -> None:
        """Close the commit's lane and open (or reuse) one per parent."""
        if sha in self.active:
            self.active.remove(sha)
        for target, parent in enumerate(parents):
            if parent in self.active:
                self.active.remove(parent)
            self.active.insert(min(target, len(self.active)), parent)
        self.active = _dedupe(self.active)

    def advance(self, commit: CommitRecord) -> str:
        """Process one commit and return its graph prefix."""
        self.enter(commit.sha)
        prefix = self.prefix()
        self.leave(commit.sha, commit.parents)
        return prefix


def build_commit_graph(commits: list[CommitRecord]) -> list[CommitGraphRow]:
    """One row per commit, in input order.

    A history made of a single commit has nothing to connect and gets an
    empty graph prefix.
    """
    tracker = LaneTracker()
    rows = []
    for commit in commits:
        prefix = tracker.advance(commit)
        rows.append(CommitGraphRow(
            graph=prefix if len(commits) > 1 else "",
            short_sha=commit.sha[:SHORT_SHA_LENGTH],
            summary=commit.summary,
            author=commit.author,
            date=commit.date,
        ))
    return rows
