"""Data types shared by the GitHub client, the CLI and the dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MergeStateStatus(str, Enum):
    """GitHub's assessment of whether a PR can be merged right now."""

    BEHIND = "BEHIND"
    BLOCKED = "BLOCKED"
    CLEAN = "CLEAN"
    DIRTY = "DIRTY"
    DRAFT = "DRAFT"
    HAS_HOOKS = "HAS_HOOKS"
    UNKNOWN = "UNKNOWN"
    UNSTABLE = "UNSTABLE"

    @classmethod
    def parse(cls, value: str | None) -> MergeStateStatus:
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def emoji(self) -> str:
        return _MERGE_STATE_EMOJI[self]

    @property
    def color(self) -> str:
        """Rich colour name used for list lines."""
        return _MERGE_STATE_COLOR[self]


_MERGE_STATE_EMOJI = {
    MergeStateStatus.BEHIND: "⏩",
    MergeStateStatus.BLOCKED: "🚫",
    MergeStateStatus.CLEAN: "✅",
    MergeStateStatus.DIRTY: "⚠️ ",
    MergeStateStatus.DRAFT: "✏️ ",
    MergeStateStatus.HAS_HOOKS: "🪝",
    MergeStateStatus.UNKNOWN: "❓",
    MergeStateStatus.UNSTABLE: "❌",
}

_MERGE_STATE_COLOR = {
    MergeStateStatus.BEHIND: "yellow",
    MergeStateStatus.BLOCKED: "red",
    MergeStateStatus.CLEAN: "green",
    MergeStateStatus.DIRTY: "yellow",
    MergeStateStatus.DRAFT: "white",
    MergeStateStatus.HAS_HOOKS: "yellow",
    MergeStateStatus.UNKNOWN: "magenta",
    MergeStateStatus.UNSTABLE: "yellow",
}


class ReviewDecision(str, Enum):
    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"

    @classmethod
    def parse(cls, value: str | None) -> ReviewDecision | None:
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def label(self) -> str:
        """Short tag like ``[approved]``."""
        return f"[{self.value.lower().replace('_', ' ')}]"


def _reviewer_name(requested: dict[str, Any] | None) -> str | None:
    """Users are shown by login, teams as ``team:<name>``."""
    if not requested:
        return None
    if requested.get("login"):
        return requested["login"]
    if requested.get("name"):
        return f"team:{requested['name']}"
    return None


@dataclass(frozen=True)
class PullRequestRecord:
    """One open pull request. Replaced wholesale on reload; ``id`` is stable."""

    id: str
    number: int
    owner: str
    repo: str
    title: str
    url: str
    created_at: str
    merge_state: MergeStateStatus = MergeStateStatus.UNKNOWN
    review_decision: ReviewDecision | None = None
    reviewers: tuple[str, ...] = ()

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def created_date(self) -> str:
        return self.created_at.split("T", 1)[0]

    def in_repo(self, owner: str, repo: str) -> bool:
        return self.owner == owner and self.repo == repo

    def display_line(self) -> str:
        """One-line summary used by the dashboard list."""
        decision = f" {self.review_decision.label}" if self.review_decision else ""
        reviewers = f" 👥 {', '.join(self.reviewers)}" if self.reviewers else ""
        return (
            f"#{self.number} {self.merge_state.emoji} {self.slug} "
            f"{self.title}{decision}{reviewers} ({self.created_date})"
        )

    @classmethod
    def from_graphql(cls, owner: str, repo: str, node: dict[str, Any]) -> PullRequestRecord:
        requests_ = (node.get("reviewRequests") or {}).get("nodes") or []
        reviewers = tuple(
            name
            for name in (_reviewer_name(r.get("requestedReviewer")) for r in requests_)
            if name
        )
        return cls(
            id=node["id"],
            number=int(node["number"]),
            owner=owner,
            repo=repo,
            title=node.get("title", ""),
            url=node.get("url", ""),
            created_at=node.get("createdAt", ""),
            merge_state=MergeStateStatus.parse(node.get("mergeStateStatus")),
            review_decision=ReviewDecision.parse(node.get("reviewDecision")),
            reviewers=reviewers,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form, using GitHub's field names for enum values."""
        return {
            "id": self.id,
            "number": self.number,
            "repository": self.slug,
            "title": self.title,
            "url": self.url,
            "createdAt": self.created_at,
            "mergeStateStatus": self.merge_state.value,
            "reviewDecision": self.review_decision.value if self.review_decision else None,
            "reviewers": list(self.reviewers),
        }


@dataclass(frozen=True)
class FileDiff:
    filename: str
    additions: int
    deletions: int
    patch: str | None = None


@dataclass(frozen=True)
class CommitRecord:
    sha: str
    parents: tuple[str, ...] = ()
    summary: str = ""
    author: str | None = None
    date: str | None = None


@dataclass(frozen=True)
class ContributionDay:
    date: str
    count: int
    color: str = "#ebedf0"


@dataclass(frozen=True)
class ContributionWeek:
    first_day: str
    days: tuple[ContributionDay, ...] = ()


@dataclass(frozen=True)
class ContributionCalendar:
    total: int
    weeks: tuple[ContributionWeek, ...] = field(default_factory=tuple)

    def cells(self) -> list[tuple[str, int]]:
        """Flatten to (date, count) pairs."""
        return [(d.date, d.count) for w in self.weeks for d in w.days]


@dataclass(frozen=True)
class SearchHit:
    repo: str
    path: str
    html_url: str
    fragments: tuple[str, ...] = ()


@dataclass(frozen=True)
class IssueRecord:
    owner: str
    repo: str
    number: int
    title: str
    url: str

    @classmethod
    def from_graphql(cls, owner: str, repo: str, node: dict[str, Any]) -> IssueRecord:
        return cls(
            owner=owner,
            repo=repo,
            number=int(node["number"]),
            title=node.get("title", ""),
            url=node.get("url", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": f"{self.owner}/{self.repo}",
            "number": self.number,
            "title": self.title,
            "url": self.url,
        }


@dataclass(frozen=True)
class NotificationRecord:
    """One entry of the REST ``notifications`` listing."""

    id: str
    reason: str
    subject_type: str
    title: str
    repo: str
    updated_at: str
    api_url: str | None = None

    @property
    def html_url(self) -> str | None:
        """Browser URL of the subject, used for the GraphQL ``resource`` lookup."""
        if not self.api_url:
            return None
        return (
            self.api_url
            .replace("api.github.com/repos", "github.com")
            .replace("/pulls/", "/pull/")
        )

    @property
    def updated_date(self) -> str:
        return self.updated_at.split("T", 1)[0]


class AssigneeEventKind(str, Enum):
    ASSIGNED = "AssignedEvent"
    UNASSIGNED = "UnassignedEvent"


@dataclass(frozen=True)
class AssigneeEvent:
    kind: AssigneeEventKind
    created_at: str
    login: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class AssigneeHistory:
    """Assign/unassign timeline of an issue or pull request."""

    number: int
    title: str
    events: tuple[AssigneeEvent, ...] = ()

    def max_assignees(self) -> int:
        """Largest number of simultaneous assignees seen along the timeline."""
        count = peak = 0
        for event in self.events:
            count += 1 if event.kind is AssigneeEventKind.ASSIGNED else -1
            peak = max(peak, count)
        return peak
