"""Small value types owned by the dashboard controller."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PreviewMode(str, Enum):
    """Preview panel content, cycled Body -> Diff -> Commits.

    A closed panel is represented by ``None`` rather than a member.
    """

    BODY = "body"
    DIFF = "diff"
    COMMITS = "commits"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def next(self) -> PreviewMode:
        """Following mode, saturating at the last one."""
        order = list(PreviewMode)
        return order[min(order.index(self) + 1, len(order) - 1)]

    def previous(self) -> PreviewMode | None:
        """Preceding mode, or None (panel closed) from the first one."""
        order = list(PreviewMode)
        idx = order.index(self)
        return order[idx - 1] if idx > 0 else None


class TaskKind(str, Enum):
    MERGE_SELECTED = "merge_selected"
    APPROVE_SELECTED = "approve_selected"
    RELOAD_ALL = "reload_all"
    RELOAD_REPO = "reload_repo"
    RELOAD_CONTRIBUTIONS = "reload_contributions"
    LOAD_PREVIEW = "load_preview"
    SEARCH_CODE = "search_code"


@dataclass(frozen=True)
class PendingTask:
    """One deferred remote operation, executed after the next redraw.

    Only the fields relevant to ``kind`` are set: ``mode`` for
    LOAD_PREVIEW, ``owner``/``repo`` for RELOAD_REPO, ``owner``/``query``
    for SEARCH_CODE. ``note`` is prepended to the completion message.
    """

    kind: TaskKind
    mode: PreviewMode | None = None
    owner: str | None = None
    repo: str | None = None
    query: str | None = None
    note: str | None = None

    @classmethod
    def merge_selected(cls) -> PendingTask:
        return cls(TaskKind.MERGE_SELECTED)

    @classmethod
    def approve_selected(cls) -> PendingTask:
        return cls(TaskKind.APPROVE_SELECTED)

    @classmethod
    def reload_all(cls) -> PendingTask:
        return cls(TaskKind.RELOAD_ALL)

    @classmethod
    def reload_repo(cls, owner: str, repo: str, note: str | None = None) -> PendingTask:
        return cls(TaskKind.RELOAD_REPO, owner=owner, repo=repo, note=note)

    @classmethod
    def reload_contributions(cls) -> PendingTask:
        return cls(TaskKind.RELOAD_CONTRIBUTIONS)

    @classmethod
    def load_preview(cls, mode: PreviewMode) -> PendingTask:
        return cls(TaskKind.LOAD_PREVIEW, mode=mode)

    @classmethod
    def search_code(cls, owner: str | None, query: str) -> PendingTask:
        return cls(TaskKind.SEARCH_CODE, owner=owner, query=query)


@dataclass(frozen=True)
class StatusMessage:
    """Status line text. ``expires_at`` of None means it stays until replaced."""

    text: str
    expires_at: float | None = None

    @property
    def persistent(self) -> bool:
        return self.expires_at is None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at
