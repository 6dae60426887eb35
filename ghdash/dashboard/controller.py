"""Dashboard controller: the state machine behind the PR dashboard.

Input handling and remote work are split into two phases. Phase 1 methods
(navigation, ``request_*``) only touch in-memory state and may queue a single
PendingTask with a persistent "in progress" status. Phase 2 is
``run_pending()``, which the UI calls after it has redrawn once so the
status is visible while the call blocks.

Remote failures never escape ``run_pending()``: they become transient
status messages and the task is dropped. There is no retry.
"""

from __future__ import annotations

import logging
import time
import webbrowser
from datetime import date
from typing import TYPE_CHECKING, Callable, Iterable

from ..contributions import ContributionTotals, compute_totals
from ..github.exceptions import GitHubError
from ..models import (
    ContributionCalendar,
    MergeStateStatus,
    PullRequestRecord,
    SearchHit,
)
from ..slug import RepoSlug, Slug
from .cache import PreviewCache
from .previews import load_preview
from .state import PendingTask, PreviewMode, StatusMessage, TaskKind

if TYPE_CHECKING:
    from rich.text import Text

    from ..github import GitHubClient

logger = logging.getLogger(__name__)

DEFAULT_STATUS_TTL = 3.0


class PendingTaskError(RuntimeError):
    """Raised when a task is queued while another one is still pending."""


class DashboardController:
    """Owns the PR list, selection, preview state, status line and task queue."""

    def __init__(
        self,
        provider: GitHubClient,
        targets: Iterable[Slug],
        prs: Iterable[PullRequestRecord] | None = None,
        *,
        login: str | None = None,
        status_ttl: float = DEFAULT_STATUS_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.targets: list[Slug] = list(targets)
        self.prs: list[PullRequestRecord] = list(prs or [])
        self.cursor: int | None = 0 if self.prs else None
        self.preview_mode: PreviewMode | None = None
        self.preview_scroll = 0
        self.cache: PreviewCache[Text] = PreviewCache()
        self.pending: PendingTask | None = None
        self.status: StatusMessage | None = None
        self.contributions: ContributionCalendar | None = None
        self.search_results: list[SearchHit] | None = None
        self.login = login
        self.should_quit = False
        self._status_ttl = status_ttl
        self._clock = clock

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    @property
    def selected(self) -> PullRequestRecord | None:
        if self.cursor is None or not 0 <= self.cursor < len(self.prs):
            return None
        return self.prs[self.cursor]

    @property
    def preview_open(self) -> bool:
        return self.preview_mode is not None

    @property
    def preview_content(self) -> Text | None:
        """Cached content for the open mode and selected PR, if loaded."""
        pr = self.selected
        if pr is None or self.preview_mode is None:
            return None
        return self.cache.get(self.preview_mode, pr.id)

    @property
    def status_text(self) -> str | None:
        return self.status.text if self.status else None

    @property
    def busy(self) -> bool:
        return self.pending is not None

    def contribution_totals(self, today: date | None = None) -> ContributionTotals | None:
        """Totals relative to ``today``, evaluated on every call."""
        if self.contributions is None:
            return None
        return compute_totals(self.contributions.cells(), today or date.today())

    # ------------------------------------------------------------------
    # Status line
    # ------------------------------------------------------------------

    def set_status(self, text: str) -> None:
        """Persistent message, kept until replaced."""
        self.status = StatusMessage(text)

    def notify(self, text: str) -> None:
        """Transient message, cleared by ``tick`` once it expires."""
        self.status = StatusMessage(text, expires_at=self._clock() + self._status_ttl)

    def dismiss_status(self) -> None:
        self.status = None

    def tick(self, now: float | None = None) -> bool:
        """Expire a transient status. Returns True if the status changed."""
        if self.status is None:
            return False
        if self.status.expired(self._clock() if now is None else now):
            self.status = None
            return True
        return False

    # ------------------------------------------------------------------
    # Navigation and preview
    # ------------------------------------------------------------------

    def select_next(self) -> None:
        if not self.prs:
            return
        self.cursor = 0 if self.cursor is None else (self.cursor + 1) % len(self.prs)
        self.preview_scroll = 0
        self._ensure_preview_loaded()

    def select_previous(self) -> None:
        if not self.prs:
            return
        n = len(self.prs)
        self.cursor = 0 if self.cursor is None else (self.cursor + n - 1) % n
        self.preview_scroll = 0
        self._ensure_preview_loaded()

    def advance_preview(self) -> None:
        """closed -> Body -> Diff -> Commits, staying on Commits."""
        if self.preview_mode is None:
            self.preview_mode = PreviewMode.BODY
        else:
            self.preview_mode = self.preview_mode.next()
        self.preview_scroll = 0
        self._ensure_preview_loaded()

    def retreat_preview(self) -> None:
        """Commits -> Diff -> Body -> closed."""
        if self.preview_mode is None:
            return
        self.preview_mode = self.preview_mode.previous()
        self.preview_scroll = 0
        self._ensure_preview_loaded()

    def close_preview(self) -> None:
        self.preview_mode = None
        self.preview_scroll = 0

    def scroll(self, delta: int) -> None:
        if self.preview_mode is None:
            return
        self.preview_scroll = max(0, self.preview_scroll + delta)

    def _ensure_preview_loaded(self) -> bool:
        """Queue a LoadPreview when the open mode has nothing cached."""
        pr = self.selected
        mode = self.preview_mode
        if pr is None or mode is None or self.pending is not None:
            return False
        if self.cache.has(mode, pr.id):
            return False
        self._enqueue(PendingTask.load_preview(mode))
        self.set_status(f"🔎 Loading {mode.label.lower()} for #{pr.number}...")
        return True

    def open_selected(self, opener: Callable[[str], object] = webbrowser.open) -> str | None:
        pr = self.selected
        if pr is None:
            return None
        opener(pr.url)
        return pr.url

    def request_quit(self) -> None:
        self.should_quit = True

    # ------------------------------------------------------------------
    # Phase 1: queue remote work
    # ------------------------------------------------------------------

    def _enqueue(self, task: PendingTask) -> None:
        if self.pending is not None:
            raise PendingTaskError(
                f"Cannot queue {task.kind.value}: {self.pending.kind.value} is pending"
            )
        self.pending = task

    def _require_selection(self) -> PullRequestRecord | None:
        pr = self.selected
        if pr is None:
            self.notify("No pull request selected")
        return pr

    def _check_mergeable(self, pr: PullRequestRecord) -> bool:
        if pr.merge_state is MergeStateStatus.CLEAN:
            return True
        self.notify(f"Cannot merge PR #{pr.number} in {pr.slug}: not in clean state")
        return False

    def request_merge(self) -> bool:
        pr = self._require_selection()
        if pr is None or not self._check_mergeable(pr):
            return False
        self._enqueue(PendingTask.merge_selected())
        self.set_status(f"Merging PR #{pr.number} in {pr.slug}...")
        return True

    def request_approve(self) -> bool:
        pr = self._require_selection()
        if pr is None:
            return False
        self._enqueue(PendingTask.approve_selected())
        self.set_status(f"Approving PR #{pr.number} in {pr.slug}...")
        return True

    def request_reload(self) -> bool:
        self._enqueue(PendingTask.reload_all())
        self.set_status("🔄 Reloading...")
        return True

    def request_reload_repo(self) -> bool:
        pr = self._require_selection()
        if pr is None:
            return False
        self._enqueue(PendingTask.reload_repo(pr.owner, pr.repo))
        self.set_status(f"🔄 Reloading {pr.slug}...")
        return True

    def request_contributions(self) -> bool:
        self._enqueue(PendingTask.reload_contributions())
        self.set_status("🔄 Loading contributions...")
        return True

    def default_search_owner(self) -> str | None:
        pr = self.selected
        if pr is not None:
            return pr.owner
        for target in self.targets:
            return target.owner
        return None

    def request_search(self, query: str, owner: str | None = None) -> bool:
        owner = owner or self.default_search_owner()
        if not query.strip() and not owner:
            self.notify("Nothing to search for")
            return False
        self._enqueue(PendingTask.search_code(owner, query.strip()))
        self.set_status(f"🔍 Searching {query.strip()!r}...")
        return True

    def clear_search(self) -> None:
        self.search_results = None

    # ------------------------------------------------------------------
    # Phase 2: execute
    # ------------------------------------------------------------------

    def run_pending(self) -> PendingTask | None:
        """Execute and clear the pending task.

        A handler may queue a follow-up task (e.g. a scoped reload after a
        merge); it is left in ``pending`` for the next iteration.

        Returns:
            The task that ran, or None if nothing was pending
        """
        task = self.pending
        if task is None:
            return None
        self.pending = None
        label = self._describe(task)
        handler = self._handlers[task.kind]
        try:
            handler(self, task)
        except GitHubError as e:
            logger.warning("Task %s failed: %s", task.kind.value, e)
            message = f"❌ Failed to {label}: {e}"
            self.notify(f"{task.note} · {message}" if task.note else message)
        return task

    def _describe(self, task: PendingTask) -> str:
        pr = self.selected
        ref = f"PR #{pr.number} in {pr.slug}" if pr else "PR"
        if task.kind is TaskKind.MERGE_SELECTED:
            return f"merge {ref}"
        if task.kind is TaskKind.APPROVE_SELECTED:
            return f"approve {ref}"
        if task.kind is TaskKind.RELOAD_ALL:
            return "reload"
        if task.kind is TaskKind.RELOAD_REPO:
            return f"reload {task.owner}/{task.repo}"
        if task.kind is TaskKind.RELOAD_CONTRIBUTIONS:
            return "load contributions"
        if task.kind is TaskKind.LOAD_PREVIEW:
            mode = task.mode.label.lower() if task.mode else "preview"
            return f"load {mode} for #{pr.number}" if pr else f"load {mode}"
        return f"search {task.query!r}"

    def _run_merge(self, task: PendingTask) -> None:
        pr = self._require_selection()
        if pr is None or not self._check_mergeable(pr):
            return
        index = self.cursor
        self.provider.merge_pr(pr.id)
        self._remove_at(index)
        self.cache.drop(pr.id)
        message = f"✅ Merged PR #{pr.number} in {pr.slug}"
        logger.info("Merged %s#%d", pr.slug, pr.number)
        self.notify(message)
        self._enqueue(PendingTask.reload_repo(pr.owner, pr.repo, note=message))

    def _run_approve(self, task: PendingTask) -> None:
        pr = self._require_selection()
        if pr is None:
            return
        self.provider.approve_pr(pr.id)
        message = f"✅ Approved PR #{pr.number} in {pr.slug}"
        logger.info("Approved %s#%d", pr.slug, pr.number)
        self.notify(message)
        self._enqueue(PendingTask.reload_repo(pr.owner, pr.repo, note=message))

    def _remove_at(self, index: int) -> None:
        del self.prs[index]
        if not self.prs:
            self.cursor = None
        elif index >= len(self.prs):
            self.cursor = len(self.prs) - 1
        else:
            self.cursor = index

    def _fetch_target(self, target: Slug) -> list[PullRequestRecord]:
        try:
            if isinstance(target, RepoSlug):
                return self.provider.fetch_repo_prs(target.owner, target.name)
            return self.provider.fetch_account_prs(target.owner)
        except GitHubError as e:
            raise GitHubError(f"{target}: {e}") from e

    def _run_reload_all(self, task: PendingTask) -> None:
        fresh: list[PullRequestRecord] = []
        for target in self.targets:
            fresh.extend(self._fetch_target(target))

        position = self.cursor or 0
        self.prs = fresh
        self.cursor = min(position, len(fresh) - 1) if fresh else None
        pruned = self.cache.prune(pr.id for pr in fresh)
        logger.debug("Reloaded %d PRs, pruned %d cache entries", len(fresh), pruned)
        self.notify(f"✅ Reloaded. {len(fresh)} PRs.")

        try:
            self._load_contributions()
        except GitHubError as e:
            logger.warning("Contribution reload failed: %s", e)
            self.notify(f"❌ Contrib load error: {e}")

        self._ensure_preview_loaded()

    def _run_reload_repo(self, task: PendingTask) -> None:
        owner, repo = task.owner, task.repo
        fresh = self.provider.fetch_repo_prs(owner, repo)

        selected = self.selected
        selected_id = selected.id if selected else None
        old = self.prs
        splice = next((i for i, pr in enumerate(old) if pr.in_repo(owner, repo)), None)
        kept = [pr for pr in old if not pr.in_repo(owner, repo)]
        if splice is None:
            splice = len(kept)
        for pr in old:
            if pr.in_repo(owner, repo):
                self.cache.drop(pr.id)

        self.prs = kept[:splice] + list(fresh) + kept[splice:]
        ids = [pr.id for pr in self.prs]
        if not self.prs:
            self.cursor = None
        elif selected_id in ids:
            self.cursor = ids.index(selected_id)
        else:
            self.cursor = min(splice, len(self.prs) - 1)

        message = f"✅ Reloaded {owner}/{repo}. {len(fresh)} PRs."
        self.notify(f"{task.note} · {message}" if task.note else message)
        self._ensure_preview_loaded()

    def _load_contributions(self) -> None:
        if self.login is None:
            self.login = self.provider.fetch_viewer_login()
        self.contributions = self.provider.fetch_contribution_calendar(self.login)

    def _run_reload_contributions(self, task: PendingTask) -> None:
        self._load_contributions()
        self.notify(f"✅ Loaded contributions for {self.login}")

    def _run_load_preview(self, task: PendingTask) -> None:
        pr = self.selected
        mode = task.mode
        if pr is None or mode is None:
            return
        content = load_preview(self.provider, mode, pr)
        self.cache.put(mode, pr.id, content)
        self.notify(f"✅ Loaded {mode.label.lower()} for #{pr.number}")

    def _run_search(self, task: PendingTask) -> None:
        hits = self.provider.search_code(task.query or "", owner=task.owner)
        self.search_results = hits
        self.notify(f"🔍 {len(hits)} results for {task.query!r}")

    _handlers: dict[TaskKind, Callable[[DashboardController, PendingTask], None]] = {
        TaskKind.MERGE_SELECTED: _run_merge,
        TaskKind.APPROVE_SELECTED: _run_approve,
        TaskKind.RELOAD_ALL: _run_reload_all,
        TaskKind.RELOAD_REPO: _run_reload_repo,
        TaskKind.RELOAD_CONTRIBUTIONS: _run_reload_contributions,
        TaskKind.LOAD_PREVIEW: _run_load_preview,
        TaskKind.SEARCH_CODE: _run_search,
    }


def targets_from_slugs(slugs: Iterable[Slug]) -> list[Slug]:
    """De-duplicate targets, keeping order."""
    seen: set[Slug] = set()
    out = []
    for slug in slugs:
        if slug not in seen:
            seen.add(slug)
            out.append(slug)
    return out
