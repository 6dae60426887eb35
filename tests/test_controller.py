"""Tests for the dashboard controller state machine.

The provider is a MagicMock with the GitHubClient spec, and the clock is a
FakeClock, so every test is synchronous and offline. Remote work is driven
explicitly: a request_* call queues the task, run_pending() executes it.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import requests
from rich.text import Text

from ghdash.config import Config
from ghdash.dashboard.controller import (
    DashboardController,
    PendingTaskError,
    targets_from_slugs,
)
from ghdash.dashboard.state import PendingTask, PreviewMode, TaskKind
from ghdash.github import GitHubAPIError, GitHubClient
from ghdash.models import (
    ContributionCalendar,
    ContributionDay,
    ContributionWeek,
    MergeStateStatus,
    SearchHit,
)
from ghdash.slug import OwnerSlug, RepoSlug


@pytest.fixture
def make_controller(fake_provider, clock):
    def _make(prs=(), targets=(OwnerSlug("acme"),), **kwargs):
        return DashboardController(
            fake_provider,
            list(targets),
            list(prs),
            status_ttl=3.0,
            clock=clock,
            **kwargs,
        )
    return _make


def _fill_cache(controller, *prs):
    for pr in prs:
        for mode in PreviewMode:
            controller.cache.put(mode, pr.id, Text(f"{mode.value} {pr.number}"))


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class TestNavigation:
    """Cursor movement over the PR list."""

    def test_select_next_len_times_is_identity(self, make_controller, pr_factory):
        controller = make_controller([pr_factory(n) for n in range(1, 6)])
        controller.cursor = 2
        for _ in range(5):
            controller.select_next()
        assert controller.cursor == 2

    def test_select_next_wraps(self, make_controller, pr_factory):
        controller = make_controller([pr_factory(1), pr_factory(2)])
        controller.cursor = 1
        controller.select_next()
        assert controller.cursor == 0

    def test_select_previous_wraps(self, make_controller, pr_factory):
        controller = make_controller([pr_factory(1), pr_factory(2), pr_factory(3)])
        controller.select_previous()
        assert controller.cursor == 2
        assert controller.selected.number == 3

    def test_navigation_on_empty_list_is_noop(self, make_controller):
        controller = make_controller()
        controller.select_next()
        controller.select_previous()
        assert controller.cursor is None
        assert controller.selected is None

    def test_navigation_resets_scroll(self, make_controller, pr_factory):
        prs = [pr_factory(1), pr_factory(2)]
        controller = make_controller(prs)
        _fill_cache(controller, *prs)
        controller.advance_preview()
        controller.scroll(10)
        controller.select_next()
        assert controller.preview_scroll == 0


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------


class TestPreview:
    """Preview mode cycling, lazy loading and scrolling."""

    def test_advance_opens_body_and_queues_load(self, make_controller, pr_factory):
        controller = make_controller([pr_factory(1)])
        controller.advance_preview()
        assert controller.preview_mode is PreviewMode.BODY
        assert controller.pending == PendingTask.load_preview(PreviewMode.BODY)
        assert controller.status_text == "🔎 Loading body for #1..."

    def test_load_preview_fills_cache(self, make_controller, pr_factory, fake_provider):
        pr = pr_factory(1)
        controller = make_controller([pr])
        controller.advance_preview()
        controller.run_pending()
        fake_provider.fetch_pr_body.assert_called_once_with("acme", "widgets", 1)
        assert controller.cache.has(PreviewMode.BODY, pr.id)
        assert "Body text" in controller.preview_content.plain
        assert controller.status_text == "✅ Loaded body for #1"
        assert controller.pending is None

    def test_cycle_saturates_at_commits(self, make_controller, pr_factory):
        pr = pr_factory(1)
        controller = make_controller([pr])
        _fill_cache(controller, pr)
        for _ in range(5):
            controller.advance_preview()
        assert controller.preview_mode is PreviewMode.COMMITS

    def test_retreat_from_body_closes(self, make_controller, pr_factory):
        pr = pr_factory(1)
        controller = make_controller([pr])
        _fill_cache(controller, pr)
        controller.advance_preview()
        controller.advance_preview()
        controller.retreat_preview()
        assert controller.preview_mode is PreviewMode.BODY
        controller.retreat_preview()
        assert controller.preview_mode is None
        assert not controller.preview_open
        controller.retreat_preview()
        assert controller.preview_mode is None

    def test_cached_content_does_not_queue(self, make_controller, pr_factory):
        pr = pr_factory(1)
        controller = make_controller([pr])
        _fill_cache(controller, pr)
        controller.advance_preview()
        assert controller.pending is None

    def test_moving_with_preview_open_prefetches(self, make_controller, pr_factory):
        first, second = pr_factory(1), pr_factory(2)
        controller = make_controller([first, second])
        _fill_cache(controller, first)
        controller.advance_preview()
        controller.advance_preview()
        assert controller.pending is None

        controller.select_next()
        assert controller.pending == PendingTask.load_preview(PreviewMode.DIFF)

    def test_moving_with_preview_closed_does_not_load(self, make_controller, pr_factory):
        controller = make_controller([pr_factory(1), pr_factory(2)])
        controller.select_next()
        assert controller.pending is None

    def test_load_failure_leaves_cache_empty(self, make_controller, pr_factory, fake_provider):
        pr = pr_factory(1)
        fake_provider.fetch_pr_diff.side_effect = GitHubAPIError("500: oops", status_code=500)
        controller = make_controller([pr])
        controller.cache.put(PreviewMode.BODY, pr.id, Text("body"))
        controller.advance_preview()
        controller.advance_preview()
        controller.run_pending()
        assert not controller.cache.has(PreviewMode.DIFF, pr.id)
        assert controller.status_text == "❌ Failed to load diff for #1: 500: oops"

    def test_scroll_ignored_when_closed(self, make_controller, pr_factory):
        controller = make_controller([pr_factory(1)])
        controller.scroll(5)
        assert controller.preview_scroll == 0

    def test_scroll_clamps_at_zero(self, make_controller, pr_factory):
        pr = pr_factory(1)
        controller = make_controller([pr])
        _fill_cache(controller, pr)
        controller.advance_preview()
        controller.scroll(3)
        controller.scroll(-10)
        assert controller.preview_scroll == 0

    def test_close_preview(self, make_controller, pr_factory):
        pr = pr_factory(1)
        controller = make_controller([pr])
        _fill_cache(controller, pr)
        controller.advance_preview()
        controller.close_preview()
        assert controller.preview_content is None


# ---------------------------------------------------------------------------
# Status line
# ---------------------------------------------------------------------------


class TestStatus:
    """Transient and persistent status messages."""

    def test_transient_expires(self, make_controller, clock):
        controller = make_controller()
        controller.notify("hello")
        clock.advance(2.9)
        assert controller.tick() is False
        assert controller.status_text == "hello"
        clock.advance(0.1)
        assert controller.tick() is True
        assert controller.status is None

    def test_persistent_never_expires(self, make_controller, clock):
        controller = make_controller()
        controller.set_status("working")
        clock.advance(10_000)
        assert controller.tick() is False
        assert controller.status_text == "working"

    def test_tick_with_explicit_time(self, make_controller, clock):
        controller = make_controller()
        controller.notify("hello")
        assert controller.tick(now=clock.now + 3.0) is True

    def test_dismiss(self, make_controller):
        controller = make_controller()
        controller.set_status("working")
        controller.dismiss_status()
        assert controller.status_text is None


# ---------------------------------------------------------------------------
# Merge and approve
# ---------------------------------------------------------------------------


class TestMerge:
    """Merging the selected PR."""

    def test_not_clean_is_rejected_without_network(self, make_controller, pr_factory, fake_provider):
        prs = [pr_factory(1, merge_state=MergeStateStatus.BLOCKED), pr_factory(2)]
        controller = make_controller(prs)
        assert controller.request_merge() is False
        assert controller.pending is None
        assert controller.prs == prs
        assert controller.status_text == "Cannot merge PR #1 in acme/widgets: not in clean state"
        fake_provider.merge_pr.assert_not_called()

    def test_no_selection(self, make_controller, fake_provider):
        controller = make_controller()
        assert controller.request_merge() is False
        assert controller.status_text == "No pull request selected"
        fake_provider.merge_pr.assert_not_called()

    def test_request_sets_persistent_status(self, make_controller, pr_factory, clock):
        controller = make_controller([pr_factory(7)])
        assert controller.request_merge() is True
        assert controller.pending.kind is TaskKind.MERGE_SELECTED
        clock.advance(60)
        controller.tick()
        assert controller.status_text == "Merging PR #7 in acme/widgets..."

    def test_success_removes_pr_and_cache(self, make_controller, pr_factory, fake_provider):
        merged, other = pr_factory(1), pr_factory(2)
        controller = make_controller([merged, other])
        _fill_cache(controller, merged, other)

        controller.request_merge()
        controller.run_pending()

        fake_provider.merge_pr.assert_called_once_with(merged.id)
        assert merged.id not in [pr.id for pr in controller.prs]
        for mode in PreviewMode:
            assert not controller.cache.has(mode, merged.id)
            assert controller.cache.has(mode, other.id)
        assert controller.selected == other

    def test_success_chains_scoped_reload(self, make_controller, pr_factory, fake_provider):
        merged, other = pr_factory(1), pr_factory(2)
        controller = make_controller([merged, other])
        controller.request_merge()
        controller.run_pending()

        assert controller.pending == PendingTask.reload_repo(
            "acme", "widgets", note="✅ Merged PR #1 in acme/widgets"
        )

        fake_provider.fetch_repo_prs.return_value = [other]
        controller.run_pending()
        fake_provider.fetch_repo_prs.assert_called_once_with("acme", "widgets")
        assert controller.status_text == (
            "✅ Merged PR #1 in acme/widgets · ✅ Reloaded acme/widgets. 1 PRs."
        )
        assert controller.pending is None

    def test_failed_follow_up_reload_keeps_merge_outcome(self, make_controller, pr_factory, fake_provider):
        controller = make_controller([pr_factory(1), pr_factory(2)])
        controller.request_merge()
        controller.run_pending()

        fake_provider.fetch_repo_prs.side_effect = GitHubAPIError("boom")
        controller.run_pending()
        assert controller.status_text == (
            "✅ Merged PR #1 in acme/widgets · ❌ Failed to reload acme/widgets: boom"
        )
        assert [pr.number for pr in controller.prs] == [2]

    def test_merging_last_pr_empties_selection(self, make_controller, pr_factory):
        controller = make_controller([pr_factory(1)])
        controller.request_merge()
        controller.run_pending()
        assert controller.prs == []
        assert controller.cursor is None

    def test_merging_last_row_moves_cursor_up(self, make_controller, pr_factory):
        controller = make_controller([pr_factory(1), pr_factory(2), pr_factory(3)])
        controller.cursor = 2
        controller.request_merge()
        controller.run_pending()
        assert controller.cursor == 1

    def test_failure_keeps_list(self, make_controller, pr_factory, fake_provider):
        prs = [pr_factory(1), pr_factory(2)]
        fake_provider.merge_pr.side_effect = GitHubAPIError("GraphQL error: not allowed")
        controller = make_controller(prs)
        controller.request_merge()
        controller.run_pending()
        assert controller.prs == prs
        assert controller.pending is None
        assert controller.status_text == (
            "❌ Failed to merge PR #1 in acme/widgets: GraphQL error: not allowed"
        )


class TestApprove:
    """Approving the selected PR."""

    def test_approve_calls_provider_and_reloads(self, make_controller, pr_factory, fake_provider):
        pr = pr_factory(4, merge_state=MergeStateStatus.BLOCKED)
        controller = make_controller([pr])
        assert controller.request_approve() is True
        assert controller.status_text == "Approving PR #4 in acme/widgets..."
        controller.run_pending()
        fake_provider.approve_pr.assert_called_once_with(pr.id)
        assert controller.pending.kind is TaskKind.RELOAD_REPO
        assert controller.status_text == "✅ Approved PR #4 in acme/widgets"

    def test_approve_without_selection(self, make_controller, fake_provider):
        controller = make_controller()
        assert controller.request_approve() is False
        fake_provider.approve_pr.assert_not_called()


# ---------------------------------------------------------------------------
# Pending task queue
# ---------------------------------------------------------------------------


class TestPendingTask:
    """At most one task is pending at a time."""

    def test_second_enqueue_raises(self, make_controller):
        controller = make_controller()
        controller.request_reload()
        assert controller.busy
        with pytest.raises(PendingTaskError):
            controller.request_contributions()

    def test_run_pending_without_task(self, make_controller):
        assert make_controller().run_pending() is None

    def test_run_pending_returns_task(self, make_controller):
        controller = make_controller()
        controller.request_reload()
        task = controller.run_pending()
        assert task.kind is TaskKind.RELOAD_ALL
        assert not controller.busy

    def test_preview_not_queued_while_busy(self, make_controller, pr_factory):
        controller = make_controller([pr_factory(1)])
        controller.request_reload()
        controller.advance_preview()
        assert controller.pending.kind is TaskKind.RELOAD_ALL


# ---------------------------------------------------------------------------
# Reload
# ---------------------------------------------------------------------------


class TestReloadAll:
    """Full reload across every target."""

    def test_replaces_list_and_clamps_cursor(self, make_controller, pr_factory, fake_provider):
        a, b, c = pr_factory(1), pr_factory(2), pr_factory(3)
        controller = make_controller([a, b, c])
        controller.cursor = 2
        _fill_cache(controller, a, b, c)
        fake_provider.fetch_account_prs.return_value = [a, b]

        controller.request_reload()
        assert controller.status_text == "🔄 Reloading..."
        controller.run_pending()

        assert controller.prs == [a, b]
        assert controller.cursor == 1
        assert controller.cache.ids() == {a.id, b.id}
        assert controller.status_text == "✅ Reloaded. 2 PRs."

    def test_fetches_each_target_kind(self, make_controller, pr_factory, fake_provider):
        owner_pr = pr_factory(1)
        repo_pr = pr_factory(9, owner="other", repo="repo")
        fake_provider.fetch_account_prs.return_value = [owner_pr]
        fake_provider.fetch_repo_prs.return_value = [repo_pr]
        controller = make_controller(targets=[OwnerSlug("acme"), RepoSlug("other", "repo")])

        controller.request_reload()
        controller.run_pending()

        fake_provider.fetch_account_prs.assert_called_once_with("acme")
        fake_provider.fetch_repo_prs.assert_called_once_with("other", "repo")
        assert controller.prs == [owner_pr, repo_pr]
        assert controller.cursor == 0

    def test_target_failure_leaves_state_unchanged(self, make_controller, pr_factory, fake_provider):
        prs = [pr_factory(1)]
        fake_provider.fetch_repo_prs.side_effect = GitHubAPIError("404: Not Found", status_code=404)
        controller = make_controller(prs, targets=[OwnerSlug("acme"), RepoSlug("other", "repo")])

        controller.request_reload()
        controller.run_pending()

        assert controller.prs == prs
        assert controller.status_text == "❌ Failed to reload: other/repo: 404: Not Found"

    def test_also_loads_contributions(self, make_controller, fake_provider):
        calendar = ContributionCalendar(total=42)
        fake_provider.fetch_contribution_calendar.return_value = calendar
        controller = make_controller()

        controller.request_reload()
        controller.run_pending()

        fake_provider.fetch_contribution_calendar.assert_called_once_with("octocat")
        assert controller.contributions == calendar
        assert controller.login == "octocat"

    def test_contribution_failure_is_reported_separately(self, make_controller, pr_factory, fake_provider):
        fake_provider.fetch_account_prs.return_value = [pr_factory(1)]
        fake_provider.fetch_contribution_calendar.side_effect = GitHubAPIError("timeout")
        controller = make_controller()

        controller.request_reload()
        controller.run_pending()

        assert len(controller.prs) == 1
        assert controller.status_text == "❌ Contrib load error: timeout"

    def test_reload_queues_preview_for_open_mode(self, make_controller, pr_factory, fake_provider):
        pr = pr_factory(1)
        controller = make_controller()
        controller.preview_mode = PreviewMode.BODY
        fake_provider.fetch_account_prs.return_value = [pr]

        controller.request_reload()
        controller.run_pending()

        assert controller.pending == PendingTask.load_preview(PreviewMode.BODY)


class TestReloadRepo:
    """Scoped reload of a single repository."""

    def _setup(self, make_controller, pr_factory):
        x1 = pr_factory(1, owner="other", repo="repo")
        w1, w2 = pr_factory(1), pr_factory(2)
        y1 = pr_factory(1, owner="zeta", repo="app")
        return make_controller([x1, w1, w2, y1]), (x1, w1, w2, y1)

    def test_preserves_selection_by_id(self, make_controller, pr_factory, fake_provider):
        controller, (x1, w1, w2, y1) = self._setup(make_controller, pr_factory)
        controller.cursor = 2
        w3, w4 = pr_factory(3), pr_factory(4)
        fake_provider.fetch_repo_prs.return_value = [w2, w3, w4]

        controller.request_reload_repo()
        controller.run_pending()

        assert controller.prs == [x1, w2, w3, w4, y1]
        assert controller.cursor == 1
        assert controller.selected == w2

    def test_falls_back_to_splice_position(self, make_controller, pr_factory, fake_provider):
        controller, (x1, w1, w2, y1) = self._setup(make_controller, pr_factory)
        controller.cursor = 2
        w5 = pr_factory(5)
        fake_provider.fetch_repo_prs.return_value = [w5]

        controller.request_reload_repo()
        controller.run_pending()

        assert controller.prs == [x1, w5, y1]
        assert controller.cursor == 1

    def test_empty_result_clamps(self, make_controller, pr_factory, fake_provider):
        w1 = pr_factory(1)
        controller = make_controller([w1])
        fake_provider.fetch_repo_prs.return_value = []

        controller.request_reload_repo()
        controller.run_pending()

        assert controller.prs == []
        assert controller.cursor is None
        assert controller.status_text == "✅ Reloaded acme/widgets. 0 PRs."

    def test_repo_not_in_list_appends(self, make_controller, pr_factory, fake_provider):
        x1 = pr_factory(1, owner="other", repo="repo")
        w1 = pr_factory(1)
        controller = make_controller([x1])
        fake_provider.fetch_repo_prs.return_value = [w1]

        controller._enqueue(PendingTask.reload_repo("acme", "widgets"))
        controller.run_pending()

        assert controller.prs == [x1, w1]
        assert controller.selected == x1

    def test_drops_cache_for_replaced_records(self, make_controller, pr_factory, fake_provider):
        controller, (x1, w1, w2, y1) = self._setup(make_controller, pr_factory)
        controller.cursor = 1
        _fill_cache(controller, x1, w1, w2, y1)
        fake_provider.fetch_repo_prs.return_value = [w2]

        controller.request_reload_repo()
        controller.run_pending()

        assert controller.cache.ids() == {x1.id, y1.id}

    def test_request_uses_selected_repo(self, make_controller, pr_factory):
        controller, _ = self._setup(make_controller, pr_factory)
        controller.cursor = 0
        controller.request_reload_repo()
        assert controller.pending == PendingTask.reload_repo("other", "repo")
        assert controller.status_text == "🔄 Reloading other/repo..."

    def test_failure_leaves_list(self, make_controller, pr_factory, fake_provider):
        controller, prs = self._setup(make_controller, pr_factory)
        fake_provider.fetch_repo_prs.side_effect = GitHubAPIError("boom")
        controller.request_reload_repo()
        controller.run_pending()
        assert controller.prs == list(prs)
        assert controller.status_text == "❌ Failed to reload other/repo: boom"


# ---------------------------------------------------------------------------
# Contributions and search
# ---------------------------------------------------------------------------


class TestContributions:
    """Contribution calendar loading and totals."""

    def test_request_and_run(self, make_controller, fake_provider):
        controller = make_controller(login="mona")
        controller.request_contributions()
        assert controller.status_text == "🔄 Loading contributions..."
        controller.run_pending()
        fake_provider.fetch_viewer_login.assert_not_called()
        fake_provider.fetch_contribution_calendar.assert_called_once_with("mona")
        assert controller.status_text == "✅ Loaded contributions for mona"

    def test_totals_none_before_load(self, make_controller):
        assert make_controller().contribution_totals() is None

    def test_totals_relative_to_today(self, make_controller):
        controller = make_controller()
        controller.contributions = ContributionCalendar(
            total=108,
            weeks=(ContributionWeek("2024-05-12", (
                ContributionDay("2024-05-14", 3),
                ContributionDay("2024-05-15", 5),
                ContributionDay("2024-05-16", 100),
            )),),
        )
        totals = controller.contribution_totals(date(2024, 5, 15))
        assert totals.week.total == 8
        assert totals.month.total == 8
        assert totals.year.total == 8


class TestSearch:
    """Code search from the dashboard."""

    def test_owner_defaults_to_selected_pr(self, make_controller, pr_factory, fake_provider):
        hits = [SearchHit("acme/widgets", "src/a.py", "https://github.com/x", ("foo()",))]
        fake_provider.search_code.return_value = hits
        controller = make_controller([pr_factory(1, owner="octo")])

        assert controller.request_search(" foo ") is True
        assert controller.pending == PendingTask.search_code("octo", "foo")
        controller.run_pending()

        fake_provider.search_code.assert_called_once_with("foo", owner="octo")
        assert controller.search_results == hits
        controller.clear_search()
        assert controller.search_results is None

    def test_owner_falls_back_to_first_target(self, make_controller):
        controller = make_controller(targets=[RepoSlug("acme", "widgets")])
        assert controller.default_search_owner() == "acme"

    def test_nothing_to_search(self, make_controller):
        controller = make_controller(targets=[])
        assert controller.request_search("   ") is False
        assert controller.pending is None
        assert controller.status_text == "Nothing to search for"


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------


class TestMisc:
    """Open, quit and target helpers."""

    def test_open_selected_uses_opener(self, make_controller, pr_factory):
        pr = pr_factory(3)
        controller = make_controller([pr])
        opener = MagicMock()
        assert controller.open_selected(opener) == pr.url
        opener.assert_called_once_with(pr.url)

    def test_open_without_selection(self, make_controller):
        opener = MagicMock()
        assert make_controller().open_selected(opener) is None
        opener.assert_not_called()

    def test_request_quit(self, make_controller):
        controller = make_controller()
        controller.request_quit()
        assert controller.should_quit

    def test_targets_from_slugs_dedupes(self):
        slugs = [OwnerSlug("a"), RepoSlug("a", "b"), OwnerSlug("a")]
        assert targets_from_slugs(slugs) == [OwnerSlug("a"), RepoSlug("a", "b")]


# ---------------------------------------------------------------------------
# Malformed payloads through the real client
# ---------------------------------------------------------------------------


def _json_response(body):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = body
    return response


class TestMalformedPayloads:
    """Bad API payloads become status messages instead of escaping run_pending()."""

    @pytest.fixture
    def client(self):
        with GitHubClient(Config(token="t")) as c:
            yield c

    def test_diff_file_without_filename(self, client, clock, pr_factory):
        controller = DashboardController(client, [OwnerSlug("acme")], [pr_factory(1)], clock=clock)
        responses = [
            _json_response({"data": {"repository": {"pullRequest": {"bodyText": "hi"}}}}),
            _json_response([{"additions": 1}]),
        ]
        with patch.object(requests.Session, "request", side_effect=responses):
            controller.advance_preview()
            controller.run_pending()
            controller.advance_preview()
            assert controller.preview_mode is PreviewMode.DIFF
            controller.run_pending()

        assert controller.pending is None
        assert controller.status_text.startswith("❌ Failed to load diff for #1: ")
        assert "filename" in controller.status_text
        assert not controller.cache.has(PreviewMode.DIFF, "PR_acme_widgets_1")

    def test_reload_with_pr_node_missing_id(self, client, clock, pr_factory):
        prs = [pr_factory(1)]
        controller = DashboardController(client, [OwnerSlug("acme")], list(prs), clock=clock)
        body = {"data": {"repositoryOwner": {"repositories": {"nodes": [
            {"name": "widgets", "pullRequests": {"nodes": [{"number": 7, "title": "No id"}]}},
        ]}}}}
        with patch.object(requests.Session, "request", return_value=_json_response(body)):
            controller.request_reload()
            controller.run_pending()

        assert controller.prs == prs
        assert controller.status_text.startswith("❌ Failed to reload: acme: Unexpected")
        assert "'id'" in controller.status_text
