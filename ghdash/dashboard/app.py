"""ghdash dashboard: Textual TUI over a DashboardController.

Every key binding mutates the controller and redraws. If that left a task
pending, it runs after the redraw has been painted, so the "in progress"
status is on screen while the remote call blocks. Input is ignored while a
task is pending.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Header

from ..contributions import format_totals
from .controller import DashboardController
from .widgets import (
    ContributionsPanel,
    PreviewPanel,
    PullRequestList,
    SearchScreen,
    StatusBar,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1


class PullRequestDashboard(App):
    """PR list with a body/diff/commits preview and a contribution panel."""

    TITLE = "ghdash"
    SUB_TITLE = "Pull Requests"

    CSS = """
    #main {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit_dashboard", "Quit", show=True),
        Binding("j,down", "down", "Down", show=False),
        Binding("k,up", "up", "Up", show=False),
        Binding("J", "select_next", "Next PR", show=False),
        Binding("K", "select_previous", "Previous PR", show=False),
        Binding("right,l", "advance_preview", "Preview", show=True),
        Binding("left,h", "retreat_preview", "Back", show=True),
        Binding("enter,o", "open_url", "Open", show=True),
        Binding("m", "merge", "Merge", show=True),
        Binding("a", "approve", "Approve", show=True),
        Binding("r", "reload", "Reload", show=True),
        Binding("R", "reload_repo", "Reload repo", show=False),
        Binding("c", "contributions", "Contributions", show=False),
        Binding("slash", "search", "Search", show=True),
        Binding("escape", "escape", "Close", show=False),
        Binding("question_mark", "help", "Help", show=False),
    ]

    def __init__(
        self,
        controller: DashboardController,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        **kwargs: object,
    ) -> None:
        super().__init__(**kwargs)
        self.controller = controller
        self._poll_interval = poll_interval

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main"):
            yield PullRequestList(self.controller, id="pr-list")
            yield PreviewPanel(self.controller, id="preview")
        yield ContributionsPanel(self.controller, id="contributions")
        yield StatusBar(self.controller, id="status")

    def on_mount(self) -> None:
        self.set_interval(self._poll_interval, self._tick)
        self.handle_input(self.controller.request_reload)

    # ------------------------------------------------------------------
    # Loop plumbing
    # ------------------------------------------------------------------

    def handle_input(self, action: Callable[[], object]) -> None:
        """Apply one input to the controller, then redraw and schedule work."""
        if self.controller.busy:
            return
        action()
        self._after_update()

    def _after_update(self) -> None:
        if self.controller.should_quit:
            self.exit()
            return
        self.refresh_view()
        if self.controller.pending is not None:
            self.call_after_refresh(self._run_pending)

    def _run_pending(self) -> None:
        try:
            task = self.controller.run_pending()
        except Exception:
            logger.exception("Pending task crashed")
            raise
        if task is not None:
            logger.debug("Ran %s", task.kind.value)
        self._after_update()

    def _tick(self) -> None:
        if self.controller.tick():
            self.query_one(StatusBar).refresh()

    def refresh_view(self) -> None:
        c = self.controller

        pr_list = self.query_one(PullRequestList)
        pr_list.border_title = f"Pull Requests ({len(c.prs)})"

        preview = self.query_one(PreviewPanel)
        preview.set_class(c.preview_open or c.search_results is not None, "-open")
        if c.search_results is not None:
            preview.border_title = "Search"
        elif c.preview_mode is not None:
            preview.border_title = c.preview_mode.label

        contributions = self.query_one(ContributionsPanel)
        totals = c.contribution_totals(date.today())
        if c.contributions is not None and totals is not None:
            contributions.border_title = (
                f"Contributions: {c.contributions.total} · {format_totals(totals)}"
            )
        else:
            contributions.border_title = "Contributions"

        for widget in (pr_list, preview, contributions, self.query_one(StatusBar)):
            widget.refresh()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def action_quit_dashboard(self) -> None:
        self.handle_input(self.controller.request_quit)

    def action_down(self) -> None:
        c = self.controller
        self.handle_input(lambda: c.scroll(1) if c.preview_open else c.select_next())

    def action_up(self) -> None:
        c = self.controller
        self.handle_input(lambda: c.scroll(-1) if c.preview_open else c.select_previous())

    def action_select_next(self) -> None:
        self.handle_input(self.controller.select_next)

    def action_select_previous(self) -> None:
        self.handle_input(self.controller.select_previous)

    def action_advance_preview(self) -> None:
        self.handle_input(self.controller.advance_preview)

    def action_retreat_preview(self) -> None:
        self.handle_input(self.controller.retreat_preview)

    def action_open_url(self) -> None:
        self.handle_input(self.controller.open_selected)

    def action_merge(self) -> None:
        self.handle_input(self.controller.request_merge)

    def action_approve(self) -> None:
        self.handle_input(self.controller.request_approve)

    def action_reload(self) -> None:
        self.handle_input(self.controller.request_reload)

    def action_reload_repo(self) -> None:
        self.handle_input(self.controller.request_reload_repo)

    def action_contributions(self) -> None:
        self.handle_input(self.controller.request_contributions)

    def action_help(self) -> None:
        self.handle_input(self.controller.dismiss_status)

    def action_escape(self) -> None:
        c = self.controller
        if c.search_results is not None:
            self.handle_input(c.clear_search)
        else:
            self.handle_input(c.close_preview)

    def action_search(self) -> None:
        if self.controller.busy:
            return
        owner = self.controller.default_search_owner()
        self.push_screen(SearchScreen(owner), callback=self._on_search_submitted)

    def _on_search_submitted(self, query: str | None) -> None:
        if query is None:
            return
        self.handle_input(lambda: self.controller.request_search(query))
