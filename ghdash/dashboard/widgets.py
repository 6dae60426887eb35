"""Dashboard panels. Each one renders straight from the controller."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.text import Text
from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widget import Widget
from textual.widgets import Input, Label

from ..contributions import cell_label, contrast_color, hex_to_rgb, weekday_rows
from .previews import render_search_results

if TYPE_CHECKING:
    from .controller import DashboardController

MOUSE_SCROLL_LINES = 3

HELP_TEXT = (
    "q:quit • ?:help • Enter/o:open • m:merge • a:approve • r:reload • "
    "R:reload repo • c:contributions • /:search • ←/→:list/body/diff/commits"
)


class ControllerPanel(Widget):
    """Base for panels that draw from the shared controller."""

    def __init__(self, controller: DashboardController, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.controller = controller


class PullRequestList(ControllerPanel):
    """PR list, one line per record, coloured by merge state."""

    DEFAULT_CSS = """
    PullRequestList {
        width: 1fr;
        height: 100%;
        border: round $primary;
    }
    """

    def render(self) -> Text:
        c = self.controller
        if not c.prs:
            return Text("No open pull requests.", style="dim")

        height = max(1, self.content_size.height)
        cursor = c.cursor or 0
        first = max(0, min(cursor - height // 2, len(c.prs) - height))

        lines = []
        for i, pr in enumerate(c.prs[first:first + height], start=first):
            if i == c.cursor:
                lines.append(Text(f">> {pr.display_line()}", style=f"bold reverse {pr.merge_state.color}"))
            else:
                lines.append(Text(f"   {pr.display_line()}", style=pr.merge_state.color))
        return Text("\n").join(lines)


class PreviewPanel(ControllerPanel):
    """Body / diff / commits of the selected PR, or code search results."""

    DEFAULT_CSS = """
    PreviewPanel {
        width: 1fr;
        height: 100%;
        border: round $secondary;
        display: none;
    }
    PreviewPanel.-open {
        display: block;
    }
    """

    def render(self) -> Text:
        c = self.controller
        if c.search_results is not None:
            text = render_search_results(c.search_results)
        elif c.selected is None:
            text = Text("No selection")
        elif c.preview_mode is None:
            text = Text("")
        else:
            text = c.preview_content or Text(f"Loading {c.preview_mode.label.lower()}...")

        lines = text.split("\n")
        offset = min(c.preview_scroll, max(0, len(lines) - 1))
        return Text("\n").join(lines[offset:])

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        event.stop()
        self.app.handle_input(lambda: self.controller.scroll(MOUSE_SCROLL_LINES))

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        event.stop()
        self.app.handle_input(lambda: self.controller.scroll(-MOUSE_SCROLL_LINES))


class ContributionsPanel(ControllerPanel):
    """Seven weekday rows of two-column cells, newest weeks on the right."""

    DEFAULT_CSS = """
    ContributionsPanel {
        height: 9;
        border: round $primary;
    }
    """

    def render(self) -> Text:
        calendar = self.controller.contributions
        if calendar is None:
            return Text("Loading contributions...", style="dim")

        visible_weeks = max(0, self.content_size.width) // 2
        lines = []
        for row in weekday_rows(calendar):
            line = Text()
            cells = row[len(row) - visible_weeks:] if visible_weeks else []
            for day in cells:
                if day is None:
                    line.append("  ")
                    continue
                r, g, b = hex_to_rgb(day.color)
                line.append(
                    cell_label(day.count),
                    style=f"{contrast_color(r, g, b)} on rgb({r},{g},{b})",
                )
            lines.append(line)
        return Text("\n").join(lines)


class StatusBar(ControllerPanel):
    """Current status message, or key help when there is none."""

    DEFAULT_CSS = """
    StatusBar {
        height: 3;
        border: round $primary;
    }
    """

    def render(self) -> Text:
        c = self.controller
        if c.status_text:
            return Text(c.status_text)
        if c.preview_mode is not None:
            return Text(f"{HELP_TEXT} • ↑/↓/wheel:scroll • J/K:select • mode:{c.preview_mode.label}")
        return Text(f"{HELP_TEXT} • ↑/↓:navigate")


class SearchScreen(ModalScreen[str | None]):
    """Prompt for a code search query."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    SearchScreen {
        align: center middle;
    }
    #search-dialog {
        width: 60;
        height: auto;
        border: round $accent;
        padding: 1 2;
        background: $surface;
    }
    """

    def __init__(self, owner: str | None = None, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self._owner = owner

    def compose(self) -> ComposeResult:
        scope = f" in {self._owner}" if self._owner else ""
        with Vertical(id="search-dialog"):
            yield Label(f"Search code{scope}")
            yield Input(placeholder="query", id="search-input")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)
