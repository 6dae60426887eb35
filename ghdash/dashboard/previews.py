"""Preview loaders and renderers, one pair per preview mode.

A loader fetches raw data for a PR from the GitHub client; a renderer turns
that data into styled rich ``Text`` for the preview panel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from rich.text import Text

from ..graph import build_commit_graph
from ..models import CommitRecord, FileDiff, PullRequestRecord, SearchHit
from .state import PreviewMode

if TYPE_CHECKING:
    from ..github import GitHubClient


@dataclass(frozen=True)
class PreviewHandler:
    loader: Callable[[GitHubClient, PullRequestRecord], Any]
    renderer: Callable[[PullRequestRecord, Any], Text]


# ---------------------------------------------------------------------------
# Body
# ---------------------------------------------------------------------------

def load_body(client: GitHubClient, pr: PullRequestRecord) -> str:
    return client.fetch_pr_body(pr.owner, pr.repo, pr.number)


def render_body(pr: PullRequestRecord, body: str) -> Text:
    text = Text()
    text.append(pr.title, style="bold")
    text.append("\n")
    text.append(pr.url, style="dim underline")
    text.append("\n\n")
    text.append(body or "(no description)")
    return text


# ---------------------------------------------------------------------------
# Diff
# ---------------------------------------------------------------------------

def load_diff(client: GitHubClient, pr: PullRequestRecord) -> list[FileDiff]:
    return client.fetch_pr_diff(pr.owner, pr.repo, pr.number)


def format_diff(files: list[FileDiff]) -> str:
    """Plain unified-diff listing with a header line per file."""
    chunks = []
    for f in files:
        chunk = f"=== {f.filename} (+{f.additions}, -{f.deletions}) ===\n"
        if f.patch is None:
            chunk += "(no textual diff available)\n"
        else:
            chunk += f.patch if f.patch.endswith("\n") else f.patch + "\n"
        chunks.append(chunk)
    return "\n".join(chunks) if chunks else "No file changes found."


def _diff_line_style(line: str) -> str | None:
    if line.startswith("==="):
        return "bold cyan"
    if line.startswith("@@"):
        return "bold yellow"
    if line.startswith("+"):
        return "green"
    if line.startswith("-"):
        return "red"
    return None


def render_diff(pr: PullRequestRecord, files: list[FileDiff]) -> Text:
    text = Text(f"Diff for #{pr.number} {pr.slug}\n\n")
    for line in format_diff(files).splitlines():
        text.append(line, style=_diff_line_style(line))
        text.append("\n")
    return text


# ---------------------------------------------------------------------------
# Commits
# ---------------------------------------------------------------------------

def load_commits(client: GitHubClient, pr: PullRequestRecord) -> list[CommitRecord]:
    return client.fetch_pr_commits(pr.owner, pr.repo, pr.number)


def render_commits(pr: PullRequestRecord, commits: list[CommitRecord]) -> Text:
    text = Text(f"Commits for #{pr.number} {pr.slug} ({len(commits)})\n\n")
    if not commits:
        text.append("No commits found.")
        return text
    for row in build_commit_graph(commits):
        text.append(row.graph, style="magenta")
        text.append(row.short_sha, style="yellow")
        text.append(" ")
        text.append(row.summary)
        if row.author:
            text.append(f" by {row.author}", style="cyan")
        if row.date:
            text.append(f" ({row.date.split('T', 1)[0]})", style="dim")
        text.append("\n")
    return text


PREVIEW_HANDLERS: dict[PreviewMode, PreviewHandler] = {
    PreviewMode.BODY: PreviewHandler(load_body, render_body),
    PreviewMode.DIFF: PreviewHandler(load_diff, render_diff),
    PreviewMode.COMMITS: PreviewHandler(load_commits, render_commits),
}

_missing = set(PreviewMode) - set(PREVIEW_HANDLERS)
if _missing:
    raise RuntimeError(f"No preview handler for: {sorted(m.value for m in _missing)}")


def load_preview(client: GitHubClient, mode: PreviewMode, pr: PullRequestRecord) -> Text:
    """Fetch and render one preview. Raises GitHubError on failure."""
    handler = PREVIEW_HANDLERS[mode]
    return handler.renderer(pr, handler.loader(client, pr))


def render_search_results(hits: list[SearchHit]) -> Text:
    """Code search hits, one header per file followed by its match fragments."""
    text = Text(f"Search results ({len(hits)})  [Esc to close]\n\n", style="bold")
    if not hits:
        text.append("No matches.", style="dim")
        return text
    for hit in hits:
        text.append(f"{hit.repo}/{hit.path}", style="bold cyan")
        text.append("\n")
        text.append(hit.html_url, style="dim underline")
        text.append("\n")
        for fragment in hit.fragments:
            for line in fragment.splitlines():
                text.append(f"  {line}\n")
        text.append("\n")
    return text
