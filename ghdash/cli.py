"""ghdash CLI: pull requests, issues, notifications and code search from the command line."""

import argparse
import getpass
import json
import logging
import sys
from datetime import date
from itertools import groupby

from rich.console import Console
from rich.text import Text

from . import __version__
from .config import Config, delete_config, load_config, save_token
from .contributions import compute_totals, contrast_color, format_totals, hex_to_rgb
from .github import GitHubClient, GitHubError
from .models import MergeStateStatus, PullRequestRecord
from .slug import InvalidSlugError, RepoSlug, Slug, parse_slug, parse_slugs

logger = logging.getLogger(__name__)

EXIT_REMOTE_ERROR = 1
EXIT_USAGE = 2


def _console() -> Console:
    return Console(highlight=False, emoji=False, soft_wrap=True)


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def format_pr_line(pr: PullRequestRecord) -> str:
    """``#<n> <emoji> <url> <title>[ [review]][ 👥 reviewers]``"""
    line = f"#{pr.number} {pr.merge_state.emoji} {pr.url} {pr.title}"
    if pr.review_decision:
        line += f" {pr.review_decision.label}"
    if pr.reviewers:
        line += f" 👥 {', '.join(pr.reviewers)}"
    return line


def _resolve_slugs(config: Config, client: GitHubClient, values: list[str]) -> list[Slug]:
    """Command-line slugs, else configured ones, else the viewer's login."""
    slugs = parse_slugs(values or config.slugs)
    if not slugs:
        slugs = parse_slugs([client.fetch_viewer_login()])
    return slugs


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

def cmd_prs(args: argparse.Namespace, config: Config) -> None:
    """List open PRs per slug, optionally merging the clean ones."""
    console = _console()
    with GitHubClient(config) as client:
        slugs = _resolve_slugs(config, client, args.slugs)
        collected = []
        for slug in slugs:
            if isinstance(slug, RepoSlug):
                prs = client.fetch_repo_prs(slug.owner, slug.name)
            else:
                prs = client.fetch_account_prs(slug.owner)

            if config.output_format == "json":
                collected.extend(pr.to_dict() for pr in prs)
                continue

            console.print(Text(str(slug), style="bright_blue"))
            for repo, group in groupby(prs, key=lambda pr: pr.repo):
                if not isinstance(slug, RepoSlug):
                    console.print(Text(repo, style="cyan"))
                for pr in group:
                    console.print(Text(format_pr_line(pr), style=pr.merge_state.color))
                    if args.merge and pr.merge_state is MergeStateStatus.CLEAN:
                        console.print(f"🔄 Merging PR #{pr.number}")
                        client.merge_pr(pr.id)
                        console.print(f"✅ Merged PR #{pr.number}")
            console.print(f"Count of PRs: {len(prs)}")

        if config.output_format == "json":
            _print_json(collected)


def cmd_issues(args: argparse.Namespace, config: Config) -> None:
    """List open issues per slug."""
    console = _console()
    with GitHubClient(config) as client:
        slugs = _resolve_slugs(config, client, args.slugs)
        collected = []
        for slug in slugs:
            if isinstance(slug, RepoSlug):
                issues = client.fetch_repo_issues(slug.owner, slug.name)
            else:
                issues = client.fetch_account_issues(slug.owner)

            if config.output_format == "json":
                collected.extend(issue.to_dict() for issue in issues)
                continue

            console.print(Text(str(slug), style="bright_blue"))
            for repo, group in groupby(issues, key=lambda issue: issue.repo):
                if not isinstance(slug, RepoSlug):
                    console.print(Text(repo, style="cyan"))
                for issue in group:
                    console.print(f"  #{issue.number} {issue.url} {issue.title}", markup=False)
            console.print(f"Count of Issues: {len(issues)}")

        if config.output_format == "json":
            _print_json(collected)


def cmd_notifications(args: argparse.Namespace, config: Config) -> None:
    """List one page of notifications with the subject's current state."""
    console = _console()
    rows = []
    with GitHubClient(config) as client:
        for n in client.fetch_notifications(args.page):
            status = ""
            if n.html_url:
                try:
                    status = client.fetch_resource_status(n.html_url)
                except GitHubError as e:
                    logger.warning("Status lookup for %s failed: %s", n.html_url, e)
            rows.append((n, status))

    if config.output_format == "json":
        _print_json([
            {
                "id": n.id,
                "reason": n.reason,
                "type": n.subject_type,
                "status": status,
                "updatedAt": n.updated_at,
                "repository": n.repo,
                "title": n.title,
                "url": n.api_url,
            }
            for n, status in rows
        ])
        return

    for n, status in rows:
        line = Text()
        line.append(f"{n.id:10} ", style="bright_black")
        line.append(f"{n.reason:10} ", style="magenta")
        line.append(f"{n.subject_type:11} ", style="yellow")
        line.append(f"{status:6} {n.updated_date} ")
        line.append(n.repo, style="cyan")
        line.append(f" {n.title} ")
        line.append(n.api_url or "", style="green")
        console.print(line)
    console.print(f"# count: {len(rows)}")


def cmd_track_assignees(args: argparse.Namespace, config: Config) -> None:
    """Replay the assign/unassign timeline of one issue or PR."""
    slug = parse_slug(args.slug)
    if not isinstance(slug, RepoSlug):
        raise InvalidSlugError(f"Invalid slug: {args.slug!r} (expected owner/name)")
    with GitHubClient(config) as client:
        history = client.fetch_assignee_history(slug.owner, slug.name, args.number)

    if config.output_format == "json":
        _print_json({
            "repository": str(slug),
            "number": history.number,
            "title": history.title,
            "events": [
                {"type": e.kind.value, "createdAt": e.created_at, "login": e.login, "name": e.name}
                for e in history.events
            ],
            "maxAssignees": history.max_assignees(),
        })
        return

    console = _console()
    header = Text()
    header.append(str(slug), style="cyan")
    header.append(f"#{args.number} ")
    header.append(history.title, style="yellow")
    console.print(header)
    for event in history.events:
        who = event.login or "unknown"
        if event.name:
            who += f" ({event.name})"
        console.print(f"  {event.kind.value} {event.created_at} {who}", markup=False)
    console.print(f"Count of Max assignees: {history.max_assignees()}")


def cmd_contributions(args: argparse.Namespace, config: Config) -> None:
    """Print the contribution calendar week by week."""
    console = _console()
    with GitHubClient(config) as client:
        user = args.user or client.fetch_viewer_login()
        calendar = client.fetch_contribution_calendar(user)

    totals = compute_totals(calendar.cells(), date.today())
    if config.output_format == "json":
        _print_json({
            "user": user,
            "total": calendar.total,
            "weeks": [
                {
                    "firstDay": week.first_day,
                    "days": [{"date": d.date, "count": d.count, "color": d.color} for d in week.days],
                }
                for week in calendar.weeks
            ],
            "ytd": totals.year.total,
            "mtd": totals.month.total,
            "wtd": totals.week.total,
        })
        return

    for week in calendar.weeks:
        line = Text(f"{week.first_day}: ")
        for day in week.days:
            r, g, b = hex_to_rgb(day.color)
            line.append(f"{day.count:3}", style=f"{contrast_color(r, g, b)} on rgb({r},{g},{b})")
            line.append(" ")
        console.print(line)
    console.print(f"total contributions: {calendar.total}")
    console.print(format_totals(totals))


def cmd_search(args: argparse.Namespace, config: Config) -> None:
    """Code search with optional owner and language qualifiers."""
    with GitHubClient(config) as client:
        hits = client.search_code(args.query, owner=args.owner, language=args.language)

    if config.output_format == "json":
        _print_json([
            {"repository": h.repo, "path": h.path, "url": h.html_url, "fragments": list(h.fragments)}
            for h in hits
        ])
        return

    if not hits:
        print("No matches.")
        return

    console = _console()
    for hit in hits:
        console.print(Text(f"{hit.repo}/{hit.path}", style="bold cyan"))
        console.print(Text(hit.html_url, style="dim"))
        for fragment in hit.fragments:
            for line in fragment.splitlines():
                console.print(f"  {line}", markup=False)
    console.print(f"\n{len(hits)} result(s)")


def cmd_tui(args: argparse.Namespace, config: Config) -> None:
    """Start the interactive dashboard."""
    from .dashboard.__main__ import run_dashboard

    login = None
    slugs = parse_slugs(args.slugs or config.slugs)
    if not slugs:
        with GitHubClient(config) as client:
            login = client.fetch_viewer_login()
        slugs = parse_slugs([login])
    run_dashboard(config, slugs, login=login)


def cmd_login(args: argparse.Namespace, config: Config) -> None:
    """Prompt for a personal access token and save it."""
    token = args.token or getpass.getpass("GitHub token: ").strip()
    if not token:
        print("No token given.", file=sys.stderr)
        sys.exit(EXIT_USAGE)
    path = save_token(config, token)
    print(f"Saved token to {path}")


def cmd_logout(args: argparse.Namespace, config: Config) -> None:
    """Delete the saved configuration."""
    if delete_config(config):
        print(f"Removed {config.config_path}")
    else:
        print("Not logged in.")


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghdash",
        description="Review GitHub pull requests from the terminal",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--format", "-f",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    sub = parser.add_subparsers(dest="command")

    # prs [slug ...]
    p_prs = sub.add_parser("prs", help="List open pull requests")
    p_prs.add_argument("slugs", nargs="*", help="owner or owner/repo")
    p_prs.add_argument("--merge", action="store_true", help="Merge every clean PR")
    p_prs.set_defaults(func=cmd_prs)

    # issues [slug ...]
    p_issues = sub.add_parser("issues", help="List open issues")
    p_issues.add_argument("slugs", nargs="*", help="owner or owner/repo")
    p_issues.set_defaults(func=cmd_issues)

    # notifications [page]
    p_notif = sub.add_parser("notifications", help="List your notifications")
    p_notif.add_argument("page", type=int, nargs="?", default=1, help="Page number (default: 1)")
    p_notif.set_defaults(func=cmd_notifications)

    # track-assignees <owner/repo> <number>
    p_track = sub.add_parser("track-assignees", help="Show the assignee history of an issue or PR")
    p_track.add_argument("slug", help="owner/repo")
    p_track.add_argument("number", type=int, help="Issue or PR number")
    p_track.set_defaults(func=cmd_track_assignees)

    # contributions [user]
    p_contrib = sub.add_parser("contributions", aliases=["grass"], help="Show contribution calendar")
    p_contrib.add_argument("user", nargs="?", help="Login (default: you)")
    p_contrib.set_defaults(func=cmd_contributions)

    # search <query>
    p_search = sub.add_parser("search", help="Search code")
    p_search.add_argument("query", help="Search terms")
    p_search.add_argument("--owner", "--user", "-o", "-u", dest="owner", help="Restrict to a user or org")
    p_search.add_argument("--language", "-l", help="Restrict to a language")
    p_search.set_defaults(func=cmd_search)

    # tui [slug ...]
    p_tui = sub.add_parser("tui", help="Interactive dashboard")
    p_tui.add_argument("slugs", nargs="*", help="owner or owner/repo")
    p_tui.set_defaults(func=cmd_tui)

    # login / logout
    p_login = sub.add_parser("login", help="Save a GitHub token")
    p_login.add_argument("--token", help="Token to save (prompted for if omitted)")
    p_login.set_defaults(func=cmd_login)

    p_logout = sub.add_parser("logout", help="Delete the saved token")
    p_logout.set_defaults(func=cmd_logout)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    config = load_config(output_format=args.format)
    if args.func is not cmd_tui:
        logging.basicConfig(
            stream=sys.stderr,
            level=getattr(logging, config.log_level, logging.WARNING),
            format="%(levelname)s %(name)s: %(message)s",
        )

    try:
        args.func(args, config)
    except InvalidSlugError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except GitHubError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_REMOTE_ERROR
    return 0


if __name__ == "__main__":
    sys.exit(main())
