"""Entry point: python -m ghdash.dashboard [slug ...]"""

from __future__ import annotations

import logging
import sys

from ..config import Config
from ..github import GitHubClient
from ..slug import Slug
from .app import PullRequestDashboard
from .controller import DashboardController, targets_from_slugs

logger = logging.getLogger("ghdash.dashboard")


def configure_logging(config: Config) -> None:
    """Send log records to a file; the terminal belongs to the TUI."""
    config.log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(config.log_path),
        level=getattr(logging, config.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_dashboard(config: Config, targets: list[Slug], login: str | None = None) -> None:
    """Run the dashboard until the user quits."""
    configure_logging(config)
    with GitHubClient(config) as client:
        controller = DashboardController(
            client,
            targets_from_slugs(targets),
            login=login,
            status_ttl=config.status_ttl_seconds,
        )
        app = PullRequestDashboard(controller, poll_interval=config.poll_interval_seconds)
        try:
            app.run()
        except Exception:
            logger.exception("Dashboard crashed")
            raise


def main(argv: list[str] | None = None) -> int:
    from ..cli import main as cli_main

    args = sys.argv[1:] if argv is None else argv
    return cli_main(["tui", *args])


if __name__ == "__main__":
    sys.exit(main())
