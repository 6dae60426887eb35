"""Shared test fixtures for ghdash tests."""

from unittest.mock import MagicMock

import pytest

from ghdash.config import Config
from ghdash.github import GitHubClient
from ghdash.models import ContributionCalendar, MergeStateStatus, PullRequestRecord


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_pr(
    number: int,
    owner: str = "acme",
    repo: str = "widgets",
    merge_state: MergeStateStatus = MergeStateStatus.CLEAN,
    **kwargs,
) -> PullRequestRecord:
    """Build a PullRequestRecord with an id derived from owner/repo/number."""
    fields = dict(
        id=f"PR_{owner}_{repo}_{number}",
        number=number,
        owner=owner,
        repo=repo,
        title=f"Change {number}",
        url=f"https://github.com/{owner}/{repo}/pull/{number}",
        created_at="2024-05-01T12:00:00Z",
        merge_state=merge_state,
    )
    fields.update(kwargs)
    return PullRequestRecord(**fields)


@pytest.fixture
def pr_factory():
    return make_pr


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_provider():
    """GitHubClient stand-in; no test touches the network."""
    provider = MagicMock(spec=GitHubClient)
    provider.fetch_viewer_login.return_value = "octocat"
    provider.fetch_account_prs.return_value = []
    provider.fetch_repo_prs.return_value = []
    provider.fetch_pr_body.return_value = "Body text"
    provider.fetch_pr_diff.return_value = []
    provider.fetch_pr_commits.return_value = []
    provider.search_code.return_value = []
    provider.fetch_contribution_calendar.return_value = ContributionCalendar(total=0)
    return provider


@pytest.fixture
def config(tmp_path):
    """Config rooted in a temporary directory."""
    return Config(token="test-token", config_path=tmp_path / "ghdash" / "config.yaml")
