"""
GitHub access for ghdash

Example:
    >>> from ghdash.config import load_config
    >>> from ghdash.github import GitHubClient
    >>>
    >>> with GitHubClient(load_config()) as client:
    ...     prs = client.fetch_repo_prs('octocat', 'hello-world')
"""

from .client import GitHubClient, build_search_query
from .exceptions import (
    GitHubError,
    GitHubAPIError,
    GitHubNotFoundError,
    GitHubAuthenticationError,
    GitHubMalformedResponseError,
)

__all__ = [
    "GitHubClient",
    "build_search_query",
    "GitHubError",
    "GitHubAPIError",
    "GitHubNotFoundError",
    "GitHubAuthenticationError",
    "GitHubMalformedResponseError",
]
