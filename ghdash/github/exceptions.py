"""
GitHub client exceptions

Everything the client raises derives from GitHubError, so callers that
must keep running (the dashboard loop, the CLI) catch that one class.
"""


class GitHubError(Exception):
    """Base exception for all GitHub client errors"""


class GitHubAPIError(GitHubError):
    """Raised when an API request fails.

    ``status_code`` is None when no HTTP response was received (timeouts,
    connection errors) or when the response itself was unusable.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubNotFoundError(GitHubAPIError):
    """404: unknown owner, repository or pull request"""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class GitHubAuthenticationError(GitHubAPIError):
    """401: missing, expired or revoked token"""

    def __init__(self, message: str):
        super().__init__(message, status_code=401)


class GitHubMalformedResponseError(GitHubAPIError):
    """A 2xx response whose payload lacks a field ghdash needs"""
