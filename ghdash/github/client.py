"""
GitHub client
GraphQL and REST access for the dashboard and the one-shot commands
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import requests

from ..config import Config
from ..models import (
    AssigneeEvent,
    AssigneeEventKind,
    AssigneeHistory,
    CommitRecord,
    ContributionCalendar,
    ContributionDay,
    ContributionWeek,
    FileDiff,
    IssueRecord,
    NotificationRecord,
    PullRequestRecord,
    SearchHit,
)
from . import queries
from .exceptions import (
    GitHubAPIError,
    GitHubAuthenticationError,
    GitHubError,
    GitHubMalformedResponseError,
    GitHubNotFoundError,
)

logger = logging.getLogger(__name__)

API_URL = 'https://api.github.com'
GRAPHQL_URL = f'{API_URL}/graphql'
PER_PAGE = 100


def _dig(data: Any, *keys: str) -> Any:
    """Walk nested dicts, raising GitHubMalformedResponseError on an unexpected shape."""
    for key in keys:
        if not isinstance(data, dict) or key not in data:
            raise GitHubMalformedResponseError(f"Unexpected response: missing '{key}'")
        data = data[key]
    return data


@contextmanager
def _parsing(what: str):
    """Report a payload that cannot be read as GitHubMalformedResponseError."""
    try:
        yield
    except KeyError as e:
        raise GitHubMalformedResponseError(f'Unexpected {what} response: missing {e}') from e
    except (AttributeError, TypeError, ValueError) as e:
        raise GitHubMalformedResponseError(f'Unexpected {what} response: {e}') from e


def build_search_query(query: str, owner: Optional[str] = None, language: Optional[str] = None) -> str:
    """Append ``user:`` / ``language:`` qualifiers to a code search query."""
    parts = [query.strip()] if query.strip() else []
    if owner:
        parts.append(f'user:{owner}')
    if language:
        parts.append(f'language:{language}')
    return ' '.join(parts)


class GitHubClient:
    """
    GitHub API client

    Usage:
        client = GitHubClient(config)
        prs = client.fetch_account_prs('octocat')
        client.merge_pr(prs[0].id)
    """

    def __init__(self, config: Config, timeout: int = 30):
        self.config = config
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers['User-Agent'] = 'ghdash'

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Make HTTP request to API"""
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout
            )
        except requests.Timeout as e:
            raise GitHubAPIError(f'Request to {url} timed out after {self.timeout}s') from e
        except requests.RequestException as e:
            raise GitHubAPIError(f'Request to {url} failed: {e}') from e

        if response.status_code >= 400:
            message = _error_message(response)
            if response.status_code == 401:
                raise GitHubAuthenticationError(message)
            if response.status_code == 404:
                raise GitHubNotFoundError(message)
            raise GitHubAPIError(message, status_code=response.status_code)

        if response.status_code == 204:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(f'Invalid JSON from {url}') from e

    def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a GraphQL document and return the whole response body.

        When ``config.mock_file`` is set the file's JSON is returned instead.
        """
        if self.config.mock_file:
            return self._read_mock()

        headers = {
            'Authorization': f'bearer {self.config.token}',
            'Accept': 'application/vnd.github.merge-info-preview+json',
        }
        body = {'query': query, 'variables': variables or {}}
        res = self._request('POST', GRAPHQL_URL, json=body, headers=headers)
        if not isinstance(res, dict):
            raise GitHubAPIError('Unexpected GraphQL response')
        errors = res.get('errors')
        if errors:
            messages = '; '.join(str(e.get('message', e)) for e in errors)
            raise GitHubAPIError(f'GraphQL error: {messages}')
        return res

    def rest_get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> Any:
        """GET ``https://api.github.com/<path>`` (first page, 100 per page)."""
        query = {'page': 1, 'per_page': PER_PAGE}
        query.update(params or {})
        headers = {'Authorization': f'token {self.config.token}'}
        if accept:
            headers['Accept'] = accept
        return self._request('GET', f'{API_URL}/{path}', params=query, headers=headers)

    def _read_mock(self) -> Dict[str, Any]:
        try:
            with open(self.config.mock_file) as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise GitHubError(f'Cannot read mock file {self.config.mock_file}: {e}') from e

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def fetch_viewer_login(self) -> str:
        res = self.graphql(queries.VIEWER)
        return _dig(res, 'data', 'viewer', 'login')

    def fetch_account_prs(self, owner: str) -> List[PullRequestRecord]:
        """Open PRs across every repository of a user or organization."""
        res = self.graphql(queries.OWNER_PRS, {'login': owner})
        repos = _dig(res, 'data', 'repositoryOwner', 'repositories', 'nodes')
        prs = []
        with _parsing('pull request list'):
            for repo in repos:
                for node in _dig(repo, 'pullRequests', 'nodes'):
                    prs.append(PullRequestRecord.from_graphql(owner, repo['name'], node))
        logger.debug("Fetched %d PRs for %s", len(prs), owner)
        return prs

    def fetch_repo_prs(self, owner: str, repo: str) -> List[PullRequestRecord]:
        """Open PRs of one repository."""
        res = self.graphql(queries.REPO_PRS, {'login': owner, 'name': repo})
        nodes = _dig(res, 'data', 'repositoryOwner', 'repository', 'pullRequests', 'nodes')
        with _parsing('pull request list'):
            prs = [PullRequestRecord.from_graphql(owner, repo, node) for node in nodes]
        logger.debug("Fetched %d PRs for %s/%s", len(prs), owner, repo)
        return prs

    def fetch_pr_body(self, owner: str, repo: str, number: int) -> str:
        res = self.graphql(queries.PR_BODY, {'owner': owner, 'name': repo, 'number': number})
        return _dig(res, 'data', 'repository', 'pullRequest', 'bodyText') or ''

    def fetch_pr_diff(self, owner: str, repo: str, number: int) -> List[FileDiff]:
        files = self.rest_get(f'repos/{owner}/{repo}/pulls/{number}/files')
        if not isinstance(files, list):
            raise GitHubMalformedResponseError('Unexpected response: expected a list of files')
        with _parsing('pull request files'):
            return [
                FileDiff(
                    filename=f['filename'],
                    additions=int(f.get('additions', 0)),
                    deletions=int(f.get('deletions', 0)),
                    patch=f.get('patch'),
                )
                for f in files
            ]

    def fetch_pr_commits(self, owner: str, repo: str, number: int) -> List[CommitRecord]:
        """Commits of a PR, newest first."""
        res = self.graphql(queries.PR_COMMITS, {'owner': owner, 'name': repo, 'number': number})
        nodes = _dig(res, 'data', 'repository', 'pullRequest', 'commits', 'nodes')
        commits = []
        with _parsing('commit list'):
            for node in nodes:
                commit = _dig(node, 'commit')
                author = commit.get('author') or {}
                user = author.get('user') or {}
                parents = (commit.get('parents') or {}).get('nodes') or []
                commits.append(CommitRecord(
                    sha=commit['oid'],
                    parents=tuple(p['oid'] for p in parents),
                    summary=commit.get('messageHeadline', ''),
                    author=author.get('name') or user.get('login'),
                    date=commit.get('committedDate') or author.get('date'),
                ))
        # GitHub lists PR commits oldest first
        commits.reverse()
        return commits

    def fetch_contribution_calendar(self, login: str) -> ContributionCalendar:
        res = self.graphql(queries.CONTRIBUTIONS, {'login': login})
        cal = _dig(res, 'data', 'user', 'contributionsCollection', 'contributionCalendar')
        with _parsing('contribution calendar'):
            weeks = tuple(
                ContributionWeek(
                    first_day=w.get('firstDay', ''),
                    days=tuple(
                        ContributionDay(
                            date=d.get('date', ''),
                            count=int(d.get('contributionCount', 0)),
                            color=d.get('color', '#ebedf0'),
                        )
                        for d in w.get('contributionDays', [])
                    ),
                )
                for w in _dig(cal, 'weeks')
            )
            return ContributionCalendar(total=int(cal.get('totalContributions', 0)), weeks=weeks)

    def search_code(
        self,
        query: str,
        owner: Optional[str] = None,
        language: Optional[str] = None,
    ) -> List[SearchHit]:
        """Code search with text-match fragments."""
        q = build_search_query(query, owner, language)
        res = self.rest_get(
            'search/code',
            params={'q': q},
            accept='application/vnd.github.text-match+json',
        )
        items = _dig(res, 'items')
        with _parsing('code search'):
            return [
                SearchHit(
                    repo=_dig(item, 'repository', 'full_name'),
                    path=item.get('path', ''),
                    html_url=item.get('html_url', ''),
                    fragments=tuple(
                        m.get('fragment', '') for m in (item.get('text_matches') or [])
                    ),
                )
                for item in items
            ]

    def fetch_account_issues(self, owner: str) -> List[IssueRecord]:
        """Open issues across every repository of a user or organization."""
        res = self.graphql(queries.OWNER_ISSUES, {'login': owner})
        repos = _dig(res, 'data', 'repositoryOwner', 'repositories', 'nodes')
        issues = []
        with _parsing('issue list'):
            for repo in repos:
                for node in _dig(repo, 'issues', 'nodes'):
                    issues.append(IssueRecord.from_graphql(owner, repo['name'], node))
        return issues

    def fetch_repo_issues(self, owner: str, repo: str) -> List[IssueRecord]:
        res = self.graphql(queries.REPO_ISSUES, {'login': owner, 'name': repo})
        nodes = _dig(res, 'data', 'repositoryOwner', 'repository', 'issues', 'nodes')
        with _parsing('issue list'):
            return [IssueRecord.from_graphql(owner, repo, node) for node in nodes]

    def fetch_notifications(self, page: int = 1) -> List[NotificationRecord]:
        """One page of the viewer's notifications."""
        items = self.rest_get('notifications', params={'page': page})
        if not isinstance(items, list):
            raise GitHubMalformedResponseError('Unexpected response: expected a list of notifications')
        with _parsing('notifications'):
            return [
                NotificationRecord(
                    id=str(n['id']),
                    reason=n.get('reason', ''),
                    subject_type=_dig(n, 'subject', 'type'),
                    title=_dig(n, 'subject', 'title'),
                    repo=_dig(n, 'repository', 'full_name'),
                    updated_at=n.get('updated_at', ''),
                    api_url=n['subject'].get('url'),
                )
                for n in items
            ]

    def fetch_resource_status(self, url: str) -> str:
        """``OPEN`` / ``CLOSED`` / ``MERGED`` of the issue or PR at a github.com URL."""
        res = self.graphql(queries.RESOURCE_STATUS, {'url': url})
        resource = _dig(res, 'data', 'resource') or {}
        with _parsing('resource status'):
            return resource.get('issueState') or resource.get('prState') or ''

    def fetch_assignee_history(self, owner: str, repo: str, number: int) -> AssigneeHistory:
        res = self.graphql(
            queries.ASSIGNEE_TIMELINE,
            {'owner': owner, 'name': repo, 'number': number},
        )
        item = _dig(res, 'data', 'repository', 'issueOrPullRequest')
        with _parsing('assignee timeline'):
            events = []
            for node in _dig(item, 'timelineItems', 'nodes'):
                assignee = node.get('assignee') or {}
                events.append(AssigneeEvent(
                    kind=AssigneeEventKind(node['__typename']),
                    created_at=node.get('createdAt', ''),
                    login=assignee.get('login'),
                    name=assignee.get('name'),
                ))
            return AssigneeHistory(
                number=int(item['number']),
                title=item.get('title', ''),
                events=tuple(events),
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def merge_pr(self, pr_id: str) -> None:
        self.graphql(queries.MERGE_PR, {'pullRequestId': pr_id})
        logger.info("Merged pull request %s", pr_id)

    def approve_pr(self, pr_id: str) -> None:
        self.graphql(queries.APPROVE_PR, {'pullRequestId': pr_id})
        logger.info("Approved pull request %s", pr_id)

    def close(self):
        """Close the session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get('message'):
        return f"{response.status_code}: {body['message']}"
    return f'{response.status_code}: {response.text[:200]}'
