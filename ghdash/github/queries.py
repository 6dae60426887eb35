"""GraphQL documents used by the GitHub client."""

PR_FIELDS = """
fragment PrFields on PullRequest {
  id
  number
  title
  url
  createdAt
  mergeStateStatus
  reviewDecision
  reviewRequests(first: 10) {
    nodes {
      requestedReviewer {
        ... on User { login }
        ... on Team { name }
      }
    }
  }
}
"""

OWNER_PRS = """
query($login: String!) {
  repositoryOwner(login: $login) {
    repositories(first: 100, orderBy: {field: PUSHED_AT, direction: DESC}) {
      nodes {
        name
        pullRequests(first: 50, states: OPEN) {
          nodes { ...PrFields }
        }
      }
    }
  }
}
""" + PR_FIELDS

REPO_PRS = """
query($login: String!, $name: String!) {
  repositoryOwner(login: $login) {
    repository(name: $name) {
      name
      pullRequests(first: 100, states: OPEN) {
        nodes { ...PrFields }
      }
    }
  }
}
""" + PR_FIELDS

PR_BODY = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    pullRequest(number: $number) {
      bodyText
    }
  }
}
"""

PR_COMMITS = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    pullRequest(number: $number) {
      commits(last: 100) {
        nodes {
          commit {
            oid
            messageHeadline
            committedDate
            author { name date user { login } }
            parents(first: 5) { nodes { oid } }
          }
        }
      }
    }
  }
}
"""

CONTRIBUTIONS = """
query($login: String!) {
  user(login: $login) {
    contributionsCollection {
      contributionCalendar {
        totalContributions
        weeks {
          firstDay
          contributionDays {
            date
            color
            contributionCount
          }
        }
      }
    }
  }
}
"""

VIEWER = """
query {
  viewer { login }
}
"""

MERGE_PR = """
mutation($pullRequestId: ID!) {
  mergePullRequest(input: {pullRequestId: $pullRequestId}) {
    pullRequest { number }
  }
}
"""

APPROVE_PR = """
mutation($pullRequestId: ID!) {
  addPullRequestReview(input: {pullRequestId: $pullRequestId, event: APPROVE}) {
    pullRequestReview { state }
  }
}
"""

ISSUE_FIELDS = """
fragment IssueFields on Issue {
  number
  title
  url
}
"""

OWNER_ISSUES = """
query($login: String!) {
  repositoryOwner(login: $login) {
    repositories(first: 100, orderBy: {field: PUSHED_AT, direction: DESC}) {
      nodes {
        name
        issues(first: 50, states: OPEN) {
          nodes { ...IssueFields }
        }
      }
    }
  }
}
""" + ISSUE_FIELDS

REPO_ISSUES = """
query($login: String!, $name: String!) {
  repositoryOwner(login: $login) {
    repository(name: $name) {
      name
      issues(first: 50, states: OPEN) {
        nodes { ...IssueFields }
      }
    }
  }
}
""" + ISSUE_FIELDS

RESOURCE_STATUS = """
query($url: URI!) {
  resource(url: $url) {
    ... on Issue { issueState: state }
    ... on PullRequest { prState: state }
  }
}
"""

_ASSIGNEE_EVENTS = """
        timelineItems(first: 100, itemTypes: [ASSIGNED_EVENT, UNASSIGNED_EVENT]) {
          nodes {
            __typename
            ... on AssignedEvent { createdAt assignee { ... on User { login name } } }
            ... on UnassignedEvent { createdAt assignee { ... on User { login name } } }
          }
        }"""

ASSIGNEE_TIMELINE = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    issueOrPullRequest(number: $number) {
      ... on Issue {
        number
        title%s
      }
      ... on PullRequest {
        number
        title%s
      }
    }
  }
}
""" % (_ASSIGNEE_EVENTS, _ASSIGNEE_EVENTS)
