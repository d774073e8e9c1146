"""Fetch pull request activity from the GitHub API."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from threading import Lock
from typing import Protocol

from github import Auth, Github, GithubException
from requests import RequestException

from .models import PullRequest, Review, pull_request_from_github

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
MAX_WORKERS = 8


class FetchError(Exception):
    """Raised when fetching data from GitHub fails."""


class PullRequestSource(Protocol):
    """Read-only access to pull requests and their discussion."""

    def list_pull_requests(self, repository: str, since: datetime) -> list[PullRequest]: ...

    def list_issue_comments(self, repository: str, number: int) -> list: ...

    def list_review_comments(self, repository: str, number: int) -> list: ...

    def list_reviews(self, repository: str, number: int) -> list[Review]: ...


class GithubSource:
    """Pull request source backed by a PyGithub client."""

    def __init__(self, client: Github, owner: str):
        self.client = client
        self.owner = owner
        self._pulls = {}
        self._pull_locks: dict[tuple[str, int], Lock] = {}
        self._lock = Lock()

    @classmethod
    def from_token(cls, owner: str, token: str | None = None) -> "GithubSource":
        """
        Create a source using a Personal Access Token when one is given.

        Note: Unauthenticated access is rate limited to 60 requests/hour.
        """
        if token:
            client = Github(auth=Auth.Token(token), per_page=PAGE_SIZE)
        else:
            logger.info("No token given, using unauthenticated access (60 req/hr limit)")
            client = Github(per_page=PAGE_SIZE)
        return cls(client, owner)

    def _repo(self, repository: str):
        return self.client.get_repo(f"{self.owner}/{repository}", lazy=True)

    def list_pull_requests(self, repository: str, since: datetime) -> list[PullRequest]:
        """List PRs of any state updated since ``since``, newest-updated first."""
        pulls = []
        try:
            for pr in self._repo(repository).get_pulls(state="all", sort="updated", direction="desc"):
                if pr.updated_at is not None and pr.updated_at < since:
                    logger.debug(f"Reached PRs not updated since {since.isoformat()}, stopping")
                    break
                pulls.append(pr)
        except (GithubException, RequestException) as e:
            raise FetchError(f"Failed to list pull requests for {self.owner}/{repository}: {e}") from e

        return [pull_request_from_github(pr, repository) for pr in pulls]

    def _pull(self, repository: str, number: int):
        """Fetch a PR once and share it between its comment and review listings."""
        key = (repository, number)
        with self._lock:
            pull_lock = self._pull_locks.setdefault(key, Lock())
        with pull_lock:
            if key not in self._pulls:
                self._pulls[key] = self._repo(repository).get_pull(number)
            return self._pulls[key]

    def _list(self, repository: str, number: int, what: str, method: str) -> list:
        try:
            pr = self._pull(repository, number)
            return list(getattr(pr, method)())
        except (GithubException, RequestException) as e:
            raise FetchError(f"Failed to fetch {what} for PR #{number} in {repository}: {e}") from e

    def list_issue_comments(self, repository: str, number: int) -> list:
        return self._list(repository, number, "issue comments", "get_issue_comments")

    def list_review_comments(self, repository: str, number: int) -> list:
        return self._list(repository, number, "review comments", "get_review_comments")

    def list_reviews(self, repository: str, number: int) -> list[Review]:
        reviews = self._list(repository, number, "reviews", "get_reviews")
        return [Review(state=r.state, submitted_at=r.submitted_at) for r in reviews]


def fetch_pull_requests(source: PullRequestSource, repository: str, since: datetime) -> list[PullRequest]:
    """
    Fetch PRs touched since ``since`` for one repository.

    Retrieval failures are logged and yield an empty list, so an outage
    under-reports the week instead of aborting the run. Malformed records
    still raise.
    """
    logger.info(f"Fetching PRs for: {repository}")
    try:
        prs = source.list_pull_requests(repository, since)
    except FetchError as e:
        logger.warning(f"Error fetching PRs for {repository}: {e}")
        return []

    logger.info(f"{repository}: {len(prs)} PRs")
    return prs


def fetch_all_pull_requests(
    source: PullRequestSource,
    repositories: list[str],
    since: datetime,
) -> dict[str, list[PullRequest]]:
    """Fetch PRs for every repository concurrently, keyed by repository."""
    if not repositories:
        return {}

    with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(repositories))) as executor:
        futures = {
            repository: executor.submit(fetch_pull_requests, source, repository, since)
            for repository in repositories
        }
        return {repository: future.result() for repository, future in futures.items()}
