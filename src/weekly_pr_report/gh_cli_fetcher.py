"""Fetch PR data using GitHub CLI (gh) instead of PyGithub.

This module provides an alternative source that uses subprocess calls to the
GitHub CLI tool. This can be useful for EMU (Enterprise Managed Users)
organizations where PyGithub may have authentication issues.
"""

import json
import logging
import subprocess
from datetime import datetime

from .fetcher import PAGE_SIZE, FetchError
from .models import PullRequest, Review, parse_timestamp, pull_request_from_payload

logger = logging.getLogger(__name__)


class GhCliError(FetchError):
    """Raised when a gh CLI command fails."""


class RateLimitError(GhCliError):
    """Raised when GitHub rate limit is hit."""


def _is_rate_limit_error(error_msg: str) -> bool:
    """Check if error message indicates a rate limit."""
    rate_limit_indicators = [
        "rate limit",
        "secondary rate limit",
        "abuse detection",
        "403",
        "retry-after",
    ]
    error_lower = error_msg.lower()
    return any(indicator in error_lower for indicator in rate_limit_indicators)


def _run_gh_command(args: list[str]) -> dict | list:
    """Run a gh command and return parsed JSON output."""
    cmd = ["gh"] + args
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise GhCliError("GitHub CLI (gh) not found. Install from https://cli.github.com/") from e
    except subprocess.CalledProcessError as e:
        error_msg = e.stderr.strip() if e.stderr else str(e)
        if _is_rate_limit_error(error_msg):
            raise RateLimitError(f"Rate limit exceeded: {error_msg}") from e
        raise GhCliError(f"gh command failed: {error_msg}") from e

    if not result.stdout.strip():
        return []

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise GhCliError(f"Failed to parse gh output: {e}") from e


class GhCliSource:
    """Pull request source backed by ``gh api`` calls."""

    def __init__(self, owner: str):
        self.owner = owner

    def _endpoint(self, repository: str, path: str) -> str:
        return f"repos/{self.owner}/{repository}/{path}"

    def _list_paginated(self, endpoint: str) -> list:
        items = _run_gh_command(["api", endpoint, "--paginate"])
        return items if isinstance(items, list) else []

    def list_pull_requests(self, repository: str, since: datetime) -> list[PullRequest]:
        """List PRs of any state updated since ``since``, newest-updated first.

        Pages are requested one at a time so paging stops at the first PR
        that was last updated before ``since``.
        """
        payloads: list[dict] = []
        page = 1

        while True:
            endpoint = self._endpoint(
                repository,
                f"pulls?state=all&sort=updated&direction=desc&per_page={PAGE_SIZE}&page={page}",
            )
            batch = _run_gh_command(["api", endpoint])
            if not isinstance(batch, list) or not batch:
                break

            reached_end = False
            for payload in batch:
                updated_at = parse_timestamp(payload.get("updated_at"))
                if updated_at is not None and updated_at < since:
                    reached_end = True
                    break
                payloads.append(payload)

            if reached_end or len(batch) < PAGE_SIZE:
                break
            page += 1

        logger.debug(f"{repository}: {len(payloads)} PRs across {page} page(s)")
        return [pull_request_from_payload(payload, repository) for payload in payloads]

    def list_issue_comments(self, repository: str, number: int) -> list:
        return self._list_paginated(self._endpoint(repository, f"issues/{number}/comments?per_page={PAGE_SIZE}"))

    def list_review_comments(self, repository: str, number: int) -> list:
        return self._list_paginated(self._endpoint(repository, f"pulls/{number}/comments?per_page={PAGE_SIZE}"))

    def list_reviews(self, repository: str, number: int) -> list[Review]:
        reviews = self._list_paginated(self._endpoint(repository, f"pulls/{number}/reviews?per_page={PAGE_SIZE}"))
        return [
            Review(state=r.get("state", ""), submitted_at=parse_timestamp(r.get("submitted_at")))
            for r in reviews
        ]
