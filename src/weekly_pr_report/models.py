"""Data models for weekly PR activity metrics."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

PRState = Literal["open", "closed"]


class MalformedPullRequestError(Exception):
    """Raised when a pull request record is missing required fields."""


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO 8601 timestamp ("2024-02-01T10:00:00Z")."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class PullRequest:
    """A pull request as observed at fetch time."""

    number: int
    repository: str
    author: str
    state: PRState
    created_at: datetime
    updated_at: datetime | None = None
    merged_at: datetime | None = None
    closed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.state not in ("open", "closed"):
            raise MalformedPullRequestError(
                f"PR #{self.number} in {self.repository} has unknown state {self.state!r}"
            )
        if self.merged_at is not None and self.state != "closed":
            raise MalformedPullRequestError(
                f"PR #{self.number} in {self.repository} is merged but not closed"
            )
        if self.merged_at is not None and self.closed_at is None:
            raise MalformedPullRequestError(
                f"PR #{self.number} in {self.repository} is merged but has no closed_at"
            )
        if self.closed_at is not None and self.state != "closed":
            raise MalformedPullRequestError(
                f"PR #{self.number} in {self.repository} has closed_at but is not closed"
            )

    @property
    def is_merged(self) -> bool:
        return self.merged_at is not None


def pull_request_from_payload(payload: dict[str, Any], repository: str) -> PullRequest:
    """Build a PullRequest from a REST API JSON record."""
    user = payload.get("user") or {}
    number = payload.get("number")
    author = user.get("login")
    created_at = parse_timestamp(payload.get("created_at"))

    if number is None or not author or created_at is None:
        raise MalformedPullRequestError(
            f"Pull request record in {repository} is missing number, author or created_at: "
            f"number={number!r}"
        )

    return PullRequest(
        number=number,
        repository=repository,
        author=author,
        state=payload.get("state", ""),
        created_at=created_at,
        updated_at=parse_timestamp(payload.get("updated_at")),
        merged_at=parse_timestamp(payload.get("merged_at")),
        closed_at=parse_timestamp(payload.get("closed_at")),
    )


def pull_request_from_github(pr: Any, repository: str) -> PullRequest:
    """Build a PullRequest from a PyGithub ``PullRequest`` object."""
    if pr.user is None or pr.created_at is None:
        raise MalformedPullRequestError(
            f"PR #{pr.number} in {repository} is missing author or created_at"
        )

    return PullRequest(
        number=pr.number,
        repository=repository,
        author=pr.user.login,
        state=pr.state,
        created_at=pr.created_at,
        updated_at=pr.updated_at,
        merged_at=pr.merged_at,
        closed_at=pr.closed_at,
    )


@dataclass(frozen=True)
class Review:
    """A formal review on a PR. Only the state and submission time are kept."""

    state: str
    submitted_at: datetime | None = None


@dataclass
class PRDetail:
    """Comment and review counts for one PR. The default is the zero record."""

    discussion_comments: int = 0
    review_comments: int = 0
    review_count: int = 0
    approvals: int = 0
    changes_requested: int = 0
    first_review_at: datetime | None = None

    @property
    def total_comments(self) -> int:
        return self.discussion_comments + self.review_comments


def _average(total: float, count: int) -> float:
    return total / count if count > 0 else 0.0


@dataclass
class ContributorMetrics:
    """Counters accumulated for one PR author during a run."""

    new_prs: int = 0
    merged_prs: int = 0
    open_prs: int = 0
    closed_prs: int = 0
    total_comments: int = 0
    merged_pr_count: int = 0
    total_merge_time: float = 0.0
    first_review_count: int = 0
    total_first_review_time: float = 0.0

    @property
    def avg_time_to_merge(self) -> float:
        return _average(self.total_merge_time, self.merged_pr_count)

    @property
    def avg_time_to_first_review(self) -> float:
        return _average(self.total_first_review_time, self.first_review_count)

    @property
    def weekly_activity(self) -> int:
        """New, merged and closed PRs. Open PRs are current backlog, not activity."""
        return self.new_prs + self.merged_prs + self.closed_prs

    @property
    def avg_comments(self) -> float:
        return _average(self.total_comments, self.weekly_activity)


COUNTER_FIELDS = (
    "new_prs",
    "merged_prs",
    "open_prs",
    "closed_prs",
    "total_comments",
    "merged_pr_count",
    "total_merge_time",
    "first_review_count",
    "total_first_review_time",
)


@dataclass
class AggregateMetrics(ContributorMetrics):
    """Run-level totals plus the per-contributor breakdown."""

    contributors: dict[str, ContributorMetrics] = field(default_factory=dict)
    start: datetime | None = None
    end: datetime | None = None
    repositories: list[str] = field(default_factory=list)

    @classmethod
    def from_contributors(
        cls,
        contributors: dict[str, ContributorMetrics],
        start: datetime | None = None,
        end: datetime | None = None,
        repositories: list[str] | None = None,
    ) -> "AggregateMetrics":
        """Build totals as the field-wise sum of the contributor records."""
        totals = {
            name: sum(getattr(c, name) for c in contributors.values())
            for name in COUNTER_FIELDS
        }
        return cls(
            **totals,
            contributors=contributors,
            start=start,
            end=end,
            repositories=list(repositories or []),
        )
