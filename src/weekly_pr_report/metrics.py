"""Reduce fetched pull requests into summary and per-contributor metrics."""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .aggregator import fetch_all_pr_details, fetch_pr_details
from .fetcher import PullRequestSource, fetch_all_pull_requests, fetch_pull_requests
from .models import (
    AggregateMetrics,
    ContributorMetrics,
    MalformedPullRequestError,
    PRDetail,
    PullRequest,
)
from .window import in_window, is_after, range_bounds, window_start

logger = logging.getLogger(__name__)

# Used when a PR has reviews but none of them carries a submission time.
FIRST_REVIEW_FALLBACK = timedelta(hours=2)

DetailsByRepository = Mapping[str, Mapping[int, PRDetail]]


@dataclass(frozen=True)
class AccumulationRules:
    """How PRs are classified while accumulating contributor metrics.

    Attributes:
        is_new: Decides from ``created_at`` whether a PR counts as new.
        require_new: Skip PRs that are not new entirely.
        merged_counts: Decides from ``merged_at`` whether a merge counts.
        closed_counts: Decides from ``closed_at`` whether a close without
            merge counts; ``None`` never counts closes.
        sum_comments: Sum each PR's comments into the contributor total,
            otherwise the last examined PR's count replaces it.
    """

    is_new: Callable[[datetime], bool]
    require_new: bool
    merged_counts: Callable[[datetime], bool]
    closed_counts: Callable[[datetime], bool] | None
    sum_comments: bool


def bounded_rules(start: datetime, end: datetime) -> AccumulationRules:
    """Rules for a report over an explicit range; membership is by creation time."""
    return AccumulationRules(
        is_new=lambda ts: in_window(ts, start, end),
        require_new=True,
        merged_counts=lambda ts: True,
        closed_counts=None,
        sum_comments=False,
    )


def rolling_rules(start: datetime) -> AccumulationRules:
    """Rules for the rolling weekly report."""
    return AccumulationRules(
        is_new=lambda ts: is_after(ts, start),
        require_new=False,
        merged_counts=lambda ts: is_after(ts, start),
        closed_counts=lambda ts: is_after(ts, start),
        sum_comments=True,
    )


def _hours(delta: timedelta) -> float:
    return delta.total_seconds() / 3600


def _first_review_at(pr: PullRequest, detail: PRDetail) -> datetime:
    if detail.first_review_at is not None:
        return detail.first_review_at
    logger.debug(f"PR #{pr.number} in {pr.repository}: no review timestamp, using creation + 2h")
    return pr.created_at + FIRST_REVIEW_FALLBACK


def accumulate(
    pull_requests: Iterable[PullRequest],
    details: DetailsByRepository,
    rules: AccumulationRules,
) -> dict[str, ContributorMetrics]:
    """
    Accumulate contributor metrics over already-fetched PRs.

    Args:
        pull_requests: PRs from any number of repositories
        details: PR details keyed by repository, then PR number
        rules: Classification rules for the report mode

    Returns:
        Contributor metrics keyed by author, in first-seen order

    Raises:
        MalformedPullRequestError: If a PR has no creation time
    """
    contributors: dict[str, ContributorMetrics] = {}

    for pr in pull_requests:
        if pr.created_at is None:
            raise MalformedPullRequestError(f"PR #{pr.number} in {pr.repository} has no created_at")

        is_new = rules.is_new(pr.created_at)
        if rules.require_new and not is_new:
            continue

        metrics = contributors.setdefault(pr.author, ContributorMetrics())
        detail = details.get(pr.repository, {}).get(pr.number)

        if is_new:
            metrics.new_prs += 1
            if detail is not None and detail.review_count > 0:
                metrics.first_review_count += 1
                metrics.total_first_review_time += _hours(_first_review_at(pr, detail) - pr.created_at)

        # Open, merged and closed are mutually exclusive; open ignores the window.
        if pr.state == "open":
            metrics.open_prs += 1
        elif pr.merged_at is not None:
            if rules.merged_counts(pr.merged_at):
                metrics.merged_prs += 1
                metrics.merged_pr_count += 1
                metrics.total_merge_time += _hours(pr.merged_at - pr.created_at)
        elif pr.closed_at is not None and rules.closed_counts is not None:
            if rules.closed_counts(pr.closed_at):
                metrics.closed_prs += 1

        if detail is not None:
            if rules.sum_comments:
                metrics.total_comments += detail.total_comments
            else:
                metrics.total_comments = detail.total_comments

    return contributors


def compute_metrics(
    source: PullRequestSource,
    repository: str,
    start: date | datetime,
    end: date | datetime,
) -> AggregateMetrics:
    """
    Compute metrics for one repository over an explicit range.

    Only PRs created within ``[start, end]`` are counted. Calendar dates
    cover whole days (UTC).
    """
    start_dt, end_dt = range_bounds(start, end)
    prs = fetch_pull_requests(source, repository, start_dt)
    details = fetch_pr_details(source, repository, [pr.number for pr in prs])

    contributors = accumulate(prs, {repository: details}, bounded_rules(start_dt, end_dt))
    metrics = AggregateMetrics.from_contributors(
        contributors, start=start_dt, end=end_dt, repositories=[repository]
    )
    logger.info(
        f"{repository}: {metrics.new_prs} new, {metrics.merged_prs} merged, "
        f"{metrics.open_prs} open PRs from {len(contributors)} contributors"
    )
    return metrics


def compute_weekly_metrics(
    source: PullRequestSource,
    repositories: list[str],
    now: datetime | None = None,
) -> AggregateMetrics:
    """
    Compute rolling-week metrics across all configured repositories.

    Args:
        source: Where pull requests, comments and reviews come from
        repositories: Repository names under the source's owner
        now: End of the window; the wall clock is read when omitted

    Returns:
        Aggregate metrics with one record per active contributor
    """
    end = (now if now is not None else datetime.now()).astimezone()
    start = window_start(end)

    prs_by_repository = fetch_all_pull_requests(source, repositories, start)
    numbers_by_repository = {
        repository: [pr.number for pr in prs]
        for repository, prs in prs_by_repository.items()
        if prs
    }
    details = fetch_all_pr_details(source, numbers_by_repository)

    all_prs = [pr for prs in prs_by_repository.values() for pr in prs]
    contributors = accumulate(all_prs, details, rolling_rules(start))
    metrics = AggregateMetrics.from_contributors(
        contributors, start=start, end=end, repositories=repositories
    )
    logger.info(
        f"Week of {start.date().isoformat()}: {len(all_prs)} PRs from "
        f"{len(contributors)} contributors across {len(repositories)} repositories"
    )
    return metrics


def rank_contributors(contributors: Mapping[str, ContributorMetrics]) -> list[tuple[str, ContributorMetrics]]:
    """Order contributors by merged PRs, then new PRs, then open PRs, descending.

    Full ties keep their original order.
    """
    return sorted(
        contributors.items(),
        key=lambda item: (item[1].merged_prs, item[1].new_prs, item[1].open_prs),
        reverse=True,
    )
