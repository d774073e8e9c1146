"""Reduce PR comments and reviews into per-PR detail counts."""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from .fetcher import MAX_WORKERS, FetchError, PullRequestSource
from .models import PRDetail, Review

logger = logging.getLogger(__name__)

APPROVED = "APPROVED"
CHANGES_REQUESTED = "CHANGES_REQUESTED"


def summarize_reviews(reviews: Iterable[Review]) -> PRDetail:
    """Count reviews by state and find the earliest submission."""
    detail = PRDetail()
    for review in reviews:
        detail.review_count += 1
        if review.state == APPROVED:
            detail.approvals += 1
        elif review.state == CHANGES_REQUESTED:
            detail.changes_requested += 1

        if review.submitted_at is not None and (
            detail.first_review_at is None or review.submitted_at < detail.first_review_at
        ):
            detail.first_review_at = review.submitted_at
    return detail


def fetch_pr_detail(source: PullRequestSource, repository: str, number: int) -> PRDetail:
    """
    Fetch discussion comments, review comments and reviews for one PR.

    The three requests run concurrently. If any of them fails the PR gets
    the zero record.
    """
    with ThreadPoolExecutor(max_workers=3) as executor:
        future_comments = executor.submit(source.list_issue_comments, repository, number)
        future_review_comments = executor.submit(source.list_review_comments, repository, number)
        future_reviews = executor.submit(source.list_reviews, repository, number)

        try:
            comments = future_comments.result()
            review_comments = future_review_comments.result()
            reviews = future_reviews.result()
        except FetchError as e:
            logger.warning(f"Error fetching details for PR #{number} in {repository}: {e}")
            return PRDetail()

    detail = summarize_reviews(reviews)
    detail.discussion_comments = len(comments)
    detail.review_comments = len(review_comments)
    logger.debug(
        f"PR #{number}: {detail.total_comments} comments, {detail.review_count} reviews "
        f"({detail.approvals} approved, {detail.changes_requested} changes requested)"
    )
    return detail


def fetch_pr_details(
    source: PullRequestSource,
    repository: str,
    pr_numbers: Iterable[int],
) -> dict[int, PRDetail]:
    """Fetch details for a batch of PRs, one entry per requested number."""
    numbers = list(dict.fromkeys(pr_numbers))
    if not numbers:
        return {}

    with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(numbers))) as executor:
        futures = {
            number: executor.submit(fetch_pr_detail, source, repository, number)
            for number in numbers
        }
        return {number: future.result() for number, future in futures.items()}


def fetch_all_pr_details(
    source: PullRequestSource,
    numbers_by_repository: dict[str, list[int]],
) -> dict[str, dict[int, PRDetail]]:
    """Fetch detail batches for several repositories concurrently."""
    if not numbers_by_repository:
        return {}

    with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(numbers_by_repository))) as executor:
        futures = {
            repository: executor.submit(fetch_pr_details, source, repository, numbers)
            for repository, numbers in numbers_by_repository.items()
        }
        return {repository: future.result() for repository, future in futures.items()}
