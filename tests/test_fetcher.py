"""Tests for fetcher module."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from github import GithubException
from requests import ConnectionError as RequestsConnectionError

from weekly_pr_report.fetcher import (
    FetchError,
    GithubSource,
    fetch_all_pull_requests,
    fetch_pull_requests,
)
from weekly_pr_report.models import MalformedPullRequestError, PullRequest

UTC = timezone.utc
SINCE = datetime(2024, 2, 1, tzinfo=UTC)


def make_github_pr(number, updated_at, state="open", login="author"):
    mock_pr = MagicMock()
    mock_pr.number = number
    mock_pr.user.login = login
    mock_pr.state = state
    mock_pr.created_at = datetime(2024, 1, 30, tzinfo=UTC)
    mock_pr.updated_at = updated_at
    mock_pr.merged_at = None
    mock_pr.closed_at = None
    return mock_pr


def make_pr(number, repository="repo"):
    return PullRequest(number, repository, "author", "open", datetime(2024, 2, 2, tzinfo=UTC))


class TestGithubSourceListPullRequests:
    """Tests for GithubSource.list_pull_requests."""

    def test_requests_all_states_by_update_time(self):
        """Should ask for all PRs sorted by most recent update."""
        mock_client = MagicMock()
        mock_repo = mock_client.get_repo.return_value
        mock_repo.get_pulls.return_value = []

        GithubSource(mock_client, "org").list_pull_requests("repo", SINCE)

        mock_client.get_repo.assert_called_once_with("org/repo", lazy=True)
        mock_repo.get_pulls.assert_called_once_with(state="all", sort="updated", direction="desc")

    def test_stops_at_prs_updated_before_since(self):
        """Should stop paging at the first PR not updated since the window start."""
        mock_client = MagicMock()
        recent = make_github_pr(2, datetime(2024, 2, 3, tzinfo=UTC))
        stale = make_github_pr(1, datetime(2024, 1, 15, tzinfo=UTC))
        older = make_github_pr(0, datetime(2024, 1, 10, tzinfo=UTC))
        mock_client.get_repo.return_value.get_pulls.return_value = [recent, stale, older]

        prs = GithubSource(mock_client, "org").list_pull_requests("repo", SINCE)

        assert [pr.number for pr in prs] == [2]
        assert prs[0].repository == "repo"
        assert prs[0].author == "author"

    def test_github_error_raises_fetch_error(self):
        """GithubException should be wrapped in FetchError."""
        mock_client = MagicMock()
        mock_client.get_repo.return_value.get_pulls.side_effect = GithubException(
            status=500,
            data={"message": "Internal error"},
            headers={},
        )

        with pytest.raises(FetchError) as exc_info:
            GithubSource(mock_client, "org").list_pull_requests("repo", SINCE)

        assert "org/repo" in str(exc_info.value)

    def test_network_error_raises_fetch_error(self):
        """Connection errors should also be wrapped in FetchError."""
        mock_client = MagicMock()
        mock_client.get_repo.return_value.get_pulls.side_effect = RequestsConnectionError("down")

        with pytest.raises(FetchError):
            GithubSource(mock_client, "org").list_pull_requests("repo", SINCE)

    def test_malformed_pr_is_not_wrapped(self):
        """A PR without an author is a contract violation, not a fetch failure."""
        mock_client = MagicMock()
        broken = make_github_pr(1, datetime(2024, 2, 3, tzinfo=UTC))
        broken.user = None
        mock_client.get_repo.return_value.get_pulls.return_value = [broken]

        with pytest.raises(MalformedPullRequestError):
            GithubSource(mock_client, "org").list_pull_requests("repo", SINCE)


class TestGithubSourceDiscussion:
    """Tests for the comment and review listings."""

    def test_lists_comments_and_reviews(self):
        """Should list issue comments, review comments and reviews of a PR."""
        mock_client = MagicMock()
        mock_pull = mock_client.get_repo.return_value.get_pull.return_value
        mock_pull.get_issue_comments.return_value = [MagicMock(), MagicMock()]
        mock_pull.get_review_comments.return_value = [MagicMock()]
        mock_review = MagicMock()
        mock_review.state = "APPROVED"
        mock_review.submitted_at = datetime(2024, 2, 2, tzinfo=UTC)
        mock_pull.get_reviews.return_value = [mock_review]

        source = GithubSource(mock_client, "org")

        assert len(source.list_issue_comments("repo", 5)) == 2
        assert len(source.list_review_comments("repo", 5)) == 1
        reviews = source.list_reviews("repo", 5)
        assert reviews[0].state == "APPROVED"
        assert reviews[0].submitted_at == datetime(2024, 2, 2, tzinfo=UTC)
        mock_client.get_repo.return_value.get_pull.assert_called_once_with(5)

    def test_pull_fetched_once_per_pr(self):
        """Each PR should be fetched once, even when listed concurrently."""
        mock_client = MagicMock()
        mock_get_pull = mock_client.get_repo.return_value.get_pull
        mock_get_pull.return_value.get_issue_comments.return_value = []
        mock_get_pull.return_value.get_review_comments.return_value = []
        mock_get_pull.return_value.get_reviews.return_value = []
        source = GithubSource(mock_client, "org")

        with ThreadPoolExecutor(max_workers=3) as executor:
            for number in (5, 6):
                executor.submit(source.list_issue_comments, "repo", number)
                executor.submit(source.list_review_comments, "repo", number)
                executor.submit(source.list_reviews, "repo", number)

        assert sorted(c.args for c in mock_get_pull.call_args_list) == [(5,), (6,)]

    def test_error_raises_fetch_error(self):
        """GithubException while listing reviews should become FetchError."""
        mock_client = MagicMock()
        mock_client.get_repo.return_value.get_pull.side_effect = GithubException(
            status=404,
            data={"message": "Not Found"},
            headers={},
        )

        with pytest.raises(FetchError) as exc_info:
            GithubSource(mock_client, "org").list_reviews("repo", 123)

        assert "#123" in str(exc_info.value)


class TestFromToken:
    """Tests for GithubSource.from_token."""

    def test_token_uses_token_auth(self, mocker):
        """A token should produce an authenticated client."""
        mock_github = mocker.patch("weekly_pr_report.fetcher.Github")
        mock_auth = mocker.patch("weekly_pr_report.fetcher.Auth")

        source = GithubSource.from_token("org", "secret")

        mock_auth.Token.assert_called_once_with("secret")
        mock_github.assert_called_once_with(auth=mock_auth.Token.return_value, per_page=100)
        assert source.owner == "org"
        assert source.client == mock_github.return_value

    def test_no_token_is_unauthenticated(self, mocker):
        """Without a token the client should be unauthenticated."""
        mock_github = mocker.patch("weekly_pr_report.fetcher.Github")

        GithubSource.from_token("org")

        mock_github.assert_called_once_with(per_page=100)


class TestFetchPullRequests:
    """Tests for fetch_pull_requests."""

    def test_returns_source_results(self):
        """Should return the PRs listed by the source."""
        source = MagicMock()
        source.list_pull_requests.return_value = [make_pr(1)]

        prs = fetch_pull_requests(source, "repo", SINCE)

        assert prs == [make_pr(1)]
        source.list_pull_requests.assert_called_once_with("repo", SINCE)

    def test_fetch_error_yields_empty_list(self, caplog):
        """Retrieval failures should be logged and absorbed."""
        source = MagicMock()
        source.list_pull_requests.side_effect = FetchError("rate limited")

        prs = fetch_pull_requests(source, "repo", SINCE)

        assert prs == []
        assert "Error fetching PRs for repo" in caplog.text

    def test_malformed_input_propagates(self):
        """Malformed records should abort the run."""
        source = MagicMock()
        source.list_pull_requests.side_effect = MalformedPullRequestError("no created_at")

        with pytest.raises(MalformedPullRequestError):
            fetch_pull_requests(source, "repo", SINCE)


class TestFetchAllPullRequests:
    """Tests for fetch_all_pull_requests."""

    def test_keys_results_by_repository_in_order(self):
        """Each repository should get its own slot, in configured order."""
        source = MagicMock()
        source.list_pull_requests.side_effect = lambda repository, since: [make_pr(1, repository)]

        results = fetch_all_pull_requests(source, ["b-repo", "a-repo"], SINCE)

        assert list(results) == ["b-repo", "a-repo"]
        assert results["a-repo"][0].repository == "a-repo"

    def test_failed_repository_is_empty(self):
        """One failing repository should not affect the others."""
        source = MagicMock()

        def list_pull_requests(repository, since):
            if repository == "bad-repo":
                raise FetchError("boom")
            return [make_pr(1, repository)]

        source.list_pull_requests.side_effect = list_pull_requests

        results = fetch_all_pull_requests(source, ["bad-repo", "good-repo"], SINCE)

        assert results["bad-repo"] == []
        assert len(results["good-repo"]) == 1

    def test_no_repositories(self):
        """An empty repository list should return an empty mapping."""
        assert fetch_all_pull_requests(MagicMock(), [], SINCE) == {}
