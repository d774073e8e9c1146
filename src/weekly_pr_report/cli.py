"""Command-line interface for weekly-pr-report."""

import logging
import sys
from datetime import date, datetime
from typing import NoReturn

import click
from dotenv import load_dotenv

from .config import ConfigError, load_config
from .fetcher import GithubSource, PullRequestSource
from .gh_cli_fetcher import GhCliSource
from .metrics import compute_metrics, compute_weekly_metrics
from .models import MalformedPullRequestError
from .report import render_range_report, render_weekly_report
from .storage import save_report

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def parse_date(ctx: click.Context, param: click.Parameter, value: str | None) -> date | None:
    """Parse a date string in YYYY-MM-DD format."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise click.BadParameter(f"Invalid date format. Use YYYY-MM-DD: {e}") from e


def configure_logging(owner: str, verbose: bool) -> None:
    """Log everything to ``<owner>.log``; INFO and up to the console with --verbose."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(f"{owner}.log", mode="w")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(file_handler)

    if verbose:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console_handler)


def make_source(owner: str, token: str | None, use_gh_cli: bool) -> PullRequestSource:
    if use_gh_cli:
        logger.info("Using gh CLI for data fetching")
        return GhCliSource(owner)
    if token:
        logger.info("Authenticating with Personal Access Token")
    return GithubSource.from_token(owner, token)


def fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
def main() -> None:
    """Weekly pull request activity reports for GitHub repositories."""


@main.command()
@click.option("--owner", envvar="REPO_OWNER", help="Organization or user owning the repositories")
@click.option("--repositories", envvar="REPOSITORIES", help="Comma-separated repository names")
@click.option("--token", envvar="GITHUB_TOKEN", help="GitHub Personal Access Token")
@click.option("--reports-dir", envvar="REPORTS_DIR", type=click.Path(file_okay=False), help="Base directory for reports (default: reports)")
@click.option("--use-gh-cli", is_flag=True, default=False, help="Use gh CLI instead of PyGithub (useful for EMU orgs)")
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
def weekly(
    owner: str | None,
    repositories: str | None,
    token: str | None,
    reports_dir: str | None,
    use_gh_cli: bool,
    verbose: bool,
) -> None:
    """Generate the rolling weekly report for all configured repositories."""
    try:
        config = load_config(owner, repositories, reports_dir)
    except ConfigError as e:
        fail(str(e))

    configure_logging(config.owner, verbose)
    logger.info(f"Generating weekly PR report for {config.owner}: {', '.join(config.repositories)}")

    source = make_source(config.owner, token, use_gh_cli)
    now = datetime.now().astimezone()
    try:
        metrics = compute_weekly_metrics(source, config.repositories, now=now)
    except MalformedPullRequestError as e:
        logger.error(f"Error generating report: {e}")
        fail(str(e))

    path = save_report(render_weekly_report(metrics), config.reports_dir, now.date())
    click.echo(f"Report generated successfully at: {path}")


@main.command("range")
@click.option("--owner", envvar="REPO_OWNER", help="Organization or user owning the repository")
@click.option("--repo", "repository", required=True, help="Repository name")
@click.option("--since", required=True, callback=parse_date, help="Start date (YYYY-MM-DD), inclusive")
@click.option("--until", required=True, callback=parse_date, help="End date (YYYY-MM-DD), inclusive")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help="Output markdown file (default: stdout)")
@click.option("--token", envvar="GITHUB_TOKEN", help="GitHub Personal Access Token")
@click.option("--use-gh-cli", is_flag=True, default=False, help="Use gh CLI instead of PyGithub (useful for EMU orgs)")
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
def range_report(
    owner: str | None,
    repository: str,
    since: date,
    until: date,
    output: str | None,
    token: str | None,
    use_gh_cli: bool,
    verbose: bool,
) -> None:
    """Generate a report for one repository over an explicit date range."""
    try:
        config = load_config(owner, [repository])
    except ConfigError as e:
        fail(str(e))

    if until < since:
        fail("--until must not be before --since")

    configure_logging(config.owner, verbose)
    logger.info(f"Date range: {since} to {until}")

    source = make_source(config.owner, token, use_gh_cli)
    try:
        metrics = compute_metrics(source, repository, since, until)
    except MalformedPullRequestError as e:
        logger.error(f"Error generating report: {e}")
        fail(str(e))

    report = render_range_report(metrics, repository=f"{config.owner}/{repository}")
    if output is None:
        click.echo(report, nl=False)
        return

    with open(output, "w", encoding="utf-8") as f:
        f.write(report)
    logger.info(f"Report written to: {output}")


if __name__ == "__main__":
    main()
