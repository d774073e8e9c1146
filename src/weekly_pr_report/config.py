"""Report configuration."""

from dataclasses import dataclass, field
from pathlib import Path

from .storage import DEFAULT_REPORTS_DIR


class ConfigError(Exception):
    """Raised when required configuration is missing."""


@dataclass(frozen=True)
class ReportConfig:
    """Which repositories to report on and where reports go."""

    owner: str
    repositories: list[str]
    reports_dir: Path = field(default=DEFAULT_REPORTS_DIR)


def parse_repositories(value: str | None) -> list[str]:
    """Split a comma-separated repository list, dropping blanks."""
    if not value:
        return []
    return [repo.strip() for repo in value.split(",") if repo.strip()]


def load_config(
    owner: str | None,
    repositories: str | list[str] | None,
    reports_dir: Path | str | None = None,
) -> ReportConfig:
    """
    Validate configuration before any report is computed.

    Args:
        owner: Organization or user owning the repositories (REPO_OWNER)
        repositories: Comma-separated string or list of names (REPOSITORIES)
        reports_dir: Base directory for saved reports (REPORTS_DIR)

    Raises:
        ConfigError: If the owner or repository list is missing
    """
    if isinstance(repositories, str) or repositories is None:
        repos = parse_repositories(repositories)
    else:
        repos = [repo.strip() for repo in repositories if repo and repo.strip()]

    owner = owner.strip() if owner else ""
    if not owner or not repos:
        raise ConfigError("REPO_OWNER and REPOSITORIES must be set (in the environment or .env file)")

    return ReportConfig(
        owner=owner,
        repositories=list(dict.fromkeys(repos)),
        reports_dir=Path(reports_dir) if reports_dir else DEFAULT_REPORTS_DIR,
    )
