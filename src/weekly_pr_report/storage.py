"""Persist rendered reports in a dated directory tree."""

import logging
from datetime import date
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_REPORTS_DIR = Path("reports")

# Directory names stay in English whatever the process locale.
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def report_directory(base_dir: Path | str, when: date) -> Path:
    """Directory for a report, e.g. ``reports/2024/02-February``."""
    return Path(base_dir) / f"{when.year:04d}" / f"{when.month:02d}-{MONTH_NAMES[when.month - 1]}"


def report_filename(when: date) -> str:
    """File name for a weekly report, e.g. ``weekly-report-2024-02-07.md``."""
    return f"weekly-report-{when.strftime('%Y-%m-%d')}.md"


def save_report(text: str, base_dir: Path | str, when: date) -> Path:
    """Write a report under its dated directory, creating it as needed."""
    directory = report_directory(base_dir, when)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / report_filename(when)
    path.write_text(text, encoding="utf-8")
    logger.info(f"Report written to: {path}")
    return path
