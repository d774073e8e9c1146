"""Render metrics as markdown reports."""

from .metrics import rank_contributors
from .models import AggregateMetrics
from .window import format_report_date

NO_ACTIVITY = "No pull request activity in this period."

WEEKLY_PREAMBLE = [
    "## Understanding the Metrics",
    "",
    "- **New PRs**: Pull requests created during this week",
    "- **Merged PRs**: Pull requests merged during this week",
    "- **Open PRs**: Pull requests currently open (not merged/closed)",
    "- **Closed PRs**: Pull requests closed without merging this week",
    "- **Avg Time to Merge**: Average time (in hours) from PR creation to merge",
    "- **Avg Comments**: Average number of comments per PR",
    "",
    "### Additional Context",
    "",
    "- The report covers activity from the past 7 days",
    '- "Open PRs" shows current workload (may include PRs from previous weeks)',
    '- "New PRs" + "Merged PRs" + "Closed PRs" shows this week\'s changes',
    "- Time to merge helps identify review process efficiency",
]


def _hours_or_na(value: float) -> str:
    return "N/A" if value == 0 else f"{value:.1f} hours"


def _table(headers: list[str], rows: list[list[object]]) -> list[str]:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("-" * (len(h) + 2) for h in headers) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(str(cell) for cell in row) + " |")
    return lines


def render_range_report(metrics: AggregateMetrics, repository: str | None = None) -> str:
    """Render a bounded-range report. Zero averages are shown as N/A."""
    lines = ["# GitHub Activity Report", ""]

    if repository or metrics.start is not None:
        scope = []
        if repository:
            scope.append(f"Repository: {repository}")
        if metrics.start is not None and metrics.end is not None:
            scope.append(f"Period: {metrics.start.date().isoformat()} to {metrics.end.date().isoformat()}")
        lines.extend([" | ".join(scope), ""])

    lines.extend([
        "## Summary",
        "",
        f"- New PRs: {metrics.new_prs}",
        f"- Merged PRs: {metrics.merged_prs}",
        f"- Open PRs: {metrics.open_prs}",
        f"- Average Time to Merge: {_hours_or_na(metrics.avg_time_to_merge)}",
        f"- Average Time to First Review: {_hours_or_na(metrics.avg_time_to_first_review)}",
        "",
        "## Contributors",
        "",
    ])

    if not metrics.contributors:
        lines.append(NO_ACTIVITY)
    else:
        rows = [
            [author, stats.new_prs, stats.merged_prs, stats.open_prs, stats.total_comments]
            for author, stats in metrics.contributors.items()
        ]
        lines.extend(_table(["Contributor", "New PRs", "Merged PRs", "Open PRs", "Comments"], rows))

    return "\n".join(lines) + "\n"


def render_weekly_report(metrics: AggregateMetrics) -> str:
    """Render the rolling weekly report with contributors in ranked order."""
    if metrics.start is None or metrics.end is None:
        raise ValueError("Weekly report needs the window start and end")

    heading = (
        f"# Weekly Development Metrics Report "
        f"({format_report_date(metrics.start)} - {format_report_date(metrics.end)})"
    )
    lines = [heading, "", *WEEKLY_PREAMBLE, ""]

    lines.extend([
        "## Contributor Metrics",
        "",
        "> Contributors are ranked by: 1) Number of Merged PRs, 2) Number of New PRs, 3) Number of Open PRs",
        "",
    ])
    rows = [
        [
            author,
            stats.new_prs,
            stats.merged_prs,
            stats.open_prs,
            stats.closed_prs,
            f"{stats.avg_time_to_merge:.1f}",
            f"{stats.avg_comments:.1f}",
        ]
        for author, stats in rank_contributors(metrics.contributors)
    ]
    lines.extend(_table(
        [
            "Contributor",
            "New PRs",
            "Merged PRs",
            "Open PRs",
            "Closed PRs",
            "Avg Time to Merge (h)",
            "Avg Comments",
        ],
        rows,
    ))

    lines.extend([
        "",
        "## Summary Statistics",
        "",
        f"- Total Active Contributors: {len(metrics.contributors)}",
        f"- New PRs This Week: {metrics.new_prs}",
        f"- PRs Merged This Week: {metrics.merged_prs}",
        f"- PRs Closed Without Merge This Week: {metrics.closed_prs}",
        f"- Currently Open PRs: {metrics.open_prs}",
        f"- Total Weekly PR Activity: {metrics.weekly_activity}",
        f"- Average Time to Merge: {metrics.avg_time_to_merge:.1f} hours",
        f"- Average Comments per PR: {metrics.avg_comments:.1f}",
        "",
        "### Repositories Included",
        "",
    ])
    lines.extend(f"- {repository}" for repository in metrics.repositories)

    return "\n".join(lines) + "\n"
