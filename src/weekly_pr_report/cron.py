"""Install a crontab entry that runs the weekly report."""

import shutil
import subprocess
import sys

import click

# Saturdays at 09:00
SCHEDULE = "0 9 * * 6"


class CronError(Exception):
    """Raised when the crontab cannot be read or written."""


def default_command() -> str:
    """Command that runs the weekly report with the current interpreter's install."""
    executable = shutil.which("weekly-pr-report")
    if executable:
        return f"{executable} weekly"
    return f"{sys.executable} -m weekly_pr_report.cli weekly"


def read_crontab() -> str:
    """Return the current user's crontab, or an empty string if there is none."""
    try:
        result = subprocess.run(["crontab", "-l"], capture_output=True, text=True)
    except FileNotFoundError as e:
        raise CronError("crontab not found") from e

    if result.returncode != 0:
        if "no crontab" in result.stderr.lower():
            return ""
        raise CronError(f"Error reading current crontab: {result.stderr.strip()}")
    return result.stdout


def write_crontab(content: str) -> None:
    try:
        subprocess.run(["crontab", "-"], input=content, capture_output=True, text=True, check=True)
    except FileNotFoundError as e:
        raise CronError("crontab not found") from e
    except subprocess.CalledProcessError as e:
        raise CronError(f"Error setting up cron job: {(e.stderr or '').strip()}") from e


def build_crontab(current: str, command: str, schedule: str = SCHEDULE) -> str:
    """Replace any existing entries for ``command`` with a single scheduled one."""
    kept = [line for line in current.splitlines() if line.strip() and command not in line]
    kept.append(f"{schedule} {command}")
    return "\n".join(kept) + "\n"


@click.command()
@click.option("--command", "command", default=None, help="Command to schedule (default: weekly-pr-report weekly)")
@click.option("--dry-run", is_flag=True, help="Print the resulting crontab instead of installing it")
def main(command: str | None, dry_run: bool) -> None:
    """Schedule the weekly report for Saturdays at 9:00 AM."""
    command = command or default_command()
    try:
        crontab = build_crontab(read_crontab(), command)
        if dry_run:
            click.echo(crontab, nl=False)
            return
        write_crontab(crontab)
    except CronError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("Cron job set up successfully!")
    click.echo("The report will run every Saturday at 9:00 AM")
    click.echo("Reports will be saved as reports/YYYY/MM-Month/weekly-report-YYYY-MM-DD.md")


if __name__ == "__main__":
    main()
