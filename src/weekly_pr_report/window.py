"""Report window boundaries and membership tests."""

from datetime import date, datetime, time, timedelta, timezone

WINDOW_DAYS = 7


def _local(dt: datetime) -> datetime:
    """Return ``dt`` as an aware datetime in the local time zone."""
    return dt.astimezone()


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def window_start(now: datetime | None = None) -> datetime:
    """
    Start of the rolling weekly window.

    Seven days before ``now``, truncated to local midnight.

    Args:
        now: Reference time; the wall clock is read when omitted. Naive
            values are taken as local time.

    Returns:
        Timezone-aware local datetime
    """
    # Step back in wall-clock time, then resolve the offset in force on the
    # start day, which differs from today's when a DST change is in between.
    wall_clock = _local(now if now is not None else datetime.now()).replace(tzinfo=None)
    start = (wall_clock - timedelta(days=WINDOW_DAYS)).replace(hour=0, minute=0, second=0, microsecond=0)
    return start.astimezone()


def in_window(timestamp: datetime, start: datetime, end: datetime) -> bool:
    """Inclusive range test used by bounded reports."""
    return start <= timestamp <= end


def is_after(timestamp: datetime, start: datetime) -> bool:
    """Strict open-ended test used by the rolling weekly report."""
    return timestamp > start


def range_bounds(start: date | datetime, end: date | datetime) -> tuple[datetime, datetime]:
    """
    Turn caller-supplied range ends into aware datetimes.

    Calendar dates cover whole days in UTC: the start becomes midnight and
    the end becomes the last microsecond of that day. Datetimes are kept
    as given, naive ones taken as UTC.
    """
    if isinstance(start, datetime):
        start_dt = _utc(start)
    else:
        start_dt = datetime.combine(start, time.min, tzinfo=timezone.utc)

    if isinstance(end, datetime):
        end_dt = _utc(end)
    else:
        end_dt = datetime.combine(end, time.max, tzinfo=timezone.utc)

    if end_dt < start_dt:
        raise ValueError(f"Range end {end_dt.isoformat()} is before start {start_dt.isoformat()}")

    return start_dt, end_dt


def format_report_date(value: date | datetime) -> str:
    """Format as M/D/YYYY without zero padding."""
    return f"{value.month}/{value.day}/{value.year}"
