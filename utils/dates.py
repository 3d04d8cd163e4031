"""Calendar helpers shared by the ledger, report and history services."""
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union


def now() -> datetime:
    """Server-local timestamp, second precision is plenty for history entries."""
    return datetime.now().replace(microsecond=0)


def to_storage_datetime(value: Union[date, datetime]) -> datetime:
    """MongoDB has no pure date type, so calendar dates are stored as midnight datetimes."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, datetime.min.time())


def to_date(value: Union[date, datetime, None]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def week_bounds(today: date) -> Tuple[datetime, datetime]:
    """Returns [Sunday 00:00, next Sunday 00:00) for the week containing ``today``."""
    days_since_sunday = (today.weekday() + 1) % 7
    sunday = today - timedelta(days=days_since_sunday)
    start = datetime.combine(sunday, datetime.min.time())
    return start, start + timedelta(days=7)


def month_bounds(today: date) -> Tuple[datetime, datetime]:
    """Returns [1st 00:00, 1st of next month 00:00) for the month containing ``today``."""
    first = today.replace(day=1)
    if first.month == 12:
        following = first.replace(year=first.year + 1, month=1)
    else:
        following = first.replace(month=first.month + 1)
    return (
        datetime.combine(first, datetime.min.time()),
        datetime.combine(following, datetime.min.time()),
    )


def sunday_index(value: Union[date, datetime]) -> int:
    """Day-of-week with Sunday as 0, matching the chart label order."""
    return (value.weekday() + 1) % 7


def format_br_date(value: Union[date, datetime, None]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Client-supplied timestamps may carry an offset; stored timestamps are local and naive."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
