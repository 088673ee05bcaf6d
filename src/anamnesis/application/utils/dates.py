"""
Calendar-day helpers.

Every helper returns a new value; nothing mutates its argument. Due-ness is
decided per calendar day, so time of day never matters for scheduling.
"""

from datetime import date, datetime, time, timedelta

DAY_FORMAT = "%Y-%m-%d"


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time(23, 59, 59), tzinfo=moment.tzinfo)


def add_days(moment: datetime, days: int) -> datetime:
    # The far-future sentinel sits at the top of the calendar.
    try:
        return moment + timedelta(days=days)
    except OverflowError:
        return datetime.max if days > 0 else datetime.min


def calendar_day(moment: datetime | date) -> date:
    return moment.date() if isinstance(moment, datetime) else moment


def today_string(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime(DAY_FORMAT)


def parse_day(value: str) -> datetime:
    """Parse `YYYY-MM-DD` or a full ISO timestamp into a naive local datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
