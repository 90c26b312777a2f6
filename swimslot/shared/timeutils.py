from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    """Naive UTC now, matching how DateTime columns are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def consecutive_dates(start: date, days: int) -> list[date]:
    return [start + timedelta(days=offset) for offset in range(days)]


def iter_dates(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
