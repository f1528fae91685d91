from datetime import datetime, timezone

from heliclockter import datetime_utc


def start_of_day(moment: datetime_utc) -> datetime_utc:
    return datetime_utc.from_datetime(
        datetime(moment.year, moment.month, moment.day, tzinfo=timezone.utc)
    )


def days_between(first: datetime_utc, last: datetime_utc) -> int:
    return (start_of_day(last) - start_of_day(first)).days
