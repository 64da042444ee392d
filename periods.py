from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from errors import InvalidArgument, MissingRange
from schemas import DateRange


EPOCH = date(1970, 1, 1)

PERIODS = (
    "all",
    "this-week",
    "last-week",
    "this-month",
    "last-month",
    "this-year",
    "custom",
)


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def _month_end(first: date) -> date:
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def _week_start(today: date, week_start: int) -> date:
    return today - timedelta(days=(today.weekday() - week_start) % 7)


def normalize_period(period: Optional[str]) -> str:
    slug = (period or "").strip().lower().replace("_", "-")
    return slug if slug in PERIODS else "this-month"


def resolve_period(
    period: Optional[str],
    custom_range: Optional[DateRange] = None,
    *,
    today: Optional[date] = None,
    week_start: int = 0,
) -> Period:
    """Turn a period slug into an inclusive ``[start, end]`` date interval.

    Weeks begin on ``week_start`` (0 = Monday ... 6 = Sunday). Named periods
    end on the last day of the period, ``all`` ends today. Unknown slugs
    resolve as ``this-month``.
    """
    today = today or date.today()
    slug = normalize_period(period)

    if slug == "all":
        return Period("all", EPOCH, today)
    if slug == "this-week":
        start = _week_start(today, week_start)
        return Period("this-week", start, start + timedelta(days=6))
    if slug == "last-week":
        start = _week_start(today, week_start) - timedelta(days=7)
        return Period("last-week", start, start + timedelta(days=6))
    if slug == "last-month":
        first_this = today.replace(day=1)
        last_month_end = first_this - date.resolution
        return Period("last-month", last_month_end.replace(day=1), last_month_end)
    if slug == "this-year":
        return Period("this-year", date(today.year, 1, 1), date(today.year, 12, 31))
    if slug == "custom":
        if custom_range is None:
            raise MissingRange()
        if custom_range.start_date > custom_range.end_date:
            raise InvalidArgument("Start date must be before end date")
        return Period("custom", custom_range.start_date, custom_range.end_date)

    first = today.replace(day=1)
    return Period("this-month", first, _month_end(first))
