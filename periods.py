from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional, Union
from zoneinfo import ZoneInfo

from config import get_settings

DateLike = Union[date, datetime, str, None]

_SELECTOR_ALIASES = {
    "7days": "last_7_days",
    "last_7_days": "last_7_days",
    "this_month": "this_month",
    "thisMonth": "this_month",
    "last_month": "last_month",
    "lastMonth": "last_month",
    "custom": "custom",
}

# Day-series fallback when a bound is open.
DEFAULT_SERIES_DAYS = 30


@dataclass(frozen=True)
class Period:
    slug: str
    start: Optional[datetime]
    end: Optional[datetime]

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def days(self, *, now: Optional[datetime] = None) -> Iterator[date]:
        """Every calendar day of the period, oldest first.

        Open bounds fall back to a window of DEFAULT_SERIES_DAYS ending today
        (or ending at ``end`` when only the start is open). A start with an open
        end runs up to today, however far back the start is.
        """
        end = self.end or end_of_day(now or local_now())
        start = self.start or start_of_day(
            end - timedelta(days=DEFAULT_SERIES_DAYS - 1)
        )
        current = start.date()
        while current <= end.date():
            yield current
            current += timedelta(days=1)


def local_now() -> datetime:
    """Naive wall-clock time in the configured timezone."""
    tz = ZoneInfo(get_settings().timezone)
    return datetime.now(tz).replace(tzinfo=None)


def start_of_day(value: Union[date, datetime]) -> datetime:
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min)


def end_of_day(value: Union[date, datetime]) -> datetime:
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.max)


def _coerce_day(value: DateLike) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def resolve_period(
    selector: Optional[str],
    start: DateLike = None,
    end: DateLike = None,
    *,
    now: Optional[datetime] = None,
) -> Period:
    """Map a period selector to inclusive ``[start, end]`` instants.

    Never raises: unknown selectors and unparseable custom bounds leave the
    corresponding side open, which callers treat as "no filtering".
    """
    now = now or local_now()
    slug = _SELECTOR_ALIASES.get((selector or "").strip())

    if slug == "last_7_days":
        return Period(slug, start_of_day(now - timedelta(days=6)), end_of_day(now))
    if slug == "this_month":
        return Period(slug, start_of_day(now.replace(day=1)), end_of_day(now))
    if slug == "last_month":
        last_month_end = now.date().replace(day=1) - date.resolution
        return Period(
            slug,
            start_of_day(last_month_end.replace(day=1)),
            end_of_day(last_month_end),
        )
    if slug == "custom":
        start_day = _coerce_day(start)
        end_day = _coerce_day(end)
        return Period(
            slug,
            start_of_day(start_day) if start_day else None,
            end_of_day(end_day) if end_day else None,
        )
    return Period("all", None, None)


def month_key(value: Union[date, datetime]) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def target_month(period: Period, *, now: Optional[datetime] = None) -> str:
    """Calendar month budgets are checked against for this period."""
    reference = period.start or now or local_now()
    return month_key(reference)


def month_period(key: str) -> Period:
    """Whole-month period for a ``YYYY-MM`` key; raises ValueError when malformed."""
    year_str, month_str = key.split("-", 1)
    first = date(int(year_str), int(month_str), 1)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return Period(
        "month", start_of_day(first), end_of_day(next_month - date.resolution)
    )
