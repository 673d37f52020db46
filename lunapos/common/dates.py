"""
Local clock and reporting buckets

Every day-based query in the system (shift ledger, order list, analytics)
goes through this module so the bucketing rules cannot drift apart:

- All instants are naive datetimes in the shop's local time. Nothing is
  normalized to UTC; a sale at 00:30 local belongs to that local day.
- A bucket is an inclusive [start, end] range: midnight of the first day to
  the last microsecond of the last day.
- An order belongs to a bucket by its business date when it has one, and by
  its creation timestamp otherwise (records written before the business date
  existed). The SQL form of the same rule lives in
  ``lunapos.modules.orders.crud.bucket_condition``.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from lunapos.core.config import settings
from lunapos.common.exceptions import ValidationError

DateLike = Union[date, datetime, str]

END_OF_DAY = time.max

_WEEK_LABEL = re.compile(r"^(\d{4})-?W(\d{1,2})$", re.IGNORECASE)
_MONTH_LABEL = re.compile(r"^(\d{4})-(\d{1,2})$")
_QUARTER_LABEL = re.compile(r"^(\d{4})-?Q([1-4])$", re.IGNORECASE)
_YEAR_LABEL = re.compile(r"^(\d{4})$")


# ===== CLOCK =====

def _local_zone() -> Optional[ZoneInfo]:
    if not settings.TIMEZONE:
        return None
    try:
        return ZoneInfo(settings.TIMEZONE)
    except ZoneInfoNotFoundError:
        raise ValueError(f"Unknown TIMEZONE setting: {settings.TIMEZONE}")


def _system_now() -> datetime:
    zone = _local_zone()
    if zone is None:
        return datetime.now()
    return datetime.now(zone).replace(tzinfo=None)


def local_now() -> datetime:
    """Current local time, naive."""
    return _system_now()


def local_today() -> date:
    return local_now().date()


def to_local(instant: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if instant.tzinfo is None:
        return instant
    zone = _local_zone()
    return instant.astimezone(zone).replace(tzinfo=None)


def parse_calendar_date(value: DateLike) -> date:
    """
    Parse a calendar day as sent by the register.

    Accepts ``YYYY-MM-DD`` or a full ISO timestamp (its local date is used).
    """
    if isinstance(value, datetime):
        return to_local(value).date()
    if isinstance(value, date):
        return value
    text = (value or "").strip()
    try:
        if len(text) > 10:
            return to_local(datetime.fromisoformat(text.replace("Z", "+00:00"))).date()
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, END_OF_DAY)


# ===== BUCKETS =====

class Period(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


@dataclass(frozen=True)
class DateBucket:
    """Inclusive local-time range for one reporting period"""
    period: Period
    start: datetime
    end: datetime

    @property
    def first_day(self) -> date:
        return self.start.date()

    @property
    def last_day(self) -> date:
        return self.end.date()

    @property
    def label(self) -> str:
        return bucket_label(self)

    def contains(self, instant: Union[date, datetime]) -> bool:
        if isinstance(instant, datetime):
            return self.start <= to_local(instant) <= self.end
        return self.first_day <= instant <= self.last_day

    def days(self):
        day = self.first_day
        while day <= self.last_day:
            yield day
            day += timedelta(days=1)


def _bucket(period: Period, first_day: date, last_day: date) -> DateBucket:
    return DateBucket(period=period, start=start_of_day(first_day), end=end_of_day(last_day))


def _quarter_of(month: int) -> int:
    return (month - 1) // 3 + 1


def _month_bucket(year: int, month: int) -> DateBucket:
    first = date(year, month, 1)
    next_first = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return _bucket(Period.MONTH, first, next_first - timedelta(days=1))


def _quarter_bucket(year: int, quarter: int) -> DateBucket:
    first_month = (quarter - 1) * 3 + 1
    first = date(year, first_month, 1)
    last = _month_bucket(year, first_month + 2).last_day
    return _bucket(Period.QUARTER, first, last)


def _week_bucket(iso_year: int, week: int) -> DateBucket:
    monday = date.fromisocalendar(iso_year, week, 1)
    return _bucket(Period.WEEK, monday, monday + timedelta(days=6))


def _parse_label(period: Period, label: str) -> DateBucket:
    text = label.strip()
    try:
        if period == Period.DAY:
            return day_bucket(parse_calendar_date(text))
        if period == Period.WEEK:
            match = _WEEK_LABEL.match(text)
            if match:
                return _week_bucket(int(match.group(1)), int(match.group(2)))
        elif period == Period.MONTH:
            match = _MONTH_LABEL.match(text)
            if match:
                return _month_bucket(int(match.group(1)), int(match.group(2)))
        elif period == Period.QUARTER:
            match = _QUARTER_LABEL.match(text)
            if match:
                return _quarter_bucket(int(match.group(1)), int(match.group(2)))
        elif period == Period.YEAR:
            match = _YEAR_LABEL.match(text)
            if match:
                year = int(match.group(1))
                return _bucket(Period.YEAR, date(year, 1, 1), date(year, 12, 31))
    except ValueError:
        pass
    formats = {
        Period.WEEK: "YYYY-Www",
        Period.MONTH: "YYYY-MM",
        Period.QUARTER: "YYYY-Qn",
        Period.YEAR: "YYYY",
    }
    raise ValidationError(f"Invalid {period.value} '{label}', expected {formats[period]}")


def day_bucket(day: date) -> DateBucket:
    return _bucket(Period.DAY, day, day)


def range_bucket(first_day: date, last_day: date) -> DateBucket:
    """Arbitrary inclusive day range (reported as a day-period bucket)."""
    if last_day < first_day:
        raise ValidationError("endDate must be on or after startDate")
    return _bucket(Period.DAY, first_day, last_day)


def resolve_bucket(period: Union[Period, str], reference: DateLike) -> DateBucket:
    """
    Bucket of the given period that contains ``reference``.

    ``reference`` is either a date/datetime or the period's label:
    ``YYYY-MM-DD``, ``YYYY-Www`` (ISO week), ``YYYY-MM``, ``YYYY-Qn`` or ``YYYY``.
    """
    period = Period(period)
    if isinstance(reference, str):
        return _parse_label(period, reference)

    day = parse_calendar_date(reference)
    if period == Period.DAY:
        return day_bucket(day)
    if period == Period.WEEK:
        iso_year, week, _ = day.isocalendar()
        return _week_bucket(iso_year, week)
    if period == Period.MONTH:
        return _month_bucket(day.year, day.month)
    if period == Period.QUARTER:
        return _quarter_bucket(day.year, _quarter_of(day.month))
    return _bucket(Period.YEAR, date(day.year, 1, 1), date(day.year, 12, 31))


def previous_bucket(bucket: DateBucket) -> DateBucket:
    """Bucket of the same kind immediately before ``bucket``."""
    try:
        day_before = bucket.first_day - timedelta(days=1)
    except OverflowError:
        raise ValidationError(f"No {bucket.period.value} before {bucket_label(bucket)}")
    return resolve_bucket(bucket.period, day_before)


def bucket_label(bucket: DateBucket) -> str:
    day = bucket.first_day
    if bucket.period == Period.WEEK:
        iso_year, week, _ = day.isocalendar()
        return f"{iso_year}-W{week:02d}"
    if bucket.period == Period.MONTH:
        return f"{day.year}-{day.month:02d}"
    if bucket.period == Period.QUARTER:
        return f"{day.year}-Q{_quarter_of(day.month)}"
    if bucket.period == Period.YEAR:
        return str(day.year)
    return day.isoformat()


# ===== ORDER MEMBERSHIP =====

def effective_business_day(business_date: Optional[date], created_at: Optional[datetime]) -> Optional[date]:
    """Day an order is attributed to: its business date, else its creation day."""
    if business_date is not None:
        return parse_calendar_date(business_date)
    if created_at is not None:
        return to_local(created_at).date()
    return None


def order_in_bucket(business_date: Optional[date], created_at: Optional[datetime], bucket: DateBucket) -> bool:
    if business_date is not None:
        return bucket.contains(parse_calendar_date(business_date))
    if created_at is not None:
        return bucket.contains(created_at)
    return False
