"""
Tests for the local clock and the reporting buckets

Covers:
- calendar date parsing and rejection of malformed input
- bucket boundaries for every period, labels in and out
- previous bucket arithmetic across month, quarter and year boundaries
- order membership with the business date / creation time fallback
"""

import pytest
from datetime import date, datetime

from lunapos.common import dates
from lunapos.common.dates import (
    Period, bucket_label, day_bucket, effective_business_day, local_now,
    local_today, order_in_bucket, parse_calendar_date, previous_bucket,
    range_bucket, resolve_bucket
)
from lunapos.common.exceptions import ValidationError


# ===== CLOCK =====

class TestClock:

    def test_local_now_uses_pinned_clock(self, clock):
        assert local_now() == datetime(2024, 3, 15, 10, 0, 0)
        assert local_today() == date(2024, 3, 15)

    def test_clock_moves(self, clock):
        clock.set(datetime(2024, 3, 16, 0, 30))
        assert local_today() == date(2024, 3, 16)

    def test_unpinned_clock_is_naive(self):
        assert dates.local_now().tzinfo is None


# ===== PARSING =====

class TestParseCalendarDate:

    def test_plain_date(self):
        assert parse_calendar_date("2024-03-15") == date(2024, 3, 15)

    def test_timestamp_keeps_its_date(self):
        assert parse_calendar_date("2024-03-15T23:30:00") == date(2024, 3, 15)

    def test_date_objects_pass_through(self):
        assert parse_calendar_date(date(2024, 1, 2)) == date(2024, 1, 2)
        assert parse_calendar_date(datetime(2024, 1, 2, 8, 0)) == date(2024, 1, 2)

    @pytest.mark.parametrize("value", ["15/03/2024", "2024-02-30", "", "yesterday"])
    def test_malformed_dates_are_rejected(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_calendar_date(value)
        assert exc_info.value.status_code == 400


# ===== BUCKETS =====

class TestResolveBucket:

    def test_day_is_inclusive_to_the_last_microsecond(self):
        bucket = resolve_bucket(Period.DAY, "2024-03-15")
        assert bucket.start == datetime(2024, 3, 15, 0, 0, 0)
        assert bucket.end == datetime(2024, 3, 15, 23, 59, 59, 999999)
        assert bucket.contains(datetime(2024, 3, 15, 23, 59, 59, 999999))
        assert not bucket.contains(datetime(2024, 3, 16, 0, 0, 0))

    def test_iso_week_starts_on_monday(self):
        bucket = resolve_bucket(Period.WEEK, "2021-W01")
        assert bucket.first_day == date(2021, 1, 4)
        assert bucket.last_day == date(2021, 1, 10)

    def test_week_of_a_date(self):
        bucket = resolve_bucket(Period.WEEK, date(2024, 3, 15))
        assert bucket.first_day == date(2024, 3, 11)
        assert bucket.label == "2024-W11"

    def test_leap_february(self):
        bucket = resolve_bucket(Period.MONTH, "2024-02")
        assert bucket.first_day == date(2024, 2, 1)
        assert bucket.last_day == date(2024, 2, 29)
        assert len(list(bucket.days())) == 29

    def test_quarter(self):
        bucket = resolve_bucket(Period.QUARTER, "2024-Q4")
        assert bucket.first_day == date(2024, 10, 1)
        assert bucket.last_day == date(2024, 12, 31)

    def test_year(self):
        bucket = resolve_bucket(Period.YEAR, "2023")
        assert (bucket.first_day, bucket.last_day) == (date(2023, 1, 1), date(2023, 12, 31))

    @pytest.mark.parametrize("period,label", [
        (Period.WEEK, "2024-W54"),
        (Period.WEEK, "2024-03"),
        (Period.MONTH, "2024-13"),
        (Period.QUARTER, "2024-Q5"),
        (Period.YEAR, "24"),
        (Period.DAY, "2024-3-15x"),
    ])
    def test_malformed_labels_are_rejected(self, period, label):
        with pytest.raises(ValidationError):
            resolve_bucket(period, label)

    @pytest.mark.parametrize("period,label", [
        (Period.DAY, "2024-03-15"),
        (Period.WEEK, "2024-W09"),
        (Period.MONTH, "2024-03"),
        (Period.QUARTER, "2024-Q1"),
        (Period.YEAR, "2024"),
    ])
    def test_label_matches_the_parsed_bucket(self, period, label):
        assert bucket_label(resolve_bucket(period, label)) == label

    def test_reversed_range_is_rejected(self):
        with pytest.raises(ValidationError):
            range_bucket(date(2024, 3, 15), date(2024, 3, 14))


class TestPreviousBucket:

    def test_previous_day_crosses_leap_day(self):
        assert previous_bucket(day_bucket(date(2024, 3, 1))).first_day == date(2024, 2, 29)

    def test_previous_week_crosses_year(self):
        assert previous_bucket(resolve_bucket(Period.WEEK, "2024-W01")).label == "2023-W52"

    def test_previous_month_of_january_is_december(self):
        previous = previous_bucket(resolve_bucket(Period.MONTH, "2024-01"))
        assert previous.label == "2023-12"
        assert previous.last_day == date(2023, 12, 31)

    def test_previous_quarter_of_q1_is_q4(self):
        previous = previous_bucket(resolve_bucket(Period.QUARTER, "2024-Q1"))
        assert previous.label == "2023-Q4"
        assert previous.first_day == date(2023, 10, 1)

    def test_previous_year(self):
        assert previous_bucket(resolve_bucket(Period.YEAR, "2024")).label == "2023"

    def test_nothing_before_year_one(self):
        with pytest.raises(ValidationError):
            previous_bucket(resolve_bucket(Period.YEAR, "0001"))


# ===== MEMBERSHIP =====

class TestOrderMembership:

    bucket = day_bucket(date(2024, 3, 15))

    def test_business_date_wins_over_creation_time(self):
        assert not order_in_bucket(date(2024, 3, 14), datetime(2024, 3, 15, 10, 0), self.bucket)
        assert order_in_bucket(date(2024, 3, 15), datetime(2024, 3, 16, 1, 0), self.bucket)

    def test_legacy_orders_fall_back_to_creation_time(self):
        assert order_in_bucket(None, datetime(2024, 3, 15, 0, 0), self.bucket)
        assert not order_in_bucket(None, datetime(2024, 3, 14, 23, 59, 59), self.bucket)

    def test_order_without_dates_belongs_nowhere(self):
        assert not order_in_bucket(None, None, self.bucket)

    def test_effective_business_day(self):
        assert effective_business_day(date(2024, 3, 14), datetime(2024, 3, 15, 9, 0)) == date(2024, 3, 14)
        assert effective_business_day(None, datetime(2024, 3, 15, 9, 0)) == date(2024, 3, 15)
        assert effective_business_day(None, None) is None
