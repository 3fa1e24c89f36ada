"""Tests for the volume-day CSV reader."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from volume_journal.profile.day_file import (
    UNKNOWN_DAY,
    DayFile,
    detect_day_delimiter,
    guess_date_from_filename,
    parse_day_file,
    parse_row_time,
    split_by_day,
)


NAMED = (
    "Time;Price;Volume;Bid;Ask;Now Delta Aggr\n"
    "2025-11-03 15:30:00;5000,25;120;60;60;-15\n"
    "2025-11-03 15:31:00;5000,50;80;30;50;20\n"
    "2025-11-04 09:00:00;5001,00;40;20;20;0\n"
)


class TestHelpers:
    def test_delimiter(self):
        assert detect_day_delimiter("a\tb;c") == "\t"
        assert detect_day_delimiter("a;b;c,d") == ";"
        assert detect_day_delimiter("a,b,c;d") == ","

    def test_filename_date(self):
        assert guess_date_from_filename("ES 03.11.25.csv") == "2025-11-03"
        assert guess_date_from_filename("ES_03.11.2025_profile.csv") == "2025-11-03"
        assert guess_date_from_filename("profile.csv") is None
        assert guess_date_from_filename("31.02.25.csv") is None

    def test_row_time_with_offset(self):
        ts = parse_row_time("2025-11-03T15:30:00Z")
        assert ts == datetime(2025, 11, 3, 15, 30, tzinfo=timezone.utc)
        ts = parse_row_time("2025-11-03T15:30:00+01:00")
        assert ts.utcoffset() == timedelta(hours=1)

    def test_row_time_statement_formats(self):
        assert parse_row_time("03.11.25 15:30") == datetime(2025, 11, 3, 15, 30, tzinfo=timezone.utc)
        assert parse_row_time("") is None
        assert parse_row_time("later") is None


class TestParseDayFile:
    def test_named_columns(self):
        day = parse_day_file(NAMED, "es.csv")
        assert len(day.rows) == 3
        first = day.rows[0]
        assert first.price == Decimal("5000.25")
        assert first.volume == 120
        assert first.delta_aggregate == -15
        assert first.timestamp == datetime(2025, 11, 3, 15, 30, tzinfo=timezone.utc)
        assert day.dates == ["2025-11-03", "2025-11-04"]

    def test_positional_fallback(self):
        text = "a,b,c,d,e,f\nx,100.5,30,0,0,-4\nx,100.75,20,0,0,6\n"
        day = parse_day_file(text)
        assert [r.price for r in day.rows] == [Decimal("100.5"), Decimal("100.75")]
        assert [r.volume for r in day.rows] == [30, 20]
        assert [r.delta_aggregate for r in day.rows] == [-4, 6]
        assert day.dates == []

    def test_tab_delimited_with_filename_day(self):
        text = "Price\tVolume\tDelta Aggressor\n100.25\t10\t1\n"
        day = parse_day_file(text, "ES 03.11.25.txt")
        assert day.rows[0].price == Decimal("100.25")
        assert day.rows[0].timestamp is None
        assert day.dates == ["2025-11-03"]

    def test_bad_rows(self):
        text = "Price;Volume;Delta aggr\n0;10;1\nabc;10;1\n100;-5;x\n100,25;oops;2\n"
        day = parse_day_file(text)
        assert len(day.rows) == 2
        assert day.rows[0].volume == 0
        assert day.rows[0].delta_aggregate == 0
        assert day.rows[1].volume == 0

    def test_empty_text(self):
        day = parse_day_file("", "x.csv")
        assert day.rows == []
        assert day.file_name == "x.csv"

    def test_timezone_for_naive_times(self):
        cet = timezone(timedelta(hours=1))
        day = parse_day_file(NAMED, tz=cet)
        assert day.rows[0].timestamp.utcoffset() == timedelta(hours=1)


class TestSplitByDay:
    def test_timestamped_rows_go_to_their_day(self):
        buckets = split_by_day(parse_day_file(NAMED))
        assert sorted(buckets) == ["2025-11-03", "2025-11-04"]
        assert len(buckets["2025-11-03"]) == 2
        assert len(buckets["2025-11-04"]) == 1

    def test_untimed_rows_belong_to_every_day(self):
        text = NAMED + ";5002,00;7;0;0;1\n"
        buckets = split_by_day(parse_day_file(text))
        assert len(buckets["2025-11-03"]) == 3
        assert len(buckets["2025-11-04"]) == 2

    def test_no_dates_is_unknown(self):
        day = parse_day_file("Price;Volume\n100;1\n")
        assert split_by_day(day) == {UNKNOWN_DAY: day.rows}

    def test_no_rows(self):
        assert split_by_day(DayFile()) == {}
