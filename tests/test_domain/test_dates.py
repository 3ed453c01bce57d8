"""Tests for the calendar helpers in habitflow.domain.dates."""

from habitflow.domain import dates


class TestParsing:
    def test_valid_iso_date(self):
        assert dates.is_valid_date("2025-03-10")

    def test_rejects_malformed_and_impossible_dates(self):
        assert not dates.is_valid_date("2025-3-10")
        assert not dates.is_valid_date("2025-02-30")
        assert not dates.is_valid_date("")
        assert not dates.is_valid_date(None)

    def test_compare_is_three_way(self):
        assert dates.compare("2025-03-09", "2025-03-10") == -1
        assert dates.compare("2025-03-10", "2025-03-10") == 0
        assert dates.compare("2025-03-11", "2025-03-10") == 1


class TestArithmetic:
    def test_add_days_crosses_month_and_year(self):
        assert dates.add_days("2025-03-01", -1) == "2025-02-28"
        assert dates.add_days("2024-12-31", 1) == "2025-01-01"
        assert dates.add_days("2024-02-28", 1) == "2024-02-29"

    def test_add_days_echoes_malformed_input(self):
        assert dates.add_days("not-a-date", 3) == "not-a-date"

    def test_days_between(self):
        assert dates.days_between("2025-03-01", "2025-03-10") == 9
        assert dates.days_between("2025-03-10", "2025-03-01") == -9
        assert dates.days_between("bad", "2025-03-01") is None

    def test_date_range_is_oldest_first_and_inclusive(self):
        assert dates.date_range("2025-03-02", 3) == ["2025-02-28", "2025-03-01", "2025-03-02"]
        assert dates.date_range("2025-03-02", 0) == []


class TestCalendarFields:
    def test_day_of_week_is_sunday_first(self):
        assert dates.day_of_week("2025-03-09") == 0  # Sunday
        assert dates.day_of_week("2025-03-10") == 1  # Monday
        assert dates.day_of_week("2025-03-15") == 6  # Saturday
        assert dates.day_of_week("garbage") is None

    def test_day_of_month(self):
        assert dates.day_of_month("2025-01-31") == 31
        assert dates.day_of_month("nope") is None

    def test_days_in_month(self):
        assert dates.days_in_month(2024, 2) == 29
        assert dates.days_in_month(2025, 2) == 28
        assert dates.days_in_month(2025, 4) == 30
        assert dates.days_in_month(2025, 13) == 0

    def test_month_name(self):
        assert dates.month_name(3) == "March"
        assert dates.month_name(0) == ""


class TestFormatting:
    def test_format_time_12h(self):
        assert dates.format_time_12h("09:00") == "9:00 AM"
        assert dates.format_time_12h("00:05") == "12:05 AM"
        assert dates.format_time_12h("12:30") == "12:30 PM"
        assert dates.format_time_12h("23:59") == "11:59 PM"

    def test_format_time_12h_malformed(self):
        assert dates.format_time_12h("") == ""
        assert dates.format_time_12h(None) == ""
        assert dates.format_time_12h("25:00") == ""
        assert dates.format_time_12h("9am") == ""

    def test_ordinal_suffix(self):
        assert [dates.ordinal_suffix(n) for n in (1, 2, 3, 4, 11, 12, 13, 21, 22, 31)] == [
            "1st", "2nd", "3rd", "4th", "11th", "12th", "13th", "21st", "22nd", "31st",
        ]
