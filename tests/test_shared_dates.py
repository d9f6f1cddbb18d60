from datetime import date, datetime

from services.shared_dates import add_months, format_date, month_diff, parse_date, reference_date


def test_parse_date_formats():
    assert parse_date("15/01/2024") == date(2024, 1, 15)
    assert parse_date("1/2/2024") == date(2024, 2, 1)
    assert parse_date("2024-01-15") == date(2024, 1, 15)
    assert parse_date("2024-01-15T08:30:00") == date(2024, 1, 15)
    assert parse_date(datetime(2024, 1, 15, 9, 0)) == date(2024, 1, 15)
    assert parse_date(date(2024, 1, 15)) == date(2024, 1, 15)


def test_parse_date_falls_back_to_default():
    fallback = date(2000, 1, 1)
    for value in (None, "", "   ", "32/01/2024", "2024/13/01", "ayer"):
        assert parse_date(value) is None
        assert parse_date(value, default=fallback) == fallback


def test_add_months():
    assert add_months(date(2024, 1, 1), 1) == date(2024, 2, 1)
    assert add_months(date(2023, 1, 1), 12) == date(2024, 1, 1)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
    assert add_months(date(9999, 12, 15), 1) == date.max
    assert add_months(date(2023, 1, 1), 10**6) == date.max
    assert add_months(date(1, 1, 1), -1) == date.min


def test_month_diff_ignores_days_and_clamps():
    assert month_diff(date(2023, 1, 31), date(2023, 2, 1)) == 1
    assert month_diff(date(2023, 1, 1), date(2023, 1, 31)) == 0
    assert month_diff(date(2022, 6, 15), date(2024, 1, 1)) == 19
    assert month_diff(date(2025, 1, 1), date(2024, 1, 1)) == 0


def test_format_date():
    assert format_date("2024-02-01") == "01/02/2024"
    assert format_date(None) == "-"


def test_reference_date_uses_caller_value():
    assert reference_date("15/01/2024") == date(2024, 1, 15)
    assert reference_date(None) == date.today()
