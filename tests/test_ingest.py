import logging
from datetime import date

import pandas as pd
import pytest

from rate_compare.errors import UsageSourceError
from rate_compare.ingest import assess_coverage, read_usage_csv, recent_full_years
from rate_compare.models import BillingWindow

PREAMBLE = "Usage data provided for informational purposes only\nNot a bill\n"


def _write(tmp_path, body: str, preamble: str = PREAMBLE):
    path = tmp_path / "usage.csv"
    path.write_text(preamble + body, encoding="utf-8")
    return path


def test_reads_export(tmp_path) -> None:
    path = _write(
        tmp_path,
        "Hour, kWh\n2024-07-15 15:00, 10.0\n2024-07-15 16:00 ,  2.5\n",
    )
    usage = read_usage_csv(path)

    assert usage.tolist() == [10.0, 2.5]
    assert list(usage.index) == [
        pd.Timestamp("2024-07-15 15:00"),
        pd.Timestamp("2024-07-15 16:00"),
    ]


def test_skips_invalid_rows_with_warning(tmp_path, caplog) -> None:
    path = _write(
        tmp_path,
        "Hour,kWh\n"
        "2024-07-15 15:00,1.0\n"
        "15/07/2024 16:00,2.0\n"
        "2024-07-15 17:00,n/a\n"
        "2024-07-15 18:00,\n"
        "2024-07-15 19:00,4.0\n",
    )
    with caplog.at_level(logging.WARNING, logger="rate_compare.ingest"):
        usage = read_usage_csv(path)

    assert usage.tolist() == [1.0, 4.0]
    messages = [record.getMessage() for record in caplog.records]
    assert any("invalid timestamp '15/07/2024 16:00'" in m for m in messages)
    assert any("invalid energy value 'n/a'" in m for m in messages)
    assert len(caplog.records) == 3


def test_extra_columns_are_ignored(tmp_path) -> None:
    path = _write(tmp_path, "Meter,Hour,kWh,Cost\nA1,2024-01-01 00:00,1.5,0.1\n")
    assert read_usage_csv(path).tolist() == [1.5]


def test_window_filters_dates(tmp_path) -> None:
    path = _write(
        tmp_path,
        "Hour,kWh\n2024-03-31 23:00,1.0\n2024-04-01 00:00,2.0\n2025-02-01 00:00,3.0\n",
    )
    window = BillingWindow(start=date(2024, 4, 1), end=date(2025, 1, 31))
    assert read_usage_csv(path, window=window).tolist() == [2.0]


def test_custom_columns_and_preamble(tmp_path) -> None:
    path = _write(tmp_path, "timestamp,usage_kwh\n2024-01-01 00:00,0.7\n", preamble="")
    usage = read_usage_csv(
        path, timestamp_column="timestamp", energy_column="usage_kwh", skip_lines=0
    )
    assert usage.tolist() == [0.7]


def test_missing_file_is_fatal(tmp_path) -> None:
    with pytest.raises(UsageSourceError):
        read_usage_csv(tmp_path / "absent.csv")


def test_missing_column_is_fatal(tmp_path) -> None:
    path = _write(tmp_path, "Date,Usage\n2024-01-01 00:00,1.0\n")
    with pytest.raises(UsageSourceError, match="Hour"):
        read_usage_csv(path)


def test_empty_file_is_fatal(tmp_path) -> None:
    path = _write(tmp_path, "", preamble="")
    with pytest.raises(UsageSourceError):
        read_usage_csv(path)


def test_trailing_commas_are_ignored(tmp_path) -> None:
    path = _write(tmp_path, "Hour,kWh\n2024-07-15 15:00,1.5,\n2024-07-15 16:00,2.5,\n")
    usage = read_usage_csv(path)

    assert usage.tolist() == [1.5, 2.5]
    assert usage.index[0] == pd.Timestamp("2024-07-15 15:00")


def test_rows_with_extra_fields_are_read(tmp_path) -> None:
    path = _write(
        tmp_path,
        "Hour,kWh\n"
        "2024-07-15 15:00,1.5,estimated,meter 2\n"
        "2024-07-15 16:00,2.5\n",
    )
    assert read_usage_csv(path).tolist() == [1.5, 2.5]


def test_short_rows_are_skipped_by_position(tmp_path, caplog) -> None:
    path = _write(
        tmp_path,
        "Hour,kWh\n2024-07-15 15:00,1.5,\n2024-07-15 16:00\n2024-07-15 17:00,0.5\n",
    )
    with caplog.at_level(logging.WARNING, logger="rate_compare.ingest"):
        usage = read_usage_csv(path)

    assert usage.tolist() == [1.5, 0.5]
    assert [record.getMessage() for record in caplog.records] == [
        "Skipping invalid energy value '' on data row 2"
    ]


def test_header_is_found_after_longer_preamble(tmp_path) -> None:
    preamble = "Account,12345\nService address,1 Main St\nNotes\n"
    path = _write(
        tmp_path,
        "Usage Hour,Usage Amount (kWh),Cost\n2024-01-01 00:00,0.9,0.07\n",
        preamble=preamble,
    )
    assert read_usage_csv(path).tolist() == [0.9]


def test_header_search_ignores_case(tmp_path) -> None:
    path = _write(tmp_path, "HOUR,KWH\n2024-01-01 00:00,1.25\n", preamble="")
    assert read_usage_csv(path).tolist() == [1.25]


def test_explicit_header_position_needs_exact_names(tmp_path) -> None:
    path = _write(tmp_path, "Usage Hour,kWh\n2024-01-01 00:00,1.0\n")
    with pytest.raises(UsageSourceError, match="missing column"):
        read_usage_csv(path, skip_lines=2)


def test_header_beyond_search_is_fatal(tmp_path) -> None:
    preamble = "".join(f"note {line}\n" for line in range(20))
    path = _write(tmp_path, "Hour,kWh\n2024-01-01 00:00,1.0\n", preamble=preamble)
    with pytest.raises(UsageSourceError, match="first 20 lines"):
        read_usage_csv(path)


def _hourly(start: str, periods: int, freq: str = "h") -> pd.Series:
    index = pd.date_range(start, periods=periods, freq=freq)
    return pd.Series(1.0, index=index, name="kWh")


def test_short_span_is_reported(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="rate_compare.ingest"):
        report = assess_coverage(_hourly("2024-07-01", 24 * 10))

    assert report.span_days == pytest.approx(10 - 1 / 24)
    assert report.gap_count == 0
    assert report.full_years == 0
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "at least 30 are needed" in warnings[0].getMessage()


def test_gaps_are_counted(caplog) -> None:
    usage = _hourly("2024-01-01", 60, freq="2h")
    with caplog.at_level(logging.DEBUG, logger="rate_compare.ingest"):
        report = assess_coverage(usage, min_days=1)

    assert report.gap_count == 59
    assert report.reading_count == 60
    assert "Detected 59 gaps" in caplog.text
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_year_of_readings_is_not_flagged(caplog) -> None:
    usage = _hourly("2023-01-01", 24 * 366)
    with caplog.at_level(logging.INFO, logger="rate_compare.ingest"):
        report = assess_coverage(usage)

    assert report.full_years == 1
    assert report.start == pd.Timestamp("2023-01-01").to_pydatetime()
    assert caplog.records == []


def test_empty_usage_has_no_coverage(caplog) -> None:
    empty = pd.Series([], index=pd.DatetimeIndex([]), dtype=float)
    with caplog.at_level(logging.WARNING, logger="rate_compare.ingest"):
        report = assess_coverage(empty)

    assert report.span_days == 0.0
    assert report.start is None
    assert "No readings" in caplog.text


def test_recent_full_years_trims_oldest_readings() -> None:
    usage = _hourly("2022-06-01", 24 * 800, freq="h")
    trimmed = recent_full_years(usage)

    assert trimmed.index.max() == usage.index.max()
    assert trimmed.index.min() == usage.index.max() - pd.Timedelta(days=730)
    short = _hourly("2024-01-01", 24 * 100)
    assert recent_full_years(short).equals(short)
