"""Read hourly usage exports into a kWh series.

The utility's export starts with a few disclaimer lines, followed by a header
row naming the timestamp (``Hour``) and energy (``kWh``) columns. The header
is found by searching the first lines of the file unless its position is
given. Data rows may carry trailing or extra fields, which are ignored. Rows
that fail to parse are skipped and logged; an unreadable file is fatal.
"""

from __future__ import annotations

import csv
import itertools
import logging
from pathlib import Path

import numpy as np
import pandas as pd

from rate_compare.errors import UsageSourceError
from rate_compare.models import TIMESTAMP_FORMAT, BillingWindow, CoverageReport

_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMESTAMP_COLUMN = "Hour"
DEFAULT_ENERGY_COLUMN = "kWh"
HEADER_SEARCH_LINES = 20

MIN_COVERAGE_DAYS = 30
MAX_READING_GAP = pd.Timedelta(minutes=90)
GAP_WARNING_THRESHOLD = 50
DAYS_PER_YEAR = 365

_ENCODING = "utf-8-sig"


def _find_column(cells: list[str], name: str, exclude: int = -1) -> int:
    needle = name.lower()
    for position, cell in enumerate(cells):
        if position != exclude and needle in cell.lower():
            return position
    return -1


def _locate_header(
    path: Path,
    timestamp_column: str,
    energy_column: str,
    skip_lines: int | None,
) -> tuple[int, str, str]:
    """Return the header line number and the two column names found on it."""
    search = HEADER_SEARCH_LINES if skip_lines is None else skip_lines + 1
    try:
        with path.open("r", encoding=_ENCODING, newline="") as f:
            rows = list(itertools.islice(csv.reader(f), search))
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise UsageSourceError(f"Cannot read usage file {path}: {exc}") from exc

    if skip_lines is not None:
        if len(rows) <= skip_lines:
            raise UsageSourceError(f"Usage file {path} has no header row")
        return skip_lines, timestamp_column, energy_column

    if not any(rows):
        raise UsageSourceError(f"Usage file {path} has no header row")
    for line, row in enumerate(rows):
        cells = [cell.strip() for cell in row]
        timestamp_at = _find_column(cells, timestamp_column)
        energy_at = _find_column(cells, energy_column, exclude=timestamp_at)
        if timestamp_at != -1 and energy_at != -1:
            _LOGGER.debug("Found header on line %d of %s", line + 1, path)
            return line, cells[timestamp_at], cells[energy_at]
    raise UsageSourceError(
        f"Could not find {timestamp_column!r} and {energy_column!r} columns "
        f"in the first {HEADER_SEARCH_LINES} lines of {path}"
    )


def read_usage_csv(
    path: str | Path,
    window: BillingWindow | None = None,
    timestamp_column: str = DEFAULT_TIMESTAMP_COLUMN,
    energy_column: str = DEFAULT_ENERGY_COLUMN,
    skip_lines: int | None = None,
) -> pd.Series:
    """Load readings from ``path`` as a series of kWh indexed by timestamp.

    Args:
        path: CSV export to read.
        window: Optional inclusive date range to keep.
        timestamp_column: Header of the ``YYYY-MM-DD HH:MM`` column. When the
            header is searched for, any cell containing this text matches,
            ignoring case.
        energy_column: Header of the kWh column, matched the same way.
        skip_lines: Number of lines before the header row, in which case both
            column names must match exactly. ``None`` searches the first
            lines of the file for the header instead.

    Raises:
        UsageSourceError: If the file cannot be read or lacks a required column.
    """
    path = Path(path)
    header_line, timestamp_column, energy_column = _locate_header(
        path, timestamp_column, energy_column, skip_lines
    )

    try:
        frame = pd.read_csv(
            path,
            skiprows=header_line,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            index_col=False,
            encoding=_ENCODING,
            engine="python",
        )
    except (OSError, UnicodeDecodeError) as exc:
        raise UsageSourceError(f"Cannot read usage file {path}: {exc}") from exc
    except pd.errors.EmptyDataError as exc:
        raise UsageSourceError(f"Usage file {path} has no header row") from exc
    except pd.errors.ParserError as exc:
        raise UsageSourceError(f"Cannot parse usage file {path}: {exc}") from exc

    frame.columns = [str(column).strip() for column in frame.columns]
    missing = [c for c in (timestamp_column, energy_column) if c not in frame.columns]
    if missing:
        raise UsageSourceError(
            f"Usage file {path} is missing column(s): {', '.join(missing)}"
        )

    # Short rows leave NaN in the trailing columns.
    raw_timestamps = frame[timestamp_column].fillna("").str.strip()
    raw_energy = frame[energy_column].fillna("").str.strip()
    timestamps = pd.to_datetime(
        raw_timestamps, format=TIMESTAMP_FORMAT, errors="coerce"
    )
    energy = pd.to_numeric(raw_energy, errors="coerce")

    invalid = (timestamps.isna() | energy.isna()).to_numpy()
    for position in np.flatnonzero(invalid):
        if pd.isna(timestamps.iloc[position]):
            _LOGGER.warning(
                "Skipping invalid timestamp %r on data row %d",
                raw_timestamps.iloc[position],
                position + 1,
            )
        else:
            _LOGGER.warning(
                "Skipping invalid energy value %r on data row %d",
                raw_energy.iloc[position],
                position + 1,
            )

    usage = pd.Series(
        energy[~invalid].to_numpy(dtype=float),
        index=pd.DatetimeIndex(timestamps[~invalid]),
        name=DEFAULT_ENERGY_COLUMN,
    )
    if window is not None:
        usage = usage[window.mask(usage.index)]

    _LOGGER.info(
        "Read %d readings from %s (%d rows skipped)",
        len(usage),
        path,
        int(invalid.sum()),
    )
    return usage


def assess_coverage(
    usage: pd.Series,
    min_days: int = MIN_COVERAGE_DAYS,
    max_gap: pd.Timedelta = MAX_READING_GAP,
) -> CoverageReport:
    """Log whether ``usage`` spans enough time for a fair comparison.

    Gaps are counted between consecutive distinct timestamps longer than
    ``max_gap``. Nothing is removed or raised; the findings are returned.
    """
    if usage.empty:
        _LOGGER.warning("No readings to compare")
        return CoverageReport(start=None, end=None, reading_count=0, gap_count=0)

    stamps = usage.index.unique().sort_values()
    gaps = int((stamps.to_series().diff() > max_gap).sum())
    report = CoverageReport(
        start=stamps[0].to_pydatetime(),
        end=stamps[-1].to_pydatetime(),
        reading_count=len(usage),
        gap_count=gaps,
    )

    if report.span_days < min_days:
        _LOGGER.warning(
            "Only %.1f days of readings; at least %d are needed for a reliable "
            "comparison",
            report.span_days,
            min_days,
        )
    elif report.full_years == 0:
        _LOGGER.info(
            "Less than one year of readings; seasonal differences may skew "
            "the comparison"
        )
    if gaps > GAP_WARNING_THRESHOLD:
        _LOGGER.warning("Detected %d gaps longer than %s", gaps, max_gap)
    elif gaps:
        _LOGGER.debug("Detected %d gaps longer than %s", gaps, max_gap)
    return report


def recent_full_years(usage: pd.Series) -> pd.Series:
    """Keep the most recent whole years of readings, counted in 365-day years.

    Usage spanning less than a year is returned unchanged.
    """
    if usage.empty:
        return usage
    end = usage.index.max()
    years = int((end - usage.index.min()) / pd.Timedelta(days=DAYS_PER_YEAR))
    if years == 0:
        return usage
    cutoff = end - pd.Timedelta(days=years * DAYS_PER_YEAR)
    _LOGGER.info(
        "Using the most recent %d full year(s) of readings, from %s", years, cutoff
    )
    return usage[usage.index >= cutoff]


__all__ = ["assess_coverage", "read_usage_csv", "recent_full_years"]
