from __future__ import annotations

from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reading and cell normalization.

Cell values arrive from openpyxl (dataset store) or pandas (inspection).
Both may carry ``None``, NaN/NaT, blank strings, numbers or datetimes; the
helpers here give them one meaning.
"""

__all__ = [
    "InvalidTimestampError",
    "SheetHeaderError",
    "cell_text",
    "has_value",
    "is_blank",
    "parse_timestamp",
    "read_sheet_frame",
]


class SheetHeaderError(Exception):
    """Raised when the header row (1st line) is missing."""


class InvalidTimestampError(ValueError):
    """Raised when a non-empty timestamp cell cannot be read as a date."""


def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and strings that are empty after stripping."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if pd.api.types.is_scalar(value):
        return bool(pd.isna(value))
    return False


def has_value(value: Any) -> bool:
    """Strict presence: only None, ``""`` and NaN/NaT count as empty.

    Used for the ticket cell, where any existing content (even whitespace)
    marks the row as processed.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if pd.api.types.is_scalar(value):
        return not bool(pd.isna(value))
    return True


def cell_text(value: Any) -> str:
    """Render a cell value as text. Whole-number floats lose their ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return str(value)


def parse_timestamp(value: Any, tz: tzinfo | None = None) -> datetime:
    """Read a timestamp cell as a datetime.

    Aware values are converted to ``tz`` when given; naive values are taken
    as already being local time.

    Raises:
        InvalidTimestampError: value is blank, numeric or not a parseable date
    """
    if is_blank(value):
        raise InvalidTimestampError("timestamp is empty")

    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = pd.to_datetime(value.strip())
        except (ValueError, TypeError, OverflowError) as e:
            raise InvalidTimestampError(f"unparseable timestamp {value!r}: {e}") from e
        if pd.isna(parsed):
            raise InvalidTimestampError(f"unparseable timestamp {value!r}")
        ts = parsed.to_pydatetime()
    else:
        # numbers etc. (openpyxl already converts date-formatted cells)
        raise InvalidTimestampError(f"unsupported timestamp value {value!r} ({type(value).__name__})")

    if tz is not None and ts.tzinfo is not None:
        ts = ts.astimezone(tz)
    return ts


def read_sheet_frame(path: Path, sheet: str | None = None) -> pd.DataFrame:
    """Read one sheet raw (no header applied) as an object-typed DataFrame.

    ``keep_default_na=False`` so that literal strings such as ``NA`` or
    ``N/A`` (common in middle-name columns) stay text.
    """
    xls = pd.ExcelFile(path)
    name: str | int = sheet if sheet is not None else 0
    if sheet is not None and sheet not in xls.sheet_names:
        raise SheetHeaderError(f"sheet '{sheet}' not found in {path.name}")
    df = xls.parse(name, header=None, dtype=object, keep_default_na=False, na_values=[""])
    if df.shape[0] < 1:
        raise SheetHeaderError(f"sheet '{sheet or xls.sheet_names[0]}' has no header row")
    return df
