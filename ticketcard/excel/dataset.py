from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

"""Dataset store: positional access to the response sheet.

Row and column numbers are 1-based, like the sheet itself. ``get_values()``
returns rows as lists padded to ``last_column()`` so that index ``c - 1`` is
always valid for column ``c``.
"""

__all__ = [
    "DatasetError",
    "DatasetStore",
    "ExcelDatasetStore",
]


class DatasetError(Exception):
    pass


class DatasetStore(Protocol):
    def get_values(self) -> list[list[Any]]: ...

    def get_row(self, row: int) -> list[Any]: ...

    def get_value(self, row: int, column: int) -> Any: ...

    def set_value(self, row: int, column: int, value: Any) -> None: ...

    def last_row(self) -> int: ...

    def last_column(self) -> int: ...

    @property
    def name(self) -> str: ...

    @property
    def sheet_name(self) -> str: ...


class ExcelDatasetStore:
    """``.xlsx`` workbook backend (openpyxl).

    Every ``set_value`` saves the workbook so a written ticket survives an
    interrupted run.
    """

    def __init__(self, path: Path, sheet: str | None = None, *, autosave: bool = True) -> None:
        if not path.exists():
            raise DatasetError(f"workbook not found: {path}")
        self.path = path
        self.autosave = autosave
        try:
            self._wb = load_workbook(path)
        except (OSError, BadZipFile, InvalidFileException, KeyError) as e:
            raise DatasetError(f"cannot open workbook {path}: {e}") from e
        if sheet is None:
            self._ws = self._wb.active
        else:
            if sheet not in self._wb.sheetnames:
                raise DatasetError(f"sheet '{sheet}' not found in {path.name}")
            self._ws = self._wb[sheet]

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def sheet_name(self) -> str:
        return self._ws.title

    def last_row(self) -> int:
        # openpyxl reports 1 for an empty sheet
        if self._ws.max_row == 1 and self._ws.max_column == 1 and self._ws.cell(1, 1).value is None:
            return 0
        return self._ws.max_row

    def last_column(self) -> int:
        if self.last_row() == 0:
            return 0
        return self._ws.max_column

    def get_values(self) -> list[list[Any]]:
        width = self.last_column()
        rows = self.last_row()
        if rows == 0:
            return []
        return [
            list(r)
            for r in self._ws.iter_rows(min_row=1, max_row=rows, max_col=width, values_only=True)
        ]

    def get_row(self, row: int) -> list[Any]:
        if row < 1 or row > self.last_row():
            raise DatasetError(f"row {row} out of range 1..{self.last_row()}")
        width = self.last_column()
        return [self._ws.cell(row=row, column=c).value for c in range(1, width + 1)]

    def get_value(self, row: int, column: int) -> Any:
        return self._ws.cell(row=row, column=column).value

    def set_value(self, row: int, column: int, value: Any) -> None:
        self._ws.cell(row=row, column=column, value=value)
        if self.autosave:
            self.save()

    def save(self) -> None:
        try:
            self._wb.save(self.path)
        except OSError as e:
            raise DatasetError(f"cannot save workbook {self.path}: {e}") from e
