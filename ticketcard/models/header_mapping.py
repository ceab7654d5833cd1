from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

"""HeaderMapping model.

Maps header names (row 1 of the sheet) to 0-based column indexes. Built once
per scan and handed to the card stage so that the header is not re-read per row.
"""

__all__ = [
    "HeaderMapping",
]


@dataclass(frozen=True)
class HeaderMapping:
    """Header name -> 0-based column index.

    Blank header cells are not mapped. When a name repeats, the right-most
    column wins.
    """
    columns: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_header_row(cls, header_row: Sequence[Any]) -> HeaderMapping:
        columns: dict[str, int] = {}
        for index, name in enumerate(header_row):
            if name is None:
                continue
            key = str(name)
            if key == "":
                continue
            columns[key] = index
        return cls(columns=columns)

    def __contains__(self, name: object) -> bool:
        return name in self.columns

    def __len__(self) -> int:
        return len(self.columns)

    def index_of(self, name: str) -> int | None:
        return self.columns.get(name)

    def value(self, row: Sequence[Any], name: str) -> Any:
        """Return the raw cell value under ``name``, or None when absent."""
        index = self.columns.get(name)
        if index is None or index >= len(row):
            return None
        return row[index]
