from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any

from ..db.properties import PropertyStore
from ..excel.dataset import DatasetStore
from ..excel.reader import InvalidTimestampError, has_value, is_blank, parse_timestamp
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.header_mapping import HeaderMapping
from ..models.processing_result import AssignmentResult
from ..models.ticket import RowStatus, TicketedRow

"""Ticket numbering stage.

Scans the response sheet once and gives every eligible row (timestamp present,
ticket cell empty) the next ``NNNNN-MMDD`` identifier. The counter is written
to the property store before the ticket cell, one row at a time, so an
interrupted scan can leave a gap in the numbering but never a duplicate.

Card generation is not triggered from here: the stage returns the newly
ticketed rows and the orchestrator hands them to the card stage.
"""

__all__ = [
    "AssignerSettings",
    "TicketAssigner",
    "classify_row",
    "format_ticket_id",
    "max_ticket_number",
    "parse_counter",
]

logger = logging.getLogger(__name__)

DEFAULT_COUNTER_PROPERTY = "lastTicketNumber"

TICKET_ID_RE = re.compile(r"^(\d+)-(\d{4})$")
_LEADING_DIGITS_RE = re.compile(r"^\s*\+?(\d+)")


def parse_counter(raw: str | None) -> int:
    """Stored counter -> int. Absent or unparseable values count as 0.

    A leading run of digits is accepted (``"12abc"`` -> 12).
    """
    if raw is None or str(raw).strip() == "":
        return 0
    m = _LEADING_DIGITS_RE.match(str(raw))
    if not m:
        logger.warning("stored ticket counter %r is not a number; starting from 0", raw)
        return 0
    return int(m.group(1))


def format_ticket_id(number: int, timestamp: datetime) -> str:
    """``00001-0307`` for number 1 and a 7 March timestamp. Wider numbers are not truncated."""
    return f"{number:05d}-{timestamp.month:02d}{timestamp.day:02d}"


def max_ticket_number(rows: Sequence[Sequence[Any]], ticket_index: int) -> int:
    """Largest NNNNN among well-formed identifiers in column ``ticket_index`` (0-based)."""
    highest = 0
    for row in rows:
        if ticket_index >= len(row) or row[ticket_index] is None:
            continue
        m = TICKET_ID_RE.match(str(row[ticket_index]).strip())
        if m:
            highest = max(highest, int(m.group(1)))
    return highest


@dataclass(frozen=True)
class AssignerSettings:
    ticket_column: int = 1  # 1-based
    timestamp_column: int = 2  # 1-based
    counter_property: str = DEFAULT_COUNTER_PROPERTY
    reconcile_with_sheet: bool = False
    timezone: tzinfo | None = None


def _cell(row: Sequence[Any], column: int) -> Any:
    index = column - 1
    return row[index] if index < len(row) else None


def classify_row(row: Sequence[Any], settings: AssignerSettings) -> RowStatus:
    """Decide what a scan would do with ``row`` without touching any store."""
    if has_value(_cell(row, settings.ticket_column)):
        return RowStatus.ALREADY_TICKETED
    ts_value = _cell(row, settings.timestamp_column)
    if is_blank(ts_value):
        return RowStatus.WAITING
    try:
        parse_timestamp(ts_value, settings.timezone)
    except InvalidTimestampError:
        return RowStatus.INVALID
    return RowStatus.TICKETED


class TicketAssigner:
    def __init__(
        self,
        dataset: DatasetStore,
        properties: PropertyStore,
        settings: AssignerSettings | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.dataset = dataset
        self.properties = properties
        self.settings = settings or AssignerSettings()
        self.error_log = error_log

    def load_counter(self) -> int:
        return parse_counter(self.properties.get_property(self.settings.counter_property))

    def run(self) -> AssignmentResult:
        """Assign identifiers to every eligible row; returns the newly ticketed rows."""
        s = self.settings
        counter = self.load_counter()
        start_counter = counter

        values = self.dataset.get_values()
        if not values:
            logger.info("sheet is empty; nothing to number")
            return AssignmentResult(header=HeaderMapping(), start_counter=counter, last_ticket_number=counter)

        header = HeaderMapping.from_header_row(values[0])
        data_rows = values[1:]

        if s.reconcile_with_sheet:
            highest = max_ticket_number(data_rows, s.ticket_column - 1)
            if highest > counter:
                logger.warning(
                    "stored counter %d is behind ticket %05d already in the sheet; continuing from %d",
                    counter, highest, highest,
                )
                counter = highest

        ticketed: list[TicketedRow] = []
        already = waiting = invalid = 0

        for row_number, row in enumerate(data_rows, start=2):
            if has_value(_cell(row, s.ticket_column)):
                already += 1
                continue
            ts_value = _cell(row, s.timestamp_column)
            if is_blank(ts_value):
                waiting += 1
                continue
            try:
                timestamp = parse_timestamp(ts_value, s.timezone)
            except InvalidTimestampError as e:
                invalid += 1
                logger.warning("row %d skipped: %s", row_number, e)
                if self.error_log is not None:
                    self.error_log.append(ErrorRecord.create(
                        workbook=self.dataset.name,
                        sheet=self.dataset.sheet_name,
                        row=row_number,
                        error_type="INVALID_TIMESTAMP",
                        message=str(e),
                    ))
                continue

            counter += 1
            ticket_id = format_ticket_id(counter, timestamp)
            # counter first: a crash between the two writes leaves a gap, not a duplicate
            self.properties.set_property(s.counter_property, str(counter))
            self.dataset.set_value(row_number, s.ticket_column, ticket_id)

            snapshot = list(row)
            if len(snapshot) < s.ticket_column:
                snapshot.extend([None] * (s.ticket_column - len(snapshot)))
            snapshot[s.ticket_column - 1] = ticket_id
            ticketed.append(TicketedRow(
                row_number=row_number,
                ticket_number=counter,
                ticket_id=ticket_id,
                values=snapshot,
            ))
            logger.debug("row %d ticket=%s", row_number, ticket_id)

        logger.info(
            "numbering done rows=%d ticketed=%d already=%d waiting=%d invalid=%d counter=%d",
            len(data_rows), len(ticketed), already, waiting, invalid, counter,
        )
        return AssignmentResult(
            header=header,
            ticketed=ticketed,
            scanned_rows=len(data_rows),
            already_ticketed=already,
            waiting_rows=waiting,
            invalid_rows=invalid,
            start_counter=start_counter,
            last_ticket_number=counter,
        )
