from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Ticket domain models.

RowStatus tells what the assigner decided for a scanned data row.
TicketedRow is the "row N was newly ticketed" event handed to the card stage.
"""

__all__ = [
    "RowStatus",
    "TicketedRow",
]


class RowStatus(Enum):
    """Outcome of scanning one data row.

    - TICKETED: number assigned in this scan
    - ALREADY_TICKETED: ticket cell already had a value (left untouched)
    - WAITING: no timestamp yet (submission not completed)
    - INVALID: timestamp present but not parseable as a date
    """
    TICKETED = "ticketed"
    ALREADY_TICKETED = "already_ticketed"
    WAITING = "waiting"
    INVALID = "invalid"


@dataclass(frozen=True)
class TicketedRow:
    row_number: int  # 1-based sheet row
    ticket_number: int  # counter value consumed by this row
    ticket_id: str  # NNNNN-MMDD
    values: list[Any]  # row snapshot taken at scan time (ticket cell included)
