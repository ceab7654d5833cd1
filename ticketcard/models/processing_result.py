from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .header_mapping import HeaderMapping
from .ticket import TicketedRow

"""Result models for a ticketing run.

AssignmentResult is what the numbering stage returns; RunResult aggregates
numbering and card generation for the SUMMARY line.
"""

__all__ = [
    "AssignmentResult",
    "RunResult",
]


@dataclass(frozen=True)
class AssignmentResult:
    """Outcome of one numbering scan."""
    header: HeaderMapping
    ticketed: list[TicketedRow] = field(default_factory=list)
    scanned_rows: int = 0  # data rows visited (header excluded)
    already_ticketed: int = 0
    waiting_rows: int = 0  # no timestamp yet
    invalid_rows: int = 0  # unparseable timestamp
    start_counter: int = 0
    last_ticket_number: int = 0


@dataclass(frozen=True)
class RunResult:
    """Aggregated results of assign + card generation."""
    scanned_rows: int
    ticketed_rows: int
    already_ticketed: int
    waiting_rows: int
    invalid_rows: int
    cards_created: int
    cards_failed: int
    last_ticket_number: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    failed_rows: list[int] = field(default_factory=list)  # rows whose card could not be generated

    @property
    def partial_failure(self) -> bool:
        return self.cards_failed > 0 or self.invalid_rows > 0
