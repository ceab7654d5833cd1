"""Domain models for the ticket numbering and card generation tool."""

from .card import CardFields, CardResult
from .error_record import ErrorRecord
from .header_mapping import HeaderMapping
from .processing_result import AssignmentResult, RunResult
from .ticket import RowStatus, TicketedRow

__all__ = [
    # Sheet structure
    "HeaderMapping",
    # Numbering
    "RowStatus",
    "TicketedRow",
    "AssignmentResult",
    # Cards
    "CardFields",
    "CardResult",
    # Results
    "RunResult",
    "ErrorRecord",
]
