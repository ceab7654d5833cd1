from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any

from ..docs.store import DocumentStore, DocumentStoreError
from ..excel.dataset import DatasetStore
from ..excel.reader import cell_text, is_blank
from ..models.card import CardFields, CardResult
from ..models.header_mapping import HeaderMapping

"""Card generation stage.

For one ticketed row:
1. resolve the recognized fields by header name (all caps, ``UNKNOWN`` when empty)
2. apply the degree fallback and look up the package price
3. copy the card template into the destination folder as
   ``AccountNumber - IDNumber - LastName``
4. replace every ``{{Token}}`` in the copy and save it

Missing columns never fail a card. A template or folder that cannot be reached
raises ``CardConfigurationError`` from the document store and is fatal.
"""

__all__ = [
    "CardGenerator",
    "CardSettings",
    "InvalidRowError",
    "PACKAGE_PRICES",
    "RECOGNIZED_FIELDS",
    "UNKNOWN",
    "field_value",
    "package_price",
    "resolve_fields",
]

logger = logging.getLogger(__name__)

UNKNOWN = "UNKNOWN"

ACCOUNT_NUMBER = "Account Number"
OR_NUMBER = "OR Number"
LAST_NAME = "Last Name"
FIRST_NAME = "First Name"
MIDDLE_NAME = "Middle Name"
ID_NUMBER = "Full ID Number"
COLLEGE = "College"
DEGREE_CODE = "Degree Code"
ALTERNATE_DEGREE_CODE = "Alternate Degree Code"
CHOSEN_PACKAGE = "Chosen Package"
TERM_OF_PAYMENT = "Term of Payment"

RECOGNIZED_FIELDS = (
    ACCOUNT_NUMBER,
    OR_NUMBER,
    LAST_NAME,
    FIRST_NAME,
    MIDDLE_NAME,
    ID_NUMBER,
    COLLEGE,
    DEGREE_CODE,
    ALTERNATE_DEGREE_CODE,
    CHOSEN_PACKAGE,
    TERM_OF_PAYMENT,
)

# Form choice meaning "use the free-text alternate column instead"
DEGREE_NOT_LISTED = "MY DEGREE CODE ISN'T IN THE LIST"

PACKAGE_PRICES = {
    "PACKAGE A (BUSINESS)": "P5,000",
    "PACKAGE B (CREATIVE)": "P5,150",
    "PACKAGE C (A+B)": "P5,300",
    "PACKAGE D (SCHOLARS)": "P4,800",
}


class InvalidRowError(ValueError):
    pass


def package_price(package: Any) -> str:
    if not isinstance(package, str):
        return UNKNOWN
    return PACKAGE_PRICES.get(package, UNKNOWN)


def field_value(header: HeaderMapping, row: Sequence[Any], name: str) -> str:
    value = header.value(row, name)
    if is_blank(value):
        return UNKNOWN
    return cell_text(value).upper()


def resolve_fields(header: HeaderMapping, row: Sequence[Any]) -> CardFields:
    degree = field_value(header, row, DEGREE_CODE)
    if degree == DEGREE_NOT_LISTED and ALTERNATE_DEGREE_CODE in header:
        degree = field_value(header, row, ALTERNATE_DEGREE_CODE)

    package = field_value(header, row, CHOSEN_PACKAGE)
    return CardFields(
        account_number=field_value(header, row, ACCOUNT_NUMBER),
        or_number=field_value(header, row, OR_NUMBER),
        last_name=field_value(header, row, LAST_NAME),
        first_name=field_value(header, row, FIRST_NAME),
        middle_name=field_value(header, row, MIDDLE_NAME),
        id_number=field_value(header, row, ID_NUMBER),
        college=field_value(header, row, COLLEGE),
        degree=degree,
        package=package,
        term_of_payment=field_value(header, row, TERM_OF_PAYMENT),
        package_price=package_price(package),
    )


@dataclass(frozen=True)
class CardSettings:
    template_id: str
    folder_id: str
    timezone: tzinfo | None = None


class CardGenerator:
    def __init__(
        self,
        dataset: DatasetStore,
        documents: DocumentStore,
        settings: CardSettings,
        *,
        clock: Callable[[tzinfo | None], datetime] = datetime.now,
    ) -> None:
        self.dataset = dataset
        self.documents = documents
        self.settings = settings
        self._clock = clock

    def read_header(self) -> HeaderMapping:
        if self.dataset.last_row() < 1:
            return HeaderMapping()
        return HeaderMapping.from_header_row(self.dataset.get_row(1))

    def generate(
        self,
        row_number: int,
        header: HeaderMapping | None = None,
        row: Sequence[Any] | None = None,
    ) -> CardResult:
        """Create the card for ``row_number`` (1-based, header row excluded).

        ``header`` and ``row`` are read from the dataset when not supplied.
        """
        if row_number < 2:
            raise InvalidRowError(f"row {row_number} is not a data row (row 1 is the header)")
        if header is None:
            header = self.read_header()
        if row is None:
            last = self.dataset.last_row()
            if row_number > last:
                raise InvalidRowError(f"row {row_number} is past the last row ({last})")
            row = self.dataset.get_row(row_number)

        fields = resolve_fields(header, row)

        handle = self.documents.make_copy(self.settings.template_id, fields.card_name, self.settings.folder_id)
        try:
            doc = self.documents.open_document(handle)
            for token, value in fields.placeholders().items():
                doc.replace_text(token, value)
            doc.save_and_close()
        except (DocumentStoreError, OSError):
            # incomplete copy
            self.documents.discard(handle)
            raise

        date_str = self._clock(self.settings.timezone).strftime("%Y-%m-%d")
        logger.info("card created account=%s row=%d date=%s doc=%s", fields.account_number, row_number, date_str, handle.id)
        return CardResult(row_number=row_number, name=handle.name, document_id=handle.id, fields=fields)
