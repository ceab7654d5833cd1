from __future__ import annotations

from dataclasses import dataclass

"""Card models: resolved placeholder values and the outcome of one generation."""

__all__ = [
    "CardFields",
    "CardResult",
]


@dataclass(frozen=True)
class CardFields:
    """All-caps values substituted into the card template."""
    account_number: str
    or_number: str
    last_name: str
    first_name: str
    middle_name: str
    id_number: str
    college: str
    degree: str
    package: str
    term_of_payment: str
    package_price: str

    @property
    def card_name(self) -> str:
        return f"{self.account_number} - {self.id_number} - {self.last_name}"

    def placeholders(self) -> dict[str, str]:
        """Template token -> replacement value."""
        return {
            "{{AccountNumber}}": self.account_number,
            "{{ORNumber}}": self.or_number,
            "{{LastName}}": self.last_name,
            "{{FirstName}}": self.first_name,
            "{{MiddleName}}": self.middle_name,
            "{{IDNumber}}": self.id_number,
            "{{College}}": self.college,
            "{{Degree}}": self.degree,
            "{{Package}}": self.package,
            "{{TermOfPayment}}": self.term_of_payment,
            "{{PackagePrice}}": self.package_price,
        }


@dataclass(frozen=True)
class CardResult:
    row_number: int
    name: str  # final document name (may carry a " (n)" suffix)
    document_id: str
    fields: CardFields
