# Shared pytest fixtures
from __future__ import annotations
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
import pytest
from docx import Document

from ticketcard.docs.store import FileSystemDocumentStore
from ticketcard.logging.error_log import ErrorLogBuffer


HEADER = [
    "Ticket Number",
    "Timestamp",
    "Account Number",
    "OR Number",
    "Last Name",
    "First Name",
    "Middle Name",
    "Full ID Number",
    "College",
    "Degree Code",
    "Alternate Degree Code",
    "Chosen Package",
    "Term of Payment",
]

TEMPLATE_BODY = (
    "ACCOUNT {{AccountNumber}} OR {{ORNumber}}\n"
    "NAME {{LastName}}, {{FirstName}} {{MiddleName}}\n"
    "ID {{IDNumber}} COLLEGE {{College}} DEGREE {{Degree}}\n"
    "PACKAGE {{Package}} PRICE {{PackagePrice}} TERM {{TermOfPayment}}\n"
    "FOOTER {{AccountNumber}}\n"
)


def response_row(
    timestamp: Any = datetime(2024, 3, 7, 10, 15),
    ticket: Any = None,
    *,
    account: Any = "acct-001",
    last: str = "dela cruz",
    degree: str = "BSIT",
    alternate: Any = None,
    package: str = "Package A (Business)",
) -> list[Any]:
    return [
        ticket,
        timestamp,
        account,
        "or-555",
        last,
        "juan",
        "santos",
        "2020-12345",
        "ccs",
        degree,
        alternate,
        package,
        "full",
    ]


class FakeDataset:
    """In-memory DatasetStore."""

    def __init__(self, rows: list[list[Any]], name: str = "responses.xlsx", sheet_name: str = "Form Responses 1"):
        self.rows = [list(r) for r in rows]
        self.writes: list[tuple[int, int, Any]] = []
        self.name = name
        self.sheet_name = sheet_name

    def last_row(self) -> int:
        return len(self.rows)

    def last_column(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    def get_values(self) -> list[list[Any]]:
        width = self.last_column()
        return [r + [None] * (width - len(r)) for r in self.rows]

    def get_row(self, row: int) -> list[Any]:
        return self.get_values()[row - 1]

    def get_value(self, row: int, column: int) -> Any:
        r = self.rows[row - 1]
        return r[column - 1] if column - 1 < len(r) else None

    def set_value(self, row: int, column: int, value: Any) -> None:
        r = self.rows[row - 1]
        if len(r) < column:
            r.extend([None] * (column - len(r)))
        r[column - 1] = value
        self.writes.append((row, column, value))


class MemoryPropertyStore:
    """In-memory PropertyStore recording every write."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data = dict(initial or {})
        self.writes: list[tuple[str, str]] = []

    def get_property(self, key: str) -> str | None:
        return self.data.get(key)

    def set_property(self, key: str, value: str) -> None:
        self.data[key] = value
        self.writes.append((key, value))


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        for sub in ("config", "data", "logs", "state", "templates", "cards/generated"):
            (p / sub).mkdir(parents=True)
        (p / "templates" / "card-template.txt").write_text(TEMPLATE_BODY, encoding="utf-8")
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """dataset:
  workbook: ./data/responses.xlsx
  sheet: Form Responses 1
counter:
  store: file
  path: ./state/properties.json
cards:
  template_id: card-template
  folder_id: generated
  templates_directory: ./templates
  output_directory: ./cards
timezone: Asia/Manila
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ticketing.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_workbook(path: Path, rows: list[list[Any]], sheet: str = "Form Responses 1", header: list[str] | None = None) -> Path:
    """Write a responses workbook (row 1 = header) with pandas/openpyxl."""
    path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(rows, columns=header or HEADER)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet, index=False)
    return path


@pytest.fixture()
def doc_store(tmp_path: Path) -> FileSystemDocumentStore:
    templates = tmp_path / "templates"
    templates.mkdir(exist_ok=True)
    (templates / "tpl.txt").write_text(TEMPLATE_BODY, encoding="utf-8")
    (tmp_path / "out" / "folder-1").mkdir(parents=True, exist_ok=True)
    return FileSystemDocumentStore(templates_directory=templates, output_directory=tmp_path / "out")


@pytest.fixture()
def error_log(tmp_path: Path) -> ErrorLogBuffer:
    return ErrorLogBuffer(logs_dir=tmp_path / "logs")


def make_docx_template(path: Path) -> Path:
    """Word card template: tokens in body paragraphs, a table, the footer and one token split over runs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    doc = Document()
    doc.add_paragraph("ACCOUNT {{AccountNumber}} OR {{ORNumber}}")
    p = doc.add_paragraph("NAME ")
    p.add_run("{{Last").bold = True
    p.add_run("Name}}").bold = True
    p.add_run(", {{FirstName}} {{MiddleName}}")
    label = doc.add_paragraph()
    label.add_run("ID ").italic = True
    label.add_run("{{IDNumber}}")
    table = doc.add_table(rows=3, cols=2)
    for r, (name, token) in enumerate([
        ("College", "{{College}}"),
        ("Degree", "{{Degree}}"),
        ("Package", "{{Package}} {{PackagePrice}} {{TermOfPayment}}"),
    ]):
        table.cell(r, 0).text = name
        table.cell(r, 1).text = token
    doc.sections[0].footer.paragraphs[0].text = "FOOTER {{AccountNumber}}"
    doc.save(str(path))
    return path


def docx_text(path: Path) -> str:
    """All paragraph text of a .docx (body, table cells, first-section footer)."""
    doc = Document(str(path))
    lines = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            lines.append(" | ".join(c.text for c in row.cells))
    lines.extend(p.text for p in doc.sections[0].footer.paragraphs)
    return "\n".join(lines)


@pytest.fixture()
def docx_store(tmp_path: Path) -> FileSystemDocumentStore:
    templates = tmp_path / "templates"
    make_docx_template(templates / "card.docx")
    (tmp_path / "out" / "folder-1").mkdir(parents=True, exist_ok=True)
    return FileSystemDocumentStore(templates_directory=templates, output_directory=tmp_path / "out")
