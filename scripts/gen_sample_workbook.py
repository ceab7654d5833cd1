#!/usr/bin/env python3
"""Sample data generation for local trials.

Writes:
- a form-responses workbook (row 1 header, column A ``Ticket Number`` empty,
  column B ``Timestamp``) with synthetic applicants
- a Word (.docx) card template containing every placeholder token,
  partly inside a table
- the destination folder the example config points at
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from docx import Document

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

PACKAGES = [
    "Package A (Business)",
    "Package B (Creative)",
    "Package C (A+B)",
    "Package D (Scholars)",
]

TITLE = "GRADUATION PICTORIAL CARD"

TEMPLATE_LINES = [
    "Account No.: {{AccountNumber}}        OR No.: {{ORNumber}}",
    "Name: {{LastName}}, {{FirstName}} {{MiddleName}}",
    "ID Number: {{IDNumber}}",
]

TEMPLATE_TABLE = [
    ("College", "{{College}}"),
    ("Degree", "{{Degree}}"),
    ("Package", "{{Package}} ({{PackagePrice}})"),
    ("Term of Payment", "{{TermOfPayment}}"),
]

LAST_NAMES = ["Dela Cruz", "Santos", "Reyes", "Garcia", "Mendoza", "Bautista", "Ramos", "Aquino"]
FIRST_NAMES = ["Juan", "Maria", "Jose", "Ana", "Mark", "Andrea", "Paolo", "Bea"]
COLLEGES = ["CBA", "CAS", "CCS", "COE", "CED"]
DEGREES = ["BSA", "BSIT", "BSCS", "ABCOMM", "MY DEGREE CODE ISN'T IN THE LIST"]


def generate_rows(rows: int, waiting: int, start: datetime, seed: int = 42) -> list[list[Any]]:
    """Synthetic responses; the last ``waiting`` rows have no timestamp yet."""
    rng = np.random.default_rng(seed)
    data: list[list[Any]] = []
    for i in range(rows):
        degree = str(rng.choice(DEGREES))
        data.append([
            None,
            start + timedelta(hours=int(rng.integers(0, 24 * 30))) if i < rows - waiting else None,
            int(rng.integers(100000, 999999)),
            f"OR-{int(rng.integers(10000, 99999))}",
            str(rng.choice(LAST_NAMES)),
            str(rng.choice(FIRST_NAMES)),
            str(rng.choice(LAST_NAMES)) if rng.random() > 0.2 else None,
            f"20{int(rng.integers(18, 22))}-{int(rng.integers(10000, 99999))}",
            str(rng.choice(COLLEGES)),
            degree,
            "bsbio" if degree.startswith("MY DEGREE") else None,
            str(rng.choice(PACKAGES)),
            str(rng.choice(["Full", "Installment"])),
        ])
    return data


def create_workbook(output_path: Path, rows: int, waiting: int, seed: int = 42) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(generate_rows(rows, waiting, datetime(2024, 3, 1, 9, 0), seed), columns=HEADER)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Form Responses 1", index=False)
    print(f"Created workbook: {output_path} ({rows} rows, {waiting} without timestamp)")


def create_template(output_path: Path) -> None:
    doc = Document()
    doc.add_heading(TITLE, level=1)
    for line in TEMPLATE_LINES:
        doc.add_paragraph(line)
    table = doc.add_table(rows=0, cols=2)
    for label, token in TEMPLATE_TABLE:
        cells = table.add_row().cells
        cells[0].text = label
        cells[1].text = token
    doc.save(str(output_path))


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a sample responses workbook and card template")
    parser.add_argument("--workbook", type=Path, default=Path("data/responses.xlsx"))
    parser.add_argument("--templates", type=Path, default=Path("templates"))
    parser.add_argument("--template-id", default="card-template")
    parser.add_argument("--output", type=Path, default=Path("cards"))
    parser.add_argument("--folder-id", default="generated")
    parser.add_argument("--rows", type=int, default=20)
    parser.add_argument("--waiting", type=int, default=2, help="Rows left without timestamp")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    if args.rows <= 0 or not 0 <= args.waiting <= args.rows:
        print("Error: need rows > 0 and 0 <= waiting <= rows", file=sys.stderr)
        return 1

    create_workbook(args.workbook, args.rows, args.waiting, args.seed)

    args.templates.mkdir(parents=True, exist_ok=True)
    template_path = args.templates / f"{args.template_id}.docx"
    create_template(template_path)
    print(f"Created template: {template_path}")

    folder = args.output / args.folder_id
    folder.mkdir(parents=True, exist_ok=True)
    print(f"Created destination folder: {folder}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
