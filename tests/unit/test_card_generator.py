from __future__ import annotations
from datetime import datetime
from zoneinfo import ZoneInfo

import logging
import pytest

from ticketcard.docs.store import DocumentStoreError, FolderNotFoundError, TemplateNotFoundError
from ticketcard.models.header_mapping import HeaderMapping
from ticketcard.services.card_generator import CardGenerator, CardSettings, InvalidRowError
from tests.conftest import HEADER, FakeDataset, docx_text, response_row


def _generator(doc_store, rows=None, **settings):
    dataset = FakeDataset([HEADER] + (rows if rows is not None else [response_row(ticket="00001-0307")]))
    cfg = CardSettings(template_id=settings.get("template_id", "tpl"), folder_id=settings.get("folder_id", "folder-1"),
                       timezone=ZoneInfo("Asia/Manila"))
    return CardGenerator(dataset, doc_store, cfg, clock=lambda tz: datetime(2024, 3, 7, 9, 0, tzinfo=tz)), dataset


def test_generate_creates_named_card_with_all_placeholders(doc_store, tmp_path):
    gen, _ = _generator(doc_store)
    result = gen.generate(2)

    path = tmp_path / "out" / "folder-1" / "ACCT-001 - 2020-12345 - DELA CRUZ.txt"
    assert path.exists()
    body = path.read_text(encoding="utf-8")
    assert "{{" not in body
    assert "ACCOUNT ACCT-001 OR OR-555" in body
    assert "NAME DELA CRUZ, JUAN SANTOS" in body
    assert "PACKAGE PACKAGE A (BUSINESS) PRICE P5,000 TERM FULL" in body
    # repeated token replaced too
    assert "FOOTER ACCT-001" in body
    assert result.document_id == "folder-1/ACCT-001 - 2020-12345 - DELA CRUZ.txt"
    assert result.row_number == 2


def test_generate_uses_supplied_header_and_row_without_reading(doc_store):
    class NoReadDataset(FakeDataset):
        def get_row(self, row):
            raise AssertionError("dataset must not be read")

    gen = CardGenerator(NoReadDataset([]), doc_store, CardSettings("tpl", "folder-1"))
    header = HeaderMapping.from_header_row(HEADER)
    result = gen.generate(5, header=header, row=response_row(last="reyes"))
    assert result.fields.last_name == "REYES"


def test_generate_logs_card_created(doc_store, caplog):
    gen, _ = _generator(doc_store)
    logger = logging.getLogger("ticketcard")
    logger.propagate = True
    try:
        with caplog.at_level(logging.INFO, logger="ticketcard"):
            gen.generate(2)
    finally:
        logger.propagate = False
    assert "card created account=ACCT-001 row=2 date=2024-03-07" in caplog.text


@pytest.mark.parametrize("row_number", [0, 1, -4])
def test_header_row_is_not_a_data_row(doc_store, row_number):
    gen, _ = _generator(doc_store)
    with pytest.raises(InvalidRowError):
        gen.generate(row_number)


def test_row_past_end_is_rejected(doc_store):
    gen, _ = _generator(doc_store)
    with pytest.raises(InvalidRowError):
        gen.generate(3)


def test_missing_template_is_fatal(doc_store):
    gen, _ = _generator(doc_store, template_id="nope")
    with pytest.raises(TemplateNotFoundError):
        gen.generate(2)


def test_missing_folder_is_fatal(doc_store):
    gen, _ = _generator(doc_store, folder_id="nope")
    with pytest.raises(FolderNotFoundError):
        gen.generate(2)


def test_same_name_twice_gets_suffix(doc_store, tmp_path):
    gen, _ = _generator(doc_store, rows=[response_row(), response_row()])
    first = gen.generate(2)
    second = gen.generate(3)
    assert first.name == "ACCT-001 - 2020-12345 - DELA CRUZ"
    assert second.name == "ACCT-001 - 2020-12345 - DELA CRUZ (2)"
    assert (tmp_path / "out" / "folder-1" / "ACCT-001 - 2020-12345 - DELA CRUZ (2).txt").exists()


def test_generate_with_word_template(docx_store, tmp_path):
    gen, _ = _generator(docx_store, template_id="card")
    result = gen.generate(2)

    path = tmp_path / "out" / "folder-1" / "ACCT-001 - 2020-12345 - DELA CRUZ.docx"
    assert result.document_id == "folder-1/ACCT-001 - 2020-12345 - DELA CRUZ.docx"
    text = docx_text(path)
    assert "{{" not in text
    assert "NAME DELA CRUZ, JUAN SANTOS" in text
    assert "Package | PACKAGE A (BUSINESS) P5,000 FULL" in text
    assert "FOOTER ACCT-001" in text


def test_failed_fill_leaves_no_copy_and_retry_keeps_name(docx_store, tmp_path):
    template = tmp_path / "templates" / "card.docx"
    good = template.read_bytes()
    template.write_bytes(b"corrupted")
    gen, _ = _generator(docx_store, template_id="card")
    folder = tmp_path / "out" / "folder-1"

    with pytest.raises(DocumentStoreError):
        gen.generate(2)
    assert list(folder.iterdir()) == []

    template.write_bytes(good)
    assert gen.generate(2).name == "ACCT-001 - 2020-12345 - DELA CRUZ"
