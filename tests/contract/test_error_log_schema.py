from __future__ import annotations
import json
import re
from pathlib import Path

from ticketcard.cli import main as cli_main
from ticketcard.logging.init import reset_logging
from tests.conftest import make_workbook, response_row

REQUIRED_KEYS = {"timestamp", "workbook", "sheet", "row", "error_type", "message"}


def test_error_log_lines_have_fixed_keys(write_config, temp_workdir: Path):
    make_workbook(temp_workdir / "data" / "responses.xlsx", [response_row("bad"), response_row("worse")])
    reset_logging()
    assert cli_main([]) == 2

    [log_file] = (temp_workdir / "logs").glob("errors-*.log")
    assert re.fullmatch(r"errors-\d{8}-\d{6}\.log", log_file.name)
    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    for line in lines:
        record = json.loads(line)
        assert set(record) == REQUIRED_KEYS
        assert record["timestamp"].endswith("Z")
        assert record["error_type"] == "INVALID_TIMESTAMP"
        assert record["sheet"] == "Form Responses 1"
