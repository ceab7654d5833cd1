from __future__ import annotations
import json
from pathlib import Path
from unittest.mock import MagicMock

import psycopg2
import pytest

from ticketcard.db.properties import JsonFilePropertyStore, PostgresPropertyStore, PropertyStoreError


def test_json_store_missing_file_returns_none(tmp_path: Path):
    store = JsonFilePropertyStore(tmp_path / "props.json")
    assert store.get_property("lastTicketNumber") is None


def test_json_store_roundtrip_keeps_other_keys(tmp_path: Path):
    path = tmp_path / "state" / "props.json"
    store = JsonFilePropertyStore(path)
    store.set_property("other", "keep")
    store.set_property("lastTicketNumber", "5")
    assert store.get_property("lastTicketNumber") == "5"
    assert json.loads(path.read_text(encoding="utf-8")) == {"lastTicketNumber": "5", "other": "keep"}
    # no temp files left behind
    assert [p.name for p in path.parent.iterdir()] == ["props.json"]


def test_json_store_corrupt_file_treated_as_empty(tmp_path: Path):
    path = tmp_path / "props.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFilePropertyStore(path)
    assert store.get_property("lastTicketNumber") is None
    store.set_property("lastTicketNumber", "1")
    assert store.get_property("lastTicketNumber") == "1"


def test_json_store_non_string_values_are_stringified(tmp_path: Path):
    path = tmp_path / "props.json"
    path.write_text('{"lastTicketNumber": 12}', encoding="utf-8")
    assert JsonFilePropertyStore(path).get_property("lastTicketNumber") == "12"


def _mock_connection(fetch=None):
    conn = MagicMock()
    cur = conn.cursor.return_value.__enter__.return_value
    cur.fetchone.return_value = fetch
    return conn, cur


def test_postgres_store_creates_table_and_reads():
    conn, cur = _mock_connection(fetch=("7",))
    store = PostgresPropertyStore(conn)
    assert "CREATE TABLE IF NOT EXISTS script_properties" in cur.execute.call_args_list[0].args[0]
    assert store.get_property("lastTicketNumber") == "7"
    sql, params = cur.execute.call_args.args
    assert "SELECT value FROM script_properties" in sql
    assert params == ("lastTicketNumber",)


def test_postgres_store_missing_key():
    conn, _ = _mock_connection(fetch=None)
    assert PostgresPropertyStore(conn, ensure_table=False).get_property("k") is None


def test_postgres_store_set_commits_each_write():
    conn, cur = _mock_connection()
    store = PostgresPropertyStore(conn, ensure_table=False)
    store.set_property("lastTicketNumber", "3")
    sql, params = cur.execute.call_args.args
    assert "ON CONFLICT (key) DO UPDATE" in sql
    assert params == ("lastTicketNumber", "3")
    assert conn.commit.call_count == 1


def test_postgres_store_wraps_driver_errors():
    conn, cur = _mock_connection()
    cur.execute.side_effect = psycopg2.OperationalError("server closed the connection")
    store = PostgresPropertyStore(conn, ensure_table=False)
    with pytest.raises(PropertyStoreError):
        store.set_property("lastTicketNumber", "3")
    conn.rollback.assert_called_once()
