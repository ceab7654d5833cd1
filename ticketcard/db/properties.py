from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

import psycopg2

"""Key-value property stores holding the ticket counter.

Two backends:
- JsonFilePropertyStore: a JSON object on disk, replaced atomically on write
- PostgresPropertyStore: table ``script_properties``, one commit per write

Values are strings, the way script properties are.
"""

__all__ = [
    "PropertyStore",
    "PropertyStoreError",
    "JsonFilePropertyStore",
    "PostgresPropertyStore",
]

logger = logging.getLogger(__name__)


class PropertyStoreError(Exception):
    pass


class PropertyStore(Protocol):
    def get_property(self, key: str) -> str | None: ...

    def set_property(self, key: str, value: str) -> None: ...


class JsonFilePropertyStore:
    """Properties kept as a flat JSON object in ``path``."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            logger.warning("property file %s is not valid JSON (%s); treating as empty", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("property file %s does not hold an object; treating as empty", self.path)
            return {}
        return data

    def get_property(self, key: str) -> str | None:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set_property(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = str(value)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # tmp -> replace で途中失敗でも旧ファイルが残る
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise PropertyStoreError(f"cannot write property file {self.path}: {e}") from e


CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS script_properties (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""

UPSERT_SQL = """
INSERT INTO script_properties (key, value) VALUES (%s, %s)
ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = now()
"""


class PostgresPropertyStore:
    """Properties kept in PostgreSQL.

    ``connection`` is a psycopg2 connection; every ``set_property`` commits so
    that each counter increment is durable on its own.
    """

    def __init__(self, connection: Any, *, ensure_table: bool = True) -> None:
        self.connection = connection
        if ensure_table:
            self._execute(CREATE_TABLE_SQL, None, commit=True)

    def _execute(self, sql: str, params: tuple[Any, ...] | None, *, commit: bool = False, fetch: bool = False) -> Any:
        try:
            with self.connection.cursor() as cur:
                cur.execute(sql, params)
                row = cur.fetchone() if fetch else None
            if commit:
                self.connection.commit()
            return row
        except psycopg2.Error as e:
            try:
                self.connection.rollback()
            except psycopg2.Error:  # pragma: no cover
                logger.debug("rollback after property store failure also failed", exc_info=True)
            raise PropertyStoreError(str(e)) from e

    def get_property(self, key: str) -> str | None:
        row = self._execute("SELECT value FROM script_properties WHERE key = %s", (key,), fetch=True)
        return None if row is None else row[0]

    def set_property(self, key: str, value: str) -> None:
        self._execute(UPSERT_SQL, (key, str(value)), commit=True)
