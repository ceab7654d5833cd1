from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Configuration loader.

Responsibilities:
- Load the YAML config (default ``config/ticketing.yml``)
- Validate it against the bundled JSON schema
- Apply defaults (ticket/timestamp columns, counter property name, timezone=UTC)
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

DEFAULT_CONFIG_PATH = Path("config/ticketing.yml")
DEFAULT_COUNTER_PROPERTY = "lastTicketNumber"
DEFAULT_TICKET_COLUMN = 1
DEFAULT_TIMESTAMP_COLUMN = 2


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    host: str | None
    port: int | None
    user: str | None
    password: str | None
    database: str | None
    dsn: str | None


@dataclass(frozen=True)
class DatasetConfig:
    workbook: str
    sheet: str | None  # None = active sheet
    ticket_column: int
    timestamp_column: int


@dataclass(frozen=True)
class CounterConfig:
    store: str  # "file" | "postgres"
    path: str | None
    property: str
    reconcile_with_sheet: bool


@dataclass(frozen=True)
class CardsConfig:
    template_id: str
    folder_id: str
    templates_directory: str
    output_directory: str


@dataclass(frozen=True)
class TicketingConfig:
    dataset: DatasetConfig
    counter: CounterConfig
    cards: CardsConfig
    timezone: str
    database: DatabaseConfig

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or validation failure
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> TicketingConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    tz = data.get("timezone", "UTC")
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {tz}") from e

    ds_raw = data["dataset"]
    counter_raw = data["counter"]
    cards_raw = data["cards"]
    db_raw = data.get("database") or {}

    return TicketingConfig(
        dataset=DatasetConfig(
            workbook=ds_raw["workbook"],
            sheet=ds_raw.get("sheet"),
            ticket_column=ds_raw.get("ticket_column", DEFAULT_TICKET_COLUMN),
            timestamp_column=ds_raw.get("timestamp_column", DEFAULT_TIMESTAMP_COLUMN),
        ),
        counter=CounterConfig(
            store=counter_raw["store"],
            path=counter_raw.get("path"),
            property=counter_raw.get("property", DEFAULT_COUNTER_PROPERTY),
            reconcile_with_sheet=bool(counter_raw.get("reconcile_with_sheet", False)),
        ),
        cards=CardsConfig(
            template_id=cards_raw["template_id"],
            folder_id=cards_raw["folder_id"],
            templates_directory=cards_raw["templates_directory"],
            output_directory=cards_raw["output_directory"],
        ),
        timezone=tz,
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
    )
