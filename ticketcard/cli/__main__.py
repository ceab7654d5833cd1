from __future__ import annotations

import argparse
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from ticketcard.config.loader import DEFAULT_CONFIG_PATH, ConfigError, TicketingConfig, load_config
from ticketcard.db.connection import db_connection
from ticketcard.docs.store import CardConfigurationError, DocumentStoreError
from ticketcard.excel.dataset import DatasetError
from ticketcard.excel.reader import SheetHeaderError, cell_text, is_blank, read_sheet_frame
from ticketcard.logging.init import log_summary, set_debug, setup_logging
from ticketcard.services.assigner import AssignerSettings, classify_row
from ticketcard.services.card_generator import InvalidRowError
from ticketcard.services.orchestrator import (
    ProcessingError,
    build_card_generator,
    open_dataset,
    process_all,
)
from ticketcard.services.summary import render_summary_line

"""CLI entrypoint.

    python -m ticketcard [--config PATH] [--debug] [--inspect-data] [--row N]

- default: number new rows and generate their cards, then print SUMMARY
- ``--row N``: (re)generate the card for one row without touching numbering
- ``--inspect-data``: print the header and the first rows, then exit
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so that database settings in it win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Ticket numbering and card generation for form responses")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet header & first rows then exit")
    p.add_argument("--row", type=int, default=None, help="Generate the card for this sheet row only")
    return p.parse_args(argv)


def _inspect_data(cfg: TicketingConfig, limit: int = 5) -> int:
    path = Path(cfg.dataset.workbook)
    if not path.exists():
        print(f"inspect: workbook not found: {path}")
        return EXIT_FATAL
    try:
        df = read_sheet_frame(path, cfg.dataset.sheet)
    except SheetHeaderError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL

    header = [cell_text(v) if not is_blank(v) else "" for v in df.iloc[0].tolist()]
    print(f"FILE: {path.name} rows={df.shape[0] - 1} cols={df.shape[1]}")
    print(f"  HEADER: {header}")
    settings = AssignerSettings(
        ticket_column=cfg.dataset.ticket_column,
        timestamp_column=cfg.dataset.timestamp_column,
        timezone=cfg.tzinfo,
    )
    for offset, raw in enumerate(df.iloc[1:1 + limit].itertuples(index=False), start=2):
        values = list(raw)
        status = classify_row(values, settings)
        sample = {h: (cell_text(v) if not is_blank(v) else None) for h, v in zip(header, values) if h}
        print(f"  ROW {offset} [{status.value}]: {sample}")
    return EXIT_SUCCESS_ALL


def _generate_row(cfg: TicketingConfig, row_number: int, logger) -> int:
    try:
        dataset = open_dataset(cfg)
        generator = build_card_generator(cfg, dataset)
        result = generator.generate(row_number)
    except (ProcessingError, InvalidRowError, CardConfigurationError) as e:
        logger.error(f"card: {e}")
        return EXIT_FATAL
    except (DocumentStoreError, DatasetError, OSError) as e:
        logger.error(f"card failed for row {row_number}: {e}")
        return EXIT_PARTIAL_FAILURE
    logger.info(f"card written: {result.document_id}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストで main([]) を呼ぶため)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.inspect_data:
        return _inspect_data(cfg)

    if args.row is not None:
        return _generate_row(cfg, args.row, logger)

    workbook = Path(cfg.dataset.workbook)
    if not workbook.exists():
        logger.error(f"workbook not found: {workbook}")
        return EXIT_FATAL

    logger.info(f"Processing workbook: {workbook}")

    try:
        if cfg.counter.store == "postgres":
            try:
                with db_connection(cfg.database) as conn:
                    result = process_all(cfg, connection=conn)
            except psycopg2.Error as e:
                logger.error(f"database: {e}")
                return EXIT_FATAL
        else:
            result = process_all(cfg)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    if result.failed_rows:
        logger.warning(f"cards failed for rows {result.failed_rows}; retry with --row N")

    # render_summary_line は "SUMMARY " 付きで返すので除去して log_summary へ
    summary_line = render_summary_line(result)
    log_summary(summary_line[len("SUMMARY "):])

    if result.partial_failure:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
