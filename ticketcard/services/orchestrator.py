from __future__ import annotations

import logging
from collections import deque
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..config.loader import TicketingConfig
from ..db.properties import JsonFilePropertyStore, PostgresPropertyStore, PropertyStore, PropertyStoreError
from ..docs.store import CardConfigurationError, DocumentStoreError, FileSystemDocumentStore
from ..excel.dataset import DatasetError, DatasetStore, ExcelDatasetStore
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.processing_result import RunResult
from ..models.ticket import TicketedRow
from .assigner import AssignerSettings, TicketAssigner
from .card_generator import CardGenerator, CardSettings
from .progress import ProgressTracker

"""Run orchestration.

Two stages connected by a queue of TicketedRow events:

    TicketAssigner.run()  ->  deque[TicketedRow]  ->  CardGenerator.generate()

Numbering is complete (and durable) before the first card is attempted, so a
card failure can neither block nor corrupt ticket numbers. Failed cards are
recorded in the error log and can be regenerated later with ``--row N``.
"""

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal error: the run cannot continue."""


def open_dataset(config: TicketingConfig) -> ExcelDatasetStore:
    try:
        return ExcelDatasetStore(Path(config.dataset.workbook), config.dataset.sheet)
    except DatasetError as e:
        raise ProcessingError(str(e)) from e


def build_property_store(config: TicketingConfig, connection: Any = None) -> PropertyStore:
    if config.counter.store == "postgres":
        if connection is None:
            raise ProcessingError("counter store 'postgres' needs a database connection")
        return PostgresPropertyStore(connection)
    if not config.counter.path:
        raise ProcessingError("counter store 'file' needs counter.path")
    return JsonFilePropertyStore(Path(config.counter.path))


def build_document_store(config: TicketingConfig) -> FileSystemDocumentStore:
    return FileSystemDocumentStore(
        templates_directory=Path(config.cards.templates_directory),
        output_directory=Path(config.cards.output_directory),
    )


def build_assigner(
    config: TicketingConfig,
    dataset: DatasetStore,
    properties: PropertyStore,
    error_log: ErrorLogBuffer | None = None,
) -> TicketAssigner:
    return TicketAssigner(
        dataset,
        properties,
        AssignerSettings(
            ticket_column=config.dataset.ticket_column,
            timestamp_column=config.dataset.timestamp_column,
            counter_property=config.counter.property,
            reconcile_with_sheet=config.counter.reconcile_with_sheet,
            timezone=config.tzinfo,
        ),
        error_log=error_log,
    )


def build_card_generator(config: TicketingConfig, dataset: DatasetStore) -> CardGenerator:
    return CardGenerator(
        dataset,
        build_document_store(config),
        CardSettings(
            template_id=config.cards.template_id,
            folder_id=config.cards.folder_id,
            timezone=config.tzinfo,
        ),
    )


def _flush_error_log(error_log: ErrorLogBuffer) -> None:
    try:
        path = error_log.flush()
    except OSError as e:
        logger.warning("could not write error log: %s", e)
        return
    if path is not None:
        logger.info("error log written: %s", path)


def run_pipeline(
    assigner: TicketAssigner,
    generator: CardGenerator,
    error_log: ErrorLogBuffer | None = None,
) -> RunResult:
    """Number eligible rows, then generate one card per newly ticketed row.

    Raises:
        ProcessingError: template or destination folder unreachable
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    if assigner.error_log is None:
        assigner.error_log = error_log
    dataset = assigner.dataset

    assignment = assigner.run()
    queue: deque[TicketedRow] = deque(assignment.ticketed)

    created = 0
    failed_rows: list[int] = []

    with ProgressTracker(len(queue)) as progress:
        while queue:
            event = queue.popleft()
            progress.start_item(event.ticket_id)
            try:
                generator.generate(event.row_number, header=assignment.header, row=event.values)
            except CardConfigurationError as e:
                pending = [event.row_number] + [q.row_number for q in queue]
                error_log.append(ErrorRecord.create(
                    workbook=dataset.name,
                    sheet=dataset.sheet_name,
                    row=-1,
                    error_type="CARD_CONFIGURATION_ERROR",
                    message=str(e),
                ))
                _flush_error_log(error_log)
                logger.error("cards not generated for rows %s (tickets are assigned; rerun with --row)", pending)
                raise ProcessingError(f"card configuration: {e}") from e
            except (DocumentStoreError, OSError) as e:
                failed_rows.append(event.row_number)
                logger.error("card failed for row %d (%s): %s", event.row_number, event.ticket_id, e)
                error_log.append(ErrorRecord.create(
                    workbook=dataset.name,
                    sheet=dataset.sheet_name,
                    row=event.row_number,
                    error_type="CARD_GENERATION_ERROR",
                    message=str(e),
                ))
                progress.finish_item(success=False)
                continue
            created += 1
            progress.set_postfix(created=created, failed=len(failed_rows))
            progress.finish_item(success=True)

    _flush_error_log(error_log)

    end_time = datetime.now(UTC)
    return RunResult(
        scanned_rows=assignment.scanned_rows,
        ticketed_rows=len(assignment.ticketed),
        already_ticketed=assignment.already_ticketed,
        waiting_rows=assignment.waiting_rows,
        invalid_rows=assignment.invalid_rows,
        cards_created=created,
        cards_failed=len(failed_rows),
        last_ticket_number=assignment.last_ticket_number,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        failed_rows=failed_rows,
    )


def process_all(config: TicketingConfig, connection: Any = None, error_log: ErrorLogBuffer | None = None) -> RunResult:
    """Build the stores from ``config`` and run both stages.

    Args:
        config: loaded configuration
        connection: psycopg2 connection (required when counter.store is postgres)
        error_log: buffer for error records (a fresh one when omitted)

    Raises:
        ProcessingError: for fatal errors that prevent processing
    """
    dataset = open_dataset(config)
    properties = build_property_store(config, connection)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    assigner = build_assigner(config, dataset, properties, error_log)
    generator = build_card_generator(config, dataset)
    try:
        return run_pipeline(assigner, generator, error_log)
    except DatasetError as e:
        raise ProcessingError(f"dataset: {e}") from e
    except PropertyStoreError as e:
        raise ProcessingError(f"counter store: {e}") from e
