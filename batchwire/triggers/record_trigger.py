"""
RecordTrigger - claims READY rows from an external SQL table.

Claiming and acknowledging is one atomic operation so that overlapping
polls, in one process or many, never emit the same row twice:
- dialects with UPDATE..RETURNING: a single
  ``UPDATE t SET status = :consumed WHERE status = :ready RETURNING ...``
- otherwise: ``SELECT ... FOR UPDATE SKIP LOCKED`` and an UPDATE guarded
  by the ready status on the selected ids, in one transaction

Rows are parsed after they have been acknowledged. A row whose end_date
cannot be parsed is dropped from the batch and handed to the dead-letter
hook; it is already CONSUMED and will not be redelivered.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from batchwire.errors import MalformedEventError, TriggerPollError
from batchwire.schemas import ExternalRecord, RecordStatus, TriggerEvent
from batchwire.triggers.base import TriggerSource

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "external_batch_job_execution"

DeadLetterHook = Callable[[Mapping[str, Any], MalformedEventError], None]


def record_table(name: str = DEFAULT_TABLE, metadata: Optional[sa.MetaData] = None) -> sa.Table:
    """
    Describe the external record table.

    Only the columns the trigger reads are declared. end_date is declared as
    text so that values the driver cannot convert still reach the parser and
    can be dead-lettered row by row.
    """
    return sa.Table(
        name,
        metadata if metadata is not None else sa.MetaData(),
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("end_date", sa.String),
        sa.Column("status", sa.String(32), nullable=False),
    )


def parse_end_date(value: Any) -> datetime:
    """
    Parse an end_date column value.

    Raises:
        MalformedEventError: If the value is missing or not a timestamp
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise MalformedEventError(f"unparseable end_date {value!r}") from e
    raise MalformedEventError(f"unparseable end_date {value!r}")


def log_dead_letter(row: Mapping[str, Any], error: MalformedEventError) -> None:
    logger.error(f"Dropped consumed record id={row.get('id')}: {error}", extra={"metadata": dict(row)})


class RecordTrigger(TriggerSource):
    """
    Polls an external table for READY rows and marks them CONSUMED.

    Usage:
        engine = sa.create_engine("postgresql+psycopg://...")
        trigger = RecordTrigger(engine)
        for event in trigger.poll():
            print(event.payload.end_date)
    """

    def __init__(
        self,
        engine: Engine,
        table: str = DEFAULT_TABLE,
        ready_status: str = RecordStatus.READY.value,
        consumed_status: str = RecordStatus.CONSUMED.value,
        dead_letter: Optional[DeadLetterHook] = None,
        name: str = "record-trigger",
    ):
        """
        Initialize the trigger.

        Args:
            engine: SQLAlchemy engine for the external store
            table: Name of the record table
            ready_status: Status value selected for emission
            consumed_status: Status value written as acknowledgment
            dead_letter: Called with (row, error) for rows dropped as malformed
            name: Name used in logs
        """
        super().__init__(name)
        if ready_status == consumed_status:
            raise ValueError("ready_status and consumed_status must differ")
        self._engine = engine
        self.table = record_table(table)
        self.ready_status = ready_status
        self.consumed_status = consumed_status
        self._dead_letter = dead_letter or log_dead_letter

    def fetch(self) -> list[TriggerEvent]:
        try:
            rows = self._claim()
        except SQLAlchemyError as e:
            raise TriggerPollError(self.name, f"{type(e).__name__}: {e}", cause=e) from e

        events = []
        for row in rows:
            try:
                record = ExternalRecord(
                    id=row["id"],
                    end_date=parse_end_date(row["end_date"]),
                    status=RecordStatus.CONSUMED,
                )
            except MalformedEventError as e:
                try:
                    self._dead_letter(row, e)
                except Exception:
                    # The row is already CONSUMED; keep emitting the rest of the batch
                    logger.exception(f"Dead-letter hook failed for record id={row.get('id')}")
                continue
            events.append(TriggerEvent.for_record(record))
        return events

    def _claim(self) -> list[Mapping[str, Any]]:
        """Atomically move READY rows to CONSUMED and return them."""
        t = self.table
        with self._engine.begin() as conn:
            if self._engine.dialect.update_returning:
                stmt = (
                    sa.update(t)
                    .where(t.c.status == self.ready_status)
                    .values(status=self.consumed_status)
                    .returning(t.c.id, t.c.end_date)
                )
                return [dict(row) for row in conn.execute(stmt).mappings()]

            select = (
                sa.select(t.c.id, t.c.end_date)
                .where(t.c.status == self.ready_status)
                .with_for_update(skip_locked=True)
            )
            rows = [dict(row) for row in conn.execute(select).mappings()]
            if not rows:
                return []
            conn.execute(
                sa.update(t)
                .where(t.c.id.in_([row["id"] for row in rows]))
                .where(t.c.status == self.ready_status)
                .values(status=self.consumed_status)
            )
            return rows
