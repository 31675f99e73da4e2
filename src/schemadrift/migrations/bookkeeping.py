"""Bookkeeping ledger access.

The ledger is a flat ``(id, migration, batch)`` table recording which
migrations have been marked as executed. The classifier only ever reads
its names; mutations happen through ``schemadrift.migrations.fixes`` inside
a single transaction.

Every mutating method accepts an optional connection so several operations
can share one ``transaction()``. Without one, each call runs in its own.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from typing import TYPE_CHECKING, TypeVar

import structlog
from sqlalchemy import Column, Integer, MetaData, String, Table, delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError

from schemadrift.core.errors import MigrationError

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

log = structlog.get_logger(__name__)

T = TypeVar("T")


class BookkeepingStore:
    """Name + batch ledger over a SQLAlchemy engine."""

    def __init__(self, engine: Engine, table: str = "migrations") -> None:
        self.engine = engine
        self.table_name = table
        self._metadata = MetaData()
        self.table = Table(
            table,
            self._metadata,
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column("migration", String(255), nullable=False),
            Column("batch", Integer, nullable=False),
        )

    def ensure_table(self) -> None:
        """Create the ledger table if it does not exist."""
        with self.transaction() as conn:
            self._metadata.create_all(conn, checkfirst=True)

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """Connection in a transaction that commits on exit and rolls back on error.

        Raises:
            MigrationError: If the database rejects any statement.
        """
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            log.error("bookkeeping_transaction_failed", table=self.table_name, error=str(e))
            raise MigrationError.bookkeeping_failed(self.table_name, str(e)) from e

    def names(self, conn: Connection | None = None) -> list[str]:
        """Recorded migration names in insertion order."""
        stmt = select(self.table.c.migration).order_by(self.table.c.id)
        return self._run(conn, lambda c: [row[0] for row in c.execute(stmt)])

    def next_batch(self, conn: Connection | None = None) -> int:
        stmt = select(func.max(self.table.c.batch))
        current = self._run(conn, lambda c: c.execute(stmt).scalar())
        return (current or 0) + 1

    def delete(self, names: Iterable[str], conn: Connection | None = None) -> int:
        """Delete records by name; returns the number of rows removed."""
        targets = sorted(set(names))
        if not targets:
            return 0
        stmt = delete(self.table).where(self.table.c.migration.in_(targets))
        deleted = self._run(conn, lambda c: c.execute(stmt).rowcount)
        log.info("bookkeeping_records_deleted", table=self.table_name, count=deleted)
        return deleted

    def insert(self, names: Iterable[str], batch: int, conn: Connection | None = None) -> int:
        """Insert records in name order under one batch; returns the count."""
        rows = [{"migration": name, "batch": batch} for name in sorted(set(names))]
        if not rows:
            return 0
        self._run(conn, lambda c: c.execute(insert(self.table), rows))
        log.info(
            "bookkeeping_records_inserted",
            table=self.table_name,
            count=len(rows),
            batch=batch,
        )
        return len(rows)

    def _run(self, conn: Connection | None, operation: Callable[[Connection], T]) -> T:
        if conn is not None:
            return operation(conn)
        with self.transaction() as own:
            return operation(own)
