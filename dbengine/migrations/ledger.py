"""
Ledger table access.

The ledger is the only record of which migrations have been applied;
the live schema is never inspected. Rows are written and deleted inside
the same transaction as the migration they describe.

Schema:
    id           INTEGER  primary key
    version      VARCHAR  unique, not null
    description  VARCHAR  not null
    applied_at   VARCHAR  not null, UTC ISO-8601 (sortable as text)
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateTable

from dbengine.database import Transaction, TransactionalHandle
from dbengine.errors import LedgerError

from .migration import LedgerRecord, Migration

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Current UTC time, e.g. '2025-01-01T12:00:00.000000+00:00'."""
    return datetime.now(timezone.utc).isoformat(timespec='microseconds')


class Ledger:
    """
    Reads and writes ledger rows through a Transaction.

    Attributes:
        table: SQLAlchemy Table for the ledger

    Example:
        >>> ledger = Ledger('migrations')
        >>> ledger.ensure_table(database)
        >>> ledger.read_applied(database)
        [<LedgerRecord(2025_01_01_000001, 2025-01-01T12:00:00.000000+00:00)>]
    """

    def __init__(self, table_name: str = 'migrations'):
        self.metadata = MetaData()
        self.table = Table(
            table_name,
            self.metadata,
            Column('id', Integer, primary_key=True, autoincrement=True),
            Column('version', String(255), nullable=False, unique=True),
            Column('description', String(500), nullable=False),
            Column('applied_at', String(64), nullable=False),
        )

    @property
    def table_name(self) -> str:
        return self.table.name

    def ensure_table(self, handle: TransactionalHandle) -> None:
        """Create the ledger table if it does not exist.

        Raises:
            LedgerError: On table creation failure
        """
        try:
            tx = handle.begin()
        except SQLAlchemyError as e:
            raise LedgerError(f"Failed to start transaction: {e}") from e

        try:
            tx.execute(CreateTable(self.table, if_not_exists=True))
            tx.commit()
        except SQLAlchemyError as e:
            tx.rollback()
            raise LedgerError(
                f"Failed to create ledger table '{self.table_name}': {e}"
            ) from e

        logger.debug("Ensured ledger table '%s' exists", self.table_name)

    def read_applied(self, handle: TransactionalHandle) -> List[LedgerRecord]:
        """Read all ledger rows in a short read-only transaction."""
        return self._read(handle, newest_first=False)

    def read_latest(
        self,
        handle: TransactionalHandle,
        limit: Optional[int] = None
    ) -> List[LedgerRecord]:
        """Read the most recently applied rows, newest first.

        Rows sharing an ``applied_at`` are ordered by version descending.

        Args:
            limit: Maximum rows to return (None for all)
        """
        return self._read(handle, newest_first=True, limit=limit)

    def _read(
        self,
        handle: TransactionalHandle,
        newest_first: bool,
        limit: Optional[int] = None
    ) -> List[LedgerRecord]:
        if newest_first:
            order = (self.table.c.applied_at.desc(), self.table.c.version.desc())
        else:
            order = (self.table.c.applied_at.asc(), self.table.c.version.asc())

        query = select(self.table).order_by(*order)
        if limit is not None:
            query = query.limit(limit)

        try:
            tx = handle.begin()
        except SQLAlchemyError as e:
            raise LedgerError(f"Failed to start transaction: {e}") from e

        try:
            rows = tx.execute(query).all()
        except SQLAlchemyError as e:
            raise LedgerError(f"Failed to read ledger: {e}") from e
        finally:
            tx.rollback()

        return [
            LedgerRecord(
                id=row.id,
                version=row.version,
                description=row.description,
                applied_at=row.applied_at,
            )
            for row in rows
        ]

    def insert(self, tx: Transaction, migration: Migration, applied_at: str) -> None:
        """Record a migration inside the caller's transaction.

        Raises:
            LedgerError: On insert failure
        """
        try:
            tx.execute(
                insert(self.table).values(
                    version=migration.version,
                    description=migration.description,
                    applied_at=applied_at,
                )
            )
        except SQLAlchemyError as e:
            raise LedgerError(
                f"Failed to record migration {migration.version}: {e}",
                version=migration.version,
            ) from e

    def delete(self, tx: Transaction, version: str) -> None:
        """Remove a migration's row inside the caller's transaction.

        Raises:
            LedgerError: On delete failure or if no row was removed
        """
        try:
            result = tx.execute(
                delete(self.table).where(self.table.c.version == version)
            )
        except SQLAlchemyError as e:
            raise LedgerError(
                f"Failed to remove ledger row for {version}: {e}",
                version=version,
            ) from e

        if result.rowcount == 0:
            raise LedgerError(
                f"Ledger row for {version} vanished during rollback",
                version=version,
            )
