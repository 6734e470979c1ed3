#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Migration executor with transaction management and ledger tracking.

Runs one migration per transaction: the schema change and its ledger
row commit together or not at all.
"""
import logging
import time
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from dbengine.database import Transaction, TransactionalHandle
from dbengine.errors import ExecutionError, LedgerError

from .ledger import Ledger, utc_timestamp
from .migration import Migration


@dataclass
class MigrationResult:
    """
    Result of one applied or reverted migration.

    Attributes:
        version: Migration version that was executed
        description: Migration description
        execution_time_ms: Execution time in milliseconds
    """
    version: str
    description: str
    execution_time_ms: int


class MigrationExecutor:
    """
    Executes single migrations with transaction safety.

    Every failure rolls the transaction back and is raised to the caller;
    nothing is retried.

    Attributes:
        handle: Transactional handle (borrowed, never closed here)
        ledger: Ledger the results are written to

    Example:
        executor = MigrationExecutor(database, Ledger())
        result = executor.apply_migration(migration)
        result = executor.rollback_migration(migration)
    """

    def __init__(self, handle: TransactionalHandle, ledger: Ledger):
        self.handle = handle
        self.ledger = ledger
        self.logger = logging.getLogger(__name__)

    def apply_migration(self, migration: Migration) -> MigrationResult:
        """
        Run ``migration.up`` and record it in the ledger.

        Returns:
            MigrationResult with execution time

        Raises:
            ExecutionError: If ``up`` raised (transaction rolled back)
            LedgerError: If the ledger insert or the commit failed
        """
        start_time = time.time()
        self.logger.info(
            'Applying migration %s (%s)', migration.version, migration.description
        )

        tx = self._begin(migration.version)
        try:
            migration.up(tx)
        except Exception as e:
            self._rollback(tx, migration.version)
            self.logger.error(
                'Failed to apply migration %s: %s', migration.version, e
            )
            raise ExecutionError(
                migration.version, 'up',
                f"Migration {migration.version} failed: {e}"
            ) from e

        try:
            self.ledger.insert(tx, migration, utc_timestamp())
        except LedgerError as e:
            self._rollback(tx, migration.version)
            self.logger.error(
                'Failed to record migration %s: %s', migration.version, e
            )
            raise

        self._commit(tx, migration.version)

        execution_time_ms = int((time.time() - start_time) * 1000)
        self.logger.info(
            'Applied migration %s (%dms)', migration.version, execution_time_ms
        )
        return MigrationResult(
            version=migration.version,
            description=migration.description,
            execution_time_ms=execution_time_ms,
        )

    def rollback_migration(self, migration: Migration) -> MigrationResult:
        """
        Run ``migration.down`` and remove its ledger row.

        Raises:
            ExecutionError: If ``down`` raised (transaction rolled back)
            LedgerError: If the ledger delete or the commit failed
        """
        start_time = time.time()
        self.logger.info(
            'Rolling back migration %s (%s)', migration.version, migration.description
        )

        tx = self._begin(migration.version)
        try:
            migration.down(tx)
        except Exception as e:
            self._rollback(tx, migration.version)
            self.logger.error(
                'Failed to roll back migration %s: %s', migration.version, e
            )
            raise ExecutionError(
                migration.version, 'down',
                f"Rollback of migration {migration.version} failed: {e}"
            ) from e

        try:
            self.ledger.delete(tx, migration.version)
        except LedgerError as e:
            self._rollback(tx, migration.version)
            self.logger.error(
                'Failed to remove ledger row for %s: %s', migration.version, e
            )
            raise

        self._commit(tx, migration.version)

        execution_time_ms = int((time.time() - start_time) * 1000)
        self.logger.info(
            'Rolled back migration %s (%dms)', migration.version, execution_time_ms
        )
        return MigrationResult(
            version=migration.version,
            description=migration.description,
            execution_time_ms=execution_time_ms,
        )

    def _begin(self, version: str) -> Transaction:
        try:
            return self.handle.begin()
        except SQLAlchemyError as e:
            self.logger.error('Failed to start transaction for %s: %s', version, e)
            raise LedgerError(
                f"Failed to start transaction for {version}: {e}", version=version
            ) from e

    def _commit(self, tx: Transaction, version: str) -> None:
        try:
            tx.commit()
        except SQLAlchemyError as e:
            self.logger.error('Failed to commit migration %s: %s', version, e)
            raise LedgerError(
                f"Failed to commit migration {version}: {e}", version=version
            ) from e

    def _rollback(self, tx: Transaction, version: str) -> None:
        try:
            tx.rollback()
        except SQLAlchemyError as e:
            # The original failure is what gets raised
            self.logger.error('Failed to roll back transaction for %s: %s', version, e)
