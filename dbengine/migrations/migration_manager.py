"""
Migration manager for versioned schema changes.

This module provides the MigrationManager class which handles:
- Validation of the registered migration set
- Calculation of pending migrations against the ledger
- Applying pending migrations in version order
- Rolling back the most recently applied migrations
- Status reporting

Migrations run strictly one at a time, one transaction each. The first
failure aborts the whole batch; already committed migrations stay
committed and a later run picks up where this one stopped.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from dbengine.config import MigrationConfig
from dbengine.database import TransactionalHandle
from dbengine.errors import (
    ConfigurationError,
    RegistrationError,
    UnregisteredMigrationError,
)

from .ledger import Ledger
from .migration import LedgerRecord, Migration
from .migration_executor import MigrationExecutor, MigrationResult

logger = logging.getLogger(__name__)

ROLLBACK_ALL = 'all'

APPLIED = 'APPLIED'
PENDING = 'PENDING'


@dataclass
class MigrationStatusEntry:
    version: str
    description: str
    state: str
    applied_at: Optional[str] = None


@dataclass
class MigrationStatus:
    """
    Applied/pending report for every registered migration.

    Attributes:
        entries: One entry per registered migration, ascending by version
        orphaned: Ledger rows whose migration is no longer registered
    """
    entries: List[MigrationStatusEntry] = field(default_factory=list)
    orphaned: List[LedgerRecord] = field(default_factory=list)

    @property
    def applied(self) -> int:
        return sum(1 for e in self.entries if e.state == APPLIED)

    @property
    def pending(self) -> int:
        return sum(1 for e in self.entries if e.state == PENDING)

    @property
    def total(self) -> int:
        return len(self.entries)


def parse_rollback_count(count: Union[int, str]) -> Optional[int]:
    """
    Parse a rollback count.

    Args:
        count: Positive int, decimal string, or 'all'

    Returns:
        Number of migrations to roll back, or None for all of them

    Raises:
        ConfigurationError: If count is malformed, zero or negative

    Example:
        >>> parse_rollback_count('3')
        3
        >>> parse_rollback_count('all') is None
        True
    """
    if isinstance(count, bool):
        raise ConfigurationError(f"Invalid rollback count: {count!r}")

    if isinstance(count, str):
        value = count.strip()
        if value.lower() == ROLLBACK_ALL:
            return None
        try:
            count = int(value)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid rollback count '{value}': expected a positive integer or 'all'"
            ) from e

    if not isinstance(count, int):
        raise ConfigurationError(f"Invalid rollback count: {count!r}")

    if count <= 0:
        raise ConfigurationError(
            f"Rollback count must be greater than 0, got {count}"
        )

    return count


class MigrationManager:
    """
    Applies, rolls back and reports on registered migrations.

    The manager snapshots the migrations it is given; registering more
    units afterwards has no effect on it. It borrows the handle and is
    the only writer of ledger rows.

    Example:
        >>> manager = MigrationManager(database, migrations.all())
        >>> manager.run_migrations()
        [MigrationResult(version='2025_01_01_000001', ...)]
        >>> manager.rollback_migrations('all')
    """

    def __init__(
        self,
        handle: TransactionalHandle,
        migrations: Iterable[Migration],
        config: Optional[MigrationConfig] = None
    ):
        """
        Initialize migration manager.

        Args:
            handle: Transactional handle (e.g. Database)
            migrations: Registered migration units
            config: Migration settings (ledger table name)

        Raises:
            RegistrationError: If a version is empty or registered twice
        """
        self.config = config or MigrationConfig()
        self.handle = handle
        self.ledger = Ledger(self.config.table_name)
        self.executor = MigrationExecutor(handle, self.ledger)

        self._migrations: Dict[str, Migration] = {}
        for migration in migrations:
            version = migration.version
            if not isinstance(version, str) or not version:
                raise RegistrationError(
                    f"Migration {migration!r} has no version"
                )
            if version in self._migrations:
                raise RegistrationError(
                    f"Duplicate migration version {version}: "
                    f"{self._migrations[version]!r} and {migration!r}"
                )
            self._migrations[version] = migration

    def get_registered_migrations(self) -> List[Migration]:
        """Return registered migrations sorted by version."""
        return [self._migrations[v] for v in sorted(self._migrations)]

    def get_applied_migrations(self) -> List[LedgerRecord]:
        """Return ledger rows, oldest first."""
        self.ledger.ensure_table(self.handle)
        return self.ledger.read_applied(self.handle)

    def get_pending_migrations(self) -> List[Migration]:
        """Return registered migrations with no ledger row, by version."""
        applied = {record.version for record in self.get_applied_migrations()}
        return [
            migration
            for migration in self.get_registered_migrations()
            if migration.version not in applied
        ]

    def is_migration_applied(self, version: str) -> bool:
        return any(r.version == version for r in self.get_applied_migrations())

    def run_migrations(self) -> List[MigrationResult]:
        """
        Apply every pending migration in ascending version order.

        Returns:
            Results for the migrations applied by this call (empty if
            there was nothing to do)

        Raises:
            ExecutionError: If a migration's ``up`` failed; ``error.version``
                names it and no later migration was attempted
            LedgerError: If the ledger could not be read or written
        """
        pending = self.get_pending_migrations()

        if not pending:
            logger.info('No pending migrations found')
            return []

        logger.info('Running %d pending migrations', len(pending))

        results = []
        for migration in pending:
            results.append(self.executor.apply_migration(migration))

        logger.info('All migrations completed successfully (%d)', len(results))
        return results

    def rollback_migrations(self, count: Union[int, str] = 1) -> List[MigrationResult]:
        """
        Roll back the most recently applied migrations.

        Rows are selected by ``applied_at`` descending, ties broken by
        version descending, and reverted newest first, one transaction
        each. The first failure stops the rollback; migrations already
        reverted stay reverted.

        Args:
            count: Number of migrations, or 'all'

        Returns:
            Results for the reverted migrations, in rollback order

        Raises:
            ConfigurationError: If count is malformed
            UnregisteredMigrationError: If a selected ledger row has no
                registered migration
            ExecutionError: If a migration's ``down`` failed
            LedgerError: If the ledger could not be read or written
        """
        limit = parse_rollback_count(count)

        self.ledger.ensure_table(self.handle)
        records = self.ledger.read_latest(self.handle, limit)

        if not records:
            logger.info('No migrations to rollback')
            return []

        if limit is not None and len(records) < limit:
            logger.warning(
                'Only found %d migrations to rollback (requested %d)',
                len(records), limit
            )

        results = []
        for record in records:
            migration = self._migrations.get(record.version)
            if migration is None:
                logger.error(
                    'Cannot roll back %s: migration is not registered', record.version
                )
                raise UnregisteredMigrationError(record.version)

            results.append(self.executor.rollback_migration(migration))

        logger.info('Rollback completed successfully (%d)', len(results))
        return results

    def get_migration_status(self) -> MigrationStatus:
        """
        Report every registered migration as APPLIED or PENDING.

        Read-only apart from creating the ledger table when missing.

        Returns:
            MigrationStatus with per-migration entries and counts
        """
        applied = {r.version: r for r in self.get_applied_migrations()}

        status = MigrationStatus()
        for migration in self.get_registered_migrations():
            record = applied.get(migration.version)
            status.entries.append(MigrationStatusEntry(
                version=migration.version,
                description=migration.description,
                state=APPLIED if record else PENDING,
                applied_at=record.applied_at if record else None,
            ))

        status.orphaned = [
            record for version, record in applied.items()
            if version not in self._migrations
        ]

        logger.info('Migration Status:')
        for entry in status.entries:
            if entry.state == APPLIED:
                logger.info(
                    '  APPLIED  %s  %s  (%s)',
                    entry.version, entry.description, entry.applied_at
                )
            else:
                logger.info('  PENDING  %s  %s', entry.version, entry.description)
        for record in status.orphaned:
            logger.warning(
                '  Ledger row %s has no registered migration', record.version
            )
        logger.info(
            'Summary: %d applied, %d pending, %d total',
            status.applied, status.pending, status.total
        )

        return status

    def __repr__(self) -> str:
        return f"<MigrationManager: {len(self._migrations)} migrations>"
