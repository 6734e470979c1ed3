"""
Seeder manager for populating data in dependency order.

Each seeder's ``run`` executes in its own transaction. A full run either
stops at the first failure (fail-fast) or logs the failure and carries
on with the remaining seeders (best-effort), depending on
``SeederConfig.fail_fast``. Named runs always stop at the first failure.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from dbengine.config import SeederConfig
from dbengine.database import TransactionalHandle
from dbengine.errors import EngineError, ExecutionError

from .seeder import Seeder
from .seeder_resolver import SeederResolver

logger = logging.getLogger(__name__)


@dataclass
class SeedReport:
    """
    Outcome of a seeding run.

    Attributes:
        executed: Names of seeders that committed, in execution order
        failed: Names of seeders that failed (best-effort mode only)
    """
    executed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


@dataclass
class SeederListEntry:
    position: int
    name: str
    dependencies: List[str]


@dataclass
class SeederListing:
    """
    Seeders in run order, for display.

    Attributes:
        entries: Seeders with their declared dependencies
        resolved: False when resolution failed and entries follow
            registration order instead
        error: Resolution error message when ``resolved`` is False
    """
    entries: List[SeederListEntry] = field(default_factory=list)
    resolved: bool = True
    error: Optional[str] = None


class SeederManager:
    """
    Runs seeders against a transactional handle.

    Example:
        >>> manager = SeederManager(database, seeders.all(), SeederConfig(fail_fast=False))
        >>> manager.run_seeders()            # everything
        >>> manager.run_seeders('UserSeeder')  # UserSeeder and its prerequisites
    """

    def __init__(
        self,
        handle: TransactionalHandle,
        seeders: Iterable[Seeder],
        config: Optional[SeederConfig] = None
    ):
        self.handle = handle
        self.config = config or SeederConfig()
        self.resolver = SeederResolver(seeders)

    def get_registered_seeders(self) -> List[Seeder]:
        return list(self.resolver.seeders)

    def run_seeders(self, name: str = '') -> SeedReport:
        """
        Run all seeders, or one seeder plus its prerequisites.

        Args:
            name: Seeder name, or empty for all seeders

        Returns:
            SeedReport listing executed (and, best-effort, failed) seeders

        Raises:
            RegistrationError: Unknown seeder, duplicate name or missing
                dependency; nothing is executed
            CycleError: Dependency cycle; nothing is executed
            ExecutionError: A seeder failed (fail-fast or named run)
        """
        if name:
            return self._run_specific(name)

        if not self.resolver.seeders:
            logger.info('No seeders found')
            return SeedReport()

        logger.info(
            'Starting database seeding (%d seeders)', len(self.resolver.seeders)
        )

        try:
            ordered = self.resolver.resolve_all()
        except EngineError as e:
            logger.error('Failed to resolve seeder dependencies: %s', e)
            raise

        report = SeedReport()
        for seeder in ordered:
            try:
                self._run_one(seeder)
            except EngineError as e:
                if self.config.fail_fast:
                    raise
                logger.warning(
                    'Continuing despite failure of seeder %s: %s', seeder.name, e
                )
                report.failed.append(seeder.name)
                continue
            report.executed.append(seeder.name)

        if report.failed:
            logger.warning(
                'Seeding finished with %d failures: %s',
                len(report.failed), ', '.join(report.failed)
            )
        else:
            logger.info(
                'All seeders completed successfully (%d)', len(report.executed)
            )
        return report

    def _run_specific(self, name: str) -> SeedReport:
        try:
            ordered = self.resolver.resolve_for(name)
        except EngineError as e:
            logger.error('Failed to resolve dependencies for %s: %s', name, e)
            raise

        report = SeedReport()
        for seeder in ordered:
            self._run_one(seeder)
            report.executed.append(seeder.name)

        logger.info('Seeder %s completed successfully', ordered[-1].name)
        return report

    def _run_one(self, seeder: Seeder) -> None:
        start_time = time.time()
        logger.info('Running seeder %s', seeder.name)

        try:
            tx = self.handle.begin()
        except SQLAlchemyError as e:
            logger.error('Failed to start transaction for seeder %s: %s', seeder.name, e)
            raise ExecutionError(
                seeder.name, 'run',
                f"Seeder {seeder.name} failed to start a transaction: {e}"
            ) from e

        try:
            seeder.run(tx)
            tx.commit()
        except Exception as e:
            try:
                tx.rollback()
            except SQLAlchemyError as rollback_error:
                logger.error(
                    'Failed to roll back seeder %s: %s', seeder.name, rollback_error
                )
            logger.error('Seeder %s failed: %s', seeder.name, e)
            raise ExecutionError(
                seeder.name, 'run', f"Seeder {seeder.name} failed: {e}"
            ) from e

        logger.info(
            'Seeder %s completed (%dms)',
            seeder.name, int((time.time() - start_time) * 1000)
        )

    def list_seeders(self) -> SeederListing:
        """
        Describe seeders in run order with their dependencies.

        Never raises for resolution problems: on failure the listing
        falls back to registration order with ``resolved=False``.
        """
        seeders = self.resolver.seeders
        listing = SeederListing()

        if not seeders:
            logger.info('No seeders registered')
            return listing

        try:
            ordered = self.resolver.resolve_all()
        except EngineError as e:
            logger.warning(
                'Failed to resolve seeder dependencies, showing registration order: %s', e
            )
            ordered = list(seeders)
            listing.resolved = False
            listing.error = str(e)

        logger.info('Registered Seeders:')
        for position, seeder in enumerate(ordered, start=1):
            deps = list(seeder.dependencies)
            listing.entries.append(SeederListEntry(position, seeder.name, deps))
            if deps:
                logger.info('%d. %s (depends on: %s)', position, seeder.name, ', '.join(deps))
            else:
                logger.info('%d. %s', position, seeder.name)
        logger.info('Total seeders: %d', len(ordered))

        return listing
