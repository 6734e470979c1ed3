"""
Versioned schema migrations.

This package provides:
- Migration / SQLMigration: Migration units
- LedgerRecord: Data model for applied migrations
- Ledger: Access to the ledger table
- MigrationExecutor: Per-migration transactional apply/rollback
- MigrationManager: Run, rollback and status over a set of migrations
"""

from .ledger import Ledger
from .migration import LedgerRecord, Migration, SQLMigration
from .migration_executor import MigrationExecutor, MigrationResult
from .migration_manager import (
    ROLLBACK_ALL,
    MigrationManager,
    MigrationStatus,
    MigrationStatusEntry,
    parse_rollback_count,
)

__all__ = [
    'Migration',
    'SQLMigration',
    'LedgerRecord',
    'Ledger',
    'MigrationExecutor',
    'MigrationResult',
    'MigrationManager',
    'MigrationStatus',
    'MigrationStatusEntry',
    'ROLLBACK_ALL',
    'parse_rollback_count',
]
