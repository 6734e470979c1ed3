"""
Migration and seed-dependency engine.

Applies ordered, ledger-tracked schema migrations and runs data seeders
in dependency order against a transactional database handle.

Example:
    from dbengine import Database, MigrationManager, Registry, SeederManager

    migrations = Registry('migration')
    migrations.register(CreateUsersTable())

    db = Database('sqlite:///app.db')
    MigrationManager(db, migrations.all()).run_migrations()
"""

from .errors import (
    ConfigurationError,
    CycleError,
    EngineError,
    ExecutionError,
    LedgerError,
    RegistrationError,
    UnregisteredMigrationError,
)
from .config import EngineConfig, MigrationConfig, SeederConfig, load_config
from .database import Database, Transaction, TransactionalHandle
from .registry import Registry, load_units
from .migrations import (
    LedgerRecord,
    Migration,
    MigrationManager,
    MigrationResult,
    MigrationStatus,
    SQLMigration,
)
from .seeders import Seeder, SeederListing, SeederManager, SeederResolver, SeedReport

__version__ = '1.0.0'

__all__ = [
    # Errors
    'EngineError',
    'ConfigurationError',
    'RegistrationError',
    'UnregisteredMigrationError',
    'ExecutionError',
    'LedgerError',
    'CycleError',
    # Configuration
    'EngineConfig',
    'MigrationConfig',
    'SeederConfig',
    'load_config',
    # Store
    'Database',
    'Transaction',
    'TransactionalHandle',
    # Registration
    'Registry',
    'load_units',
    # Migrations
    'Migration',
    'SQLMigration',
    'LedgerRecord',
    'MigrationManager',
    'MigrationResult',
    'MigrationStatus',
    # Seeders
    'Seeder',
    'SeederResolver',
    'SeederManager',
    'SeedReport',
    'SeederListing',
]
