"""
Global pytest configuration and fixtures for dbengine tests

Provides:
- In-memory SQLite database handle
- Recording migration and seeder units
- Ledger inspection helpers
"""

import pytest
from sqlalchemy import inspect

from dbengine.database import Database
from dbengine.migrations import Migration
from dbengine.seeders import Seeder


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


# ============================================================================
# Recording Units
# ============================================================================

class RecordingMigration(Migration):
    """Creates table t_<version> on up, drops it on down, logging each call."""

    def __init__(self, version, calls, description=None, fail_up=False, fail_down=False):
        self.version = version
        self.description = description or f'create t_{version}'
        self.calls = calls
        self.fail_up = fail_up
        self.fail_down = fail_down

    @property
    def table(self):
        return f't_{self.version}'

    def up(self, tx):
        self.calls.append(('up', self.version))
        tx.execute(f'CREATE TABLE {self.table} (id INTEGER PRIMARY KEY)')
        if self.fail_up:
            raise RuntimeError(f'up failed for {self.version}')

    def down(self, tx):
        self.calls.append(('down', self.version))
        tx.execute(f'DROP TABLE {self.table}')
        if self.fail_down:
            raise RuntimeError(f'down failed for {self.version}')


class RecordingSeeder(Seeder):
    """Inserts its name into seed_log, logging each call."""

    def __init__(self, name, calls, dependencies=None, fail=False):
        self.name = name
        self.dependencies = list(dependencies or [])
        self.calls = calls
        self.fail = fail

    def run(self, tx):
        self.calls.append(self.name)
        tx.execute('INSERT INTO seed_log (name) VALUES (:name)', {'name': self.name})
        if self.fail:
            raise RuntimeError(f'seeder {self.name} failed')


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def database():
    """In-memory SQLite database shared by every transaction of a test."""
    db = Database(':memory:')
    with db.begin() as tx:
        tx.execute('CREATE TABLE seed_log (id INTEGER PRIMARY KEY, name TEXT NOT NULL)')
    yield db
    db.dispose()


@pytest.fixture
def calls():
    """Call log shared by the units of one test."""
    return []


@pytest.fixture
def make_migration(calls):
    """Factory for RecordingMigration units."""
    def factory(version, **kwargs):
        return RecordingMigration(version, calls, **kwargs)
    return factory


@pytest.fixture
def make_seeder(calls):
    """Factory for RecordingSeeder units."""
    def factory(name, dependencies=None, **kwargs):
        return RecordingSeeder(name, calls, dependencies, **kwargs)
    return factory


@pytest.fixture
def table_names(database):
    """Return the current table names of the test database."""
    def names():
        return set(inspect(database.engine).get_table_names())
    return names


@pytest.fixture
def ledger_versions(database):
    """Return ledger versions, ascending."""
    def versions(table='migrations'):
        with database.begin() as tx:
            rows = tx.execute(f'SELECT version FROM {table} ORDER BY version').all()
        return [row.version for row in rows]
    return versions


@pytest.fixture
def seed_log(database):
    """Return names recorded in seed_log by committed seeders."""
    def names():
        with database.begin() as tx:
            rows = tx.execute('SELECT name FROM seed_log ORDER BY id').all()
        return [row.name for row in rows]
    return names
