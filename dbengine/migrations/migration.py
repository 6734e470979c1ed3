"""
Migration data models.

This module defines the core data structures for versioned schema changes:
- Migration: A registered forward/reverse pair of schema operations
- SQLMigration: A Migration written as UP/DOWN SQL scripts
- LedgerRecord: A migration that has been applied to the database

Versions are compared as plain strings, so they must be fixed-width and
zero-padded (e.g. '2025_01_01_000001') to sort chronologically.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

import sqlparse

from dbengine.database import Transaction


class Migration(ABC):
    """
    Base class for a versioned schema change.

    Subclasses set ``version`` and ``description`` and implement ``up``
    and ``down``. Raising any exception signals failure; the engine rolls
    back the transaction.

    Example:
        >>> class CreateUsersTable(Migration):
        ...     version = '2025_01_01_000001'
        ...     description = 'create users table'
        ...
        ...     def up(self, tx):
        ...         tx.execute('CREATE TABLE users (id INTEGER PRIMARY KEY)')
        ...
        ...     def down(self, tx):
        ...         tx.execute('DROP TABLE users')
    """

    version: str = ''
    description: str = ''

    @abstractmethod
    def up(self, tx: Transaction) -> None:
        """Apply the schema change."""

    @abstractmethod
    def down(self, tx: Transaction) -> None:
        """Revert the schema change."""

    def __lt__(self, other: 'Migration') -> bool:
        if not isinstance(other, Migration):
            return NotImplemented
        return self.version < other.version

    def __repr__(self) -> str:
        return f"<Migration({self.version}, {self.description})>"


def split_statements(sql: str) -> List[str]:
    """Split a SQL script into single statements.

    SQLite executes one statement at a time, so scripts are always sent
    statement by statement. Comment-only fragments are dropped.
    """
    statements = []
    for stmt in sqlparse.split(sql):
        stripped = sqlparse.format(stmt, strip_comments=True).strip().rstrip(';').strip()
        if stripped:
            statements.append(stripped)
    return statements


class SQLMigration(Migration):
    """
    Migration defined by UP and DOWN SQL scripts.

    Example:
        >>> SQLMigration(
        ...     version='2025_08_18_101001',
        ...     description='create user_tokens table',
        ...     up_sql='CREATE TABLE user_tokens (id INTEGER PRIMARY KEY);',
        ...     down_sql='DROP TABLE user_tokens;'
        ... )
        <Migration(2025_08_18_101001, create user_tokens table)>
    """

    def __init__(self, version: str, description: str, up_sql: str, down_sql: str):
        if not up_sql.strip():
            raise ValueError(f"Migration {version} has empty UP section")
        if not down_sql.strip():
            raise ValueError(f"Migration {version} has empty DOWN section")

        self.version = version
        self.description = description
        self.up_sql = up_sql
        self.down_sql = down_sql

    def up(self, tx: Transaction) -> None:
        for stmt in split_statements(self.up_sql):
            tx.execute(stmt)

    def down(self, tx: Transaction) -> None:
        for stmt in split_statements(self.down_sql):
            tx.execute(stmt)


@dataclass
class LedgerRecord:
    """
    A migration that has been applied to the database.

    Corresponds to one row of the ledger table.

    Attributes:
        id: Surrogate key
        version: Migration version
        description: Migration description at time of application
        applied_at: UTC ISO-8601 timestamp string
    """

    id: int
    version: str
    description: str
    applied_at: str

    def __repr__(self) -> str:
        return f"<LedgerRecord({self.version}, {self.applied_at})>"
