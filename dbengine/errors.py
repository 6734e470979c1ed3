"""
Engine-specific exceptions.

This module defines the exception hierarchy for migration and seeding
operations, enabling precise error handling at different layers of the
application.
"""

from typing import List, Optional


class EngineError(Exception):
    """
    Base exception for engine errors.

    All migration and seeding exceptions inherit from this base class,
    allowing catch-all error handling when needed.
    """
    pass


class ConfigurationError(EngineError):
    """
    Engine configuration invalid.

    Raised when:
    - Rollback count is malformed, zero or negative
    - Config file cannot be parsed or has the wrong shape
    - Units module cannot be imported
    """
    pass


class RegistrationError(EngineError):
    """
    Registered units are inconsistent.

    Raised when:
    - Two migrations share a version
    - Two seeders share a name
    - A seeder depends on a name that is not registered
    - A requested seeder does not exist
    """
    pass


class UnregisteredMigrationError(RegistrationError):
    """Ledger references a version whose migration is no longer registered."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Migration {version} is recorded in the ledger but not registered"
        )


class ExecutionError(EngineError):
    """
    A unit's own operation failed.

    Wraps the underlying store error (available as ``__cause__``).

    Attributes:
        unit: Version (migrations) or name (seeders) of the failing unit
        operation: 'up', 'down' or 'run'
    """

    def __init__(self, unit: str, operation: str, message: str):
        self.unit = unit
        self.operation = operation
        super().__init__(message)

    @property
    def version(self) -> str:
        return self.unit

    @property
    def name(self) -> str:
        return self.unit


class LedgerError(EngineError):
    """
    Ledger read or write failed.

    Raised when:
    - Ledger table cannot be created or queried
    - Ledger row insert/delete fails
    - Commit of a unit's transaction fails
    """

    def __init__(self, message: str, version: Optional[str] = None):
        self.version = version
        super().__init__(message)


class CycleError(EngineError):
    """
    Dependency graph has no valid topological order.

    Attributes:
        cycle: Names along the offending loop, first name repeated at the
            end (e.g. ['X', 'Y', 'X'])
    """

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(
            f"Circular dependency detected: {' -> '.join(self.cycle)}"
        )
