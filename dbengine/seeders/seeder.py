"""Seeder unit base class."""

from abc import ABC, abstractmethod
from typing import Sequence

from dbengine.database import Transaction


class Seeder(ABC):
    """
    Base class for a named data-population task.

    ``dependencies`` lists seeders that must run first. The engine does
    not track whether a seeder already ran: ``run`` executes on every
    invocation, so seeders that must not duplicate data check for it
    themselves.

    Example:
        >>> class UserSeeder(Seeder):
        ...     name = 'UserSeeder'
        ...     dependencies = ['RoleSeeder']
        ...
        ...     def run(self, tx):
        ...         exists = tx.execute(
        ...             "SELECT 1 FROM users WHERE email = 'admin@example.com'"
        ...         ).first()
        ...         if not exists:
        ...             tx.execute("INSERT INTO users (email) VALUES ('admin@example.com')")
    """

    name: str = ''
    dependencies: Sequence[str] = ()

    @abstractmethod
    def run(self, tx: Transaction) -> None:
        """Populate data."""

    def __repr__(self) -> str:
        return f"<Seeder({self.name})>"
