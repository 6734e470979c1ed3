"""Unit registries and the composition root that fills them.

A :class:`Registry` is an explicit, append-only list of units owned by
whoever builds the engine. There is no process-wide instance: the
command line (or a test) creates one registry per unit kind, loads a
units module into them and hands the snapshots to the managers.

Example:
    >>> migrations = Registry('migration')
    >>> migrations.register(CreateUsersTable())
    >>> manager = MigrationManager(database, migrations.all())
"""

import importlib
import logging
import os
import sys
import threading
from typing import Generic, Iterator, List, Tuple, TypeVar

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Registry(Generic[T]):
    """Ordered, append-only collection of registered units.

    Registering the same unit twice keeps both entries; consumers
    (MigrationManager, SeederResolver) reject the duplicate identity.

    Attributes:
        kind: Label used in log messages ('migration', 'seeder')
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._units: List[T] = []
        self._lock = threading.Lock()

    def register(self, unit: T) -> T:
        """Append a unit and return it unchanged."""
        with self._lock:
            self._units.append(unit)
        logger.debug('Registered %s %r', self.kind, unit)
        return unit

    def all(self) -> List[T]:
        """Return a copy of the registered units in registration order."""
        with self._lock:
            return list(self._units)

    def clear(self) -> None:
        """Remove every unit."""
        with self._lock:
            self._units.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._units)

    def __iter__(self) -> Iterator[T]:
        return iter(self.all())

    def __repr__(self) -> str:
        return f"<Registry({self.kind}): {len(self)} units>"


def load_units(module_path: str) -> Tuple[Registry, Registry]:
    """Import a units module and collect its migrations and seeders.

    The module either exposes ``register(migrations, seeders)``, which
    receives two empty registries, or module-level ``MIGRATIONS`` and
    ``SEEDERS`` lists of unit instances. The current working directory is
    put on ``sys.path`` first, as ``python -m`` does.

    Args:
        module_path: Dotted import path (e.g. 'app.database.units')

    Returns:
        Tuple of (migration registry, seeder registry)

    Raises:
        ConfigurationError: If the module cannot be imported or exposes
            neither form
    """
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ConfigurationError(
            f"Cannot import units module '{module_path}': {e}"
        ) from e

    migrations: Registry = Registry('migration')
    seeders: Registry = Registry('seeder')

    hook = getattr(module, 'register', None)
    if callable(hook):
        hook(migrations, seeders)
    elif hasattr(module, 'MIGRATIONS') or hasattr(module, 'SEEDERS'):
        for unit in getattr(module, 'MIGRATIONS', []):
            migrations.register(unit)
        for unit in getattr(module, 'SEEDERS', []):
            seeders.register(unit)
    else:
        raise ConfigurationError(
            f"Units module '{module_path}' defines neither register() "
            f"nor MIGRATIONS/SEEDERS"
        )

    logger.info(
        'Loaded %d migrations and %d seeders from %s',
        len(migrations), len(seeders), module_path
    )
    return migrations, seeders
