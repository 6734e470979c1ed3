"""Execution order for seeders.

Builds the dependency graph from a snapshot of registered seeders and
orders it with :mod:`dbengine.graph`, either completely (``resolve_all``)
or for one seeder and its prerequisites (``resolve_for``).
"""

import logging
from typing import Dict, Iterable, List

from dbengine import graph
from dbengine.errors import RegistrationError

from .seeder import Seeder

logger = logging.getLogger(__name__)

SEEDER_SUFFIX = 'Seeder'


class SeederResolver:
    """Dependency resolution over a fixed set of seeders.

    Attributes:
        seeders: Registered seeders in registration order
    """

    def __init__(self, seeders: Iterable[Seeder]):
        self.seeders: List[Seeder] = list(seeders)

    def _index(self) -> Dict[str, Seeder]:
        index: Dict[str, Seeder] = {}
        for seeder in self.seeders:
            if seeder.name in index:
                raise RegistrationError(
                    f"Duplicate seeder name '{seeder.name}'"
                )
            index[seeder.name] = seeder
        return index

    def _graph(self, index: Dict[str, Seeder]) -> graph.Graph:
        return {name: list(seeder.dependencies) for name, seeder in index.items()}

    def find(self, name: str) -> Seeder:
        """
        Look up a seeder by name.

        The conventional ``Seeder`` suffix may be omitted: 'User' finds
        'UserSeeder' when no seeder is called 'User'.

        Raises:
            RegistrationError: If no seeder matches
        """
        index = self._index()
        if name in index:
            return index[name]
        if not name.endswith(SEEDER_SUFFIX) and name + SEEDER_SUFFIX in index:
            return index[name + SEEDER_SUFFIX]
        raise RegistrationError(f"Seeder '{name}' not found")

    def resolve_all(self) -> List[Seeder]:
        """
        Order every registered seeder, dependencies first.

        Returns:
            Seeders in execution order

        Raises:
            RegistrationError: On duplicate names, or when a dependency
                is not registered (naming dependent and dependency)
            CycleError: If the dependencies form a cycle
        """
        index = self._index()
        dependencies = self._graph(index)
        graph.validate_references(dependencies)

        order = graph.topological_sort(dependencies)
        logger.debug('Resolved seeder order: %s', ', '.join(order))
        return [index[name] for name in order]

    def resolve_for(self, name: str) -> List[Seeder]:
        """
        Order one seeder and everything it transitively depends on.

        Seeders that depend on ``name`` are not included.

        Returns:
            Prerequisites in execution order, ending with the seeder itself

        Raises:
            RegistrationError: If the seeder or a dependency is unknown
            CycleError: If the closure contains a cycle
        """
        target = self.find(name)
        index = self._index()

        order = graph.dependency_closure(self._graph(index), target.name)
        logger.debug('Resolved order for %s: %s', target.name, ', '.join(order))
        return [index[n] for n in order]
