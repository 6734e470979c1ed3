"""
Dependency graph ordering shared by the seeder resolver.

Graphs are ordered mappings of ``name -> [dependency names]``. Both
orderings place every dependency before its dependents and report
cycles the same way: a :class:`CycleError` carrying the names along
the offending loop.
"""

from collections import deque
from typing import Dict, List, Sequence

from .errors import CycleError, RegistrationError

Graph = Dict[str, Sequence[str]]


def validate_references(graph: Graph) -> None:
    """Ensure every dependency names a node of the graph.

    Raises:
        RegistrationError: Naming both the dependent and the missing node
    """
    for name, deps in graph.items():
        for dep in deps:
            if dep not in graph:
                raise RegistrationError(
                    f"Seeder '{name}' depends on '{dep}' but '{dep}' is not registered"
                )


def topological_sort(graph: Graph) -> List[str]:
    """Order all nodes with Kahn's algorithm.

    A node's in-degree is the number of its own dependencies. Nodes with
    no dependencies seed the queue in graph order; dependents are
    released in graph order too, so the result is deterministic for a
    given registration order.

    Args:
        graph: Ordered mapping of node name to dependency names. All
            references must already be valid (see validate_references).

    Returns:
        Node names, dependencies first

    Raises:
        CycleError: If some nodes can never reach in-degree zero
    """
    dependents: Dict[str, List[str]] = {name: [] for name in graph}
    in_degree: Dict[str, int] = {name: 0 for name in graph}

    for name, deps in graph.items():
        for dep in deps:
            dependents[dep].append(name)
            in_degree[name] += 1

    queue = deque(name for name, degree in in_degree.items() if degree == 0)
    result: List[str] = []

    while queue:
        name = queue.popleft()
        result.append(name)

        for dependent in dependents[name]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(result) != len(graph):
        ordered = set(result)
        remaining = [name for name in graph if name not in ordered]
        raise CycleError(_find_cycle(graph, remaining))

    return result


def dependency_closure(graph: Graph, target: str) -> List[str]:
    """Order ``target`` and everything it transitively depends on.

    Depth-first post-order: all of a node's dependencies are emitted
    before the node itself. Nodes that merely depend on ``target`` are
    never included.

    Raises:
        RegistrationError: If target or one of its dependencies is unknown
        CycleError: If a node still being visited is reached again
    """
    if target not in graph:
        raise RegistrationError(f"Seeder '{target}' is not registered")

    visiting: List[str] = []
    visited = set()
    result: List[str] = []

    def visit(name: str) -> None:
        if name in visiting:
            raise CycleError(visiting[visiting.index(name):] + [name])
        if name in visited:
            return

        visiting.append(name)
        for dep in graph[name]:
            if dep not in graph:
                raise RegistrationError(
                    f"Seeder '{name}' depends on '{dep}' but '{dep}' is not registered"
                )
            visit(dep)
        visiting.pop()

        visited.add(name)
        result.append(name)

    visit(target)
    return result


def _find_cycle(graph: Graph, remaining: List[str]) -> List[str]:
    """Walk dependency edges inside the unsorted remainder until a node repeats.

    Every node Kahn's algorithm leaves behind has at least one dependency
    that was also left behind, so the walk always closes a loop.
    """
    stuck = set(remaining)
    path: List[str] = []
    position: Dict[str, int] = {}
    node = remaining[0]

    while node not in position:
        position[node] = len(path)
        path.append(node)
        node = next(dep for dep in graph[node] if dep in stuck)

    return path[position[node]:] + [node]
