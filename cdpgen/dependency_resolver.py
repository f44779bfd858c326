# sort the types of a domain by their dependencies

import logging
from typing import Dict, List, Set

logger = logging.getLogger(__name__)


def type_dependencies(data_type, domain: str) -> Set[str]:
    """ names of the types in ``domain`` that ``data_type`` refers to """
    # local import: typemapper imports this module
    from cdpgen.typemapper import iter_named
    deps: Set[str] = set()
    descriptors = [f.type for f in data_type.fields]
    if data_type.target is not None:
        descriptors.append(data_type.target)
    for descriptor in descriptors:
        for named in iter_named(descriptor):
            if named.domain == domain and named.name != data_type.name:
                deps.add(named.name)
    return deps


def is_on_cycle(name: str, dependencies: Dict[str, Set[str]], pending: Set[str]) -> bool:
    """ true if ``name`` can reach itself through dependencies that are not emitted yet """
    stack = [dep for dep in dependencies[name] if dep in pending]
    visited: Set[str] = set()
    while stack:
        current = stack.pop()
        if current == name:
            return True
        if current in visited:
            continue
        visited.add(current)
        stack.extend(dep for dep in dependencies[current] if dep in pending)
    return False


def sort_types_by_dependencies(types: List, domain: str) -> List:
    """
        Sort the data types of a domain so that each type comes after the types it
        refers to. The sort is stable: among the types whose dependencies are all
        emitted, the one that came first in the input goes first.

        Cycles cannot be ordered. When no remaining type has all its dependencies
        emitted, the first remaining type in input order that sits on a cycle is
        emitted anyway, which keeps the result a pure function of the input order.

        Args:
            types: Data types in declared-then-synthesized order.
            domain: Name of the domain owning the types.

        Returns:
            The reordered list.
    """
    known = {t.name for t in types}
    dependencies: Dict[str, Set[str]] = {t.name: type_dependencies(t, domain) & known for t in types}
    sorted_types = []
    emitted: Set[str] = set()
    remaining = list(types)
    while remaining:
        ready = next((t for t in remaining if dependencies[t.name] <= emitted), None)
        if ready is None:
            pending = {t.name for t in remaining}
            ready = next((t for t in remaining if is_on_cycle(t.name, dependencies, pending)), remaining[0])
            logger.debug("Breaking dependency cycle in domain %s at type %s", domain, ready.name)
        sorted_types.append(ready)
        emitted.add(ready.name)
        remaining.remove(ready)
    return sorted_types
