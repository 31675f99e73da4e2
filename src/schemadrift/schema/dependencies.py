"""Foreign-key dependency ordering between tables.

An edge ``A -> B`` means a foreign key on ``A`` references ``B``, so ``B``
must be created before ``A`` and dropped after it. Self-references and
references to tables outside the given set are ignored.

Cycles never make sorting fail: the DFS drops the back edge it meets and
carries on, which yields *an* order among cyclic tables but not a valid
one. Callers should run ``detect_circular_dependencies`` and treat any
cycle as needing manual reordering.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

import structlog

from schemadrift.schema.models import ForeignKeyInfo

log = structlog.get_logger(__name__)

ForeignKeysByTable = Mapping[str, Iterable[ForeignKeyInfo]]
_Graph = dict[str, list[str]]


def topological_sort(tables: Sequence[str], foreign_keys: ForeignKeysByTable) -> list[str]:
    """Order tables so every table follows the tables it references."""
    graph = _build_graph(tables, foreign_keys)
    ordered: list[str] = []
    visited: set[str] = set()
    visiting: set[str] = set()

    # explicit stack of (table, remaining references); chains may be thousands deep
    for table in tables:
        if table in visited:
            continue
        visiting.add(table)
        stack = [(table, iter(graph.get(table, [])))]
        while stack:
            node, deps = stack[-1]
            for dep in deps:
                if dep in visiting:
                    log.debug("circular_dependency_edge_dropped", table=node, references=dep)
                    continue
                if dep not in visited:
                    visiting.add(dep)
                    stack.append((dep, iter(graph.get(dep, []))))
                    break
            else:
                stack.pop()
                visiting.discard(node)
                visited.add(node)
                ordered.append(node)

    return ordered


def get_creation_order(tables: Sequence[str], foreign_keys: ForeignKeysByTable) -> list[str]:
    return topological_sort(tables, foreign_keys)


def get_drop_order(tables: Sequence[str], foreign_keys: ForeignKeysByTable) -> list[str]:
    """Dependent tables first: the exact reverse of the creation order."""
    return list(reversed(topological_sort(tables, foreign_keys)))


def detect_circular_dependencies(
    tables: Sequence[str], foreign_keys: ForeignKeysByTable
) -> list[list[str]]:
    """Find foreign-key cycles.

    Each cycle is returned closed (first table repeated at the end) and
    rotated to start at its lexicographically smallest table, so the same
    cycle found from different entry points is reported once.
    """
    graph = _build_graph(tables, foreign_keys)
    cycles: list[list[str]] = []
    visited: set[str] = set()
    visiting: set[str] = set()

    for table in tables:
        if table in visited:
            continue
        visiting.add(table)
        path = [table]
        stack = [(table, iter(graph.get(table, [])))]
        while stack:
            node, deps = stack[-1]
            for dep in deps:
                if dep in visiting:
                    start = path.index(dep)
                    cycles.append([*path[start:], dep])
                    continue
                if dep not in visited:
                    visiting.add(dep)
                    path.append(dep)
                    stack.append((dep, iter(graph.get(dep, []))))
                    break
            else:
                stack.pop()
                path.pop()
                visiting.discard(node)
                visited.add(node)

    return _deduplicate_cycles(cycles)


def detect_pivot_tables(tables: Sequence[str], foreign_keys: ForeignKeysByTable) -> list[str]:
    """Flag likely join tables.

    A table qualifies when it has exactly two foreign keys and its name
    contains both referenced table names (plural or singular), as in
    ``post_tag`` referencing ``posts`` and ``tags``. A hint, not a guarantee.
    """
    pivots: list[str] = []

    for table in tables:
        fks = list(foreign_keys.get(table, ()))
        if len(fks) != 2:
            continue

        references = sorted(fk.foreign_table for fk in fks)
        if all(ref and (ref in table or singularize(ref) in table) for ref in references):
            pivots.append(table)

    return pivots


def singularize(word: str) -> str:
    """Best-effort English singular for table names."""
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("ses", "xes", "zes", "ches", "shes")):
        return word[:-2]
    if word.endswith(("ss", "us", "is")):
        return word
    if word.endswith("s") and len(word) > 1:
        return word[:-1]
    return word


def _build_graph(tables: Sequence[str], foreign_keys: ForeignKeysByTable) -> _Graph:
    known = set(tables)
    graph: _Graph = {table: [] for table in tables}

    for table, fks in foreign_keys.items():
        if table not in known:
            continue
        for fk in fks:
            ref = fk.foreign_table
            if ref and ref != table and ref in known:
                graph[table].append(ref)

    return graph


def _deduplicate_cycles(cycles: list[list[str]]) -> list[list[str]]:
    seen: set[tuple[str, ...]] = set()
    unique: list[list[str]] = []

    for cycle in cycles:
        members = cycle[:-1]
        start = members.index(min(members))
        rotated = members[start:] + members[:start]

        key = tuple(rotated)
        if key not in seen:
            seen.add(key)
            unique.append([*rotated, rotated[0]])

    return unique
