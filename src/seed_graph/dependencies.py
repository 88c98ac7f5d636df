"""
Table dependency resolution.

Builds the table -> prerequisite graph from two sources:
- Foreign-key annotations in the schema map (`references: table.column`)
- Each importer's statically declared `dependencies`

and orders the requested tables so every prerequisite is populated before
its dependents. Missing prerequisites are appended to the request
automatically, and ties in the ordering are broken by request position so
the output is stable for a fixed input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

import networkx as nx

from .errors import CyclicDependencyError, UnknownTableError
from .schema import Schema, referenced_tables

if TYPE_CHECKING:
    from .importers.base import TableImporter

# Tables never inferred as dependencies. Subscriptions are referenced by
# member subscription rows but are not generated.
EXCLUDED_DEPENDENCIES = frozenset({"subscriptions"})


@dataclass
class TableSpec:
    """
    A table scheduled for generation.

    Attributes:
        name: Table name
        importer: Importer class registered for the table
        dependencies: Prerequisite table names (declared first, then inferred)
        quantity: Explicit row count override, or None for the importer default
    """

    name: str
    importer: type[TableImporter]
    dependencies: list[str] = field(default_factory=list)
    quantity: int | None = None


def table_dependencies(
    table: str,
    schema: Schema,
    importer: type[TableImporter],
) -> list[str]:
    """
    Merge an importer's declared dependencies with the schema's FK references.

    Args:
        table: Table name
        schema: Table map
        importer: Importer class for the table

    Returns:
        Ordered, de-duplicated prerequisite table names
    """
    deps = list(dict.fromkeys(importer.dependencies))
    for referenced in referenced_tables(schema, table):
        if referenced in EXCLUDED_DEPENDENCIES or referenced == table:
            continue
        if referenced not in deps:
            deps.append(referenced)
    return deps


def build_dependency_graph(specs: list[TableSpec]) -> nx.DiGraph:
    """Build a DiGraph with an edge dependency -> dependent for every spec."""
    graph = nx.DiGraph()
    for spec in specs:
        graph.add_node(spec.name)
        for dep in spec.dependencies:
            graph.add_edge(dep, spec.name)
    return graph


def topological_sort(specs: list[TableSpec]) -> list[TableSpec]:
    """
    Order specs so every dependency precedes its dependents.

    Among tables whose prerequisites are satisfied, the one listed earliest
    in `specs` goes first.

    Raises:
        CyclicDependencyError: If the dependencies contain a cycle
    """
    by_name = {spec.name: spec for spec in specs}
    position = {spec.name: i for i, spec in enumerate(specs)}
    graph = build_dependency_graph(specs)

    try:
        order = list(nx.lexicographical_topological_sort(graph, key=position.__getitem__))
    except nx.NetworkXUnfeasible:
        cycle = [edge[0] for edge in nx.find_cycle(graph)]
        cycle.append(cycle[0])
        raise CyclicDependencyError(cycle) from None

    return [by_name[name] for name in order]


def resolve_tables(
    table_names: list[str],
    schema: Schema,
    registry: Mapping[str, type[TableImporter]],
) -> list[TableSpec]:
    """
    Expand a table request with its dependencies and order it.

    Args:
        table_names: Requested table names, in caller order
        schema: Table map used to infer FK dependencies
        registry: Table name -> importer class

    Returns:
        TableSpecs in dependency order

    Raises:
        UnknownTableError: If a requested or required table has no importer
        CyclicDependencyError: If the dependencies form a cycle
    """
    for name in table_names:
        if name not in registry:
            raise UnknownTableError(name)

    specs = [TableSpec(name=name, importer=registry[name]) for name in dict.fromkeys(table_names)]
    known = {spec.name for spec in specs}

    # The list grows while we walk it, which gives the transitive closure
    i = 0
    while i < len(specs):
        spec = specs[i]
        spec.dependencies = table_dependencies(spec.name, schema, spec.importer)
        for dep in spec.dependencies:
            if dep in known:
                continue
            if dep not in registry:
                raise UnknownTableError(dep)
            specs.append(TableSpec(name=dep, importer=registry[dep]))
            known.add(dep)
        i += 1

    return topological_sort(specs)


def format_dependencies(specs: list[TableSpec]) -> list[str]:
    """Render one `table: dep1, dep2` line per spec."""
    return [f"{spec.name}: {', '.join(spec.dependencies)}" for spec in specs]
