"""Dependency cycles between generated build units.

Build tools reject a dependency graph with cycles, so every cycle is reported
together with the imports that create its edges.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field


@dataclass
class CycleEdge:
    """One dependency inside a cycle and the imports behind it."""

    source: str
    target: str
    imports: list[str] = field(default_factory=list)


@dataclass
class Cycle:
    targets: list[str]
    edges: list[CycleEdge] = field(default_factory=list)

    def describe(self) -> str:
        return "; ".join(
            f"{e.source} -> {e.target} ({', '.join(e.imports)})" for e in self.edges
        )


def strongly_connected(graph: Mapping[str, Iterable[str]]) -> list[list[str]]:
    """Return the strongly connected components of *graph* with two or more members.

    Tarjan's algorithm with an explicit stack, so deep chains of packages do
    not hit the interpreter's recursion limit.  Nodes and successors are
    visited in sorted order and each component is sorted, so the result is
    stable.  Edges to nodes outside *graph* are ignored.
    """
    index: dict[str, int] = {}
    lowlink: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    components: list[list[str]] = []

    def _enter(node: str) -> None:
        index[node] = lowlink[node] = len(index)
        stack.append(node)
        on_stack.add(node)

    for root in sorted(graph):
        if root in index:
            continue
        _enter(root)
        work = [(root, iter(sorted(graph[root])))]
        while work:
            node, successors = work[-1]
            for succ in successors:
                if succ not in graph:
                    continue
                if succ not in index:
                    _enter(succ)
                    work.append((succ, iter(sorted(graph[succ]))))
                    break
                if succ in on_stack:
                    lowlink[node] = min(lowlink[node], index[succ])
            else:
                work.pop()
                if work:
                    caller = work[-1][0]
                    lowlink[caller] = min(lowlink[caller], lowlink[node])
                if lowlink[node] != index[node]:
                    continue
                component: list[str] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                if len(component) > 1:
                    components.append(sorted(component))
    return components


def find_cycles(graph: Mapping[str, Mapping[str, Sequence[str]]]) -> list[Cycle]:
    """Return every cycle of *graph*, which maps a target to ``{dep: imports}``."""
    cycles: list[Cycle] = []
    for component in strongly_connected(graph):
        members = set(component)
        edges = [
            CycleEdge(source, target, list(graph[source][target]))
            for source in component
            for target in sorted(graph[source])
            if target in members
        ]
        cycles.append(Cycle(targets=component, edges=edges))
    return cycles
