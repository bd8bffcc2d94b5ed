"""Graph diagnostics (cycle detection over name-keyed adjacency maps)."""

from __future__ import annotations


def find_cycles(dependencies: dict[str, list[str]]) -> list[list[str]]:
    """Return strongly-connected components of size ≥ 2 using Tarjan's algorithm.

    Each returned list is a group of names that are mutually reachable via
    dependency edges, i.e. a dependency cycle. Self references count as a
    cycle of one. Components are sorted for stable diagnostics.
    """
    index: dict[str, int] = {}
    lowlink: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    sccs: list[list[str]] = []
    counter = [0]

    def _visit(v: str) -> None:
        index[v] = lowlink[v] = counter[0]
        counter[0] += 1
        stack.append(v)
        on_stack.add(v)

        for w in dependencies[v]:
            if w not in dependencies:
                continue
            if w not in index:
                _visit(w)
                lowlink[v] = min(lowlink[v], lowlink[w])
            elif w in on_stack:
                lowlink[v] = min(lowlink[v], index[w])

        if lowlink[v] == index[v]:
            scc: list[str] = []
            while True:
                w = stack.pop()
                on_stack.discard(w)
                scc.append(w)
                if w == v:
                    break
            if len(scc) >= 2 or v in dependencies[v]:
                sccs.append(sorted(scc))

    for v in sorted(dependencies):
        if v not in index:
            _visit(v)

    return sorted(sccs)
