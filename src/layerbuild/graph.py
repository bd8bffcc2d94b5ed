"""Depth-ranked ordering of a dependency graph.

The builder labels every reachable node with the length of the longest
dependency chain that leads to it from the inserted roots. Sorting by that
depth (deepest first) puts every dependency before all of its dependents;
ties are broken by name so the order is identical across runs.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from typing import Generic, TypeVar

from layerbuild.errors import CycleError

T = TypeVar("T", bound=Hashable)


class OrderedGraphBuilder(Generic[T]):
    """Assign depths by repeated depth-first insertion and extract an order.

    *edges* returns the direct dependencies of a node, *key* its name.
    """

    def __init__(self, edges: Callable[[T], Iterable[T]], key: Callable[[T], str]):
        self._edges = edges
        self._key = key
        self._depths: dict[T, int] = {}

    def __len__(self) -> int:
        return len(self._depths)

    def depth_of(self, node: T) -> int:
        return self._depths.get(node, 0)

    def insert(self, node: T, depth: int = 1, path: tuple[T, ...] = ()) -> None:
        """Record *node* at *depth* and push the depth down to its dependencies.

        *path* is the chain of nodes currently being expanded; meeting *node*
        on it again means the graph is cyclic.
        """
        if node in path:
            start = path.index(node)
            raise CycleError(
                chain=[self._key(n) for n in path[start:]],
                path=[self._key(n) for n in path] + [self._key(node)],
            )

        if depth <= self._depths.get(node, 0):
            return

        self._depths[node] = depth
        path = path + (node,)
        for dep in self._edges(node):
            self.insert(dep, depth + 1, path)

    def extract_order(self) -> list[T]:
        """Return every recorded node, deepest first, then by name."""
        ranked = sorted(
            self._depths.items(), key=lambda item: (-item[1], self._key(item[0]))
        )
        return [node for node, _depth in ranked]


def transitive_closure(
    root: T, edges: Callable[[T], Iterable[T]], key: Callable[[T], str]
) -> list[T]:
    """Ordered transitive dependencies of *root*, leaves first, without *root*."""
    builder = OrderedGraphBuilder(edges, key)
    for dep in edges(root):
        builder.insert(dep, 1, (root,))
    return builder.extract_order()


def build_order(
    nodes: Iterable[T], edges: Callable[[T], Iterable[T]], key: Callable[[T], str]
) -> list[T]:
    """Global order of *nodes* in which dependencies precede their dependents."""
    builder = OrderedGraphBuilder(edges, key)
    for node in nodes:
        builder.insert(node, 1)
    return builder.extract_order()
