"""Depth and cycle guard shared by the source and payload walkers."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from core.utils.errors import TraversalError


class TraversalGuard:
    """Track the ancestor chain of container nodes during a recursive walk.

    Shared (non-cyclic) references are allowed: only a container that is its
    own ancestor counts as a cycle.
    """

    def __init__(self, max_depth: int) -> None:
        self._max_depth = max_depth
        self._ancestors: list[int] = []
        self._ancestor_ids: set[int] = set()

    @contextmanager
    def enter(self, node: object, path: str) -> Iterator[None]:
        node_id = id(node)
        if node_id in self._ancestor_ids:
            raise TraversalError(f"Cycle detected at {path}", path=path, reason="cycle")
        if len(self._ancestors) >= self._max_depth:
            raise TraversalError(
                f"Maximum depth {self._max_depth} exceeded at {path}",
                path=path,
                reason="max_depth",
            )

        self._ancestors.append(node_id)
        self._ancestor_ids.add(node_id)
        try:
            yield
        finally:
            self._ancestors.pop()
            self._ancestor_ids.discard(node_id)
