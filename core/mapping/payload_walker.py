"""Walk a payload tree and visit every scalar leaf with its path.

Path convention: the root is a sentinel (``$``), object properties append
``.key`` and array elements append ``.[i]`` (0-based), e.g.
``$.output.to_Item.[0].Material``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from core.mapping.models import PayloadLeaf
from core.utils.traversal import TraversalGuard

DEFAULT_ROOT_PATH = "$"
DEFAULT_MAX_DEPTH = 128


def iter_payload_leaves(
    payload: object, *, root_path: str = DEFAULT_ROOT_PATH, max_depth: int = DEFAULT_MAX_DEPTH
) -> Iterator[PayloadLeaf]:
    """Yield scalar leaves (str, int, float, bool) in tree order.

    None values and empty containers yield nothing.

    Raises:
        TraversalError: payload deeper than ``max_depth`` or cyclic.
    """

    yield from _walk(payload, root_path, TraversalGuard(max_depth))


def iter_container_paths(
    payload: object, *, root_path: str = DEFAULT_ROOT_PATH, max_depth: int = DEFAULT_MAX_DEPTH
) -> Iterator[str]:
    """Yield the path of every object/array node, root included, in tree order."""

    yield from _walk_containers(payload, root_path, TraversalGuard(max_depth))


def _walk(node: object, path: str, guard: TraversalGuard) -> Iterator[PayloadLeaf]:
    if isinstance(node, Mapping):
        with guard.enter(node, path):
            for key, child in node.items():
                yield from _walk(child, f"{path}.{key}", guard)
        return

    if isinstance(node, (list, tuple)):
        with guard.enter(node, path):
            for index, child in enumerate(node):
                yield from _walk(child, f"{path}.[{index}]", guard)
        return

    if isinstance(node, (str, int, float, bool)):
        yield PayloadLeaf(path=path, value=node)


def _walk_containers(node: object, path: str, guard: TraversalGuard) -> Iterator[str]:
    if isinstance(node, Mapping):
        with guard.enter(node, path):
            yield path
            for key, child in node.items():
                yield from _walk_containers(child, f"{path}.{key}", guard)
    elif isinstance(node, (list, tuple)):
        with guard.enter(node, path):
            yield path
            for index, child in enumerate(node):
                yield from _walk_containers(child, f"{path}.[{index}]", guard)
