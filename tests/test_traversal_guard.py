from __future__ import annotations

import pytest

from core.utils.errors import TraversalError
from core.utils.traversal import TraversalGuard


def test_guard_rejects_depth_beyond_limit() -> None:
    guard = TraversalGuard(max_depth=2)
    outer, middle, inner = {}, {}, {}

    with guard.enter(outer, "$"):
        with guard.enter(middle, "$.a"):
            with pytest.raises(TraversalError) as exc_info:
                with guard.enter(inner, "$.a.b"):
                    pass

    assert exc_info.value.reason == "max_depth"
    assert exc_info.value.path == "$.a.b"


def test_guard_rejects_cycles() -> None:
    guard = TraversalGuard(max_depth=10)
    node: dict[str, object] = {}

    with guard.enter(node, "$"):
        with pytest.raises(TraversalError) as exc_info:
            with guard.enter(node, "$.self"):
                pass

    assert exc_info.value.reason == "cycle"


def test_guard_allows_shared_siblings() -> None:
    guard = TraversalGuard(max_depth=10)
    shared: dict[str, object] = {}
    root: dict[str, object] = {"a": shared, "b": shared}

    with guard.enter(root, "$"):
        with guard.enter(shared, "$.a"):
            pass
        with guard.enter(shared, "$.b"):
            pass


def test_guard_releases_ancestors_after_error() -> None:
    guard = TraversalGuard(max_depth=1)
    node: dict[str, object] = {}

    with pytest.raises(RuntimeError):
        with guard.enter(node, "$"):
            raise RuntimeError("boom")

    with guard.enter(node, "$"):
        pass
