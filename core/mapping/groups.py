"""Row and group level boxes built from a leaf mapping."""

from __future__ import annotations

from collections.abc import Mapping

from core.geometry.models import BoundingBox
from core.geometry.union import PagePolicy, union_boxes
from core.mapping.models import PathMapping
from core.mapping.payload_walker import iter_container_paths
from core.source.models import SourceEntry


def is_under(path: str, container_path: str) -> bool:
    """Return whether ``path`` is ``container_path`` or one of its descendants."""

    return path == container_path or path.startswith(f"{container_path}.")


def group_box(
    mapping: Mapping[str, BoundingBox | None],
    container_path: str,
    page_policy: PagePolicy = "majority",
) -> BoundingBox | None:
    """Union of every matched leaf box under ``container_path``."""

    return union_boxes(
        (box for path, box in mapping.items() if is_under(path, container_path)),
        page_policy,
    )


def group_boxes(
    mapping: PathMapping,
    payload: object,
    *,
    root_path: str = "$",
    max_depth: int = 128,
    page_policy: PagePolicy = "majority",
) -> PathMapping:
    """Box per container path of ``payload``; None when nothing under it matched."""

    return {
        container_path: group_box(mapping, container_path, page_policy)
        for container_path in iter_container_paths(
            payload, root_path=root_path, max_depth=max_depth
        )
    }


def span_box(entry: SourceEntry, page_policy: PagePolicy = "majority") -> BoundingBox:
    """Union of every span of a multi-line source entry."""

    return union_boxes(entry.spans, page_policy) or entry.box
