"""Union of bounding boxes for row and group level highlighting."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from typing import Literal

from core.geometry.models import BoundingBox

PagePolicy = Literal["majority", "first"]


def union_boxes(
    boxes: Iterable[BoundingBox | None], page_policy: PagePolicy = "majority"
) -> BoundingBox | None:
    """Return the smallest rectangle covering every finite input box.

    Rules:
    - None entries and boxes with non-finite coordinates are dropped first.
    - No remaining box -> None; exactly one -> that box unchanged.
    - Page comes from ``resolve_page`` under the given policy.
    """

    usable = [box for box in boxes if box is not None and box.is_finite()]
    if not usable:
        return None
    if len(usable) == 1:
        return usable[0]

    left = min(box.x for box in usable)
    top = min(box.y for box in usable)
    right = max(box.right for box in usable)
    bottom = max(box.bottom for box in usable)
    return BoundingBox(
        x=left,
        y=top,
        width=right - left,
        height=bottom - top,
        page=resolve_page(usable, page_policy),
    )


def resolve_page(boxes: list[BoundingBox], page_policy: PagePolicy) -> int | float | None:
    """Pick the page of a union box.

    ``majority``: most frequent page among boxes that carry one, ties to the
    smallest page number; when no box carries a page the first box wins.
    ``first``: page of the first box.
    """

    if page_policy == "first":
        return boxes[0].page
    if page_policy != "majority":
        raise ValueError(f"Unsupported page policy: {page_policy}")

    counts: Counter[int | float] = Counter(box.page for box in boxes if box.page is not None)
    if not counts:
        return boxes[0].page
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[0][0]
