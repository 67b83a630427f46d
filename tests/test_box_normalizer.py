from __future__ import annotations

import math

import pytest

from core.geometry.models import BoundingBox
from core.geometry.normalizer import normalize_box


def test_edge_pair_array_with_page() -> None:
    box = normalize_box([10, 20, 110, 40, 1])

    assert box == BoundingBox(x=10, y=20, width=100, height=20, page=1)


def test_edge_pair_array_is_symmetric_under_swapped_edges() -> None:
    expected = normalize_box([10, 20, 110, 40])

    assert normalize_box([110, 20, 10, 40]) == expected
    assert normalize_box([10, 40, 110, 20]) == expected
    assert normalize_box([110, 40, 10, 20]) == expected


@pytest.mark.parametrize(
    "raw",
    [
        [10, 20, 10, 40],
        [10, 20, 110, 20],
        [10, 20, 110],
        [10, "abc", 110, 40],
        [10, 20, float("inf"), 40],
        [10, 20, float("nan"), 40],
        [True, 20, 110, 40],
        None,
        "10,20,110,40",
        42,
        {},
        {"x": 1, "y": 2, "width": 0, "height": 3},
        {"x": 1, "y": 2, "width": -5, "height": 3},
    ],
)
def test_invalid_geometry_returns_none(raw: object) -> None:
    assert normalize_box(raw) is None


def test_numeric_strings_are_coerced() -> None:
    box = normalize_box(["10", " 20 ", "110", "40", "2"])

    assert box == BoundingBox(x=10, y=20, width=100, height=20, page=2)


def test_non_finite_page_is_omitted() -> None:
    box = normalize_box([10, 20, 110, 40, "n/a"])

    assert box is not None
    assert box.page is None
    assert "page" not in box.to_payload()


@pytest.mark.parametrize(
    "raw",
    [
        {"x1": 10, "y1": 20, "x2": 110, "y2": 40},
        {"left": 10, "top": 20, "right": 110, "bottom": 40},
        {"minX": 10, "minY": 20, "maxX": 110, "maxY": 40},
        {"left": 110, "top": 40, "right": 10, "bottom": 20},
    ],
)
def test_edge_pair_object_aliases(raw: dict[str, float]) -> None:
    assert normalize_box(raw) == BoundingBox(x=10, y=20, width=100, height=20)


@pytest.mark.parametrize(
    "raw",
    [
        {"x": 10, "y": 20, "width": 100, "height": 20},
        {"x0": 10, "y0": 20, "w": 100, "h": 20},
        {"startX": 10, "startY": 20, "width": 100, "height": 20},
        {"x": 10, "y": 20, "right": 110, "bottom": 40},
    ],
)
def test_origin_size_object_aliases(raw: dict[str, float]) -> None:
    assert normalize_box(raw) == BoundingBox(x=10, y=20, width=100, height=20)


def test_corner_object_in_pdfminer_order() -> None:
    box = normalize_box({"x0": 10, "y0": 20, "x1": 110, "y1": 40})

    assert box == BoundingBox(x=10, y=20, width=100, height=20)


def test_edge_pair_wins_over_origin_size() -> None:
    raw = {"x1": 10, "y1": 20, "x2": 110, "y2": 40, "width": 5, "height": 5}

    assert normalize_box(raw) == BoundingBox(x=10, y=20, width=100, height=20)


def test_degenerate_edge_pair_falls_back_to_origin_size() -> None:
    raw = {"left": 10, "top": 20, "right": 10, "bottom": 20, "width": 30, "height": 5}

    assert normalize_box(raw) == BoundingBox(x=10, y=20, width=30, height=5)


def test_page_read_from_aliased_keys() -> None:
    assert normalize_box({"x": 0, "y": 0, "width": 1, "height": 1, "page": "3"}).page == 3
    assert normalize_box({"x": 0, "y": 0, "width": 1, "height": 1, "pageNumber": 4}).page == 4
    assert normalize_box({"x": 0, "y": 0, "width": 1, "height": 1, "p": 5.0}).page == 5


def test_page_override_wins_over_embedded_page() -> None:
    assert normalize_box([10, 20, 110, 40, 1], page_override=7).page == 7
    assert normalize_box({"x": 0, "y": 0, "width": 1, "height": 1, "page": 2}, 9).page == 9


def test_non_finite_page_override_is_ignored() -> None:
    assert normalize_box([10, 20, 110, 40, 1], page_override=float("nan")).page == 1
    assert normalize_box([10, 20, 110, 40, 1], page_override=None).page == 1


def test_bounding_box_input_is_returned_with_override() -> None:
    box = BoundingBox(x=1, y=2, width=3, height=4, page=1)

    assert normalize_box(box) is box
    assert normalize_box(box, page_override=2) == BoundingBox(x=1, y=2, width=3, height=4, page=2)


def test_normalized_boxes_always_have_positive_area() -> None:
    samples = [
        [0, 0, 1, 1],
        [5, 5, -5, -5],
        [1e-9, 0, 2e-9, 1],
        {"x": -10, "y": -10, "width": 0.5, "height": 0.5},
        {"x1": 3, "y1": 3, "x2": 3, "y2": 9},
    ]
    for raw in samples:
        box = normalize_box(raw)
        if box is not None:
            assert box.width > 0
            assert box.height > 0
            assert math.isfinite(box.width) and math.isfinite(box.height)
