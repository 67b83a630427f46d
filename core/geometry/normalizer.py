"""Normalize heterogeneous raw geometry encodings into ``BoundingBox``.

Supported shapes:
- edge-pair sequences ``[x1, y1, x2, y2, page?]``
- edge-pair mappings (``x1/left/minX`` ... ``y2/bottom/maxY``)
- corner mappings in pdfminer order (``x0, y0, x1, y1``)
- origin + size mappings (``x/y/width/height`` and aliases), with size
  derived from a far edge when missing

Normalization never raises: any geometry that cannot become a positive-area
rectangle yields None.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from core.geometry.models import BoundingBox

_LEFT_KEYS = ("x1", "left", "minX", "xmin", "x_min")
_TOP_KEYS = ("y1", "top", "minY", "ymin", "y_min")
_RIGHT_KEYS = ("x2", "right", "maxX", "xmax", "x_max")
_BOTTOM_KEYS = ("y2", "bottom", "maxY", "ymax", "y_max")

_ORIGIN_X_KEYS = ("x", "left", "x0", "startX")
_ORIGIN_Y_KEYS = ("y", "top", "y0", "startY")
_WIDTH_KEYS = ("width", "w")
_HEIGHT_KEYS = ("height", "h")

_PAGE_KEYS = ("page", "page_number", "pageNumber", "p")

_NAN = float("nan")


@dataclass(frozen=True)
class ShapeAdapter:
    """Named adapter: a cheap key-presence check plus an edge extractor."""

    name: str
    matches: Callable[[Mapping[str, object]], bool]
    edges: Callable[[Mapping[str, object]], tuple[float, float, float, float] | None]


def normalize_box(raw: object, page_override: object = None) -> BoundingBox | None:
    """Convert one raw geometry value into a canonical box, or None.

    Args:
        raw: Sequence, mapping, or ``BoundingBox`` describing a rectangle.
        page_override: Page number supplied by the caller; when finite it wins
            over any page embedded in ``raw``.
    """

    try:
        return _normalize(raw, to_page(page_override))
    except Exception:  # noqa: BLE001
        return None


def _normalize(raw: object, override: int | float | None) -> BoundingBox | None:
    if raw is None or isinstance(raw, (str, bytes, bool)):
        return None

    if isinstance(raw, BoundingBox):
        if override is None:
            return raw
        return raw.model_copy(update={"page": override})

    if isinstance(raw, Mapping):
        page = override if override is not None else _page_from_mapping(raw)
        for adapter in SHAPE_ADAPTERS:
            if not adapter.matches(raw):
                continue
            edges = adapter.edges(raw)
            if edges is None:
                continue
            box = _box_from_edges(*edges, page=page)
            if box is not None:
                return box
        return None

    if isinstance(raw, Sequence):
        if len(raw) < 4:
            return None
        x1, y1, x2, y2 = (_to_number(value) for value in raw[:4])
        embedded_page = to_page(raw[4]) if len(raw) > 4 else None
        page = override if override is not None else embedded_page
        return _box_from_edges(x1, y1, x2, y2, page=page)

    return None


def _box_from_edges(
    x1: float, y1: float, x2: float, y2: float, *, page: int | float | None
) -> BoundingBox | None:
    if not all(math.isfinite(value) for value in (x1, y1, x2, y2)):
        return None
    if x2 < x1:
        x1, x2 = x2, x1
    if y2 < y1:
        y1, y2 = y2, y1

    width = x2 - x1
    height = y2 - y1
    if not (math.isfinite(width) and math.isfinite(height)):
        return None
    if width <= 0 or height <= 0:
        return None
    return BoundingBox(x=x1, y=y1, width=width, height=height, page=page)


def _edge_pair(raw: Mapping[str, object]) -> tuple[float, float, float, float] | None:
    edges = (
        _first_number(raw, _LEFT_KEYS),
        _first_number(raw, _TOP_KEYS),
        _first_number(raw, _RIGHT_KEYS),
        _first_number(raw, _BOTTOM_KEYS),
    )
    if not all(math.isfinite(value) for value in edges):
        return None
    return edges


def _corner_pair(raw: Mapping[str, object]) -> tuple[float, float, float, float] | None:
    edges = (
        _to_number(raw.get("x0")),
        _to_number(raw.get("y0")),
        _to_number(raw.get("x1")),
        _to_number(raw.get("y1")),
    )
    if not all(math.isfinite(value) for value in edges):
        return None
    return edges


def _origin_size(raw: Mapping[str, object]) -> tuple[float, float, float, float] | None:
    x = _first_number(raw, _ORIGIN_X_KEYS)
    y = _first_number(raw, _ORIGIN_Y_KEYS)
    width = _first_number(raw, _WIDTH_KEYS)
    height = _first_number(raw, _HEIGHT_KEYS)

    if not (math.isfinite(width) and math.isfinite(height)):
        right = _first_number(raw, _RIGHT_KEYS)
        bottom = _first_number(raw, _BOTTOM_KEYS)
        if not all(math.isfinite(value) for value in (x, y, right, bottom)):
            return None
        width = right - x
        height = bottom - y

    if not all(math.isfinite(value) for value in (x, y, width, height)):
        return None
    # Size is taken as given: a negative width is rejected, not mirrored.
    if width <= 0 or height <= 0:
        return None
    return x, y, x + width, y + height


def _has_any(keys: Sequence[str]) -> Callable[[Mapping[str, object]], bool]:
    return lambda raw: any(key in raw for key in keys)


def _looks_like_corners(raw: Mapping[str, object]) -> bool:
    return "x0" in raw and "x1" in raw and "x2" not in raw


# Probe order: edge pairs, then corners, then origin + size.
SHAPE_ADAPTERS: tuple[ShapeAdapter, ...] = (
    ShapeAdapter("edge_pair", _has_any(_RIGHT_KEYS), _edge_pair),
    ShapeAdapter("corner_pair", _looks_like_corners, _corner_pair),
    ShapeAdapter("origin_size", _has_any(_ORIGIN_X_KEYS), _origin_size),
)


def _first_number(raw: Mapping[str, object], keys: Sequence[str]) -> float:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return _to_number(value)
    return _NAN


def _to_number(value: object) -> float:
    if value is None or isinstance(value, bool):
        return _NAN
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return _NAN
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return _NAN
        try:
            return float(stripped)
        except ValueError:
            return _NAN
    return _NAN


def to_page(value: object) -> int | float | None:
    """Coerce a page number; None when it is missing or not finite."""

    number = _to_number(value)
    if not math.isfinite(number):
        return None
    if number.is_integer():
        return int(number)
    return number


def _page_from_mapping(raw: Mapping[str, object]) -> int | float | None:
    for key in _PAGE_KEYS:
        value = raw.get(key)
        if value is not None:
            return to_page(value)
    return None
