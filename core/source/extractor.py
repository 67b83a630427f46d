"""Extract ``SourceEntry`` values from a source document tree.

One indexer, two strategies:
- fast path for the known extraction schema (``document`` with metadata,
  party blocks, items and other information, optionally split in ``pages``);
- generic walker for any other tree, recognizing ``[value, box]`` tuples,
  ``words``/``tokens`` containers and objects carrying a box beside a text.

Both strategies read texts and geometry through the same helpers, so a
field shaped ``{value, bounding_box}`` yields the same entry either way.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence

from core.geometry.models import BoundingBox
from core.geometry.normalizer import normalize_box, to_page
from core.index.keys import scalar_text
from core.source.models import SourceEntry
from core.utils.traversal import TraversalGuard

GENERIC_ROOT_PATH = "$"
DEFAULT_MAX_DEPTH = 128

_SCHEMA_GROUPS = ("metadata", "parties", "customerparties", "items", "other_information")
_PARTY_BLOCKS = (
    ("parties", "vendor_information"),
    ("customerparties", "customer_information"),
)
_ITEM_FIELDS = ("description", "quantity", "unit_price", "total")
_ITEM_GEOMETRY_KEY = "bounding_box"

_FIELD_TEXT_KEYS = ("value", "text", "string")
_NODE_TEXT_KEYS = ("text", "value", "content", "string")
_BOX_KEYS = ("bounding_box", "bbox", "box", "region")
_TOKEN_CONTAINER_KEYS = ("words", "tokens")


def extract_source_entries(
    source: object, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> list[SourceEntry]:
    """Extract entries in document order.

    The schema fast path is used when ``source`` has a ``document`` mapping
    with known groups, directly or in one of its ``pages``; otherwise the
    generic walker runs.

    Raises:
        TraversalError: generic walk deeper than ``max_depth`` or cyclic.
    """

    pages = _schema_pages(source)
    if pages is not None:
        entries: list[SourceEntry] = []
        for prefix, page, page_number in pages:
            entries.extend(_extract_schema_page(prefix, page, page_number))
        return entries

    out: list[SourceEntry] = []
    _visit_generic(source, GENERIC_ROOT_PATH, out, TraversalGuard(max_depth))
    return out


def is_schema_tree(source: object) -> bool:
    """Return whether ``source`` takes the schema fast path."""

    return _schema_pages(source) is not None


def _schema_pages(source: object) -> list[tuple[str, Mapping, object]] | None:
    if not isinstance(source, Mapping):
        return None
    document = source.get("document")
    if not isinstance(document, Mapping):
        return None

    pages = document.get("pages")
    if isinstance(pages, list):
        page_nodes = [
            (index, page) for index, page in enumerate(pages) if isinstance(page, Mapping)
        ]
        if any(_has_schema_group(page) for _, page in page_nodes):
            return [
                (f"document.pages.[{index}]", page, page.get("page_number"))
                for index, page in page_nodes
            ]

    if _has_schema_group(document):
        return [("document", document, document.get("page_number"))]
    return None


def _has_schema_group(node: Mapping) -> bool:
    return any(group in node for group in _SCHEMA_GROUPS)


def _extract_schema_page(prefix: str, page: Mapping, page_number: object) -> Iterator[SourceEntry]:
    metadata = page.get("metadata")
    if isinstance(metadata, Mapping):
        for key, node in metadata.items():
            yield from _field_entry(f"{prefix}.metadata.{key}", node, page_number)

    for group, block_name in _PARTY_BLOCKS:
        group_node = page.get(group)
        block = group_node.get(block_name) if isinstance(group_node, Mapping) else None
        if isinstance(block, Mapping):
            for key, node in block.items():
                yield from _field_entry(f"{prefix}.{group}.{block_name}.{key}", node, page_number)

    items = page.get("items")
    if isinstance(items, list):
        for index, item in enumerate(items):
            if isinstance(item, Mapping):
                yield from _item_entries(f"{prefix}.items.[{index}]", item, page_number)

    others = page.get("other_information")
    if isinstance(others, list):
        for index, info in enumerate(others):
            if not isinstance(info, Mapping):
                continue
            for key, node in info.items():
                yield from _field_entry(
                    f"{prefix}.other_information.[{index}].{key}", node, page_number
                )


def _field_entry(path: str, node: object, page_number: object) -> Iterator[SourceEntry]:
    if not isinstance(node, Mapping):
        return
    text = _first_text(node, _FIELD_TEXT_KEYS)
    box, spans = _geometry(_first_present(node, _BOX_KEYS), page_number)
    if text is not None and box is not None:
        yield SourceEntry(text=text, box=box, path=path, spans=spans)


def _item_entries(path: str, item: Mapping, page_number: object) -> Iterator[SourceEntry]:
    # Geometry is captured once per row; every cell shares it.
    row_box, row_spans = _geometry(item.get(_ITEM_GEOMETRY_KEY), page_number)
    if row_box is None:
        return

    for key in _ITEM_FIELDS:
        text = _clean_text(item.get(key))
        if text is not None:
            yield SourceEntry(text=text, box=row_box, path=f"{path}.{key}", spans=row_spans)

    for key, value in item.items():
        if key == _ITEM_GEOMETRY_KEY or key in _ITEM_FIELDS or not isinstance(value, str):
            continue
        text = _clean_text(value)
        if text is not None:
            yield SourceEntry(text=text, box=row_box, path=f"{path}.{key}", spans=row_spans)


def _visit_generic(
    node: object,
    path: str,
    out: list[SourceEntry],
    guard: TraversalGuard,
    page: int | float | None = None,
) -> None:
    if isinstance(node, Mapping):
        with guard.enter(node, path):
            _visit_mapping(node, path, out, guard, page)
        return

    if isinstance(node, (list, tuple)):
        with guard.enter(node, path):
            if len(node) == 2 and _is_tuple_pair(node):
                text = _clean_text(node[0])
                box, spans = _with_default_page(*_geometry(node[1], None), page)
                if text is not None and box is not None:
                    out.append(SourceEntry(text=text, box=box, path=path, spans=spans))
                    return
            for index, child in enumerate(node):
                _visit_generic(child, f"{path}.[{index}]", out, guard, page)


def _visit_mapping(
    node: Mapping,
    path: str,
    out: list[SourceEntry],
    guard: TraversalGuard,
    page: int | float | None,
) -> None:
    # A page_number on any node is the default page for boxes below it.
    node_page = to_page(node.get("page_number"))
    if node_page is not None:
        page = node_page

    consumed: set[str] = set()
    text = _first_text(node, _NODE_TEXT_KEYS)

    box: BoundingBox | None = None
    spans: tuple[BoundingBox, ...] = ()
    box_key = next((key for key in _BOX_KEYS if node.get(key) is not None), None)
    if box_key is not None:
        box, spans = _geometry(node[box_key], None)
        if box is not None:
            consumed.add(box_key)
    if box is None and text is not None:
        self_box = normalize_box(node)
        if self_box is not None:
            box, spans = self_box, (self_box,)
    if text is not None and box is not None:
        box, spans = _with_default_page(box, spans, page)
        out.append(SourceEntry(text=text, box=box, path=path, spans=spans))

    for container_key in _TOKEN_CONTAINER_KEYS:
        tokens = node.get(container_key)
        if not isinstance(tokens, list):
            continue
        consumed.add(container_key)
        for index, token in enumerate(tokens):
            if not isinstance(token, Mapping):
                continue
            token_text = _first_text(token, _NODE_TEXT_KEYS)
            token_box, token_spans = _with_default_page(
                *_geometry(_first_present(token, _BOX_KEYS), None), page
            )
            if token_text is not None and token_box is not None:
                out.append(
                    SourceEntry(
                        text=token_text,
                        box=token_box,
                        path=f"{path}.{container_key}.[{index}]",
                        spans=token_spans,
                    )
                )

    for key, child in node.items():
        if key in consumed:
            continue
        _visit_generic(child, f"{path}.{key}", out, guard, page)


def _with_default_page(
    box: BoundingBox | None, spans: tuple[BoundingBox, ...], page: int | float | None
) -> tuple[BoundingBox | None, tuple[BoundingBox, ...]]:
    if page is None or box is None:
        return box, spans
    filled = tuple(
        span if span.page is not None else span.model_copy(update={"page": page})
        for span in spans
    )
    if box.page is None:
        box = box.model_copy(update={"page": page})
    return box, filled


def _geometry(
    raw: object, page_number: object
) -> tuple[BoundingBox | None, tuple[BoundingBox, ...]]:
    """Normalize a geometry field that may hold one box or a list of spans.

    The entry box is the FIRST span; later spans are kept for aggregation.
    """

    if raw is None:
        return None, ()
    if _is_span_list(raw):
        spans = [normalize_box(item, page_number) for item in raw]
        valid = tuple(span for span in spans if span is not None)
        return spans[0], valid
    box = normalize_box(raw, page_number)
    return box, (box,) if box is not None else ()


def _is_span_list(raw: object) -> bool:
    if not isinstance(raw, (list, tuple)) or not raw:
        return False
    first = raw[0]
    return isinstance(first, Mapping) or (
        isinstance(first, Sequence) and not isinstance(first, (str, bytes))
    )


def _is_tuple_pair(node: Sequence) -> bool:
    value, geometry = node[0], node[1]
    return scalar_text(value) is not None and isinstance(geometry, (Mapping, list, tuple))


def _first_present(node: Mapping, keys: Sequence[str]) -> object:
    for key in keys:
        value = node.get(key)
        if value is not None:
            return value
    return None


def _first_text(node: Mapping, keys: Sequence[str]) -> str | None:
    for key in keys:
        value = node.get(key)
        if value is None:
            continue
        if scalar_text(value) is not None:
            return _clean_text(value)
    return None


def _clean_text(value: object) -> str | None:
    text = scalar_text(value)
    if text is None:
        return None
    text = text.strip()
    return text or None
