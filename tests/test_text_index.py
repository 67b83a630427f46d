from __future__ import annotations

from core.geometry.models import BoundingBox
from core.index.text_index import build_text_index
from core.source.models import SourceEntry


def _entry(text: str, x: float = 0, path: str = "p") -> SourceEntry:
    return SourceEntry(text=text, box=BoundingBox(x=x, y=0, width=1, height=1), path=path)


def test_entries_indexed_under_every_variant() -> None:
    entry = _entry("Inv-001")
    index = build_text_index([entry])

    for index_key in (
        ("exact", "Inv-001"),
        ("alnum", "Inv001"),
        ("upper", "INV-001"),
        ("upper_alnum", "INV001"),
        ("date", "Inv-001"),
    ):
        assert index.get(*index_key) == [entry]
    assert index.entry_count == 1


def test_shared_key_preserves_insertion_order() -> None:
    first = _entry("ACME", x=1)
    second = _entry("acme", x=2)
    third = _entry("Acme", x=3)

    index = build_text_index([first, second, third])

    assert index.get("upper", "ACME") == [first, second, third]
    assert index.get("exact", "ACME") == [first]
    assert index.get("exact", "acme") == [second]


def test_strategies_do_not_share_keys() -> None:
    five = _entry("5", x=1)
    dollars = _entry("$5", x=2)

    index = build_text_index([five, dollars])

    assert index.get("exact", "5") == [five]
    assert index.get("alnum", "5") == [five, dollars]
    assert ("exact", "$5") in index


def test_missing_key_returns_empty_list() -> None:
    index = build_text_index([])

    assert index.get("exact", "anything") == []
    assert ("exact", "anything") not in index
    assert len(index) == 0


def test_get_returns_a_copy() -> None:
    index = build_text_index([_entry("x")])

    index.get("exact", "x").clear()

    assert len(index.get("exact", "x")) == 1
