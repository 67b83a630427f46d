"""Multi-valued lookup index from normalized text keys to source entries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from core.index.keys import KEY_STRATEGIES, KeyStrategy, key_variants
from core.source.models import SourceEntry

IndexKey = tuple[str, str]


class TextIndex:
    """``(strategy, key)`` -> ordered list of entries.

    Each strategy has its own key namespace; insertion order is preserved per
    bucket.
    """

    def __init__(self, strategies: Sequence[KeyStrategy] = KEY_STRATEGIES) -> None:
        self._strategies = tuple(strategies)
        self._buckets: dict[IndexKey, list[SourceEntry]] = {}
        self._entry_count = 0

    @property
    def strategies(self) -> tuple[KeyStrategy, ...]:
        return self._strategies

    @property
    def entry_count(self) -> int:
        return self._entry_count

    def add(self, entry: SourceEntry) -> None:
        self._entry_count += 1
        for strategy_name, key in key_variants(entry.text, self._strategies):
            self._buckets.setdefault((strategy_name, key), []).append(entry)

    def get(self, strategy_name: str, key: str) -> list[SourceEntry]:
        return list(self._buckets.get((strategy_name, key), ()))

    def keys(self) -> list[IndexKey]:
        return list(self._buckets)

    def __contains__(self, index_key: object) -> bool:
        return index_key in self._buckets

    def __len__(self) -> int:
        return len(self._buckets)


def build_text_index(
    entries: Iterable[SourceEntry], strategies: Sequence[KeyStrategy] = KEY_STRATEGIES
) -> TextIndex:
    """Index entries under every key variant produced by ``strategies``."""

    index = TextIndex(strategies)
    for entry in entries:
        index.add(entry)
    return index
