"""Mapping pipeline: source tree -> index, payload tree -> path mapping.

The public entry points are the failure boundary of the engine: an
unexpected error in any stage yields an empty mapping (or a failed report),
never a partially filled one.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from typing import Generic, TypeVar

from core.index.keys import resolve_strategies
from core.index.text_index import TextIndex, build_text_index
from core.mapping.matcher import explain_mapping
from core.mapping.models import MappingReport, MatchPolicy, PathMapping
from core.mapping.policy_loader import default_policy
from core.source.extractor import extract_source_entries
from core.source.models import SourceEntry
from core.utils.events import log_event
from core.utils.fingerprint import compute_tree_fingerprint

logger = logging.getLogger("sourcelink.mapping")

_V = TypeVar("_V")


def build_index(source: object, policy: MatchPolicy | None = None) -> TextIndex:
    """Extract source entries and index them under the policy's key strategies."""

    effective = policy or default_policy()
    if source is None:
        entries: list[SourceEntry] = []
    else:
        entries = extract_source_entries(source, max_depth=effective.max_depth)
    return build_text_index(entries, resolve_strategies(effective.strategies))


def build_mapping_report(
    payload: object, source: object, policy: MatchPolicy | None = None
) -> MappingReport:
    """Run the full pipeline and return a report with details and counts."""

    return _report_with_index(payload, lambda: build_index(source, policy), policy)


def map_payload_to_source(
    payload: object, source: object, policy: MatchPolicy | None = None
) -> PathMapping:
    """Map payload leaf paths to source boxes (None when unmatched)."""

    return build_mapping_report(payload, source, policy).mapping


class MappingPipeline:
    """Pipeline with index and mapping stages cached by content fingerprint.

    Equal trees (same content, same key order) reuse earlier results, so a
    host re-rendering on every hover does not rebuild the index.
    """

    def __init__(self, policy: MatchPolicy | None = None) -> None:
        self._policy = policy or default_policy()
        self._indexes: _LruCache[TextIndex] = _LruCache(self._policy.cache_size)
        self._reports: _LruCache[MappingReport] = _LruCache(self._policy.cache_size)

    @property
    def policy(self) -> MatchPolicy:
        return self._policy

    def index_for(self, source: object) -> TextIndex:
        """Return the (possibly cached) index for ``source``.

        Raises:
            TraversalError: source tree deeper than the policy allows or cyclic.
        """

        fingerprint = compute_tree_fingerprint(source)
        cached = self._indexes.get(fingerprint)
        if cached is not None:
            return cached
        index = build_index(source, self._policy)
        self._indexes.put(fingerprint, index)
        return index

    def report(self, payload: object, source: object) -> MappingReport:
        try:
            cache_key = (
                f"{compute_tree_fingerprint(source)}:{compute_tree_fingerprint(payload)}"
            )
        except Exception as exc:  # noqa: BLE001
            _log_failure("fingerprint", exc)
            return MappingReport.failure(type(exc).__name__)

        cached = self._reports.get(cache_key)
        if cached is not None:
            return cached
        report = _report_with_index(payload, lambda: self.index_for(source), self._policy)
        if not report.failed:
            self._reports.put(cache_key, report)
        return report

    def map(self, payload: object, source: object) -> PathMapping:
        return dict(self.report(payload, source).mapping)

    def clear(self) -> None:
        self._indexes.clear()
        self._reports.clear()


def _report_with_index(
    payload: object, index_factory: Callable[[], TextIndex], policy: MatchPolicy | None
) -> MappingReport:
    if payload is None:
        return MappingReport()

    stage = "index"
    try:
        index = index_factory()
        stage = "match"
        details = explain_mapping(payload, index, policy)
    except Exception as exc:  # noqa: BLE001
        _log_failure(stage, exc)
        return MappingReport.failure(type(exc).__name__)

    report = MappingReport.from_details(details, source_entry_count=index.entry_count)
    log_event(
        logger,
        logging.DEBUG,
        "mapping_done",
        source_entry_count=report.source_entry_count,
        leaf_count=report.leaf_count,
        matched_count=report.matched_count,
    )
    return report


def _log_failure(stage: str, exc: Exception) -> None:
    log_event(
        logger,
        logging.WARNING,
        "mapping_failed",
        stage=stage,
        error_type=type(exc).__name__,
        error=str(exc),
    )


class _LruCache(Generic[_V]):
    def __init__(self, max_size: int) -> None:
        self._max_size = max_size
        self._items: OrderedDict[str, _V] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> _V | None:
        with self._lock:
            value = self._items.get(key)
            if value is not None:
                self._items.move_to_end(key)
            return value

    def put(self, key: str, value: _V) -> None:
        if self._max_size <= 0:
            return
        with self._lock:
            self._items[key] = value
            self._items.move_to_end(key)
            while len(self._items) > self._max_size:
                self._items.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
