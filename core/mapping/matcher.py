"""Match payload leaves to source entries through the text index."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from core.index.keys import key_variants, scalar_text
from core.index.text_index import TextIndex
from core.mapping.models import MatchDetail, MatchPolicy, PathMapping, PayloadLeaf
from core.mapping.payload_walker import iter_payload_leaves
from core.mapping.policy_loader import default_policy
from core.source.models import SourceEntry
from core.utils.events import log_event

logger = logging.getLogger("sourcelink.mapping")


def pick_best(candidates: Sequence[SourceEntry]) -> SourceEntry | None:
    """Prefer the longest source text; on equal length the earliest entry wins."""

    best: SourceEntry | None = None
    for candidate in candidates:
        if best is None or len(candidate.text) > len(best.text):
            best = candidate
    return best


def match_leaf(leaf: PayloadLeaf, index: TextIndex) -> MatchDetail:
    """Probe the index with the leaf's key variants in priority order.

    Each key probes the bucket of its own strategy. The first key with any
    candidates decides; no hit leaves ``box`` as None.
    """

    text = scalar_text(leaf.value) or ""
    for strategy_name, key in key_variants(text, index.strategies):
        candidates = index.get(strategy_name, key)
        if not candidates:
            continue
        best = pick_best(candidates)
        if best is None:
            continue
        return MatchDetail(
            path=leaf.path,
            value=text,
            strategy=strategy_name,
            key=key,
            candidate_count=len(candidates),
            source_path=best.path,
            source_text=best.text,
            box=best.box,
        )
    return MatchDetail(path=leaf.path, value=text)


def explain_mapping(
    payload: object, index: TextIndex, policy: MatchPolicy | None = None
) -> list[MatchDetail]:
    """Match every scalar payload leaf, in tree order.

    Raises:
        TraversalError: payload deeper than the policy depth or cyclic.
    """

    effective = policy or default_policy()
    leaves = iter_payload_leaves(
        payload, root_path=effective.root_path, max_depth=effective.max_depth
    )
    return [match_leaf(leaf, index) for leaf in leaves]


def create_mapping(
    payload: object, index: TextIndex, policy: MatchPolicy | None = None
) -> PathMapping:
    """Map each payload leaf path to a box or None.

    Any unexpected failure collapses the whole result to ``{}``; a partial
    mapping is never returned.
    """

    try:
        details = explain_mapping(payload, index, policy)
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            logging.WARNING,
            "mapping_failed",
            stage="match",
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return {}
    return {detail.path: detail.box for detail in details}
