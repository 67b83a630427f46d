"""Content fingerprints for caching per-tree pipeline stages."""

from __future__ import annotations

import hashlib
import json


def compute_tree_fingerprint(tree: object) -> str:
    """Compute a SHA256 fingerprint of a JSON-like tree.

    Keys are NOT sorted: key order drives tie-breaks between equal texts, so
    two trees differing only in key order are different inputs.
    """

    serialized = json.dumps(
        tree,
        ensure_ascii=False,
        separators=(",", ":"),
        default=_fallback_default,
        allow_nan=True,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def _fallback_default(value: object) -> str:
    return f"{type(value).__qualname__}:{value!r}"
