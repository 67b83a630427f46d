"""Text-key normalization shared by index construction and payload probing.

Each strategy turns one text into at most one lookup key. The ordered
strategy table is the single source of truth for both insertion and probe
priority; adding a rule means adding a row here. Keys live in one namespace
per strategy, so a probe only meets entries filed by the same rule.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

_WHITESPACE_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^0-9A-Za-z]")
_DATE_SEPARATOR = "T"


@dataclass(frozen=True)
class KeyStrategy:
    """Named key generator; returns None when the rule does not apply."""

    name: str
    generate: Callable[[str], str | None]


def normalize_text(text: str) -> str:
    """Collapse whitespace runs to one space and trim both ends."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def alnum(text: str) -> str:
    return _NON_ALNUM_RE.sub("", text)


def before_date_separator(text: str) -> str | None:
    """Return the part before the first literal ``T`` (ISO date-time), if any."""

    if _DATE_SEPARATOR not in text:
        return None
    return text.split(_DATE_SEPARATOR, 1)[0]


def _date_then(transform: Callable[[str], str]) -> Callable[[str], str | None]:
    # Both sides use the same rule: the part before a literal T when the text
    # has one, otherwise the text itself.
    def generate(text: str) -> str | None:
        head = before_date_separator(text)
        if head is None:
            return transform(text)
        head = head.strip()
        return transform(head) if head else None

    return generate


KEY_STRATEGIES: tuple[KeyStrategy, ...] = (
    KeyStrategy("exact", lambda text: text),
    KeyStrategy("alnum", alnum),
    KeyStrategy("upper", str.upper),
    KeyStrategy("upper_alnum", lambda text: alnum(text).upper()),
    KeyStrategy("date", _date_then(lambda head: head)),
    KeyStrategy("date_alnum", _date_then(alnum)),
    KeyStrategy("date_upper", _date_then(str.upper)),
    KeyStrategy("date_upper_alnum", _date_then(lambda head: alnum(head).upper())),
)

_STRATEGIES_BY_NAME = {strategy.name: strategy for strategy in KEY_STRATEGIES}


def known_strategy_names() -> list[str]:
    """Return strategy names in default priority order."""

    return [strategy.name for strategy in KEY_STRATEGIES]


def resolve_strategies(names: Sequence[str]) -> tuple[KeyStrategy, ...]:
    """Map configured names to strategies, preserving the configured order."""

    try:
        return tuple(_STRATEGIES_BY_NAME[name] for name in names)
    except KeyError as exc:
        raise ValueError(f"Unknown key strategy: {exc.args[0]}") from exc


def key_variants(
    raw_text: str, strategies: Sequence[KeyStrategy] = KEY_STRATEGIES
) -> list[tuple[str, str]]:
    """Return ``(strategy_name, key)`` pairs in priority order.

    Empty keys are skipped. Two strategies may produce the same key string;
    each pair is kept because the index files keys per strategy.
    """

    text = normalize_text(raw_text)
    if not text:
        return []

    variants: list[tuple[str, str]] = []
    for strategy in strategies:
        key = strategy.generate(text)
        if key:
            variants.append((strategy.name, key))
    return variants


def scalar_text(value: object) -> str | None:
    """Stringify a JSON scalar the way it reads in the source document.

    Booleans render as ``true``/``false``, integral floats drop the fractional
    part, and containers or None are not scalars.
    """

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return None
