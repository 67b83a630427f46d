"""Data models for match policy, payload leaves, and mapping reports."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.geometry.models import BoundingBox
from core.index.keys import known_strategy_names

PathMapping = dict[str, BoundingBox | None]


class MatchPolicy(BaseModel):
    """Matching configuration loaded from YAML."""

    model_config = ConfigDict(extra="forbid")

    strategies: list[str] = Field(default_factory=known_strategy_names, min_length=1)
    page_policy: Literal["majority", "first"] = "majority"
    max_depth: int = Field(default=128, gt=0)
    root_path: str = Field(default="$", min_length=1)
    cache_size: int = Field(default=32, ge=0)

    @field_validator("strategies")
    @classmethod
    def _check_strategies(cls, value: list[str]) -> list[str]:
        known = set(known_strategy_names())
        unknown = [name for name in value if name not in known]
        if unknown:
            raise ValueError(f"unknown strategies: {unknown}")
        if len(set(value)) != len(value):
            raise ValueError("strategies must not repeat")
        return value


@dataclass(frozen=True)
class PayloadLeaf:
    """A scalar payload value and its path (``$.a.[0].b``)."""

    path: str
    value: str | int | float | bool


class MatchDetail(BaseModel):
    """Outcome of probing the index for one payload leaf."""

    model_config = ConfigDict(extra="forbid")

    path: str
    value: str
    strategy: str | None = None
    key: str | None = None
    candidate_count: int = 0
    source_path: str | None = None
    source_text: str | None = None
    box: BoundingBox | None = None

    @property
    def matched(self) -> bool:
        return self.box is not None


class MappingReport(BaseModel):
    """Summary of one mapping computation.

    Rules:
    - failed == True implies mapping == {} and details == []
    - matched_count + unmatched_count == leaf_count
    """

    model_config = ConfigDict(extra="forbid")

    failed: bool = False
    error_type: str | None = None
    source_entry_count: int = 0
    leaf_count: int = 0
    matched_count: int = 0
    unmatched_count: int = 0
    strategy_counts: dict[str, int] = Field(default_factory=dict)
    mapping: PathMapping = Field(default_factory=dict)
    details: list[MatchDetail] = Field(default_factory=list)

    @classmethod
    def from_details(cls, details: list[MatchDetail], *, source_entry_count: int) -> MappingReport:
        matched = [detail for detail in details if detail.matched]
        strategy_counter: Counter[str] = Counter(
            detail.strategy for detail in matched if detail.strategy is not None
        )
        return cls(
            source_entry_count=source_entry_count,
            leaf_count=len(details),
            matched_count=len(matched),
            unmatched_count=len(details) - len(matched),
            strategy_counts=dict(sorted(strategy_counter.items())),
            mapping={detail.path: detail.box for detail in details},
            details=details,
        )

    @classmethod
    def failure(cls, error_type: str) -> MappingReport:
        return cls(failed=True, error_type=error_type)

    def mapping_payload(self) -> dict[str, dict[str, float | int] | None]:
        return {
            path: (box.to_payload() if box is not None else None)
            for path, box in self.mapping.items()
        }
