"""Canonical rectangle model shared by normalizer, matcher and aggregator."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field


class BoundingBox(BaseModel):
    """Axis-aligned pixel-space rectangle, optionally tagged with a page number.

    Rules:
    - width > 0 and height > 0; degenerate geometry is represented as None.
    - page is omitted (None) when the source did not carry a finite page.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float
    y: float
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    page: int | float | None = None

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def is_finite(self) -> bool:
        return all(math.isfinite(value) for value in (self.x, self.y, self.width, self.height))

    def to_payload(self) -> dict[str, float | int]:
        """Serialize for JSON output, dropping an absent page."""

        return self.model_dump(mode="json", exclude_none=True)
