"""Data models for entries extracted from the source document tree."""

from __future__ import annotations

from dataclasses import dataclass, field

from core.geometry.models import BoundingBox


@dataclass(frozen=True)
class SourceEntry:
    """One extracted text value and the rectangle that produced it.

    ``path`` locates the value in the source tree for diagnostics only; it is
    never used for matching. ``spans`` holds every normalized element of a
    multi-line geometry list, with ``box`` being the first of them.
    """

    text: str
    box: BoundingBox
    path: str
    spans: tuple[BoundingBox, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict[str, object]:
        return {
            "text": self.text,
            "path": self.path,
            "box": self.box.to_payload(),
            "spans": [span.to_payload() for span in self.spans],
        }
