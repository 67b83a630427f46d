"""Custom exceptions for core logic."""

from __future__ import annotations

from typing import Literal

TraversalReason = Literal["max_depth", "cycle"]


class TraversalError(Exception):
    """Raised when a tree walk exceeds the depth guard or revisits an ancestor."""

    def __init__(self, message: str, *, path: str, reason: TraversalReason) -> None:
        super().__init__(message)
        self.path = path
        self.reason = reason
