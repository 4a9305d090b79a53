"""Small generic helpers."""

from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")


def clamp(value: T, low: T, high: T) -> T:
    """Return ``value`` limited to the closed range ``[low, high]``."""
    return max(low, min(value, high))  # type: ignore[type-var]