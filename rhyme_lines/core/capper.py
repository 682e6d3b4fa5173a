"""Bounding of ranked suggestion lists before they reach the editor."""

from __future__ import annotations

from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_CAP = 500
RENDER_STAGE = "render"


def resolve_cap(cap: Optional[int], default: int = DEFAULT_CAP) -> int:
    if cap is None:
        return default
    try:
        return max(0, int(cap))
    except (TypeError, ValueError):
        return default


def build_visible_suggestions(items: Sequence[T], cap: Optional[int] = DEFAULT_CAP) -> List[T]:
    """Return the first ``min(cap, len(items))`` entries of ``items`` in order."""

    limit = resolve_cap(cap)
    return list(items[:limit])


__all__ = ["DEFAULT_CAP", "RENDER_STAGE", "build_visible_suggestions", "resolve_cap"]
