from __future__ import annotations

import math
from typing import Iterable

from wbs_hierarchy import WbsTree, normalize_code

__all__ = ["WbsRollup", "rollup", "overall_progress", "round_half_up", "item_number"]


def item_number(value: object) -> float:
    """Numeric field of an already-sanitized item; anything odd counts as 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        num = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(num):
        return 0.0
    return num


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _weighted_progress(pairs: list[tuple[float, float]]) -> tuple[float, float]:
    weight = math.fsum(w for w, _ in pairs)
    if weight <= 0:
        return weight, 0.0
    earned = math.fsum(w * p / 100 for w, p in pairs)
    return weight, earned / weight * 100


class WbsRollup:
    """Bottom-up weighted rollup over one fixed list of items."""

    def __init__(self, items: Iterable[dict]) -> None:
        self.tree = WbsTree(items)
        self._cache: dict[str, dict[str, float]] = {}

    def rollup(self, code: object) -> dict[str, float]:
        key = normalize_code(code)
        if not self.tree.is_parent(key):
            return {"weight": 0.0, "progress": 0.0}
        cached = self._cache.get(key)
        if cached is not None:
            return dict(cached)
        pairs = []
        for child in self.tree.children(key):
            weight = item_number(child.get("weight"))
            if self.tree.is_parent(child.get("code")):
                progress = self.rollup(child.get("code"))["progress"]
            else:
                progress = item_number(child.get("progress"))
            pairs.append((weight, progress))
        weight, progress = _weighted_progress(pairs)
        result = {"weight": weight, "progress": progress}
        self._cache[key] = result
        return dict(result)

    def row_values(self, item: dict) -> dict[str, float]:
        if self.tree.is_parent(item.get("code")):
            return self.rollup(item.get("code"))
        return {
            "weight": item_number(item.get("weight")),
            "progress": item_number(item.get("progress")),
        }

    def is_parent(self, code: object) -> bool:
        return self.tree.is_parent(code)

    def overall_progress(self) -> float:
        if not self.tree.items:
            return 0.0
        top = self.tree.top_level() or self.tree.items
        contributions = [self.row_values(item) for item in top]
        pairs = [(c["weight"], c["progress"]) for c in contributions]
        weight, progress = _weighted_progress(pairs)
        if weight > 0:
            return progress
        return math.fsum(p for _, p in pairs) / len(pairs)


def rollup(code: object, items: Iterable[dict]) -> dict[str, float]:
    return WbsRollup(items).rollup(code)


def overall_progress(items: Iterable[dict]) -> float:
    return WbsRollup(items).overall_progress()
