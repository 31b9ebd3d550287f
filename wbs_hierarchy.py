from __future__ import annotations

from typing import Iterable

__all__ = [
    "WbsTree",
    "normalize_code",
    "ancestor_prefixes",
    "parent_prefix",
    "is_parent",
    "direct_children",
    "top_level_items",
    "indent_level",
]


def normalize_code(code: object) -> str:
    return "" if code is None else str(code).strip()


def ancestor_prefixes(code: str) -> list[str]:
    """Every non-empty text before a dot: "1.2.3" -> ["1", "1.2"].

    A code C is a descendant of P exactly when C starts with P + ".", which is
    the same as P being one of these prefixes.
    """
    return [code[:idx] for idx, ch in enumerate(code) if ch == "." and idx > 0]


def parent_prefix(code: str) -> str | None:
    if "." not in code:
        return None
    head = code.rsplit(".", 1)[0]
    return head or None


def indent_level(code: object) -> int:
    return normalize_code(code).count(".")


class WbsTree:
    """Code index over a flat item list, built once per recomputation.

    Codes are opaque strings: "1.3" sits under "1" even without "1.1", and
    two items with the same code are siblings.
    """

    def __init__(self, items: Iterable[dict]) -> None:
        self.items: list[dict] = list(items)
        self.codes: list[str] = [normalize_code(item.get("code")) for item in self.items]
        present = {code for code in self.codes if code}
        self._parents: set[str] = set()
        self._children: dict[str, list[dict]] = {}
        self._top_level: list[dict] = []
        for item, code in zip(self.items, self.codes):
            prefixes = ancestor_prefixes(code)
            self._parents.update(prefixes)
            head = parent_prefix(code)
            if head is not None:
                self._children.setdefault(head, []).append(item)
            if not any(prefix in present for prefix in prefixes):
                self._top_level.append(item)

    def is_parent(self, code: object) -> bool:
        key = normalize_code(code)
        return bool(key) and key in self._parents

    def children(self, code: object) -> list[dict]:
        key = normalize_code(code)
        if not key:
            return []
        return list(self._children.get(key, []))

    def top_level(self) -> list[dict]:
        return list(self._top_level)

    def parent_items(self) -> list[dict]:
        return [item for item, code in zip(self.items, self.codes) if self.is_parent(code)]


def is_parent(code: object, items: Iterable[dict]) -> bool:
    return WbsTree(items).is_parent(code)


def direct_children(code: object, items: Iterable[dict]) -> list[dict]:
    return WbsTree(items).children(code)


def top_level_items(items: Iterable[dict]) -> list[dict]:
    return WbsTree(items).top_level()
