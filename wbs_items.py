from __future__ import annotations

import math
import re
import uuid
from typing import Any, Callable

from list_store import storage_key
from wbs_rollup import overall_progress, round_half_up

WBS_NAMESPACE = "projectWBS"
TEXT_FIELDS = ("code", "name")
NUMERIC_FIELDS = ("weight", "progress")

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_NON_NUMERIC = re.compile(r"[^0-9.]")

StatusSync = Callable[[Any, int], Any]


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def parse_wbs_num(value: Any) -> float:
    """Sanitize a weight/progress input into [0, 100].

    '150abc' -> 100, '-5' -> 0, 'abc' -> 0, '$45' -> 45.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        num = float(value)
        return 0.0 if math.isnan(num) else _clamp(num)
    text = str(value).strip()
    match = _LEADING_NUMBER.match(text)
    if match is None:
        match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", text))
    if match is None:
        return 0.0
    try:
        num = float(match.group(0))
    except ValueError:
        return 0.0
    return _clamp(num)


def item_progress_label(value: Any) -> str:
    return f"{parse_wbs_num(value):.2f}%"


def new_item_id() -> str:
    return f"wbs-{uuid.uuid4().hex[:12]}"


def blank_item() -> dict:
    return {"id": new_item_id(), "code": "", "name": "", "weight": 0.0, "progress": 0.0}


def normalize_item(raw: dict) -> dict:
    item_id = str(raw.get("id") or "").strip() or new_item_id()
    return {
        "id": item_id,
        "code": "" if raw.get("code") is None else str(raw.get("code")),
        "name": "" if raw.get("name") is None else str(raw.get("name")),
        "weight": parse_wbs_num(raw.get("weight")),
        "progress": parse_wbs_num(raw.get("progress")),
    }


def copy_items(items: list[dict]) -> list[dict]:
    return [normalize_item(dict(item)) for item in items]


class WbsItemStore:
    """Per-project flat WBS list; the list is the source of truth for progress."""

    def __init__(self, list_store, status_sync: StatusSync | None = None) -> None:
        self.list_store = list_store
        self.status_sync = status_sync

    def _key(self, project_id: Any) -> str:
        return storage_key(WBS_NAMESPACE, project_id)

    def load(self, project_id: Any) -> list[dict]:
        return [normalize_item(row) for row in self.list_store.get_list(self._key(project_id))]

    def save(self, project_id: Any, items: list[dict]) -> tuple[bool, str | None]:
        return self.list_store.put_list(self._key(project_id), items)

    def sync_status(self, project_id: Any, items: list[dict]) -> int:
        percent = round_half_up(overall_progress(items))
        if self.status_sync is not None:
            self.status_sync(project_id, percent)
        return percent

    def replace(self, project_id: Any, items: list[dict]) -> list[dict]:
        next_items = copy_items(items)
        self.save(project_id, next_items)
        self.sync_status(project_id, next_items)
        return next_items

    def add_blank(self, project_id: Any) -> dict:
        item = blank_item()
        items = self.load(project_id)
        items.append(item)
        self.save(project_id, items)
        return item

    def update(self, project_id: Any, item_id: str, field: str, value: Any) -> dict | None:
        if field not in TEXT_FIELDS and field not in NUMERIC_FIELDS:
            raise ValueError(f"Unknown WBS field: {field}")
        items = self.load(project_id)
        target = next((item for item in items if item["id"] == item_id), None)
        if target is None:
            return None
        if field in NUMERIC_FIELDS:
            target[field] = parse_wbs_num(value)
        else:
            target[field] = "" if value is None else str(value)
        self.save(project_id, items)
        if field in NUMERIC_FIELDS:
            self.sync_status(project_id, items)
        return dict(target)

    def remove(self, project_id: Any, item_id: str) -> bool:
        items = self.load(project_id)
        remaining = [item for item in items if item["id"] != item_id]
        if len(remaining) == len(items):
            return False
        self.save(project_id, remaining)
        self.sync_status(project_id, remaining)
        return True

    def apply_table_edits(self, project_id: Any, rows: list[dict]) -> int:
        """Replay an edited table (rows keyed by ``id``) as per-field store calls.

        Rows without a known id are new lines; ids that disappeared are removed.
        Returns the number of store operations performed.
        """
        current = {item["id"]: item for item in self.load(project_id)}
        seen: set[str] = set()
        ops = 0
        for row in rows:
            item_id = str(row.get("id") or "").strip()
            if item_id not in current:
                if not any(str(row.get(f) or "").strip() for f in TEXT_FIELDS + NUMERIC_FIELDS):
                    continue
                item_id = self.add_blank(project_id)["id"]
                current[item_id] = blank_item()
                ops += 1
            seen.add(item_id)
            before = current[item_id]
            for field in TEXT_FIELDS:
                value = "" if row.get(field) is None else str(row.get(field))
                if value != before[field]:
                    self.update(project_id, item_id, field, value)
                    ops += 1
            for field in NUMERIC_FIELDS:
                value = parse_wbs_num(row.get(field))
                if value != before[field]:
                    self.update(project_id, item_id, field, value)
                    ops += 1
        for item_id in list(current):
            if item_id not in seen:
                self.remove(project_id, item_id)
                ops += 1
        return ops
