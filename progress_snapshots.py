from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from list_store import storage_key
from wbs_items import WbsItemStore, copy_items, item_progress_label, parse_wbs_num
from wbs_rollup import overall_progress

SNAPSHOT_NAMESPACE = "projectProgressSnapshots"
MAX_SNAPSHOTS = 100
BLANK_PB = "—"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def new_snapshot_id() -> str:
    return f"snap-{uuid.uuid4().hex[:12]}"


def normalize_pb_number(value: Any) -> str:
    text = "" if value is None else str(value).strip()
    return text or BLANK_PB


def pb_label_for_edit(snapshot: dict | None) -> str:
    if not snapshot:
        return ""
    label = normalize_pb_number(snapshot.get("pb_number"))
    return "" if label == BLANK_PB else label


def take_snapshot(items: list[dict], pb_number: Any, now: datetime | None = None) -> dict:
    frozen = copy_items(items)
    stamp = now.astimezone(timezone.utc).isoformat().replace("+00:00", "Z") if now else _now_iso()
    return {
        "id": new_snapshot_id(),
        "date": stamp,
        "pb_number": normalize_pb_number(pb_number),
        "wbs_items": frozen,
        "overall_progress": overall_progress(frozen),
    }


def _normalize_snapshot(raw: dict) -> dict:
    items = raw.get("wbs_items")
    return {
        "id": str(raw.get("id") or "").strip() or new_snapshot_id(),
        "date": str(raw.get("date") or ""),
        "pb_number": normalize_pb_number(raw.get("pb_number")),
        "wbs_items": copy_items(items if isinstance(items, list) else []),
        "overall_progress": parse_wbs_num(raw.get("overall_progress")),
    }


def snapshot_label(snapshot: dict) -> str:
    raw_date = snapshot.get("date") or ""
    try:
        parsed = datetime.fromisoformat(raw_date.replace("Z", "+00:00"))
        day = parsed.strftime("%b %d, %Y")
    except ValueError:
        day = raw_date or "—"
    return f"{day} · PB{normalize_pb_number(snapshot.get('pb_number'))} · {item_progress_label(snapshot.get('overall_progress'))}"


class SnapshotArchive:
    """Dated, newest-first copies of a project's WBS rollup."""

    def __init__(self, list_store) -> None:
        self.list_store = list_store

    def _key(self, project_id: Any) -> str:
        return storage_key(SNAPSHOT_NAMESPACE, project_id)

    def _raw(self, project_id: Any) -> list[dict]:
        return self.list_store.get_list(self._key(project_id))

    def list(self, project_id: Any) -> list[dict]:
        return [_normalize_snapshot(row) for row in self._raw(project_id)]

    def get(self, project_id: Any, snapshot_id: str) -> dict | None:
        return next((s for s in self.list(project_id) if s["id"] == snapshot_id), None)

    def index_of(self, project_id: Any, snapshot_id: str) -> int | None:
        for idx, snapshot in enumerate(self.list(project_id)):
            if snapshot["id"] == snapshot_id:
                return idx
        return None

    def create(self, project_id: Any, snapshot: dict) -> dict:
        stored = _normalize_snapshot(snapshot)
        snapshots = self.list(project_id)
        snapshots.insert(0, stored)
        self.list_store.put_list(self._key(project_id), snapshots[:MAX_SNAPSHOTS])
        return stored

    def amend_at(self, project_id: Any, index: int, snapshot: dict) -> dict | None:
        """Overwrite one slot by position; the slot keeps its date and id.

        The index is whatever the caller captured when it loaded the snapshot,
        so a list that has shifted since then gets the wrong slot overwritten.
        """
        snapshots = self.list(project_id)
        if index < 0 or index >= len(snapshots):
            return None
        original = snapshots[index]
        amended = _normalize_snapshot(snapshot)
        amended["id"] = original["id"]
        amended["date"] = original["date"]
        snapshots[index] = amended
        self.list_store.put_list(self._key(project_id), snapshots)
        return amended

    def amend(self, project_id: Any, snapshot_id: str, snapshot: dict) -> dict | None:
        index = self.index_of(project_id, snapshot_id)
        if index is None:
            return None
        return self.amend_at(project_id, index, snapshot)


def save_progress(
    archive: SnapshotArchive,
    store: WbsItemStore,
    project_id: Any,
    pb_number: Any,
    editing_id: str | None = None,
) -> dict | None:
    """Snapshot the live list; amend ``editing_id`` when given, else create."""
    snapshot = take_snapshot(store.load(project_id), pb_number)
    if editing_id:
        return archive.amend(project_id, editing_id, snapshot)
    return archive.create(project_id, snapshot)


def restore_snapshot(store: WbsItemStore, project_id: Any, snapshot: dict) -> list[dict]:
    """Make a stored snapshot the live list again and rewind the project status."""
    return store.replace(project_id, snapshot.get("wbs_items") or [])
