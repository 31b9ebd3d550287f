#!/usr/bin/env python3
"""
Snapshot archive checks: round trip, amend semantics, the 100-entry cap and
restoring a snapshot into the live list.

Run: python test_progress_snapshots.py
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(REPO_ROOT))

from list_store import MemoryListStore, storage_key  # noqa: E402
from progress_snapshots import (  # noqa: E402
    MAX_SNAPSHOTS,
    SNAPSHOT_NAMESPACE,
    SnapshotArchive,
    pb_label_for_edit,
    restore_snapshot,
    save_progress,
    snapshot_label,
    take_snapshot,
)
from wbs_items import WbsItemStore  # noqa: E402

ITEMS = [
    {"id": "a", "code": "1", "name": "Design", "weight": 60, "progress": 50},
    {"id": "b", "code": "1.1", "name": "Drawings", "weight": 60, "progress": 50},
    {"id": "c", "code": "2", "name": "Build", "weight": 40, "progress": 100},
]


class _RecordingSync:
    def __init__(self) -> None:
        self.calls = []

    def __call__(self, project_id, percent):
        self.calls.append((project_id, percent))
        return True, None


def _setup():
    backing = MemoryListStore()
    sync = _RecordingSync()
    return backing, SnapshotArchive(backing), WbsItemStore(backing, sync), sync


def test_take_snapshot_is_a_deep_copy() -> None:
    items = [dict(i) for i in ITEMS]
    snap = take_snapshot(items, "", now=datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc))
    items[0]["progress"] = 0
    assert snap["wbs_items"][0]["progress"] == 50
    assert snap["pb_number"] == "—"
    assert snap["date"] == "2025-03-01T08:30:00Z"
    assert abs(snap["overall_progress"] - 70) < 1e-9
    assert snap["id"].startswith("snap-")
    assert snapshot_label(snap) == "Mar 01, 2025 · PB— · 70.00%"
    assert pb_label_for_edit(snap) == ""


def test_save_then_restore_round_trip() -> None:
    _, archive, store, sync = _setup()
    store.replace("p1", ITEMS)
    saved = save_progress(archive, store, "p1", "3")
    live_before = store.load("p1")

    store.update("p1", "c", "progress", 0)
    assert store.load("p1") != live_before

    restored = restore_snapshot(store, "p1", archive.get("p1", saved["id"]))
    assert restored == live_before
    assert store.load("p1") == live_before
    assert archive.list("p1")[0]["overall_progress"] == saved["overall_progress"]
    assert sync.calls[-1] == ("p1", 70)


def test_create_is_newest_first_and_capped() -> None:
    _, archive, _, _ = _setup()
    for n in range(MAX_SNAPSHOTS + 5):
        archive.create("p1", take_snapshot(ITEMS, str(n)))
    snapshots = archive.list("p1")
    assert len(snapshots) == MAX_SNAPSHOTS
    assert snapshots[0]["pb_number"] == str(MAX_SNAPSHOTS + 4)
    assert snapshots[-1]["pb_number"] == "5"


def test_amend_at_preserves_date_and_other_slots() -> None:
    _, archive, _, _ = _setup()
    for n, day in enumerate((1, 2, 3), start=1):
        archive.create("p1", take_snapshot(ITEMS, str(n), now=datetime(2025, 1, day, tzinfo=timezone.utc)))
    before = archive.list("p1")

    changed_items = [dict(i, progress=100) for i in ITEMS]
    amended = archive.amend_at("p1", 1, take_snapshot(changed_items, "9"))
    after = archive.list("p1")

    assert amended is not None
    assert after[1]["date"] == before[1]["date"]
    assert after[1]["id"] == before[1]["id"]
    assert after[1]["pb_number"] == "9"
    assert after[1]["overall_progress"] == 100
    assert after[0] == before[0]
    assert after[2] == before[2]


def test_amend_out_of_range_is_noop() -> None:
    backing, archive, _, _ = _setup()
    archive.create("p1", take_snapshot(ITEMS, "1"))
    raw_before = backing.data[storage_key(SNAPSHOT_NAMESPACE, "p1")]
    assert archive.amend_at("p1", 5, take_snapshot(ITEMS, "2")) is None
    assert archive.amend_at("p1", -1, take_snapshot(ITEMS, "2")) is None
    assert backing.data[storage_key(SNAPSHOT_NAMESPACE, "p1")] == raw_before


def test_amend_by_id_survives_shifted_list() -> None:
    _, archive, store, _ = _setup()
    store.replace("p1", ITEMS)
    target = save_progress(archive, store, "p1", "1")
    archive.create("p1", take_snapshot(ITEMS, "2"))

    store.update("p1", "c", "progress", 0)
    amended = save_progress(archive, store, "p1", "1", editing_id=target["id"])
    snapshots = archive.list("p1")
    assert amended["id"] == target["id"]
    assert snapshots[1]["id"] == target["id"]
    assert snapshots[1]["date"] == target["date"]
    assert snapshots[0]["pb_number"] == "2"
    assert save_progress(archive, store, "p1", "1", editing_id="snap-missing") is None


def test_list_reclamps_stored_numbers() -> None:
    backing, archive, _, _ = _setup()
    backing.put_list(
        storage_key(SNAPSHOT_NAMESPACE, "p1"),
        [
            {
                "date": "2025-02-02T00:00:00Z",
                "pb_number": "",
                "wbs_items": [{"id": "z", "code": "1", "weight": "900", "progress": -3}],
                "overall_progress": 120,
            },
            "garbage",
        ],
    )
    snapshots = archive.list("p1")
    assert len(snapshots) == 1
    item = snapshots[0]["wbs_items"][0]
    assert item["weight"] == 100 and item["progress"] == 0
    assert snapshots[0]["overall_progress"] == 100
    assert snapshots[0]["pb_number"] == "—"


if __name__ == "__main__":
    for name, fn in sorted(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
    print("PASS")
