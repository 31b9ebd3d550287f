#!/usr/bin/env python3
"""
Checks for the hierarchy deriver and the weighted rollup.

Run: python test_wbs_rollup.py
"""

from __future__ import annotations

import random
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(REPO_ROOT))

from wbs_hierarchy import (  # noqa: E402
    WbsTree,
    ancestor_prefixes,
    direct_children,
    indent_level,
    is_parent,
    top_level_items,
)
from wbs_rollup import WbsRollup, overall_progress, rollup, round_half_up  # noqa: E402


def _item(code, weight=0, progress=0, name=""):
    return {"id": f"id-{code}-{name}", "code": code, "name": name, "weight": weight, "progress": progress}


def test_prefixes_and_indent() -> None:
    assert ancestor_prefixes("1.2.3") == ["1", "1.2"]
    assert ancestor_prefixes("1") == []
    assert indent_level(" 1.2.3 ") == 2
    assert indent_level("") == 0


def test_parent_detection_tolerates_gaps_and_blanks() -> None:
    items = [_item("1"), _item("1.3"), _item(""), _item(" "), _item("2")]
    assert is_parent("1", items)
    assert is_parent(" 1 ", items)
    assert not is_parent("1.3", items)
    assert not is_parent("2", items)
    assert not is_parent("", items)
    assert not is_parent("   ", items)
    codes = [i["code"] for i in top_level_items(items)]
    assert codes == ["1", "", " ", "2"]


def test_direct_children_skip_grandchildren() -> None:
    items = [_item("1"), _item("1.1"), _item("1.1.1"), _item("1.2"), _item("10")]
    assert [i["code"] for i in direct_children("1", items)] == ["1.1", "1.2"]
    assert [i["code"] for i in direct_children("1.1", items)] == ["1.1.1"]
    assert direct_children("10", items) == []
    tree = WbsTree(items)
    assert [i["code"] for i in tree.parent_items()] == ["1", "1.1"]


def test_two_level_rollup() -> None:
    items = [_item("1", 100, 0), _item("1.1", 60, 50), _item("1.2", 40, 100)]
    result = rollup("1", items)
    assert result["weight"] == 100
    assert abs(result["progress"] - 70) < 1e-9
    assert rollup("1.1", items) == {"weight": 0.0, "progress": 0.0}
    assert abs(overall_progress(items) - 70) < 1e-9


def test_three_level_change_reaches_grandparent_only() -> None:
    base = [
        _item("1", 50, 0),
        _item("1.1", 100, 0),
        _item("1.1.1", 50, 20),
        _item("1.1.2", 50, 40),
        _item("2", 50, 0),
        _item("2.1", 100, 90),
    ]
    before = WbsRollup(base)
    grand_before = before.rollup("1")["progress"]
    sibling_before = before.rollup("2")

    changed = [dict(i) for i in base]
    changed[2]["progress"] = 100
    after = WbsRollup(changed)
    assert abs(grand_before - 30) < 1e-9
    assert abs(after.rollup("1")["progress"] - 70) < 1e-9
    assert after.rollup("2") == sibling_before


def test_weight_sums_one_level_only() -> None:
    items = [_item("1", 10), _item("1.1", 30, 100), _item("1.1.1", 80, 50)]
    assert rollup("1", items)["weight"] == 30
    assert rollup("1.1", items)["weight"] == 80
    assert abs(rollup("1", items)["progress"] - 50) < 1e-9


def test_zero_weight_guards() -> None:
    assert rollup("1", [_item("1"), _item("1.1", 0, 80)]) == {"weight": 0.0, "progress": 0.0}
    flat = [_item("1", 0, 80), _item("2", 0, 20), _item("3", 0, 50)]
    assert abs(overall_progress(flat) - 50) < 1e-9
    assert overall_progress([]) == 0.0


def test_flat_weighted_mean_and_scenario() -> None:
    items = [_item("1", 50, 80), _item("2", 50, 20)]
    assert overall_progress(items) == 50
    uneven = [_item("A", 25, 100), _item("B", 75, 0)]
    assert abs(overall_progress(uneven) - 25) < 1e-9


def test_blank_codes_fall_back_to_whole_list() -> None:
    items = [_item("", 20, 50), _item("", 80, 100)]
    assert abs(overall_progress(items) - 90) < 1e-9


def test_permutation_invariance() -> None:
    items = [
        _item("1", 33.3, 0),
        _item("1.1", 12.7, 41.1),
        _item("1.2", 61.9, 77.7),
        _item("1.2.1", 0.1, 99.9),
        _item("1.2.2", 19.3, 3.3),
        _item("2", 47.2, 12.5),
        _item("3", 19.5, 66.6),
        _item("", 5, 5),
    ]
    expected = overall_progress(items)
    rng = random.Random(7)
    for _ in range(25):
        shuffled = list(items)
        rng.shuffle(shuffled)
        assert overall_progress(shuffled) == expected


def test_round_half_up() -> None:
    assert round_half_up(49.5) == 50
    assert round_half_up(50.5) == 51
    assert round_half_up(49.49) == 49
    assert round_half_up(0) == 0


if __name__ == "__main__":
    for name, fn in sorted(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
    print("PASS")
