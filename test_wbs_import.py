#!/usr/bin/env python3
"""
Excel import checks using a workbook written on the fly with openpyxl.

Run: python test_wbs_import.py
"""

from __future__ import annotations

import atexit
import shutil
import sys
import tempfile
from pathlib import Path

import pandas as pd
from openpyxl import Workbook

REPO_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(REPO_ROOT))

from wbs_import import frame_to_items, import_wbs_items, match_columns  # noqa: E402


def _workbook_path() -> Path:
    tmp_path = Path(tempfile.mkdtemp(prefix="progress-import-"))
    atexit.register(lambda: shutil.rmtree(tmp_path, ignore_errors=True))
    wb = Workbook()
    cover = wb.active
    cover.title = "Cover"
    cover.append(["Progress billing", None])
    sheet = wb.create_sheet("WBS")
    sheet.append(["Project: Pump Station"])
    sheet.append([])
    sheet.append(["Code", "Deliverables", "Weight %", "Progress %"])
    sheet.append([1, "Mechanical", 50, 0])
    sheet.append(["1.1", "Pumps", 0.5, 0.45])
    sheet[f"D{sheet.max_row}"].number_format = "0%"
    sheet.append(["1.2", "Piping", "30", "150abc"])
    sheet.append([" ", None, None, None])
    sheet.append(["9", "Below the blank row", 10, 10])
    path = tmp_path / "progress.xlsx"
    wb.save(path)
    return path


def test_match_columns_aliases() -> None:
    found = match_columns(["WBS", " Work  Package ", "weight (%)", "% complete", "Notes"])
    assert found == {"code": 0, "name": 1, "weight": 2, "progress": 3}
    assert "progress" not in match_columns(["Code", "Weight"])


def test_import_reads_first_matching_table() -> None:
    items = import_wbs_items(_workbook_path())
    assert [i["code"] for i in items] == ["1", "1.1", "1.2"]
    assert items[0]["name"] == "Mechanical"
    assert items[1]["weight"] == 0.5
    assert abs(items[1]["progress"] - 45) < 1e-9
    assert items[2]["weight"] == 30 and items[2]["progress"] == 100
    assert len({i["id"] for i in items}) == 3


def test_plain_fractions_are_not_rescaled() -> None:
    items = frame_to_items(pd.DataFrame([{"code": "1", "name": "Pumps", "weight": 0.5, "progress": 1.0}]))
    assert items[0]["weight"] == 0.5
    assert items[0]["progress"] == 1.0


if __name__ == "__main__":
    for name, fn in sorted(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
    print("PASS")
