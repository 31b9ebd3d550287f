# wbs_import.py
# Usage: python wbs_import.py Progress.xlsx --out wbs_items.json
from __future__ import annotations

import argparse
import json
import re
from pathlib import Path
from typing import Any, BinaryIO

import pandas as pd
from openpyxl import load_workbook

from wbs_items import NUMERIC_FIELDS, new_item_id, normalize_item

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "code": ("code", "wbs", "wbs code", "item code"),
    "name": ("name", "deliverables", "deliverable", "description", "work package"),
    "weight": ("weight", "weight %", "weight (%)"),
    "progress": ("progress", "progress %", "progress (%)", "% complete"),
}
REQUIRED_FIELDS = ("code", "weight", "progress")


def _norm(x: Any) -> str:
    return re.sub(r"\s+", " ", str(x or "")).strip().lower()


def match_columns(headers: list[Any]) -> dict[str, int]:
    """Field -> column index for a header row; missing fields are absent."""
    found: dict[str, int] = {}
    normalized = [_norm(h) for h in headers]
    for field, aliases in COLUMN_ALIASES.items():
        for idx, header in enumerate(normalized):
            if header in aliases:
                found[field] = idx
                break
    return found


def _has_required(headers: list[Any]) -> bool:
    found = match_columns(headers)
    return all(field in found for field in REQUIRED_FIELDS)


def _cell_value(cell: Any, field: str) -> Any:
    value = getattr(cell, "value", None)
    # Percent-formatted cells store 45% as 0.45.
    if (
        field in NUMERIC_FIELDS
        and isinstance(value, (int, float))
        and not isinstance(value, bool)
        and "%" in (getattr(cell, "number_format", None) or "")
    ):
        return value * 100.0
    return value


def _code_text(value: Any) -> str:
    if value is None or pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def frame_to_items(df: pd.DataFrame) -> list[dict]:
    items: list[dict] = []
    for _, row in df.iterrows():
        code = _code_text(row.get("code"))
        name = "" if pd.isna(row.get("name")) else str(row.get("name") or "").strip()
        if not code and not name:
            continue
        weight = row.get("weight")
        progress = row.get("progress")
        items.append(
            normalize_item(
                {
                    "id": new_item_id(),
                    "code": code,
                    "name": name,
                    "weight": None if pd.isna(weight) else weight,
                    "progress": None if pd.isna(progress) else progress,
                }
            )
        )
    return items


def read_wbs_sheet(ws) -> pd.DataFrame | None:
    rows = [list(r) for r in ws.iter_rows()]
    for header_idx, cells in enumerate(rows):
        headers = [getattr(c, "value", None) for c in cells]
        if not any(headers) or not _has_required(headers):
            continue
        columns = match_columns(headers)
        body = []
        for row in rows[header_idx + 1 :]:
            if all(getattr(c, "value", None) in (None, "", " ") for c in row):
                break
            body.append(
                {field: _cell_value(row[col], field) if col < len(row) else None for field, col in columns.items()}
            )
        df = pd.DataFrame(body, columns=list(COLUMN_ALIASES))
        return df
    return None


def import_wbs_items(source: str | Path | BinaryIO) -> list[dict]:
    """Read the first sheet table that has Code / Weight / Progress headers."""
    wb = load_workbook(source, data_only=True, read_only=True)
    try:
        for ws in wb.worksheets:
            df = read_wbs_sheet(ws)
            if df is not None:
                return frame_to_items(df)
    finally:
        wb.close()
    return []


if __name__ == "__main__":
    p = argparse.ArgumentParser(description="Import WBS line items from an Excel workbook.")
    p.add_argument("input_xlsx", help="Path to Excel file, e.g., Progress.xlsx")
    p.add_argument("--out", default="wbs_items.json", help="Output JSON path")
    args = p.parse_args()

    items = import_wbs_items(args.input_xlsx)
    Path(args.out).write_text(json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8")
    print(f"Saved: {args.out}  |  Items: {len(items)}")
