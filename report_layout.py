"""
Page model for the Progress Report.

The layout is built in two passes. ``paginate`` turns the flat WBS list into
an ordered list of page blocks whose numbering is still unknown;
``finalize_pages`` stamps the document number and ``Page X of Y`` once the
total page count is fixed. Nothing here draws: ``report_pdf`` consumes the
finished model.
"""

from __future__ import annotations

import re
from typing import Any, Callable

import config
from wbs_hierarchy import indent_level
from wbs_items import parse_wbs_num
from wbs_rollup import WbsRollup

__all__ = [
    "REPORT_COMPANIES",
    "DEFAULT_COMPANY",
    "ITEM_TABLE_HEADER",
    "SUMMARY_TABLE_HEADER",
    "company_profile",
    "percent_to_words",
    "project_number",
    "pad_pb_number",
    "doc_number",
    "report_filename",
    "certification_segments",
    "signature_layout",
    "build_item_rows",
    "build_summary_rows",
    "paginate",
    "table_lines",
    "finalize_pages",
    "build_report",
]

EM_DASH = "—"
NAME_MAX_CHARS = 50
MAX_APPROVERS = 3
DEFAULT_COMPANY = "IOCT"
FILENAME_PLACEHOLDER = "project"

ITEM_TABLE_HEADER = ["Code", "Deliverables", "Weight %", "Progress %"]
SUMMARY_TABLE_HEADER = ["Code", "Work Package Summary", "Weight %", "Progress %"]

REPORT_COMPANIES: dict[str, dict[str, Any]] = {
    "IOCT": {
        "name": "IO Control Technologie OPC",
        "address": "B63, L7 Dynamism Jubilation Enclave, Santo Niño, City of Biñan, Laguna, Region IV-A (Calabarzon), 4024",
        "logo": "logo-ioct.png",
        "logo_size_mm": (18.0, 6.7),
    },
    "ACT": {
        "name": "Advance Controle Technologie Inc.",
        "address": "Block 13 Lot 8, Mindanao Ave., Gavino Maderan, Gen. Mariano Alvarez, Cavite, Region IV-A (Calabarzon), 4117",
        "logo": "logo-advance-controle.png",
        "logo_size_mm": (18.0, 15.0),
    },
}

CERTIFICATION_TAIL = (
    " has been completed as of the date of this report. The completed works were executed in full "
    "compliance with the approved project scope, technical specifications, and contractual obligations. "
    "All deliverables corresponding to the stated progress have been properly performed and documented."
)
CERTIFICATION_STATEMENT = (
    "This certification is issued for documentation, verification, and progress billing purposes."
)

_ONES = [
    "", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine", "ten",
    "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen", "seventeen",
    "eighteen", "nineteen",
]
_TENS = ["", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety"]


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _or_dash(value: Any) -> str:
    return _text(value) or EM_DASH


def _fmt_num(value: float) -> str:
    return f"{value:.2f}"


def _fmt_short_pct(value: float) -> str:
    # 70.0 -> "70", 33.333 -> "33.33"
    text = f"{round(value + 1e-9, 2):.2f}"
    return text.rstrip("0").rstrip(".")


def _logo_path(filename: str | None) -> str | None:
    if not filename:
        return None
    path = config.report_assets_dir() / filename
    return str(path) if path.is_file() else None


def company_profile(key: str | None) -> dict[str, Any]:
    code = _text(key).upper() or config.report_company()
    if code not in REPORT_COMPANIES:
        code = DEFAULT_COMPANY
    profile = {"key": code, **REPORT_COMPANIES[code]}
    profile["logo"] = _logo_path(profile.get("logo"))
    return profile


def percent_to_words(value: float) -> str:
    v = max(0, min(100, int(value + 0.5)))
    if v == 0:
        return "zero"
    if v == 100:
        return "one hundred"
    if v < 20:
        return _ONES[v]
    tens, ones = divmod(v, 10)
    return _TENS[tens] + (f"-{_ONES[ones]}" if ones else "")


def project_number(project: dict | None) -> str:
    project = project or {}
    for key in ("project_no", "item_no", "id"):
        value = _text(project.get(key))
        if value:
            return value
    return EM_DASH


def pad_pb_number(label: Any) -> str:
    text = _text(label)
    if not text or text == EM_DASH:
        return "01"
    if text.isdigit():
        return f"{int(text):02d}"
    return text


def doc_number(project: dict | None, pb_label: Any) -> str:
    return f"Doc. No.: {project_number(project)}-PB-{pad_pb_number(pb_label)}"


def report_filename(project: dict | None, pb_label: Any) -> str:
    number = project_number(project)
    if number == EM_DASH:
        number = FILENAME_PLACEHOLDER
    stem = f"{number}-PB-{pad_pb_number(pb_label)}"
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", stem).strip("._-") or "progress-report"
    return f"{stem}.pdf"


def project_details(project: dict | None) -> list[tuple[str, str]]:
    project = project or {}
    return [
        ("Project Name", _or_dash(project.get("project_name"))),
        ("Project No.", project_number(project)),
        ("Purchase Order No.", _or_dash(project.get("po_number"))),
        ("Client", _or_dash(project.get("account_name"))),
        ("Project Location", _or_dash(project.get("project_location"))),
    ]


def certification_segments(company: dict, project: dict | None, overall: float) -> list[tuple[str, bool]]:
    """Certification prose as (text, bold) runs for word-wrapped drawing."""
    pct = _fmt_short_pct(overall)
    po = _or_dash((project or {}).get("po_number"))
    return [
        (company["name"], True),
        (" hereby certifies that ", False),
        (f"{percent_to_words(overall)} percent ({pct}%)", True),
        (" of the total scope of work under Purchase Order No. ", False),
        (po, True),
        (CERTIFICATION_TAIL, False),
    ]


def _signatory(label: str, person: dict | None, with_date: bool) -> dict:
    person = person or {}
    lines = [
        ("Name", _or_dash(person.get("name"))),
        ("Designation", _or_dash(person.get("designation"))),
        ("Company", _or_dash(person.get("company"))),
    ]
    if with_date:
        lines.append(("Date", _or_dash(person.get("date"))))
    return {"label": label, "lines": lines}


def _approvers_from_project(project: dict | None) -> list[dict]:
    project = project or {}
    raw = _text(project.get("client_approver"))
    if not raw:
        return []
    parts = re.split(r"\s*[–-]\s*", raw, maxsplit=1)
    return [
        {
            "name": parts[0] if parts else "",
            "designation": parts[1] if len(parts) > 1 else "",
            "company": _text(project.get("account_name")),
        }
    ]


def signature_layout(meta: dict | None, project: dict | None = None) -> dict:
    """Prepared-by on the left; one approver beside it, or a row of up to three."""
    meta = meta or {}
    approvers = [a for a in (meta.get("approvers") or []) if isinstance(a, dict)]
    approvers = [a for a in approvers if any(_text(a.get(k)) for k in ("name", "designation", "company"))]
    if not approvers:
        approvers = _approvers_from_project(project)
    approvers = approvers[:MAX_APPROVERS]
    prepared = _signatory("Prepared by:", meta.get("prepared_by"), with_date=True)
    if len(approvers) <= 1:
        blocks = [_signatory("Approved by:", approvers[0] if approvers else None, with_date=True)]
        return {"mode": "side_by_side", "prepared_by": prepared, "approvers": blocks, "columns": 1}
    blocks = [_signatory("Approved by:", a, with_date=False) for a in approvers]
    return {"mode": "stacked", "prepared_by": prepared, "approvers": blocks, "columns": len(blocks)}


def _row(item: dict, values: dict, bold: bool) -> dict:
    return {
        "kind": "item",
        "code": _or_dash(item.get("code")),
        "name": _or_dash(item.get("name"))[:NAME_MAX_CHARS],
        "weight": _fmt_num(values["weight"]),
        "progress": _fmt_num(values["progress"]),
        "indent": indent_level(item.get("code")),
        "bold": bold,
    }


def build_item_rows(items: list[dict], engine: WbsRollup) -> list[dict]:
    return [_row(item, engine.row_values(item), engine.is_parent(item.get("code"))) for item in items]


def total_row(overall: float, weight: float | None = None) -> dict:
    return {
        "kind": "total",
        "code": "",
        "name": "Total",
        "weight": "" if weight is None else _fmt_num(weight),
        "progress": f"{_fmt_num(overall)}%",
        "indent": 0,
        "bold": True,
    }


def placeholder_row() -> dict:
    return {
        "kind": "placeholder",
        "code": EM_DASH,
        "name": "No WBS items",
        "weight": EM_DASH,
        "progress": EM_DASH,
        "indent": 0,
        "bold": False,
    }


def build_summary_rows(items: list[dict], engine: WbsRollup, overall: float) -> list[dict]:
    rows = []
    weights = []
    for item in items:
        if not engine.is_parent(item.get("code")):
            continue
        values = engine.rollup(item.get("code"))
        weights.append(values["weight"])
        row = _row(item, values, True)
        row["indent"] = 0
        rows.append(row)
    rows.append(total_row(overall, weight=sum(weights)))
    return rows


def _item_chunks(
    rows: list[dict],
    rows_per_page: int,
    cover_lines: int | None,
    page_lines: int | None,
) -> list[list[dict]]:
    # Each item page also needs its header line and room for the total row.
    chunks: list[list[dict]] = []
    start = 0
    while True:
        room = cover_lines if not chunks else page_lines
        size = rows_per_page if room is None else max(min(rows_per_page, room - 2), 1)
        chunks.append(rows[start : start + size])
        start += size
        if start >= len(rows):
            return chunks


def _page(kind: str, item_table: dict | None, summary_table: dict | None) -> dict:
    return {
        "kind": kind,
        "letterhead": True,
        "project_block": True,
        "certification": kind == "cover",
        "item_table": item_table,
        "summary_table": summary_table,
        "signature": True,
        "footer": None,
    }


def _summary_table(rows: list[dict], continued: bool) -> dict:
    return {
        "title": "Summary (continued)" if continued else "Summary",
        "header": list(SUMMARY_TABLE_HEADER),
        "rows": rows,
    }


def table_lines(page: dict) -> int:
    """Table lines a page uses: headers, rows, the gap and the summary title."""
    used = 0
    if page.get("item_table"):
        used += 1 + len(page["item_table"]["rows"])
    if page.get("summary_table"):
        used += (1 if used else 0) + 2 + len(page["summary_table"]["rows"])
    return used


def paginate(
    item_rows: list[dict],
    summary_rows: list[dict],
    overall: float,
    rows_per_page: int,
    cover_lines: int | None = None,
    page_lines: int | None = None,
) -> list[dict]:
    """First pass: page blocks in output order, numbering still unknown.

    ``cover_lines`` / ``page_lines`` are the table lines that fit above the
    signature block on the cover and on later pages. Without them the summary
    stays whole on the last item page. With them, summary rows that do not
    fit continue on extra pages after the last item page.
    """
    if page_lines is None:
        page_lines = cover_lines
    chunks = _item_chunks(item_rows, max(int(rows_per_page), 1), cover_lines, page_lines)
    pages: list[dict] = []
    for idx, chunk in enumerate(chunks):
        rows = list(chunk)
        if idx == len(chunks) - 1:
            rows.append(total_row(overall) if item_rows else placeholder_row())
        item_table = {"header": list(ITEM_TABLE_HEADER), "rows": rows}
        pages.append(_page("cover" if idx == 0 else "items", item_table, None))

    remaining = list(summary_rows)
    last = pages[-1]
    room = cover_lines if len(pages) == 1 else page_lines
    if room is None:
        last["summary_table"] = _summary_table(remaining, continued=False)
        return pages
    fits = room - table_lines(last) - 3
    if fits >= 1:
        last["summary_table"] = _summary_table(remaining[:fits], continued=False)
        remaining = remaining[fits:]
    continued = last["summary_table"] is not None
    per_page = max(page_lines - 2, 1)
    while remaining:
        pages.append(_page("summary", None, _summary_table(remaining[:per_page], continued)))
        remaining = remaining[per_page:]
        continued = True
    return pages


def finalize_pages(pages: list[dict], doc_no: str) -> list[dict]:
    """Second pass: stamp numbering now that the page count is known."""
    total = len(pages)
    finished = []
    for idx, page in enumerate(pages, start=1):
        stamped = dict(page)
        stamped["number"] = idx
        stamped["footer"] = {"left": doc_no, "right": f"Page {idx} of {total}"}
        finished.append(stamped)
    return finished


def build_report(
    items: list[dict],
    project: dict | None,
    meta: dict | None = None,
    rows_per_page: int | None = None,
    line_budget: Callable[[dict, bool], int] | None = None,
) -> dict:
    """Page model for one report.

    ``line_budget(report, cover)`` reports how many table lines fit on a page
    for this letterhead and signature block; the PDF renderer supplies it.
    """
    meta = meta or {}
    items = list(items or [])
    per_page = rows_per_page if rows_per_page is not None else config.report_rows_per_page()
    engine = WbsRollup(items)
    overall = engine.overall_progress()
    company = company_profile(meta.get("company"))
    if "logo" in meta:
        company["logo"] = meta["logo"] or None
    pb_label = meta.get("pb_label")
    doc_no = doc_number(project, pb_label)
    report = {
        "company": company,
        "project_details": project_details(project),
        "overall_progress": overall,
        "completion_pct": parse_wbs_num(round(overall + 1e-9, 2)),
        "certification": {
            "title": "Project Status",
            "segments": certification_segments(company, project, overall),
            "statement_title": "Certification Statement",
            "statement": CERTIFICATION_STATEMENT,
        },
        "signature": signature_layout(meta, project),
        "doc_number": doc_no,
        "filename": report_filename(project, pb_label),
        "rows_per_page": per_page,
    }
    cover_lines = page_lines = None
    if line_budget is not None:
        cover_lines = line_budget(report, True)
        page_lines = line_budget(report, False)

    item_rows = build_item_rows(items, engine)
    summary_rows = build_summary_rows(items, engine, overall)
    pages = paginate(item_rows, summary_rows, overall, per_page, cover_lines, page_lines)
    report["pages"] = finalize_pages(pages, doc_no)
    return report
