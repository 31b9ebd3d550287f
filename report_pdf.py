from __future__ import annotations

import hashlib
import io
import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any
from urllib.request import Request, urlopen

from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

import config
from report_layout import build_report, company_profile

REPORT_LOGGER = logging.getLogger("report_pdf")

PAGE_W, PAGE_H = A4
MARGIN = 16 * mm
CONTENT_W = PAGE_W - 2 * MARGIN
TOP_Y = PAGE_H - 18 * mm
LINE_H = 5.2 * mm
SECTION_GAP = 6 * mm
ROW_H = 6 * mm
FOOTER_Y = 10 * mm
SIGNATURE_BOTTOM = 20 * mm
SIG_LINE_H = 5 * mm
SIG_RULE_W = 52 * mm
SIG_CLEARANCE = 5 * mm
CODE_COL_W = 18 * mm
NUM_COL_W = 22 * mm

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
HEADER_BLUE = HexColor("#2C5AA0")
RULE_GRAY = HexColor("#B4B4B4")
GRID_GRAY = HexColor("#CBD5E1")
TEXT_DARK = HexColor("#1E293B")

_LOGO_EXECUTOR: ThreadPoolExecutor | None = None


def _ensure_logger() -> None:
    if not REPORT_LOGGER.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s [report_pdf] %(levelname)s: %(message)s")
        )
        REPORT_LOGGER.addHandler(handler)
    REPORT_LOGGER.setLevel(logging.DEBUG if config.debug_enabled() else logging.INFO)


def _log(level: int, message: str) -> None:
    _ensure_logger()
    REPORT_LOGGER.log(level, message)


# ---------- Letterhead logo ----------
def fetch_logo(source: str | Path | None, timeout: float | None = None) -> bytes | None:
    if not source:
        return None
    timeout = timeout if timeout is not None else config.logo_fetch_timeout()
    text = str(source)
    try:
        if text.startswith(("http://", "https://")):
            req = Request(text, headers={"Accept": "image/*"}, method="GET")
            with urlopen(req, timeout=timeout) as response:
                return response.read()
        path = Path(text)
        if not path.exists():
            _log(logging.INFO, f"logo not found path={path}")
            return None
        return path.read_bytes()
    except Exception as err:
        _log(logging.WARNING, f"logo fetch failed source={text} error={err}")
        return None


def start_logo_fetch(source: str | Path | None, timeout: float | None = None) -> Future:
    global _LOGO_EXECUTOR
    if _LOGO_EXECUTOR is None:
        _LOGO_EXECUTOR = ThreadPoolExecutor(max_workers=2, thread_name_prefix="report-logo")
    return _LOGO_EXECUTOR.submit(fetch_logo, source, timeout)


def _await_logo(future: Future | None, timeout: float) -> bytes | None:
    if future is None:
        return None
    try:
        return future.result(timeout=timeout)
    except Exception as err:
        _log(logging.WARNING, f"logo unavailable, continuing without it: {err}")
        return None


# ---------- Drawing helpers ----------
def _fit(text: str, font: str, size: float, max_width: float) -> str:
    if stringWidth(text, font, size) <= max_width:
        return text
    while len(text) > 3 and stringWidth(text + "...", font, size) > max_width:
        text = text[:-1]
    return text + "..."


def _draw_logo(c: canvas.Canvas, logo: bytes | None, company: dict, y: float) -> float:
    # The logo box is reserved whenever the company has a logo file, so page
    # budgets do not depend on whether the fetch succeeded.
    if not company.get("logo"):
        return y
    width_mm, height_mm = company.get("logo_size_mm") or (18.0, 10.0)
    below = y - height_mm * mm - 4 * mm
    if not logo:
        return below
    try:
        image = ImageReader(io.BytesIO(logo))
        c.drawImage(image, MARGIN, y - height_mm * mm, width_mm * mm, height_mm * mm, mask="auto")
    except Exception as err:
        _log(logging.WARNING, f"logo draw failed: {err}")
    return below


def _draw_letterhead(c: canvas.Canvas, report: dict, logo: bytes | None, y: float) -> float:
    company = report["company"]
    y = _draw_logo(c, logo, company, y)
    c.setFont(FONT_BOLD, 11)
    c.drawString(MARGIN, y, company["name"].upper())
    y -= LINE_H
    c.setFont(FONT, 9)
    for line in simpleSplit(company.get("address") or "", FONT, 9, CONTENT_W):
        c.drawString(MARGIN, y, line)
        y -= LINE_H
    return y - SECTION_GAP + LINE_H


def _draw_project_block(c: canvas.Canvas, report: dict, y: float) -> float:
    c.setFont(FONT_BOLD, 12)
    c.drawString(MARGIN, y, "Project Details")
    y -= LINE_H + 2 * mm
    c.setFont(FONT, 9)
    for label, value in report["project_details"]:
        c.drawString(MARGIN, y, _fit(f"{label}: {value}", FONT, 9, CONTENT_W))
        y -= LINE_H
    return y - SECTION_GAP + LINE_H


def _draw_segments(c: canvas.Canvas, segments: list[tuple[str, bool]], y: float, size: float = 9) -> float:
    x = MARGIN
    right = MARGIN + CONTENT_W
    for text, bold in segments:
        font = FONT_BOLD if bold else FONT
        for word in text.replace("\n", " ").split(" "):
            token = word + " "
            if not word:
                continue
            width = stringWidth(token, font, size)
            if x + width > right and x > MARGIN:
                y -= LINE_H
                x = MARGIN
            c.setFont(font, size)
            c.drawString(x, y, token)
            x += width
    return y


def _draw_certification(c: canvas.Canvas, report: dict, y: float) -> float:
    cert = report["certification"]
    c.setFont(FONT_BOLD, 11)
    c.drawString(MARGIN, y, cert["title"])
    y -= LINE_H + 1.5 * mm
    y = _draw_segments(c, cert["segments"], y)
    y -= LINE_H + SECTION_GAP - 2 * mm
    c.setFont(FONT_BOLD, 11)
    c.drawString(MARGIN, y, cert["statement_title"])
    y -= LINE_H + 1.5 * mm
    c.setFont(FONT, 9)
    c.drawString(MARGIN, y, cert["statement"])
    return y - LINE_H - 2 * mm


def _column_layout() -> list[tuple[float, float]]:
    name_w = CONTENT_W - CODE_COL_W - 2 * NUM_COL_W
    widths = [CODE_COL_W, name_w, NUM_COL_W, NUM_COL_W]
    out = []
    x = MARGIN
    for w in widths:
        out.append((x, w))
        x += w
    return out


def _draw_table(c: canvas.Canvas, table: dict, y: float) -> float:
    cols = _column_layout()
    title = table.get("title")
    if title:
        c.setFont(FONT_BOLD, 10)
        c.setFillColor(TEXT_DARK)
        c.drawString(MARGIN, y, title)
        y -= LINE_H
    top = y
    c.setFillColor(HEADER_BLUE)
    c.rect(MARGIN, y - ROW_H, CONTENT_W, ROW_H, fill=1, stroke=0)
    c.setFillColor(white)
    c.setFont(FONT_BOLD, 8)
    for (x, w), label in zip(cols, table["header"]):
        c.drawString(x + 1.5 * mm, y - ROW_H + 2 * mm, _fit(label, FONT_BOLD, 8, w - 3 * mm))
    y -= ROW_H
    c.setFillColor(TEXT_DARK)
    for row in table["rows"]:
        font = FONT_BOLD if row.get("bold") else FONT
        c.setFont(font, 8)
        indent = min(int(row.get("indent") or 0), 6) * 3 * mm
        cells = [row["code"], row["name"], row["weight"], row["progress"]]
        for idx, ((x, w), value) in enumerate(zip(cols, cells)):
            text = str(value)
            baseline = y - ROW_H + 2 * mm
            if idx >= 2:
                c.drawRightString(x + w - 1.5 * mm, baseline, _fit(text, font, 8, w - 3 * mm))
            else:
                pad = indent if idx == 1 else 0
                c.drawString(x + 1.5 * mm + pad, baseline, _fit(text, font, 8, w - 3 * mm - pad))
        y -= ROW_H
    c.setStrokeColor(GRID_GRAY)
    c.setLineWidth(0.3)
    c.rect(MARGIN, y, CONTENT_W, top - y, fill=0, stroke=1)
    return y - SECTION_GAP


def _draw_signatory(c: canvas.Canvas, block: dict, x: float, y: float, col_w: float) -> None:
    c.setFont(FONT_BOLD, 10)
    c.drawString(x, y, block["label"])
    label_w = 26 * mm
    rule_w = min(SIG_RULE_W, col_w - label_w - 2 * mm)
    row_y = y - SIG_LINE_H
    c.setStrokeColor(RULE_GRAY)
    for label, value in block["lines"]:
        c.setFont(FONT, 9)
        c.drawString(x, row_y, label)
        c.drawString(x + label_w + 2 * mm, row_y, _fit(value, FONT, 9, rule_w - 2 * mm))
        c.line(x + label_w, row_y - 2 * mm, x + label_w + rule_w, row_y - 2 * mm)
        row_y -= SIG_LINE_H


def signature_height(signature: dict) -> float:
    prepared_h = (len(signature["prepared_by"]["lines"]) + 1) * SIG_LINE_H
    if signature["mode"] == "side_by_side":
        return prepared_h
    approver_lines = max(len(b["lines"]) for b in signature["approvers"])
    return prepared_h + 3 * mm + (approver_lines + 1) * SIG_LINE_H


def signature_top(signature: dict) -> float:
    return SIGNATURE_BOTTOM + signature_height(signature)


def page_line_budget(report: dict, cover: bool) -> int:
    """Table lines that fit between the page heading and the signature block."""
    scratch = canvas.Canvas(io.BytesIO(), pagesize=A4)
    y = _draw_letterhead(scratch, report, None, TOP_Y)
    y = _draw_project_block(scratch, report, y)
    if cover:
        y = _draw_certification(scratch, report, y)
    floor = signature_top(report["signature"]) + SIG_CLEARANCE
    return max(int((y - floor) // ROW_H), 0)


def _draw_signature(c: canvas.Canvas, signature: dict) -> None:
    # Anchored to the page bottom, independent of where the tables ended.
    top = signature_top(signature)
    half = CONTENT_W / 2
    _draw_signatory(c, signature["prepared_by"], MARGIN, top, half)
    if signature["mode"] == "side_by_side":
        _draw_signatory(c, signature["approvers"][0], MARGIN + half + 3 * mm, top, half - 3 * mm)
        return
    row_top = top - (len(signature["prepared_by"]["lines"]) + 1) * SIG_LINE_H - 3 * mm
    col_w = CONTENT_W / max(signature["columns"], 1)
    for idx, block in enumerate(signature["approvers"]):
        _draw_signatory(c, block, MARGIN + idx * col_w, row_top, col_w - 3 * mm)


def _draw_footer(c: canvas.Canvas, footer: dict) -> None:
    c.setFont(FONT, 8)
    c.setFillColor(TEXT_DARK)
    c.drawString(MARGIN, FOOTER_Y, footer["left"])
    c.drawRightString(PAGE_W - MARGIN, FOOTER_Y, footer["right"])


def _draw_page(c: canvas.Canvas, report: dict, page: dict, logo: bytes | None) -> None:
    y = TOP_Y
    c.setFillColor(TEXT_DARK)
    if page.get("letterhead"):
        y = _draw_letterhead(c, report, logo, y)
    if page.get("project_block"):
        y = _draw_project_block(c, report, y)
    if page.get("certification"):
        y = _draw_certification(c, report, y)
    if page.get("item_table"):
        y = _draw_table(c, page["item_table"], y)
    if page.get("summary_table"):
        y = _draw_table(c, page["summary_table"], y)
    if page.get("signature"):
        _draw_signature(c, report["signature"])
    if page.get("footer"):
        _draw_footer(c, page["footer"])


def render_report_pdf(report: dict, logo: bytes | None = None) -> bytes:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle("Project Progress Certification")
    c.setSubject(report.get("doc_number") or "")
    for page in report["pages"]:
        _draw_page(c, report, page, logo)
        c.showPage()
    c.save()
    return buffer.getvalue()


def export_progress_report(
    items: list[dict],
    project: dict | None,
    meta: dict | None = None,
    *,
    rows_per_page: int | None = None,
    logo_source: Any = "default",
    fetch_timeout: float | None = None,
) -> tuple[bytes, str]:
    """Build, paginate and draw the Progress Report; returns (pdf bytes, filename)."""
    meta = dict(meta or {})
    timeout = fetch_timeout if fetch_timeout is not None else config.logo_fetch_timeout()
    if logo_source == "default":
        logo_source = company_profile(meta.get("company")).get("logo")
    else:
        meta["logo"] = str(logo_source) if logo_source else None
    future = start_logo_fetch(logo_source, timeout) if logo_source else None
    report = build_report(items, project, meta, rows_per_page=rows_per_page, line_budget=page_line_budget)
    logo = _await_logo(future, timeout + 1)
    _log(
        logging.DEBUG,
        f"export_progress_report pages={len(report['pages'])} items={len(items)} logo={bool(logo)}",
    )
    return render_report_pdf(report, logo), report["filename"]


def export_cache_key(items: list[dict], project: dict | None, meta: dict | None) -> str:
    """Stable digest of everything a report is built from."""
    payload = json.dumps([items, project, meta or {}], sort_keys=True, default=str)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
