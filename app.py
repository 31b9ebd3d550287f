import base64
from pathlib import Path

import pandas as pd
import streamlit as st

import config
import projects
from charts import progress_history
from list_store import JsonListStore
from progress_snapshots import (
    SnapshotArchive,
    pb_label_for_edit,
    restore_snapshot,
    save_progress,
    snapshot_label,
)
from project_status import ProjectStatusSync
from report_layout import REPORT_COMPANIES, company_profile
from report_pdf import export_cache_key, export_progress_report
from ui import editing_banner, inject_theme, progress_card
from wbs_import import import_wbs_items
from wbs_items import WbsItemStore
from wbs_rollup import WbsRollup

_icon_path = Path(__file__).resolve().parent / "assets" / "logo-ioct.png"
st.set_page_config(
    page_title="Progress Report",
    page_icon=str(_icon_path) if _icon_path.exists() else "📈",
    layout="wide",
)
inject_theme()


@st.cache_resource(show_spinner=False)
def _list_store() -> JsonListStore:
    return JsonListStore(config.data_dir())


def _services():
    # Sync results belong to the browser session, not the server process.
    status_sync = st.session_state.setdefault("status_sync", ProjectStatusSync())
    list_store = _list_store()
    return WbsItemStore(list_store, status_sync), SnapshotArchive(list_store), status_sync


item_store, archive, status_sync = _services()


def _select_project() -> dict | None:
    st.sidebar.markdown("### Projects")
    all_projects = projects.list_projects()
    with st.sidebar.expander("Create project", expanded=not all_projects):
        with st.form("create_project_form", clear_on_submit=True):
            name = st.text_input("Project name")
            project_no = st.text_input("Project No.")
            po_number = st.text_input("Purchase Order No.")
            client = st.text_input("Client")
            location = st.text_input("Project Location")
            approver = st.text_input("Client approver (Name – Designation)")
            if st.form_submit_button("Create project"):
                project = projects.create_project(
                    name,
                    project_no=project_no or None,
                    po_number=po_number or None,
                    account_name=client or None,
                    project_location=location or None,
                    client_approver=approver or None,
                )
                st.session_state["active_project_id"] = project["id"]
                st.rerun()
    if not all_projects:
        st.sidebar.caption("No projects available.")
        return None
    project_map = {str(p.get("id")): p for p in all_projects}
    options = list(project_map)
    if st.session_state.get("active_project_id") not in project_map:
        st.session_state["active_project_id"] = options[0]
    active_id = st.sidebar.selectbox(
        "Active project",
        options,
        format_func=lambda pid: projects.project_label(project_map.get(pid)),
        key="active_project_id",
    )
    if st.session_state.get("loaded_project_id") != active_id:
        st.session_state["loaded_project_id"] = active_id
        st.session_state["editing_snapshot_id"] = None
        st.session_state["pb_input"] = ""
    return project_map.get(active_id)


def _refresh() -> None:
    st.session_state["editor_rev"] = st.session_state.get("editor_rev", 0) + 1
    st.rerun()


def _items_frame(items: list[dict], engine: WbsRollup) -> pd.DataFrame:
    rows = []
    for item in items:
        values = engine.row_values(item)
        rows.append(
            {
                "id": item["id"],
                "code": item["code"],
                "name": item["name"],
                "weight": item["weight"],
                "progress": item["progress"],
                "rollup": f"{values['weight']:.2f}% @ {values['progress']:.2f}%" if engine.is_parent(item["code"]) else "",
            }
        )
    return pd.DataFrame(rows, columns=["id", "code", "name", "weight", "progress", "rollup"])


def _editor_records(df: pd.DataFrame) -> list[dict]:
    clean = df.astype(object).where(pd.notna(df), None)
    return clean.to_dict(orient="records")


def _render_editor(project_id: str, items: list[dict], engine: WbsRollup) -> None:
    edited = st.data_editor(
        _items_frame(items, engine),
        key=f"wbs_editor_{project_id}_{st.session_state.get('editor_rev', 0)}",
        num_rows="dynamic",
        hide_index=True,
        use_container_width=True,
        disabled=["id", "rollup"],
        column_config={
            "id": None,
            "code": st.column_config.TextColumn("Code", max_chars=20, help="Dotted code, e.g. 1.2"),
            "name": st.column_config.TextColumn("Work package"),
            "weight": st.column_config.NumberColumn("Weight %", min_value=0.0, max_value=100.0, step=0.01, format="%.2f"),
            "progress": st.column_config.NumberColumn("Progress %", min_value=0.0, max_value=100.0, step=0.01, format="%.2f"),
            "rollup": st.column_config.TextColumn("Rolled up (weight @ progress)"),
        },
    )
    if item_store.apply_table_edits(project_id, _editor_records(edited)):
        _refresh()


def _render_snapshots(project_id: str, items: list[dict]) -> None:
    snapshots = archive.list(project_id)
    editing_id = st.session_state.get("editing_snapshot_id")
    editing = next((s for s in snapshots if s["id"] == editing_id), None)
    if editing_id and editing is None:
        st.session_state["editing_snapshot_id"] = editing_id = None

    if "pb_pending" in st.session_state:
        st.session_state["pb_input"] = st.session_state.pop("pb_pending")

    cols = st.columns([1.2, 1, 2.2], gap="small")
    with cols[0]:
        st.text_input("Progress billing No.", key="pb_input", placeholder="e.g. 3")
    with cols[1]:
        st.write("")
        label = "Update snapshot" if editing else "Save snapshot"
        if st.button(label, disabled=not items, use_container_width=True):
            saved = save_progress(archive, item_store, project_id, st.session_state.get("pb_input"), editing_id)
            st.session_state["editing_snapshot_id"] = None
            if saved:
                st.toast(f"Saved {snapshot_label(saved)}")
            st.rerun()
    with cols[2]:
        if snapshots:
            choice = st.selectbox(
                "Load previous progress",
                [None] + [s["id"] for s in snapshots],
                format_func=lambda sid: "—" if sid is None else snapshot_label(next(s for s in snapshots if s["id"] == sid)),
                key=f"load_snapshot_{project_id}",
            )
            if choice and st.button("Load for edit"):
                snapshot = next(s for s in snapshots if s["id"] == choice)
                restore_snapshot(item_store, project_id, snapshot)
                st.session_state["editing_snapshot_id"] = snapshot["id"]
                st.session_state["pb_pending"] = pb_label_for_edit(snapshot)
                _refresh()

    if editing:
        editing_banner(f"Editing: {snapshot_label(editing)}. Click \"Update snapshot\" to save.")
        if st.button("Cancel edit"):
            st.session_state["editing_snapshot_id"] = None
            st.rerun()

    if snapshots:
        st.plotly_chart(
            progress_history(snapshots, live_progress=WbsRollup(items).overall_progress()),
            use_container_width=True,
            config={"displayModeBar": False},
        )


def _report_meta(project: dict) -> dict:
    with st.expander("Report signatories", expanded=False):
        company_keys = list(REPORT_COMPANIES)
        default_key = company_profile(None)["key"]
        company = st.selectbox(
            "Reporting entity",
            company_keys,
            index=company_keys.index(default_key),
            format_func=lambda key: REPORT_COMPANIES[key]["name"],
        )
        st.markdown("**Prepared by**")
        p_cols = st.columns(4)
        prepared_by = {
            "name": p_cols[0].text_input("Name", key="prep_name"),
            "designation": p_cols[1].text_input("Designation", key="prep_designation"),
            "company": p_cols[2].text_input("Company", key="prep_company", value=REPORT_COMPANIES[company]["name"]),
            "date": p_cols[3].text_input("Date", key="prep_date"),
        }
        approver_count = st.number_input("Approvers", min_value=0, max_value=3, value=1, step=1)
        approvers = []
        for idx in range(int(approver_count)):
            a_cols = st.columns(3)
            approvers.append(
                {
                    "name": a_cols[0].text_input("Approver name", key=f"appr_name_{idx}"),
                    "designation": a_cols[1].text_input("Designation", key=f"appr_designation_{idx}"),
                    "company": a_cols[2].text_input(
                        "Company", key=f"appr_company_{idx}", value=project.get("account_name") or ""
                    ),
                }
            )
    return {
        "company": company,
        "prepared_by": prepared_by,
        "approvers": approvers,
        "pb_label": st.session_state.get("pb_input"),
    }


def _cached_export(items: list[dict], project: dict, meta: dict, build: bool) -> dict | None:
    """Return the PDF built for this exact input, building it only when asked."""
    key = export_cache_key(items, project, meta)
    cached = st.session_state.get("report_export")
    if cached and cached.get("key") == key:
        return cached
    if not build:
        return None
    with st.spinner("Building report..."):
        pdf_bytes, filename = export_progress_report(items, project, meta)
    cached = {"key": key, "bytes": pdf_bytes, "filename": filename}
    st.session_state["report_export"] = cached
    return cached


def _render_export(items: list[dict], project: dict, meta: dict) -> None:
    cols = st.columns([1, 1, 1, 2], gap="small")
    prepare = cols[0].button("Prepare PDF", disabled=not items, use_container_width=True)
    preview = cols[1].button("Preview PDF", disabled=not items, use_container_width=True)
    export = _cached_export(items, project, meta, build=prepare or preview) if items else None
    if export is None:
        if items:
            cols[2].caption("Prepare the PDF to download it.")
        return
    cols[2].download_button(
        "Export to PDF",
        data=export["bytes"],
        file_name=export["filename"],
        mime="application/pdf",
        use_container_width=True,
    )
    if preview:
        encoded = base64.b64encode(export["bytes"]).decode("ascii")
        st.markdown(
            f'<iframe src="data:application/pdf;base64,{encoded}" width="100%" height="820"></iframe>',
            unsafe_allow_html=True,
        )


project = _select_project()
st.markdown("## Progress Report (WBS)")
st.caption("Define work packages and track progress. Save snapshots, then Preview or Export to PDF.")
if project is None:
    st.info("Create a project in the sidebar to start.")
    st.stop()

project_id = str(project["id"])
items = item_store.load(project_id)
engine = WbsRollup(items)
overall = engine.overall_progress()

top = st.columns([2, 1])
with top[0]:
    progress_card("Total progress", overall, caption=f"{len(items)} line item(s)")
with top[1]:
    live = projects.get_project(project_id) or project
    progress_card("Project status", float(live.get(projects.STATUS_FIELD) or 0))
    if status_sync.last_project_id == project_id and status_sync.last_result and not status_sync.last_result[0]:
        st.caption(f"Status sync failed: {status_sync.last_result[1]}")

with st.expander("Import from Excel", expanded=False):
    uploaded = st.file_uploader("Workbook with Code / Name / Weight / Progress columns", type=["xlsx"])
    if uploaded is not None and st.button("Replace WBS with workbook lines"):
        imported = import_wbs_items(uploaded)
        if imported:
            item_store.replace(project_id, imported)
            _refresh()
        st.warning("No table with Code, Weight and Progress headers was found.")

_render_editor(project_id, items, engine)
_render_snapshots(project_id, items)
meta = _report_meta(project)
_render_export(items, project, meta)
