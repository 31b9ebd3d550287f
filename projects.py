from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone

import config

PROJECTS_PATH = config.projects_path()
STATUS_FIELD = "actual_site_progress_percent"


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _load_projects() -> list[dict]:
    if not PROJECTS_PATH.exists():
        return []
    try:
        data = json.loads(PROJECTS_PATH.read_text(encoding="utf-8"))
    except Exception:
        return []
    if isinstance(data, dict):
        data = data.get("projects", [])
    if not isinstance(data, list):
        return []
    return [p for p in data if isinstance(p, dict)]


def _save_projects(projects: list[dict]) -> None:
    PROJECTS_PATH.parent.mkdir(parents=True, exist_ok=True)
    PROJECTS_PATH.write_text(json.dumps(projects, indent=2), encoding="utf-8")


def _find_project_index(projects: list[dict], project_id: object) -> int | None:
    for idx, project in enumerate(projects):
        if str(project.get("id")) == str(project_id):
            return idx
    return None


def _new_project_id(projects: list[dict]) -> str:
    existing = {str(p.get("id")) for p in projects}
    while True:
        candidate = f"proj_{uuid.uuid4().hex[:8]}"
        if candidate not in existing:
            return candidate


def list_projects() -> list[dict]:
    return _load_projects()


def get_project(project_id: object) -> dict | None:
    if project_id is None or project_id == "":
        return None
    projects = _load_projects()
    idx = _find_project_index(projects, project_id)
    return projects[idx] if idx is not None else None


def create_project(name: str | None, **fields: object) -> dict:
    projects = _load_projects()
    clean_name = (name or "").strip() or f"Project {len(projects) + 1}"
    project = {
        "id": _new_project_id(projects),
        "project_name": clean_name,
        "project_no": None,
        "po_number": None,
        "account_name": None,
        "project_location": None,
        "client_approver": None,
        STATUS_FIELD: 0,
        "created_at": _now_iso(),
        "updated_at": _now_iso(),
    }
    project.update(fields)
    projects.append(project)
    _save_projects(projects)
    return project


def update_project(project_id: object, **fields: object) -> dict | None:
    projects = _load_projects()
    idx = _find_project_index(projects, project_id)
    if idx is None:
        return None
    project = projects[idx]
    project.update(fields)
    project["updated_at"] = _now_iso()
    projects[idx] = project
    _save_projects(projects)
    return project


def update_project_status(project_id: object, percent: int) -> bool:
    return update_project(project_id, **{STATUS_FIELD: int(percent)}) is not None


def project_label(project: dict | None) -> str:
    if not project:
        return "—"
    name = (project.get("project_name") or "").strip() or "Untitled project"
    number = (str(project.get("project_no") or "")).strip()
    return f"{number} · {name}" if number else name
