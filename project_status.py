from __future__ import annotations

import json
import logging
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import config
import projects

STATUS_LOGGER = logging.getLogger("project_status")
REQUEST_TIMEOUT_SECONDS = 8


def _ensure_logger() -> None:
    if not STATUS_LOGGER.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s [project_status] %(levelname)s: %(message)s")
        )
        STATUS_LOGGER.addHandler(handler)
    STATUS_LOGGER.setLevel(logging.DEBUG if config.debug_enabled() else logging.INFO)


def _log(level: int, message: str) -> None:
    _ensure_logger()
    STATUS_LOGGER.log(level, message)


def push_remote_status(
    base_url: str,
    project_id: Any,
    percent: int,
    token: str | None = None,
) -> tuple[bool, str | None]:
    url = f"{base_url.rstrip('/')}/projects/{project_id}"
    payload = {projects.STATUS_FIELD: int(percent)}
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        req = Request(url, data=json.dumps(payload).encode("utf-8"), headers=headers, method="PUT")
        with urlopen(req, timeout=REQUEST_TIMEOUT_SECONDS) as response:
            status = getattr(response, "status", None)
        _log(logging.DEBUG, f"push_remote_status url={url} status={status} percent={percent}")
    except HTTPError as err:
        detail = ""
        try:
            detail = err.read().decode("utf-8")
        except Exception:
            detail = ""
        message = f"Project API error ({err.code})."
        if detail:
            message = f"{message} {detail[:500]}"
        return False, message
    except URLError as err:
        return False, f"Project API unreachable: {getattr(err, 'reason', err)}"
    except Exception as err:
        return False, f"Project API error: {err}"
    return True, None


class ProjectStatusSync:
    """Writes the rounded overall progress to the project's status field.

    Fire-and-forget for callers: failures are logged and reported back as
    ``(False, message)``, never raised.
    """

    def __init__(
        self,
        api_url: str | None = None,
        token: str | None = None,
        *,
        local_fallback: bool = True,
    ) -> None:
        self.api_url = config.project_api_url() if api_url is None else api_url.strip()
        self.token = config.project_api_token() if token is None else token
        self.local_fallback = local_fallback
        self.last_result: tuple[bool, str | None] | None = None
        self.last_project_id: Any = None

    def __call__(self, project_id: Any, percent: int) -> tuple[bool, str | None]:
        result = self._push(project_id, int(percent))
        self.last_result = result
        self.last_project_id = project_id
        ok, error = result
        if not ok:
            _log(logging.WARNING, f"status_sync failed project={project_id} percent={percent} error={error}")
        return result

    def _push(self, project_id: Any, percent: int) -> tuple[bool, str | None]:
        remote_error = None
        if self.api_url:
            ok, remote_error = push_remote_status(self.api_url, project_id, percent, self.token)
            if ok or not self.local_fallback:
                return ok, remote_error
            _log(logging.WARNING, f"remote status push failed, using local record: {remote_error}")
        elif not self.local_fallback:
            return False, "No project API configured."
        try:
            updated = projects.update_project_status(project_id, percent)
        except Exception as err:
            return False, remote_error or f"Local project update failed: {err}"
        if not updated:
            return False, remote_error or f"Project {project_id} not found."
        return True, None
