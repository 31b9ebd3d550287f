from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any

import config

LIST_STORE_LOGGER = logging.getLogger("list_store")
RETRY_BASE_SLEEP = 0.03
RETRY_MAX_SLEEP = 0.35


class PersistenceError(RuntimeError):
    """Raised by put_list when the persist policy is ``surface``."""


def _ensure_logger() -> None:
    if not LIST_STORE_LOGGER.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s [list_store] %(levelname)s: %(message)s")
        )
        LIST_STORE_LOGGER.addHandler(handler)
    LIST_STORE_LOGGER.setLevel(logging.DEBUG if config.debug_enabled() else logging.INFO)


def _log(level: int, message: str) -> None:
    _ensure_logger()
    LIST_STORE_LOGGER.log(level, message)


def storage_key(namespace: str, project_id: object) -> str:
    return f"{namespace}:{project_id}"


def _safe_stem(text: str) -> str:
    return "".join(ch if ch.isalnum() or ch in ("-", "_", ".") else "_" for ch in text).strip("._")[:120]


def _sleep_backoff(attempt: int) -> None:
    time.sleep(min(RETRY_MAX_SLEEP, RETRY_BASE_SLEEP * (2**attempt)))


class _ListStore:
    """Key -> list of JSON records, with a configurable write-failure policy."""

    def __init__(self, *, on_persist_error: str | None = None, retries: int | None = None) -> None:
        policy = (on_persist_error or config.persist_error_policy()).strip().lower()
        if policy not in config.PERSIST_POLICIES:
            raise ValueError(f"Unknown persist policy: {policy}")
        self.on_persist_error = policy
        self.retries = retries if retries is not None else config.persist_write_retries()

    def _read(self, key: str) -> Any:
        raise NotImplementedError

    def _write(self, key: str, items: list[dict]) -> None:
        raise NotImplementedError

    def get_list(self, key: str) -> list[dict]:
        try:
            data = self._read(key)
        except Exception as exc:
            _log(logging.WARNING, f"get_list read_error key={key} error={exc}")
            return []
        if not isinstance(data, list):
            return []
        return [row for row in data if isinstance(row, dict)]

    def put_list(self, key: str, items: list[dict]) -> tuple[bool, str | None]:
        attempts = self.retries if self.on_persist_error == "retry" else 1
        last_exc: Exception | None = None
        for attempt in range(attempts):
            try:
                self._write(key, list(items))
                return True, None
            except Exception as exc:
                last_exc = exc
                if attempt < attempts - 1:
                    _sleep_backoff(attempt)
        message = f"put_list write_error key={key} attempts={attempts} error={last_exc}"
        if self.on_persist_error == "surface":
            raise PersistenceError(message) from last_exc
        _log(logging.WARNING, message)
        return False, str(last_exc)


class JsonListStore(_ListStore):
    def __init__(self, root: str | Path | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.root = Path(root) if root is not None else config.data_dir()

    def path_for(self, key: str) -> Path:
        return self.root / f"{_safe_stem(key)}.json"

    def _read(self, key: str) -> Any:
        path = self.path_for(key)
        if not path.exists():
            return []
        return json.loads(path.read_text(encoding="utf-8"))

    def _write(self, key: str, items: list[dict]) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(items, indent=2, ensure_ascii=False).encode("utf-8")
        fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)


class MemoryListStore(_ListStore):
    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("on_persist_error", "ignore")
        super().__init__(**kwargs)
        self.data: dict[str, str] = {}

    def _read(self, key: str) -> Any:
        raw = self.data.get(key)
        return json.loads(raw) if raw else []

    def _write(self, key: str, items: list[dict]) -> None:
        # Serialized so callers never share references with stored state.
        self.data[key] = json.dumps(items)
