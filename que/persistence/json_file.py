"""
JSON file adapter.

The whole table lives in one JSON document::

    {"next_id": 3, "jobs": {"1": {...}, "2": {...}}}

Writes go to a uniquely named temporary file that then replaces the store,
so a crash never leaves a half-written document behind. Every operation
holds ``store_lock``, shared by all adapters on the same path in this
process and backed by an OS lock on ``<store>.lock`` across processes.
"""

import contextlib
import json
import os
import tempfile
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..errors import PersistenceError
from ..job import Job
from ..logger import get_logger
from .adapter import Adapter, matches_worker, stored_arguments
from .locks import store_lock

logger = get_logger()


def empty_store() -> Dict[str, Any]:
    return {"next_id": 1, "jobs": {}}


def load_store(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return empty_store()
    try:
        with path.open("r", encoding="utf-8") as f:
            content = f.read().strip()
    except OSError as e:
        raise PersistenceError(f"Cannot read job store {path}: {e}") from e
    if not content:
        return empty_store()
    try:
        store = json.loads(content)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Job store {path} is corrupt: {e}") from e
    if not isinstance(store, dict) or not isinstance(store.get("jobs"), dict):
        raise PersistenceError(f"Job store {path} has an unexpected layout")
    store.setdefault("next_id", 1)
    return store


def save_store(path: Path, store: Dict[str, Any]) -> None:
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_name = f.name
            json.dump(store, f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except (OSError, TypeError, ValueError) as e:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
        raise PersistenceError(f"Cannot write job store {path}: {e}") from e


class JsonFileAdapter(Adapter):
    """Adapter that keeps every job in a single JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def from_settings(cls, settings: Settings) -> "JsonFileAdapter":
        return cls(settings.json_store_path)

    def find(self, job_id: int) -> Optional[Job]:
        with store_lock(self.path):
            data = load_store(self.path)["jobs"].get(str(job_id))
        return Job.from_dict(data) if data else None

    def destroy(self, job_id: int) -> None:
        with store_lock(self.path):
            store = load_store(self.path)
            if store["jobs"].pop(str(job_id), None) is not None:
                save_store(self.path, store)

    def insert(self, job: Job) -> Job:
        arguments = stored_arguments(job.arguments)
        with store_lock(self.path):
            store = load_store(self.path)
            job_id = store["next_id"]
            store["next_id"] = job_id + 1
            return self._write(store, replace(job, id=job_id, arguments=arguments), created_at=None)

    def update(self, job: Job) -> Job:
        if job.id is None:
            return self.insert(job)

        arguments = stored_arguments(job.arguments)
        with store_lock(self.path):
            store = load_store(self.path)
            existing = store["jobs"].get(str(job.id))
            store["next_id"] = max(store["next_id"], job.id + 1)
            created_at = datetime.fromisoformat(existing["created_at"]) if existing else None
            return self._write(store, replace(job, arguments=arguments), created_at=created_at)

    def all(self, worker=None) -> List[Job]:
        with store_lock(self.path):
            jobs = [Job.from_dict(data) for data in load_store(self.path)["jobs"].values()]
        return sorted((job for job in jobs if matches_worker(job, worker)), key=lambda job: job.id)

    def initialize(self) -> bool:
        """
        Create the store file if missing.

        An existing store is validated but never rewritten.
        """
        try:
            with store_lock(self.path):
                if self.path.exists():
                    load_store(self.path)
                else:
                    save_store(self.path, empty_store())
        except PersistenceError as e:
            logger.error("Failed to initialize job store", path=str(self.path), error=str(e))
            return False
        return True

    def _write(self, store: Dict[str, Any], job: Job, created_at: Optional[datetime]) -> Job:
        now = datetime.now()
        record = replace(job, created_at=created_at or now, updated_at=now).to_dict()
        store["jobs"][str(job.id)] = record
        save_store(self.path, store)
        return Job.from_dict(record)
