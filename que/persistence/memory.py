"""
In-memory adapter.

Suitable for testing and single-process deployments. Thread-safe via a
single lock around the table and the id counter. Arguments go through the
same JSON round trip as the other backends, so results match theirs.
"""

import copy
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

from ..job import Job
from .adapter import Adapter, matches_worker, stored_arguments


class MemoryAdapter(Adapter):
    """Stores jobs in a process-local dict keyed by id."""

    def __init__(self):
        self._jobs: Dict[int, Job] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def find(self, job_id: int) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return _detach(job) if job else None

    def destroy(self, job_id: int) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)

    def insert(self, job: Job) -> Job:
        arguments = stored_arguments(job.arguments)
        with self._lock:
            return self._store(replace(job, id=self._allocate_id(), arguments=arguments), created_at=None)

    def update(self, job: Job) -> Job:
        if job.id is None:
            return self.insert(job)

        arguments = stored_arguments(job.arguments)
        with self._lock:
            existing = self._jobs.get(job.id)
            # Ids supplied by the caller must never be handed out again
            self._next_id = max(self._next_id, job.id + 1)
            return self._store(
                replace(job, arguments=arguments),
                created_at=existing.created_at if existing else None,
            )

    def all(self, worker=None) -> List[Job]:
        with self._lock:
            return [
                _detach(job)
                for job_id, job in sorted(self._jobs.items())
                if matches_worker(job, worker)
            ]

    def initialize(self) -> bool:
        return True

    def clear(self) -> None:
        """Drop every job. The id counter keeps counting."""
        with self._lock:
            self._jobs.clear()

    def _allocate_id(self) -> int:
        job_id = self._next_id
        self._next_id += 1
        return job_id

    def _store(self, job: Job, created_at: Optional[datetime]) -> Job:
        now = datetime.now()
        stored = replace(job, created_at=created_at or now, updated_at=now)
        self._jobs[stored.id] = stored
        return _detach(stored)


def _detach(job: Job) -> Job:
    """Copy a stored job so callers never share its arguments."""
    return replace(job, arguments=copy.deepcopy(job.arguments))
