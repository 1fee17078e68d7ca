"""
Adapter contract.

Every storage backend subclasses ``Adapter``. Abstract methods are checked
when the adapter is instantiated, so a backend missing part of the contract
cannot be configured.

Contract summary:
- ``find`` returns ``None`` for unknown ids.
- ``destroy`` of an unknown id is a no-op.
- ``insert`` always assigns a fresh id that was never handed out before.
- ``update`` is an upsert: overwrite, insert with a fresh id when ``id`` is
  ``None``, or insert reusing ``id`` when no record has it.
- Listings are ordered by id. ``incomplete``, ``completed`` and ``failed``
  partition ``all``.
- ``initialize`` is idempotent and reports failure as ``False``.
- Arguments are stored as JSON: what ``insert``/``update`` return and what
  ``find`` reads back is the decoded JSON form (tuples become lists, dict
  keys become strings). Payloads JSON cannot encode raise ``PersistenceError``.
- Backend failures raise ``PersistenceError``.
- Concurrent inserts never share an id; concurrent writes to one id are
  last-writer-wins.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..config import Settings
from ..errors import PersistenceError
from ..job import Job, JobStatus, worker_name


class Adapter(ABC):
    """Abstract interface for job persistence backends."""

    @classmethod
    def from_settings(cls, settings: Settings) -> "Adapter":
        """Build the adapter from process settings."""
        return cls()

    @abstractmethod
    def find(self, job_id: int) -> Optional[Job]:
        """Get a job by id, or None."""
        ...

    @abstractmethod
    def destroy(self, job_id: int) -> None:
        """Delete a job by id. Unknown ids are ignored."""
        ...

    @abstractmethod
    def insert(self, job: Job) -> Job:
        """Persist a new job and return it with a fresh id."""
        ...

    @abstractmethod
    def update(self, job: Job) -> Job:
        """Upsert a job and return the stored version."""
        ...

    @abstractmethod
    def all(self, worker=None) -> List[Job]:
        """Return every job, optionally only those of ``worker``."""
        ...

    @abstractmethod
    def initialize(self) -> bool:
        """Make sure the storage exists. Returns False instead of raising."""
        ...

    def completed(self, worker=None) -> List[Job]:
        return [job for job in self.all(worker) if job.status is JobStatus.COMPLETED]

    def incomplete(self, worker=None) -> List[Job]:
        """Jobs that are queued or started. Failed jobs are never included."""
        return [job for job in self.all(worker) if job.status.is_incomplete]

    def failed(self, worker=None) -> List[Job]:
        return [job for job in self.all(worker) if job.status is JobStatus.FAILED]


def matches_worker(job: Job, worker) -> bool:
    """True when no worker filter is given or the job belongs to ``worker``."""
    return worker is None or job.worker == worker_name(worker)


def stored_arguments(arguments: Any) -> Any:
    """Return ``arguments`` the way they read back from storage (decoded JSON)."""
    try:
        return json.loads(json.dumps(arguments))
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Job arguments cannot be stored as JSON: {e}") from e
