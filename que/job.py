"""
Job entity and status vocabulary.

A job moves through ``queued -> started -> completed`` or
``queued -> started -> failed``. Transitions are decided by the worker
subsystem; this module only names the states and classifies them.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class JobStatus(str, Enum):
    """Lifecycle states of a job."""

    QUEUED = "queued"
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_incomplete(self) -> bool:
        return self in INCOMPLETE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


INCOMPLETE_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.STARTED})
TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


def worker_name(worker: Any) -> str:
    """
    Return the tag used to identify a worker type.

    Classes are tagged by their dotted path so that two references to the
    same worker class compare equal; strings are kept as-is.
    """
    if isinstance(worker, type):
        return f"{worker.__module__}.{worker.__qualname__}"
    if isinstance(worker, str) and worker.strip():
        return worker
    raise ValueError(f"Invalid worker: {worker!r}")


@dataclass(frozen=True)
class Job:
    """
    One unit of queued work.

    ``id`` is ``None`` until an adapter persists the job. Timestamps are
    maintained by adapters and do not take part in equality.
    """

    worker: str
    arguments: Any = None
    status: JobStatus = JobStatus.QUEUED
    id: Optional[int] = None
    created_at: Optional[datetime] = field(default=None, compare=False)
    updated_at: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "worker", worker_name(self.worker))
        object.__setattr__(self, "status", JobStatus(self.status))

    @property
    def is_new(self) -> bool:
        return self.id is None

    @property
    def is_incomplete(self) -> bool:
        return self.status.is_incomplete

    @property
    def is_completed(self) -> bool:
        return self.status is JobStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status is JobStatus.FAILED

    def with_id(self, job_id: int) -> "Job":
        """Return a copy carrying ``job_id``. An assigned id never changes."""
        if self.id is not None and self.id != job_id:
            raise ValueError(f"Job already has id {self.id}, cannot change it to {job_id}")
        return replace(self, id=job_id)

    def with_status(self, status) -> "Job":
        return replace(self, status=JobStatus(status))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "worker": self.worker,
            "arguments": self.arguments,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        """
        Build a job from a mapping produced by ``to_dict``.

        Args:
            data: Mapping with at least a ``worker`` key

        Returns:
            Job instance
        """
        created_at = data.get("created_at")
        updated_at = data.get("updated_at")
        return cls(
            worker=data["worker"],
            arguments=data.get("arguments"),
            status=data.get("status", JobStatus.QUEUED),
            id=data.get("id"),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
