"""
Persistence facade.

The single entry point the rest of the queue uses. Every call is handed to
an adapter unchanged and its result or exception is returned unchanged:
the facade validates nothing, transforms nothing and translates no errors.
Classification (``incomplete`` never includes failed jobs, and the three
classes partition ``all``) is part of the adapter contract, so callers get
the same answers whatever backend is plugged in.
"""

from typing import List, Optional

from ..job import Job
from ..logger import get_logger
from . import resolver
from .adapter import Adapter

logger = get_logger()


class Persistence:
    """
    Pass-through to a persistence adapter.

    An adapter given at construction is used for every call. Without one,
    each call asks the resolver for the active adapter.
    """

    def __init__(self, adapter: Optional[Adapter] = None):
        self._adapter = adapter

    @property
    def adapter(self) -> Adapter:
        if self._adapter is not None:
            return self._adapter
        return resolver.get_adapter()

    def _call(self, operation: str, *args):
        adapter = self.adapter
        logger.record_operation(operation)
        logger.debug("Persistence call", operation=operation, adapter=type(adapter).__name__, args=args)
        try:
            return getattr(adapter, operation)(*args)
        except Exception as e:
            logger.record_failure(operation, type(e).__name__)
            logger.error(
                "Persistence call failed",
                operation=operation,
                adapter=type(adapter).__name__,
                error=str(e),
            )
            raise

    def find(self, job_id: int) -> Optional[Job]:
        """Returns the job with ``job_id``, or None if there is none."""
        return self._call("find", job_id)

    def destroy(self, job_id: int) -> None:
        """Deletes a job. Destroying an unknown id does nothing."""
        self._call("destroy", job_id)

    def insert(self, job: Job) -> Job:
        """Inserts a job. Returns the same job with a fresh ``id`` set."""
        return self._call("insert", job)

    def update(self, job: Job) -> Job:
        """
        Updates an existing job, found by its id.

        If no job with the given id exists, it is inserted as-is. If the id
        is None it is still inserted and a fresh id is assigned.

        Returns the stored job.
        """
        return self._call("update", job)

    def all(self, worker=None) -> List[Job]:
        """Returns every job, or every job of ``worker``."""
        return self._call("all", worker)

    def completed(self, worker=None) -> List[Job]:
        return self._call("completed", worker)

    def incomplete(self, worker=None) -> List[Job]:
        """Returns jobs that are queued or started, but never failed ones."""
        return self._call("incomplete", worker)

    def failed(self, worker=None) -> List[Job]:
        return self._call("failed", worker)

    def initialize(self) -> bool:
        """
        Makes sure the storage is ready to be used.

        Called once at startup; returns False instead of raising so the
        caller can decide whether to go on.
        """
        return self._call("initialize")


# Global facade instance
_persistence: Optional[Persistence] = None


def get_persistence() -> Persistence:
    """Get or create the process-wide facade bound to the resolver."""
    global _persistence

    if _persistence is None:
        _persistence = Persistence()

    return _persistence
