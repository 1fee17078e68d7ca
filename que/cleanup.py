"""
Cleanup module for removing finished jobs.

Finished jobs are completed (and optionally failed) jobs whose last update
is older than a specified number of days (default: 7). Incomplete jobs are
never touched. This keeps the job table from accumulating history.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from .logger import get_logger
from .persistence import Persistence, get_persistence

logger = get_logger()


def cleanup_finished_jobs(
    persistence: Optional[Persistence] = None,
    days: int = 7,
    worker=None,
    include_failed: bool = False,
) -> Tuple[int, int]:
    """
    Remove finished jobs older than the specified number of days.

    Args:
        persistence: Facade to use (default: the process-wide facade)
        days: Number of days to keep finished jobs (default: 7)
        worker: Only clean up jobs of this worker
        include_failed: Also remove failed jobs

    Returns:
        Tuple of (total_jobs_before, total_jobs_after)
        Difference = jobs_removed
    """
    persistence = persistence or get_persistence()
    cutoff_date = datetime.now() - timedelta(days=days)

    jobs_before = len(persistence.all(worker))
    candidates = persistence.completed(worker)
    if include_failed:
        candidates += persistence.failed(worker)

    logger.debug(
        "Starting finished job cleanup",
        days=days,
        cutoff_date=cutoff_date.isoformat(),
        candidates=len(candidates),
    )

    jobs_removed = 0
    for job in candidates:
        # Jobs without a timestamp cannot be aged; keep them
        if job.updated_at is None or job.updated_at >= cutoff_date:
            continue
        persistence.destroy(job.id)
        jobs_removed += 1
        logger.debug(
            "Removed finished job",
            job_id=job.id,
            worker=job.worker,
            status=job.status.value,
            age_days=(datetime.now() - job.updated_at).days,
        )

    jobs_after = jobs_before - jobs_removed
    logger.info(
        f"Cleanup complete: {jobs_removed} removed, {jobs_after} remaining",
        jobs_before=jobs_before,
        jobs_removed=jobs_removed,
        jobs_after=jobs_after,
        days_threshold=days,
    )

    return (jobs_before, jobs_after)
