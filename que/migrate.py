"""
Copy jobs between persistence adapters.

Jobs are written with ``update`` so their ids survive the move: the target
inserts every id it does not know yet and overwrites the ones it does.
"""

from .errors import PersistenceError
from .logger import get_logger
from .persistence import Adapter

logger = get_logger()


def copy_jobs(source: Adapter, target: Adapter, dry_run: bool = False) -> int:
    """
    Copy every job from ``source`` into ``target``.

    Args:
        source: Adapter to read from
        target: Adapter to write to (initialized before writing)
        dry_run: If True, don't write to the target

    Returns:
        Number of jobs copied (or that would be copied)
    """
    jobs = source.all()
    logger.info(f"Found {len(jobs)} jobs in {type(source).__name__}")

    if dry_run:
        return len(jobs)

    if not target.initialize():
        raise PersistenceError(f"Target store {type(target).__name__} could not be initialized")

    copied = 0
    for job in jobs:
        target.update(job)
        copied += 1

    logger.info(
        "Migration complete",
        source=type(source).__name__,
        target=type(target).__name__,
        copied=copied,
    )
    return copied
