"""
que: persistence layer for a background job queue.
"""

from .job import Job, JobStatus
from .errors import QueError, PersistenceError, ConfigurationError

__version__ = "0.1.0"

__all__ = [
    "Job",
    "JobStatus",
    "QueError",
    "PersistenceError",
    "ConfigurationError",
    "__version__",
]
