"""
Retrying wrapper around another adapter.

Adapters fail fast. ``RetryingAdapter`` is the caller-side resilience layer:
transient backend failures are retried with exponential backoff, and an
optional circuit breaker stops calls to a backend that keeps failing.
``initialize`` is passed through untouched because it never raises.
"""

from typing import List, Optional

from ..job import Job
from ..logger import get_logger
from ..retry import CircuitBreaker, exponential_backoff, is_transient_error
from .adapter import Adapter

logger = get_logger()


class RetryingAdapter(Adapter):
    """Delegates to ``inner`` and retries transient failures."""

    def __init__(
        self,
        inner: Adapter,
        max_retries: int = 3,
        base_delay: float = 0.1,
        max_delay: float = 5.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.inner = inner
        self.circuit_breaker = circuit_breaker
        self._retry = exponential_backoff(
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            retry_if=is_transient_error,
            on_retry=self._log_retry,
        )

    def _call(self, operation: str, *args):
        method = getattr(self.inner, operation)
        if self.circuit_breaker is not None:
            call = self._retry(lambda: self.circuit_breaker.call(method, *args))
        else:
            call = self._retry(lambda: method(*args))
        return call()

    @staticmethod
    def _log_retry(attempt: int, error: Exception, delay: float):
        logger.warning(
            "Transient storage failure, retrying",
            attempt=attempt,
            delay=delay,
            error=str(error),
            error_type=type(error).__name__,
        )

    def find(self, job_id: int) -> Optional[Job]:
        return self._call("find", job_id)

    def destroy(self, job_id: int) -> None:
        self._call("destroy", job_id)

    def insert(self, job: Job) -> Job:
        return self._call("insert", job)

    def update(self, job: Job) -> Job:
        return self._call("update", job)

    def all(self, worker=None) -> List[Job]:
        return self._call("all", worker)

    def completed(self, worker=None) -> List[Job]:
        return self._call("completed", worker)

    def incomplete(self, worker=None) -> List[Job]:
        return self._call("incomplete", worker)

    def failed(self, worker=None) -> List[Job]:
        return self._call("failed", worker)

    def initialize(self) -> bool:
        return self.inner.initialize()
