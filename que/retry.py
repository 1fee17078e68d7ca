"""
Caller-side resilience for storage calls.

Adapters never retry: a failed call raises ``PersistenceError`` at once.
Code that wants to ride out lock contention or a flaky database connection
wraps its calls with ``exponential_backoff`` (usually with
``retry_if=is_transient_error``) and, optionally, a ``CircuitBreaker``.
``que.persistence.RetryingAdapter`` packages both around an adapter.
"""

import functools
import time
from typing import Callable, Optional, Tuple, Type

# Lower-cased fragments of driver messages that signal a retryable condition
TRANSIENT_MESSAGES = (
    "database is locked",
    "database table is locked",
    "timeout",
    "timed out",
    "connection",
    "temporarily unavailable",
    "too many connections",
    "deadlock",
    "disk i/o error",
)


class RetryError(Exception):
    """Every attempt failed; the last error is the ``__cause__``."""


class CircuitOpenError(Exception):
    """The circuit breaker refused the call without running it."""


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    retry_if: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable] = None,
):
    """
    Retry the decorated function, sleeping longer after each failure.

    Args:
        max_retries: Attempts after the first one (0 disables retrying)
        base_delay: Seconds slept after the first failure
        max_delay: Upper bound for any single sleep
        exponential_base: Factor applied to the delay after each sleep
        exceptions: Exception types that may be retried; others propagate
        retry_if: Predicate on the exception; a False answer re-raises it as is
        on_retry: Called as on_retry(attempt, exception, delay) before sleeping

    Raises:
        RetryError: When the last attempt fails too

    Example:
        @exponential_backoff(max_retries=3, base_delay=0.5, retry_if=is_transient_error)
        def save(job):
            return persistence.update(job)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise
                    if attempt == max_retries:
                        raise RetryError(f"Failed after {attempt + 1} attempts: {e}") from e

                    current_delay = min(delay, max_delay)
                    if on_retry:
                        on_retry(attempt + 1, e, current_delay)
                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator


class CircuitBreaker:
    """
    Stops calling a storage backend that keeps failing.

    After ``failure_threshold`` consecutive failures the breaker is OPEN and
    rejects calls with ``CircuitOpenError``. Once ``recovery_timeout``
    seconds have passed one probing call is let through (HALF_OPEN): success
    closes the breaker, failure opens it again.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: float = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.opened_at: Optional[float] = None
        self.state = self.CLOSED

    def call(self, func: Callable, *args, **kwargs):
        """Run ``func`` unless the breaker is open; failures propagate unchanged."""
        if self.state == self.OPEN:
            remaining = self._seconds_until_probe()
            if remaining > 0:
                raise CircuitOpenError(
                    f"Circuit breaker is OPEN: storage calls suspended for {remaining:.0f}s"
                )
            self.state = self.HALF_OPEN

        try:
            result = func(*args, **kwargs)
        except Exception:
            self._record_failure()
            raise
        self.failure_count = 0
        self.state = self.CLOSED
        return result

    def reset(self):
        self.failure_count = 0
        self.opened_at = None
        self.state = self.CLOSED

    def _seconds_until_probe(self) -> float:
        if self.opened_at is None:
            return 0
        return max(0.0, self.recovery_timeout - (time.monotonic() - self.opened_at))

    def _record_failure(self):
        self.failure_count += 1
        if self.state == self.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = self.OPEN
            self.opened_at = time.monotonic()


def is_transient_error(exception: BaseException) -> bool:
    """
    Whether a storage failure is worth retrying.

    Adapters wrap driver errors in ``PersistenceError``, so the whole
    ``__cause__``/``__context__`` chain is checked: timeouts, connection
    errors and lock contention anywhere in it count as transient.
    """
    seen = set()
    current: Optional[BaseException] = exception
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, (TimeoutError, ConnectionError)):
            return True
        message = str(current).lower()
        if any(fragment in message for fragment in TRANSIENT_MESSAGES):
            return True
        current = current.__cause__ or current.__context__
    return False
