"""
Locking for file-backed stores.

``store_lock(path)`` serializes access to one store file. Inside the process
every adapter opened on the same path shares one ``threading.Lock``; across
processes an exclusive OS lock is held on a ``<store>.lock`` sidecar file
(``fcntl.flock`` on POSIX, ``msvcrt.locking`` on Windows). The lock is not
reentrant.
"""

import contextlib
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, TextIO

from ..errors import PersistenceError

_process_locks: Dict[Path, threading.Lock] = {}
_registry_lock = threading.Lock()


def process_lock(path: Path) -> threading.Lock:
    """Return the lock shared by every user of ``path`` in this process."""
    key = Path(path).resolve()
    with _registry_lock:
        return _process_locks.setdefault(key, threading.Lock())


def lock_path_for(path: Path) -> Path:
    path = Path(path)
    return path.with_name(path.name + ".lock")


def _try_lock(fp: TextIO) -> bool:
    if os.name == "nt":
        import msvcrt  # type: ignore

        try:
            msvcrt.locking(fp.fileno(), msvcrt.LK_NBLCK, 1)
        except OSError:
            return False
        return True

    import fcntl

    try:
        fcntl.flock(fp.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    return True


def _unlock(fp: TextIO) -> None:
    if os.name == "nt":
        import msvcrt  # type: ignore

        with contextlib.suppress(OSError):
            msvcrt.locking(fp.fileno(), msvcrt.LK_UNLCK, 1)
        return

    import fcntl

    with contextlib.suppress(OSError):
        fcntl.flock(fp.fileno(), fcntl.LOCK_UN)


@contextmanager
def store_lock(path: Path, timeout: float = 30.0, poll_interval: float = 0.05) -> Iterator[None]:
    """
    Hold exclusive access to the store at ``path``.

    Args:
        path: Store file (the lock itself lives next to it)
        timeout: Seconds to wait for another process to release the file
        poll_interval: Seconds between attempts

    Raises:
        PersistenceError: When the lock file cannot be opened or the wait
            times out
    """
    lock_path = lock_path_for(path)
    with process_lock(path):
        try:
            lock_path.parent.mkdir(parents=True, exist_ok=True)
            fp = lock_path.open("a+", encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Cannot open lock file {lock_path}: {e}") from e

        try:
            deadline = time.monotonic() + timeout
            while not _try_lock(fp):
                if time.monotonic() >= deadline:
                    raise PersistenceError(f"Timed out waiting for lock on {path}")
                time.sleep(poll_interval)
            try:
                yield
            finally:
                _unlock(fp)
        finally:
            fp.close()
