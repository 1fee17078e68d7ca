"""
Pytest configuration and shared fixtures.
"""

import pytest

from que.config import reset_settings
from que.job import Job, JobStatus
from que.persistence import JsonFileAdapter, MemoryAdapter, Persistence, SqlAdapter, resolver
from que.persistence.facade import get_persistence

ADAPTER_NAMES = ["memory", "sql", "json"]


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep tests away from the real environment and the default SQLite file."""
    for var in ["QUE_DATABASE_URL", "QUE_JSON_STORE", "QUE_LOG_DIR"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("QUE_PERSISTENCE_ADAPTER", "memory")
    reset_settings()
    resolver.reset()
    yield
    resolver.reset()
    reset_settings()


def build_adapter(name: str, tmp_path):
    if name == "memory":
        return MemoryAdapter()
    if name == "sql":
        return SqlAdapter(f"sqlite:///{tmp_path / 'que.db'}")
    if name == "json":
        return JsonFileAdapter(tmp_path / "que.json")
    raise ValueError(name)


@pytest.fixture(params=ADAPTER_NAMES)
def adapter(request, tmp_path):
    """Every built-in adapter, initialized and empty."""
    adapter = build_adapter(request.param, tmp_path)
    assert adapter.initialize()
    return adapter


@pytest.fixture
def persistence(adapter) -> Persistence:
    """Facade bound to each built-in adapter."""
    return Persistence(adapter)


@pytest.fixture
def memory_persistence() -> Persistence:
    """Process-wide facade resolving to a fresh in-memory adapter."""
    resolver.configure(MemoryAdapter())
    return get_persistence()


@pytest.fixture
def emailer_job() -> Job:
    """New job for the Emailer worker."""
    return Job(worker="Emailer", arguments=["a@example.com"], status=JobStatus.QUEUED)


@pytest.fixture
def mixed_jobs():
    """Unsaved jobs covering every status and two workers."""
    return [
        Job(worker="Emailer", arguments=["a@example.com"], status="queued"),
        Job(worker="Emailer", arguments=["b@example.com"], status="started"),
        Job(worker="Emailer", arguments=["c@example.com"], status="completed"),
        Job(worker="Emailer", arguments=["d@example.com"], status="failed"),
        Job(worker="Resizer", arguments={"width": 100}, status="queued"),
        Job(worker="Resizer", arguments={"width": 200}, status="completed"),
    ]
