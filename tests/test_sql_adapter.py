"""
Tests for the SQLAlchemy adapter.
"""

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from que.config import Settings
from que.errors import PersistenceError
from que.job import Job, JobStatus
from que.persistence import SqlAdapter
from que.persistence.sql import Base, JobRecord


class TestSqlInitialize:
    """Test database initialization."""

    def test_initialize_creates_database_file(self, tmp_path):
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        assert SqlAdapter(f"sqlite:///{db_path}").initialize()

        assert db_path.exists()

    def test_initialize_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "test.db"

        assert SqlAdapter(f"sqlite:///{db_path}").initialize()

        assert db_path.exists()

    def test_initialize_creates_jobs_table(self, tmp_path):
        adapter = SqlAdapter(f"sqlite:///{tmp_path / 'test.db'}")
        adapter.initialize()

        assert "jobs" in inspect(adapter.engine).get_table_names()

    def test_initialize_reports_failure(self, tmp_path, monkeypatch):
        adapter = SqlAdapter(f"sqlite:///{tmp_path / 'test.db'}")

        def broken_create_all(*args, **kwargs):
            raise OperationalError("CREATE TABLE jobs", {}, Exception("disk I/O error"))

        monkeypatch.setattr(Base.metadata, "create_all", broken_create_all)

        assert adapter.initialize() is False

    def test_from_settings_uses_database_url(self, tmp_path):
        db_path = tmp_path / "configured.db"
        adapter = SqlAdapter.from_settings(Settings(database_url=f"sqlite:///{db_path}"))

        assert adapter.initialize()
        assert db_path.exists()


class TestSqlAdapter:
    """Behaviour specific to SqlAdapter."""

    def test_jobs_survive_new_adapter_instance(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'test.db'}"
        first = SqlAdapter(url)
        first.initialize()
        saved = first.insert(Job(worker="Emailer", arguments={"to": "a@example.com"}))

        second = SqlAdapter(url)
        assert second.initialize()

        assert second.find(saved.id) == saved
        assert second.all() == [saved]

    def test_in_memory_database_is_shared_across_sessions(self):
        adapter = SqlAdapter("sqlite://")
        adapter.initialize()

        saved = adapter.insert(Job(worker="Emailer"))

        assert adapter.find(saved.id) == saved

    def test_status_is_stored_as_plain_string(self, tmp_path):
        adapter = SqlAdapter(f"sqlite:///{tmp_path / 'test.db'}")
        adapter.initialize()
        saved = adapter.insert(Job(worker="Emailer", status=JobStatus.FAILED))

        with adapter.engine.connect() as conn:
            status = conn.execute(
                JobRecord.__table__.select().where(JobRecord.id == saved.id)
            ).one().status

        assert status == "failed"

    def test_missing_table_is_fatal(self, tmp_path):
        adapter = SqlAdapter(f"sqlite:///{tmp_path / 'test.db'}")

        with pytest.raises(PersistenceError):
            adapter.insert(Job(worker="Emailer"))

    def test_failed_write_is_rolled_back(self, tmp_path):
        adapter = SqlAdapter(f"sqlite:///{tmp_path / 'test.db'}")
        adapter.initialize()

        with pytest.raises(PersistenceError):
            adapter.insert(Job(worker="Emailer", arguments=object()))

        assert adapter.all() == []
