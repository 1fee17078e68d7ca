"""Tests for cleanup functionality."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from que.cleanup import cleanup_finished_jobs
from que.job import Job
from que.persistence import Persistence, SqlAdapter
from que.persistence.sql import JobRecord


class TestCleanup:
    """Test finished job cleanup functionality."""

    @pytest.fixture
    def adapter(self, tmp_path):
        """SQLite adapter with an initialized database."""
        adapter = SqlAdapter(f"sqlite:///{tmp_path / 'jobs.db'}")
        adapter.initialize()
        return adapter

    @staticmethod
    def add_job(adapter, worker, status, age_days):
        """Write a row directly so its timestamps can be backdated."""
        stamp = datetime.now() - timedelta(days=age_days)
        session = sessionmaker(bind=adapter.engine)()
        record = JobRecord(
            worker=worker,
            arguments=[],
            status=status,
            created_at=stamp,
            updated_at=stamp,
        )
        session.add(record)
        session.commit()
        job_id = record.id
        session.close()
        return job_id

    def test_cleanup_removes_old_completed_jobs(self, adapter):
        """Completed jobs older than threshold are removed."""
        old_id = self.add_job(adapter, "Emailer", "completed", age_days=10)
        new_id = self.add_job(adapter, "Emailer", "completed", age_days=2)

        before, after = cleanup_finished_jobs(Persistence(adapter), days=7)

        assert (before, after) == (2, 1)
        assert adapter.find(old_id) is None
        assert adapter.find(new_id) is not None

    def test_cleanup_never_touches_incomplete_jobs(self, adapter):
        """Old queued and started jobs stay."""
        queued = self.add_job(adapter, "Emailer", "queued", age_days=30)
        started = self.add_job(adapter, "Emailer", "started", age_days=30)

        before, after = cleanup_finished_jobs(Persistence(adapter), days=7, include_failed=True)

        assert before == after == 2
        assert adapter.find(queued) is not None
        assert adapter.find(started) is not None

    def test_failed_jobs_kept_unless_requested(self, adapter):
        """Failed jobs are only removed with include_failed."""
        failed = self.add_job(adapter, "Emailer", "failed", age_days=30)
        persistence = Persistence(adapter)

        assert cleanup_finished_jobs(persistence, days=7) == (1, 1)
        assert adapter.find(failed) is not None

        assert cleanup_finished_jobs(persistence, days=7, include_failed=True) == (1, 0)
        assert adapter.find(failed) is None

    def test_cleanup_by_worker(self, adapter):
        """Only jobs of the given worker are considered."""
        emailer = self.add_job(adapter, "Emailer", "completed", age_days=30)
        resizer = self.add_job(adapter, "Resizer", "completed", age_days=30)

        before, after = cleanup_finished_jobs(Persistence(adapter), days=7, worker="Resizer")

        assert (before, after) == (1, 0)
        assert adapter.find(emailer) is not None
        assert adapter.find(resizer) is None

    def test_cleanup_empty_store(self, adapter):
        """Cleanup on an empty store should not error."""
        assert cleanup_finished_jobs(Persistence(adapter)) == (0, 0)

    def test_cleanup_uses_global_facade(self, memory_persistence):
        """Without a facade argument the process-wide one is used."""
        saved = memory_persistence.insert(Job(worker="Emailer", status="completed"))

        assert cleanup_finished_jobs(days=0) == (1, 0)
        assert memory_persistence.find(saved.id) is None
