"""
Database schema and connection management.

Uses SQLAlchemy for job storage; SQLite is the default database.
"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import Settings
from ..errors import PersistenceError
from ..job import INCOMPLETE_STATUSES, Job, JobStatus, worker_name
from ..logger import get_logger
from .adapter import Adapter, stored_arguments

Base = declarative_base()

# Dialects with a native INSERT .. ON CONFLICT, used to make update atomic
UPSERT_STATEMENTS = {"sqlite": sqlite_insert}
UPDATABLE_COLUMNS = ("worker", "arguments", "status", "updated_at")

logger = get_logger()


class JobRecord(Base):
    """Persisted job row."""

    __tablename__ = "jobs"
    # AUTOINCREMENT keeps SQLite from reusing the ids of destroyed rows
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    worker = Column(String, nullable=False, index=True)
    arguments = Column(JSON, nullable=True)
    status = Column(String, nullable=False, index=True, default=JobStatus.QUEUED.value)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def to_job(self) -> Job:
        return Job(
            id=self.id,
            worker=self.worker,
            arguments=self.arguments,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for ``database_url``.

    SQLite files get their parent directory created; in-memory SQLite uses
    a single shared connection so every session sees the same database.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        SQLAlchemy engine
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})

    return create_engine(
        url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


class SqlAdapter(Adapter):
    """Adapter backed by a relational database through SQLAlchemy."""

    def __init__(self, database_url: str = "sqlite://", engine: Optional[Engine] = None):
        self.engine = engine or create_db_engine(database_url)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SqlAdapter":
        return cls(database_url=settings.database_url)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Provide a transactional scope; driver errors become PersistenceError."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Database operation failed: {e}") from e
        finally:
            session.close()

    def find(self, job_id: int) -> Optional[Job]:
        with self._session() as session:
            record = session.get(JobRecord, job_id)
            return record.to_job() if record else None

    def destroy(self, job_id: int) -> None:
        with self._session() as session:
            session.query(JobRecord).filter_by(id=job_id).delete()

    def insert(self, job: Job) -> Job:
        now = datetime.now()
        arguments = stored_arguments(job.arguments)
        with self._session() as session:
            record = JobRecord(
                worker=job.worker,
                arguments=arguments,
                status=job.status.value,
                created_at=now,
                updated_at=now,
            )
            session.add(record)
            session.flush()
            session.refresh(record)
            return record.to_job()

    def update(self, job: Job) -> Job:
        if job.id is None:
            return self.insert(job)

        now = datetime.now()
        values = {
            "id": job.id,
            "worker": job.worker,
            "arguments": stored_arguments(job.arguments),
            "status": job.status.value,
            "created_at": now,
            "updated_at": now,
        }
        with self._session() as session:
            upsert = UPSERT_STATEMENTS.get(self.engine.dialect.name)
            if upsert is not None:
                statement = upsert(JobRecord).values(**values)
                statement = statement.on_conflict_do_update(
                    index_elements=["id"],
                    set_={column: statement.excluded[column] for column in UPDATABLE_COLUMNS},
                )
                session.execute(statement)
            else:
                record = session.get(JobRecord, job.id)
                if record is None:
                    session.add(JobRecord(**values))
                else:
                    for column in UPDATABLE_COLUMNS:
                        setattr(record, column, values[column])
                session.flush()
            record = session.get(JobRecord, job.id, populate_existing=True)
            return record.to_job()

    def all(self, worker=None) -> List[Job]:
        return self._select(worker)

    def completed(self, worker=None) -> List[Job]:
        return self._select(worker, [JobStatus.COMPLETED])

    def incomplete(self, worker=None) -> List[Job]:
        return self._select(worker, INCOMPLETE_STATUSES)

    def failed(self, worker=None) -> List[Job]:
        return self._select(worker, [JobStatus.FAILED])

    def initialize(self) -> bool:
        """
        Create tables if they do not exist yet.

        Returns:
            True when the database is usable, False otherwise
        """
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error("Failed to initialize database", url=str(self.engine.url), error=str(e))
            return False
        return True

    def _select(self, worker=None, statuses=None) -> List[Job]:
        with self._session() as session:
            query = session.query(JobRecord)
            if worker is not None:
                query = query.filter(JobRecord.worker == worker_name(worker))
            if statuses is not None:
                query = query.filter(JobRecord.status.in_([s.value for s in statuses]))
            return [record.to_job() for record in query.order_by(JobRecord.id)]
