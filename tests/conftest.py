import logging

import pytest
import sqlalchemy as sa
from sqlalchemy.pool import StaticPool

from batchwire.config import BatchwireConfig
from batchwire.executor import JobExecutor
from batchwire.jobs import register_builtin_jobs
from batchwire.registry import JobRegistry
from batchwire.run_store import InMemoryRunStore
from batchwire.triggers import record_table


@pytest.fixture
def test_config(tmp_path):
    return BatchwireConfig(
        watch_dir=str(tmp_path / "dropfolder"),
        database_url="sqlite://",
        poll_period_ms=100,
        initial_delay_ms=0,
        max_workers=4,
        chunk_size=5,
    )


@pytest.fixture
def store():
    return InMemoryRunStore()


@pytest.fixture
def executor(store):
    executor = JobExecutor(store=store, max_workers=4)
    yield executor
    executor.shutdown(wait=True)


@pytest.fixture
def registry():
    return register_builtin_jobs(JobRegistry())


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads."""
    engine = sa.create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata = sa.MetaData()
    record_table(metadata=metadata)
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def insert_records(engine):
    """Insert rows into the record table: insert_records((end_date, status), ...)."""
    table = record_table()

    def _insert(*rows):
        with engine.begin() as conn:
            conn.execute(
                sa.insert(table),
                [{"end_date": end_date, "status": status} for end_date, status in rows],
            )

    return _insert


@pytest.fixture
def record_statuses(engine):
    table = record_table()

    def _statuses():
        with engine.connect() as conn:
            rows = conn.execute(sa.select(table.c.id, table.c.status).order_by(table.c.id))
            return [status for _, status in rows]

    return _statuses


@pytest.fixture(autouse=True)
def reset_batchwire_logger():
    """Drop handlers installed by setup_logging (e.g. via the CLI)."""
    yield
    logger = logging.getLogger("batchwire")
    logger.handlers = []
    logger.setLevel(logging.NOTSET)
