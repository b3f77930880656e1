"""
Application - the process-wide wiring, built once at startup.

Holds the job registry, executor, launch gateway, record store engine and
the two trigger flows, and passes them explicitly to each other. Nothing
in batchwire looks these up globally.

Usage:
    app = Application.from_config(load_config())
    app.start()
    ...
    app.shutdown()
"""

import logging
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from batchwire.builders import FileRequestBuilder, RecordRequestBuilder
from batchwire.config import BatchwireConfig
from batchwire.executor import JobExecutor
from batchwire.flow import TriggerFlow
from batchwire.gateway import LaunchGateway
from batchwire.jobs import DUMMY_JOB, EXAMPLE_JOB, register_builtin_jobs
from batchwire.registry import JobRegistry
from batchwire.run_store import FileRunStore, InMemoryRunStore, RunStore
from batchwire.scheduler import PollingScheduler
from batchwire.schemas import JobExecution
from batchwire.triggers import FileTrigger, RecordTrigger

logger = logging.getLogger(__name__)

FILE_FLOW = "file"
RECORD_FLOW = "record"


class Application:
    """Explicit context object for one batchwire process."""

    def __init__(
        self,
        config: BatchwireConfig,
        registry: JobRegistry,
        executor: JobExecutor,
        gateway: LaunchGateway,
        flows: dict[str, TriggerFlow],
        engine: Optional[Engine] = None,
        scheduler: Optional[PollingScheduler] = None,
    ):
        self.config = config
        self.registry = registry
        self.executor = executor
        self.gateway = gateway
        self.flows = flows
        self.engine = engine
        self.scheduler = scheduler or PollingScheduler()

    @classmethod
    def from_config(
        cls,
        config: BatchwireConfig,
        engine: Optional[Engine] = None,
        store: Optional[RunStore] = None,
        discover: bool = True,
    ) -> "Application":
        """
        Build the full wiring from configuration.

        Args:
            config: Loaded configuration
            engine: SQLAlchemy engine for the record store (created from
                config.database_url when omitted)
            store: Execution history store (defaults from config.history_dir)
            discover: Also register jobs from installed entry points
        """
        registry = JobRegistry()
        if discover:
            registry.discover()
        register_builtin_jobs(registry, chunk_size=config.chunk_size)

        if store is None:
            store = FileRunStore(config.history_dir) if config.history_dir else InMemoryRunStore()
        executor = JobExecutor(store=store, max_workers=config.max_workers)
        gateway = LaunchGateway(registry, executor)

        if engine is None:
            engine = sa.create_engine(config.database_url, pool_pre_ping=True)

        flows = {
            FILE_FLOW: TriggerFlow(
                FileTrigger(config.watch_path, pattern=config.file_pattern),
                FileRequestBuilder(job_name=EXAMPLE_JOB),
                gateway,
            ),
            RECORD_FLOW: TriggerFlow(
                RecordTrigger(
                    engine,
                    table=config.record_table,
                    ready_status=config.ready_status,
                    consumed_status=config.consumed_status,
                ),
                RecordRequestBuilder(job_name=DUMMY_JOB),
                gateway,
            ),
        }
        return cls(config, registry, executor, gateway, flows, engine=engine)

    def start(self) -> None:
        """Schedule every flow and start polling."""
        for flow in self.flows.values():
            self.scheduler.add_flow(
                flow,
                period_ms=self.config.poll_period_ms,
                initial_delay_ms=self.config.initial_delay_ms,
            )
        self.scheduler.start()
        logger.info(f"batchwire started with jobs {self.registry.list_jobs()}")

    def tick(self, source: str = "all") -> list[JobExecution]:
        """
        Run one tick of the selected flows in the calling thread.

        Args:
            source: "file", "record" or "all"
        """
        if source == "all":
            names = list(self.flows)
        elif source in self.flows:
            names = [source]
        else:
            raise ValueError(f"Unknown source: {source}. Available: {sorted(self.flows)}")
        executions = []
        for name in names:
            executions.extend(self.flows[name].tick())
        return executions

    def shutdown(self, wait: bool = True) -> None:
        """Stop polling, then drain in-flight executions."""
        self.scheduler.shutdown(wait=wait)
        self.executor.shutdown(wait=wait)
        if self.engine is not None:
            self.engine.dispose()
        logger.info("batchwire stopped")
