"""
Executor - runs Jobs step by step and tracks their executions.

The JobExecutor implements:
- Execution records created in the RunStore when a job is admitted
- Strictly sequential steps in declared order
- Fail-fast: the first failing step marks the execution FAILED and the
  remaining steps are recorded as SKIPPED
- Asynchronous starts on a bounded worker pool
- Completion listeners notified once per terminal execution

Execution flow:
1. Create JobExecution (RUNNING) with a frozen parameter snapshot
2. For each step:
   a. Build the StepContext from the snapshot
   b. Dispatch to the step engine
   c. Record the StepOutcome
3. Move the execution to COMPLETED or FAILED
4. Notify listeners, then release waiters

There is no job-level retry. A failed execution needs a fresh launch.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from batchwire.errors import LaunchError, StepExecutionError
from batchwire.run_store import InMemoryRunStore, RunStore
from batchwire.schemas import (
    ExecutionStatus,
    Job,
    JobExecution,
    StepContext,
    StepOutcome,
    StepStatus,
)
from batchwire.steps import execute_step

logger = logging.getLogger(__name__)

CompletionListener = Callable[[JobExecution], None]


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _error_info(e: Exception) -> dict[str, str]:
    cause = getattr(e, "cause", None) or e
    info = {
        "type": type(cause).__name__,
        "message": str(e),
    }
    step_name = getattr(e, "step_name", None)
    if step_name:
        info["step_name"] = step_name
    return info


class JobExecutor:
    """
    Execution engine for Jobs.

    Usage:
        executor = JobExecutor(store=InMemoryRunStore(), max_workers=4)
        executor.add_listener(lambda execution: print(execution.status))

        # Run in the calling thread
        execution = executor.execute(job, {"file_path": "/tmp/in.txt"})

        # Or hand off to the worker pool
        execution = executor.start(job, {"file_path": "/tmp/in.txt"})
        execution.wait()

        executor.shutdown()

    Executions of the same job are not deduplicated; two starts with the
    same job run concurrently and independently.
    """

    def __init__(self, store: Optional[RunStore] = None, max_workers: int = 4):
        """
        Initialize the executor.

        Args:
            store: RunStore for execution history (defaults to InMemoryRunStore)
            max_workers: Size of the worker pool used by start()
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        self._store = store or InMemoryRunStore()
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="batchwire-job")
        self._listeners: list[CompletionListener] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def store(self) -> RunStore:
        return self._store

    def add_listener(self, listener: CompletionListener) -> None:
        """Register a callback invoked once per terminal execution."""
        self._listeners.append(listener)

    def execute(self, job: Job, parameters: Optional[Mapping[str, str]] = None) -> JobExecution:
        """
        Run a job to completion in the calling thread.

        Args:
            job: The job definition
            parameters: Job parameters

        Returns:
            The terminal JobExecution
        """
        execution = self._store.create(job.name, MappingProxyType(dict(parameters or {})))
        self._run(job, execution)
        return execution

    def start(self, job: Job, parameters: Optional[Mapping[str, str]] = None) -> JobExecution:
        """
        Admit a job and run it on the worker pool.

        Returns as soon as the execution is created; the job runs
        concurrently with the caller.

        Returns:
            The RUNNING JobExecution

        Raises:
            LaunchError: If the executor has been shut down or the pool
                rejects the job. No execution is left in the store.
        """
        with self._lock:
            if self._closed:
                raise LaunchError(f"Executor is shut down; cannot start {job.name}")
            execution = self._store.create(job.name, MappingProxyType(dict(parameters or {})))
            try:
                future = self._pool.submit(self._run, job, execution)
            except RuntimeError as e:
                self._store.delete(execution.id)
                raise LaunchError(f"Worker pool rejected {job.name}: {e}") from e
        future.add_done_callback(self._log_unexpected)
        return execution

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop admitting executions.

        Args:
            wait: Block until in-flight executions finish
        """
        with self._lock:
            self._closed = True
            self._pool.shutdown(wait=False)
        if wait:
            # Re-entering shutdown with wait=True joins the worker threads
            self._pool.shutdown(wait=True)

    def _run(self, job: Job, execution: JobExecution) -> None:
        """Execute every step of a job, then finish the execution."""
        logger.info(f"Job started: {job.name} [{execution.id}] {dict(execution.parameters)}")
        try:
            try:
                status, error = self._run_steps(job, execution)
            except Exception as e:
                # Failures outside a step, e.g. the store rejecting an update
                logger.exception(f"Job {job.name} [{execution.id}] aborted")
                status, error = ExecutionStatus.FAILED, _error_info(e)

            execution.finish(status, error)
            self._persist(execution)
            self._notify(execution)
        finally:
            execution.release()

    def _run_steps(self, job: Job, execution: JobExecution) -> tuple[ExecutionStatus, Optional[dict[str, str]]]:
        for index, step in enumerate(job.steps):
            context = StepContext(
                execution_id=execution.id,
                job_name=job.name,
                step_name=step.name,
                parameters=execution.parameters,
            )
            step_started = _utcnow()
            try:
                counts = execute_step(step, context)
            except Exception as e:
                if not isinstance(e, StepExecutionError):
                    e = StepExecutionError(step.name, f"{type(e).__name__}: {e}", cause=e)
                error = _error_info(e)
                execution.step_outcomes.append(StepOutcome(
                    step_name=step.name,
                    status=StepStatus.FAILED,
                    started_at=step_started,
                    completed_at=_utcnow(),
                    error=error,
                ))
                logger.error(f"Job {job.name} [{execution.id}]: {e}")
                for skipped in job.steps[index + 1:]:
                    execution.step_outcomes.append(StepOutcome(
                        step_name=skipped.name,
                        status=StepStatus.SKIPPED,
                    ))
                return ExecutionStatus.FAILED, error

            execution.step_outcomes.append(StepOutcome(
                step_name=step.name,
                status=StepStatus.COMPLETED,
                started_at=step_started,
                completed_at=_utcnow(),
                read_count=counts.read_count,
                filter_count=counts.filter_count,
                write_count=counts.write_count,
                commit_count=counts.commit_count,
            ))
            self._store.update(execution)
        return ExecutionStatus.COMPLETED, None

    def _persist(self, execution: JobExecution) -> None:
        """Write the terminal state; a store failure must not block completion."""
        try:
            self._store.update(execution)
        except Exception:
            logger.exception(f"Could not persist execution {execution.id}")

    @staticmethod
    def _log_unexpected(future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error("Unhandled error in job worker", exc_info=error)

    def _notify(self, execution: JobExecution) -> None:
        for listener in list(self._listeners):
            try:
                listener(execution)
            except Exception:
                logger.exception(f"Completion listener failed for execution {execution.id}")
