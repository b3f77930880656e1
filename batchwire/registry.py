"""
JobRegistry - the set of jobs a process can launch.

Jobs are registered once at startup, either directly with register() or by
discovering installed entry points in the ``batchwire.jobs`` group. Each
entry point resolves to a zero-argument factory returning a Job.
"""

import logging
import threading
from importlib.metadata import entry_points
from typing import Callable

from batchwire.errors import JobNotFoundError
from batchwire.schemas import Job

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "batchwire.jobs"


class JobRegistry:
    """
    Registry of Job definitions keyed by job name.

    Usage:
        registry = JobRegistry()
        registry.register(build_example_job())

        job = registry.get("exampleJob")
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def register(self, job: Job, replace: bool = False) -> Job:
        """
        Register a job definition.

        Args:
            job: The job to register
            replace: Allow replacing an existing job of the same name

        Returns:
            The registered job

        Raises:
            ValueError: If a job with the same name exists and replace is False
        """
        with self._lock:
            if job.name in self._jobs and not replace:
                raise ValueError(f"Job already registered: {job.name}")
            self._jobs[job.name] = job
        logger.debug(f"Registered job {job.name} with steps {job.step_names}")
        return job

    def get(self, name: str) -> Job:
        """
        Get a job by name.

        Raises:
            JobNotFoundError: If no job is registered under this name
        """
        with self._lock:
            job = self._jobs.get(name)
        if job is None:
            raise JobNotFoundError(
                f"Job not registered: {name}. Registered: {self.list_jobs()}"
            )
        return job

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._jobs

    def list_jobs(self) -> list[str]:
        """
        List registered job names.

        Returns:
            Sorted list of job names
        """
        with self._lock:
            return sorted(self._jobs)

    def discover(self, group: str = ENTRY_POINT_GROUP) -> int:
        """
        Register jobs from installed entry points.

        Args:
            group: Entry point group to scan

        Returns:
            Number of jobs registered
        """
        count = 0
        for ep in entry_points().select(group=group):
            factory: Callable[[], Job] = ep.load()
            job = factory()
            self.register(job, replace=True)
            count += 1
        return count
