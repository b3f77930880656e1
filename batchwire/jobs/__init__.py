"""
Built-in jobs.

- exampleJob: chunk step echoing the lines of a dropped file
- dummyJob: tasklets run for each consumed external record
"""

import logging

from batchwire.registry import JobRegistry

from .dummy import DUMMY_JOB, build_dummy_job
from .example import EXAMPLE_JOB, build_example_job

logger = logging.getLogger(__name__)

__all__ = [
    "DUMMY_JOB",
    "EXAMPLE_JOB",
    "build_dummy_job",
    "build_example_job",
    "register_builtin_jobs",
]


def register_builtin_jobs(registry: JobRegistry, chunk_size: int = 5) -> JobRegistry:
    """Register exampleJob and dummyJob."""
    registry.register(build_example_job(chunk_size=chunk_size), replace=True)
    registry.register(build_dummy_job(), replace=True)
    logger.debug(f"Registered built-in jobs: {registry.list_jobs()}")
    return registry
