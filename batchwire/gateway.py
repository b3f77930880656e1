"""
LaunchGateway - turns launch requests into running job executions.

The gateway is the boundary between the trigger layer and the executor.
launch() resolves the job, hands it to the executor's worker pool and
returns the RUNNING execution without waiting for it. When the execution
ends, the gateway logs one completion record:

    {job_name, parameters, status, duration_ms}
"""

import logging
from typing import Callable, Optional

from batchwire.errors import LaunchError
from batchwire.executor import JobExecutor
from batchwire.registry import JobRegistry
from batchwire.schemas import JobExecution, JobLaunchRequest

logger = logging.getLogger(__name__)

COMPLETION_EVENT = "job.completed"


class LaunchGateway:
    """
    Launches registered jobs asynchronously.

    Usage:
        gateway = LaunchGateway(registry, executor)
        execution = gateway.launch(JobLaunchRequest("exampleJob", {"file_path": "/tmp/in.txt"}))
    """

    def __init__(
        self,
        registry: JobRegistry,
        executor: JobExecutor,
        on_completion: Optional[Callable[[dict], None]] = None,
    ):
        """
        Initialize the gateway.

        Args:
            registry: Registry used to resolve job names
            executor: Executor that runs admitted jobs
            on_completion: Optional extra sink for completion records
        """
        self._registry = registry
        self._executor = executor
        self._on_completion = on_completion
        executor.add_listener(self._log_completion)

    def launch(self, request: JobLaunchRequest) -> JobExecution:
        """
        Start the job named by a launch request.

        Args:
            request: The launch request

        Returns:
            The admitted (RUNNING) JobExecution

        Raises:
            LaunchError: If the job is unknown or cannot be started.
                No execution is created in either case.
        """
        job = self._registry.get(request.job_name)
        try:
            execution = self._executor.start(job, request.parameters)
        except LaunchError:
            raise
        except Exception as e:
            raise LaunchError(f"Could not start {request.job_name}: {e}") from e
        logger.info(f"Launched {request.job_name} [{execution.id}]")
        return execution

    def _log_completion(self, execution: JobExecution) -> None:
        record = execution.completion_record()
        logger.info(
            f"Job {record['job_name']} {record['status']} in {record['duration_ms']}ms "
            f"parameters={record['parameters']}",
            extra={"event": COMPLETION_EVENT, "metadata": record},
        )
        if self._on_completion is not None:
            self._on_completion(record)
