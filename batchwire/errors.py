"""
Error classes for batchwire.

The taxonomy follows the trigger-to-execution pipeline:
- TriggerPollError: Transient failure while polling a trigger source
- MalformedEventError: A raw payload cannot become an event or launch request
- LaunchError: A launch request cannot be turned into a running execution
- StepExecutionError: Anything raised inside a tasklet or chunk step

Poll errors are recovered at the trigger layer (the tick is skipped).
Launch errors surface synchronously to the caller of the gateway.
Step errors never escape the executor; they mark the execution FAILED.
"""

from typing import Optional


class BatchwireError(Exception):
    """Base exception for batchwire."""
    pass


class ConfigError(BatchwireError):
    """Configuration validation error."""
    pass


class TriggerPollError(BatchwireError):
    """
    Transient error raised while polling a trigger source.

    Examples:
    - Watched directory temporarily unreadable
    - Database connection refused or reset

    Trigger sources swallow this error and retry on the next tick.
    """

    def __init__(self, source: str, message: str, cause: Optional[Exception] = None):
        self.source = source
        self.cause = cause
        super().__init__(f"Poll of '{source}' failed: {message}")


class MalformedEventError(BatchwireError):
    """
    A trigger payload could not be parsed.

    The offending item is dropped; the rest of the batch is still emitted.
    """
    pass


class LaunchError(BatchwireError):
    """
    A job launch request could not be started.

    No JobExecution is created when this is raised.
    """
    pass


class JobNotFoundError(LaunchError):
    """Raised when a launch request names a job that is not registered."""
    pass


class StepExecutionError(BatchwireError):
    """Raised when a step fails; the owning execution becomes FAILED."""

    def __init__(self, step_name: str, message: str, cause: Optional[Exception] = None):
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"Step '{step_name}' failed: {message}")
