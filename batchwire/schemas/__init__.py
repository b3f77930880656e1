"""
batchwire.schemas - Data structures for the trigger-to-execution pipeline.

TriggerEvent -> JobLaunchRequest -> JobExecution -> StepOutcome

Lifecycle:
1. TriggerEvent: Emitted by a trigger source for a new file or a claimed record
2. JobLaunchRequest: Job name plus string parameters built from one event
3. Job/Step: Static job definitions registered at startup
4. JobExecution: Runtime record of one launched job
5. StepOutcome: How one step of an execution ended
"""

from .events import (
    SourceKind,
    RecordStatus,
    ExternalRecord,
    TriggerEvent,
)
from .launch import JobLaunchRequest
from .job_def import (
    RepeatStatus,
    StepKind,
    TaskletStep,
    ChunkStep,
    Step,
    Job,
)
from .execution import (
    ExecutionStatus,
    StepStatus,
    StepContext,
    StepOutcome,
    JobExecution,
    ULID,
)

__all__ = [
    # Events
    "SourceKind",
    "RecordStatus",
    "ExternalRecord",
    "TriggerEvent",
    # Launch
    "JobLaunchRequest",
    # Job Definition
    "RepeatStatus",
    "StepKind",
    "TaskletStep",
    "ChunkStep",
    "Step",
    "Job",
    # Execution
    "ExecutionStatus",
    "StepStatus",
    "StepContext",
    "StepOutcome",
    "JobExecution",
    "ULID",
]
