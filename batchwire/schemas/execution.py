"""
Execution schemas - JobExecution, StepOutcome and StepContext.

A JobExecution is created by the JobExecutor when a job is launched and is
owned by the executor for its lifetime. Its status moves once from RUNNING
to COMPLETED or FAILED and never changes again.

A StepOutcome records how one step of an execution ended. A StepContext is
what a running step sees: the execution identity and its frozen parameters.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

# ULID type alias for documentation
ULID = str


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class ExecutionStatus(str, Enum):
    """Status of a job execution."""
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class StepStatus(str, Enum):
    """Status of a step within an execution."""
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepContext:
    """
    The view a running step has of its execution.

    Attributes:
        execution_id: ULID of the owning JobExecution
        job_name: Name of the job being executed
        step_name: Name of the running step
        parameters: Read-only parameter snapshot shared by every step
    """
    execution_id: ULID
    job_name: str
    step_name: str
    parameters: Mapping[str, str]

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a job parameter."""
        return self.parameters.get(key, default)


@dataclass(frozen=True)
class StepOutcome:
    """
    The outcome of executing a single step.

    Attributes:
        step_name: Name of the step
        status: completed, failed or skipped
        started_at: When the step started (None if skipped)
        completed_at: When the step ended (None if skipped)
        read_count: Items read (chunk steps)
        filter_count: Items dropped by the processor (chunk steps)
        write_count: Items handed to the writer (chunk steps)
        commit_count: Chunks written (chunk steps)
        error: Error details if status is failed
    """
    step_name: str
    status: StepStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    read_count: int = 0
    filter_count: int = 0
    write_count: int = 0
    commit_count: int = 0
    error: Optional[dict[str, Any]] = None

    def __post_init__(self):
        if self.status in (StepStatus.COMPLETED, StepStatus.FAILED):
            if self.started_at is None or self.completed_at is None:
                raise ValueError(f"{self.status.value} steps must have started_at and completed_at")

    @property
    def duration_ms(self) -> Optional[int]:
        """Calculate execution duration in milliseconds if both timestamps present."""
        if self.started_at and self.completed_at:
            delta = self.completed_at - self.started_at
            return int(delta.total_seconds() * 1000)
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result: dict[str, Any] = {
            "step_name": self.step_name,
            "status": self.status.value,
        }
        if self.started_at is not None:
            result["started_at"] = self.started_at.isoformat()
        if self.completed_at is not None:
            result["completed_at"] = self.completed_at.isoformat()
        if self.commit_count or self.read_count:
            result["read_count"] = self.read_count
            result["filter_count"] = self.filter_count
            result["write_count"] = self.write_count
            result["commit_count"] = self.commit_count
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class JobExecution:
    """
    A single run of a job.

    Attributes:
        id: ULID uniquely identifying this execution
        job_name: The job being run
        parameters: Frozen parameter snapshot
        status: RUNNING, COMPLETED or FAILED
        started_at: When the execution was admitted
        ended_at: When the execution became terminal (None while running)
        step_outcomes: Outcomes in step order, appended as steps end
        error: Error details of the failing step, if any
    """
    id: ULID
    job_name: str
    parameters: Mapping[str, str]
    status: ExecutionStatus = ExecutionStatus.RUNNING
    started_at: datetime = field(default_factory=_utcnow)
    ended_at: Optional[datetime] = None
    step_outcomes: list[StepOutcome] = field(default_factory=list)
    error: Optional[dict[str, Any]] = None
    _done: threading.Event = field(default_factory=threading.Event, init=False, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.status != ExecutionStatus.RUNNING

    @property
    def duration_ms(self) -> Optional[int]:
        if self.ended_at is None:
            return None
        return int((self.ended_at - self.started_at).total_seconds() * 1000)

    def finish(self, status: ExecutionStatus, error: Optional[dict[str, Any]] = None) -> None:
        """
        Move the execution to a terminal status.

        Args:
            status: COMPLETED or FAILED
            error: Error details when FAILED

        Raises:
            ValueError: If status is RUNNING or the execution is already terminal
        """
        if status == ExecutionStatus.RUNNING:
            raise ValueError("finish() requires a terminal status")
        if self.is_terminal:
            raise ValueError(f"Execution {self.id} is already {self.status.value}")
        self.error = error
        self.ended_at = _utcnow()
        self.status = status

    def release(self) -> None:
        """Wake up waiters. The executor calls this after completion listeners ran."""
        self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the execution is terminal.

        Returns:
            True if the execution finished within the timeout
        """
        return self._done.wait(timeout)

    def outcome(self, step_name: str) -> Optional[StepOutcome]:
        """Get the outcome for a specific step."""
        for outcome in self.step_outcomes:
            if outcome.step_name == step_name:
                return outcome
        return None

    def completion_record(self) -> dict[str, Any]:
        """The fields logged once the execution is terminal."""
        return {
            "job_name": self.job_name,
            "parameters": dict(self.parameters),
            "status": self.status.value,
            "duration_ms": self.duration_ms,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result: dict[str, Any] = {
            "id": self.id,
            "job_name": self.job_name,
            "parameters": dict(self.parameters),
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "step_outcomes": [o.to_dict() for o in self.step_outcomes],
        }
        if self.ended_at is not None:
            result["ended_at"] = self.ended_at.isoformat()
            result["duration_ms"] = self.duration_ms
        if self.error is not None:
            result["error"] = self.error
        return result
