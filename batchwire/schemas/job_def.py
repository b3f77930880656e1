"""
Job and Step definitions.

A Job is a named, ordered sequence of steps. Definitions are registered once
at process start and shared by every execution of that job, so nothing in a
definition may hold per-run state. Per-run collaborators (readers, writers)
are therefore declared as factories that receive the StepContext of the
running step.

Steps are a tagged variant over StepKind:
- TaskletStep: a single action invoked once
- ChunkStep: a read -> process -> write loop committed chunk by chunk
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

if TYPE_CHECKING:
    from batchwire.items import ItemReader, ItemWriter
    from batchwire.schemas.execution import StepContext


class RepeatStatus(str, Enum):
    """Value returned by a tasklet action."""
    FINISHED = "finished"
    CONTINUABLE = "continuable"


class StepKind(str, Enum):
    TASKLET = "tasklet"
    CHUNK = "chunk"


TaskletAction = Callable[["StepContext"], Optional[RepeatStatus]]
ReaderFactory = Callable[["StepContext"], "ItemReader"]
WriterFactory = Callable[["StepContext"], "ItemWriter"]
ItemProcessor = Callable[[Any], Any]


@dataclass(frozen=True)
class TaskletStep:
    """
    A step that invokes a single action.

    Attributes:
        name: Step name, unique within its job
        action: Callable receiving the StepContext; returns FINISHED or None
    """
    name: str
    action: TaskletAction

    @property
    def kind(self) -> StepKind:
        return StepKind.TASKLET


@dataclass(frozen=True)
class ChunkStep:
    """
    A step that reads, processes and writes items in bounded chunks.

    Attributes:
        name: Step name, unique within its job
        chunk_size: Maximum items per chunk (the commit interval)
        reader: Factory building the ItemReader for one execution
        writer: Factory building the ItemWriter for one execution
        processor: Optional item transform; returning None filters the item
    """
    name: str
    chunk_size: int
    reader: ReaderFactory
    writer: WriterFactory
    processor: Optional[ItemProcessor] = None

    def __post_init__(self):
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int):
            raise ValueError(f"Step '{self.name}': chunk_size must be an integer")
        if self.chunk_size < 1:
            raise ValueError(f"Step '{self.name}': chunk_size must be positive, got {self.chunk_size}")

    @property
    def kind(self) -> StepKind:
        return StepKind.CHUNK


Step = Union[TaskletStep, ChunkStep]


@dataclass(frozen=True)
class Job:
    """
    An immutable job definition.

    Attributes:
        name: Job name used in launch requests
        steps: Steps in execution order
    """
    name: str
    steps: tuple[Step, ...]

    def __post_init__(self):
        if not self.name:
            raise ValueError("Job name is required")
        # Accept any sequence but store a tuple
        object.__setattr__(self, "steps", tuple(self.steps))
        if not self.steps:
            raise ValueError(f"Job '{self.name}' must have at least one step")
        names = [step.name for step in self.steps]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Job '{self.name}' has duplicate step names: {duplicates}")

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]
