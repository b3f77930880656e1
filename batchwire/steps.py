"""
Step engine - executes a single tasklet or chunk step.

execute_step() dispatches on the step's kind:
- tasklet: invoke the action once; FINISHED (or None) ends the step
- chunk: open reader/writer, then read up to chunk_size items, process
  them, write the chunk as one commit, and repeat until a read cycle
  yields nothing

Every failure inside a step is raised as StepExecutionError. Chunks written
before the failure stay written; there is no rollback and no retry here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from batchwire.errors import StepExecutionError
from batchwire.schemas import (
    ChunkStep,
    RepeatStatus,
    Step,
    StepContext,
    StepKind,
    TaskletStep,
)

logger = logging.getLogger(__name__)


@dataclass
class StepCounts:
    """Item counters accumulated while a chunk step runs."""
    read_count: int = 0
    filter_count: int = 0
    write_count: int = 0
    commit_count: int = 0


def run_tasklet(step: TaskletStep, context: StepContext) -> StepCounts:
    """
    Invoke a tasklet action once.

    Raises:
        StepExecutionError: If the action raises or asks to be repeated
    """
    try:
        status = step.action(context)
    except Exception as e:
        raise StepExecutionError(step.name, f"{type(e).__name__}: {e}", cause=e) from e

    if status is None or status == RepeatStatus.FINISHED:
        return StepCounts()
    if status == RepeatStatus.CONTINUABLE:
        raise StepExecutionError(
            step.name,
            "tasklet returned CONTINUABLE; tasklets must loop internally and return FINISHED",
        )
    raise StepExecutionError(step.name, f"tasklet returned unexpected value {status!r}")


def run_chunk(step: ChunkStep, context: StepContext) -> StepCounts:
    """
    Drive the read -> process -> write loop of a chunk step.

    The reader and writer are built once from the step context, so a reader
    bound to a job parameter (e.g. file_path) sees that execution's value for
    the whole step.

    Args:
        step: The chunk step definition
        context: Context of the running step

    Returns:
        StepCounts for the finished step

    Raises:
        StepExecutionError: If the reader, processor or writer fails
    """
    counts = StepCounts()

    try:
        reader = step.reader(context)
        writer = step.writer(context)
    except Exception as e:
        raise StepExecutionError(step.name, f"could not build reader/writer: {e}", cause=e) from e

    try:
        _guard(step, "reader.open", reader.open)
        _guard(step, "writer.open", writer.open)

        while True:
            items: list[Any] = []
            exhausted = False
            while len(items) < step.chunk_size:
                item = _guard(step, "read", reader.read)
                if item is None:
                    exhausted = True
                    break
                items.append(item)
            counts.read_count += len(items)

            if not items:
                break

            if step.processor is not None:
                processed = []
                for item in items:
                    result = _guard(step, "process", step.processor, item)
                    if result is None:
                        counts.filter_count += 1
                    else:
                        processed.append(result)
                items = processed

            if items:
                _guard(step, "write", writer.write, items)
                counts.write_count += len(items)
                counts.commit_count += 1
                logger.debug(
                    f"{context.job_name}/{step.name}: committed chunk {counts.commit_count} "
                    f"({len(items)} items)"
                )

            if exhausted:
                break
    finally:
        _close_quietly(step, reader)
        _close_quietly(step, writer)

    return counts


def _guard(step: ChunkStep, phase: str, func: Callable[..., Any], *args: Any) -> Any:
    """Call func, converting any failure into StepExecutionError."""
    try:
        return func(*args)
    except StepExecutionError:
        raise
    except Exception as e:
        raise StepExecutionError(step.name, f"{phase} failed: {type(e).__name__}: {e}", cause=e) from e


def _close_quietly(step: ChunkStep, resource: Any) -> None:
    try:
        resource.close()
    except Exception:
        # A close failure must not mask the step error
        logger.warning(f"{step.name}: failed to close {type(resource).__name__}", exc_info=True)


_DISPATCH: dict[StepKind, Callable[[Any, StepContext], StepCounts]] = {
    StepKind.TASKLET: run_tasklet,
    StepKind.CHUNK: run_chunk,
}


def execute_step(step: Step, context: StepContext) -> StepCounts:
    """
    Execute one step of a job.

    Args:
        step: TaskletStep or ChunkStep
        context: Context of the running step

    Returns:
        StepCounts (all zero for tasklets)

    Raises:
        StepExecutionError: If the step fails
    """
    runner = _DISPATCH.get(step.kind)
    if runner is None:
        raise StepExecutionError(step.name, f"unknown step kind: {step.kind}")
    return runner(step, context)
