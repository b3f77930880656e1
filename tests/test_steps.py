"""Tests for the step engine.

Tests cover:
- Chunk boundaries and commit counts
- Optional processor, including filtering
- Failure isolation: committed chunks stay written
- Reader/writer lifecycle (opened once, closed on failure)
- Tasklet return values
"""

from types import MappingProxyType

import pytest

from batchwire.errors import StepExecutionError
from batchwire.items import ItemReader, ItemWriter, ListItemReader, ListItemWriter
from batchwire.schemas import (
    ChunkStep,
    RepeatStatus,
    StepContext,
    StepKind,
    TaskletStep,
)
from batchwire.steps import execute_step, run_chunk, run_tasklet


def _context(step_name="step", **params) -> StepContext:
    return StepContext(
        execution_id="01TEST",
        job_name="job",
        step_name=step_name,
        parameters=MappingProxyType(params),
    )


class FailingWriter(ItemWriter):
    """Writes successfully until the given chunk number, then raises."""

    def __init__(self, fail_on_chunk: int):
        self.fail_on_chunk = fail_on_chunk
        self.chunks = []
        self.closed = False

    def write(self, items):
        if len(self.chunks) + 1 == self.fail_on_chunk:
            raise IOError("disk full")
        self.chunks.append(list(items))

    def close(self):
        self.closed = True


class TrackingReader(ListItemReader):
    def __init__(self, items):
        super().__init__(items)
        self.opened = 0
        self.closed = 0

    def open(self):
        self.opened += 1

    def close(self):
        self.closed += 1


class TestChunkStep:
    """Tests for the chunk loop."""

    def test_twelve_items_chunk_size_five(self):
        """12 items with chunk_size 5 are written as [5, 5, 2]."""
        writer = ListItemWriter()
        step = ChunkStep(
            name="chunky",
            chunk_size=5,
            reader=lambda ctx: ListItemReader(range(12)),
            writer=lambda ctx: writer,
        )

        counts = run_chunk(step, _context())

        assert [len(c) for c in writer.chunks] == [5, 5, 2]
        assert writer.items == list(range(12))
        assert counts.read_count == 12
        assert counts.write_count == 12
        assert counts.commit_count == 3

    def test_exact_multiple_has_no_empty_chunk(self):
        """10 items with chunk_size 5 produce exactly two writes."""
        writer = ListItemWriter()
        step = ChunkStep(
            name="exact",
            chunk_size=5,
            reader=lambda ctx: ListItemReader(range(10)),
            writer=lambda ctx: writer,
        )

        run_chunk(step, _context())

        assert [len(c) for c in writer.chunks] == [5, 5]

    def test_empty_input_writes_nothing(self):
        writer = ListItemWriter()
        step = ChunkStep(
            name="empty",
            chunk_size=3,
            reader=lambda ctx: ListItemReader([]),
            writer=lambda ctx: writer,
        )

        counts = run_chunk(step, _context())

        assert writer.chunks == []
        assert counts.commit_count == 0

    def test_processor_applied_before_write(self):
        writer = ListItemWriter()
        step = ChunkStep(
            name="upper",
            chunk_size=2,
            reader=lambda ctx: ListItemReader(["a", "b", "c"]),
            processor=str.upper,
            writer=lambda ctx: writer,
        )

        run_chunk(step, _context())

        assert writer.chunks == [["A", "B"], ["C"]]

    def test_processor_none_filters_item(self):
        """Items the processor maps to None are not written."""
        writer = ListItemWriter()
        step = ChunkStep(
            name="evens",
            chunk_size=4,
            reader=lambda ctx: ListItemReader(range(8)),
            processor=lambda n: n if n % 2 == 0 else None,
            writer=lambda ctx: writer,
        )

        counts = run_chunk(step, _context())

        assert writer.chunks == [[0, 2], [4, 6]]
        assert counts.read_count == 8
        assert counts.filter_count == 4
        assert counts.write_count == 4

    def test_writer_failure_keeps_committed_chunks(self):
        """A writer failing on the second chunk leaves the first chunk written."""
        writer = FailingWriter(fail_on_chunk=2)
        step = ChunkStep(
            name="fragile",
            chunk_size=5,
            reader=lambda ctx: ListItemReader(range(12)),
            writer=lambda ctx: writer,
        )

        with pytest.raises(StepExecutionError, match="write failed") as exc_info:
            run_chunk(step, _context())

        assert writer.chunks == [[0, 1, 2, 3, 4]]
        assert writer.closed is True
        assert exc_info.value.step_name == "fragile"
        assert isinstance(exc_info.value.cause, IOError)

    def test_reader_failure_aborts_step(self):
        class BrokenReader(ItemReader):
            def read(self):
                raise ValueError("corrupt line")

        step = ChunkStep(
            name="broken",
            chunk_size=5,
            reader=lambda ctx: BrokenReader(),
            writer=lambda ctx: ListItemWriter(),
        )

        with pytest.raises(StepExecutionError, match="read failed"):
            run_chunk(step, _context())

    def test_reader_opened_once_and_closed(self):
        reader = TrackingReader(range(7))
        step = ChunkStep(
            name="tracked",
            chunk_size=2,
            reader=lambda ctx: reader,
            writer=lambda ctx: ListItemWriter(),
        )

        run_chunk(step, _context())

        assert reader.opened == 1
        assert reader.closed == 1

    def test_reader_factory_sees_parameters_once(self):
        """The reader factory is resolved once per step with the step context."""
        calls = []

        def factory(ctx):
            calls.append(ctx.get("file_path"))
            return ListItemReader(range(11))

        step = ChunkStep(
            name="bound",
            chunk_size=2,
            reader=factory,
            writer=lambda ctx: ListItemWriter(),
        )

        run_chunk(step, _context(file_path="/tmp/in.txt"))

        assert calls == ["/tmp/in.txt"]

    @pytest.mark.parametrize("size", [0, -1, 2.5, True])
    def test_chunk_size_must_be_positive_integer(self, size):
        with pytest.raises(ValueError, match="chunk_size"):
            ChunkStep(
                name="bad",
                chunk_size=size,
                reader=lambda ctx: ListItemReader([]),
                writer=lambda ctx: ListItemWriter(),
            )


class TestTaskletStep:
    """Tests for tasklet invocation."""

    def test_finished(self):
        seen = []
        step = TaskletStep(name="t", action=lambda ctx: seen.append(ctx.get("end_date")) or RepeatStatus.FINISHED)

        run_tasklet(step, _context(end_date="2024-01-31"))

        assert seen == ["2024-01-31"]

    def test_none_counts_as_finished(self):
        step = TaskletStep(name="t", action=lambda ctx: None)
        counts = run_tasklet(step, _context())
        assert counts.commit_count == 0

    def test_continuable_rejected(self):
        step = TaskletStep(name="loop", action=lambda ctx: RepeatStatus.CONTINUABLE)
        with pytest.raises(StepExecutionError, match="CONTINUABLE"):
            run_tasklet(step, _context())

    def test_action_error_wrapped(self):
        def boom(ctx):
            raise RuntimeError("boom")

        step = TaskletStep(name="boom", action=boom)
        with pytest.raises(StepExecutionError, match="RuntimeError: boom"):
            run_tasklet(step, _context())


class TestDispatch:
    def test_dispatch_by_kind(self):
        tasklet = TaskletStep(name="t", action=lambda ctx: RepeatStatus.FINISHED)
        writer = ListItemWriter()
        chunk = ChunkStep(
            name="c",
            chunk_size=1,
            reader=lambda ctx: ListItemReader([1]),
            writer=lambda ctx: writer,
        )

        assert tasklet.kind == StepKind.TASKLET
        assert chunk.kind == StepKind.CHUNK
        execute_step(tasklet, _context())
        execute_step(chunk, _context())
        assert writer.chunks == [[1]]
