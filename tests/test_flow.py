"""Tests for TriggerFlow and PollingScheduler."""

import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from batchwire.builders import FileRequestBuilder
from batchwire.errors import LaunchError, MalformedEventError
from batchwire.flow import TriggerFlow
from batchwire.gateway import LaunchGateway
from batchwire.scheduler import PollingScheduler
from batchwire.schemas import ExecutionStatus, JobLaunchRequest, TriggerEvent
from batchwire.triggers import FileTrigger, TriggerSource


class StaticSource(TriggerSource):
    def __init__(self, events, name="static"):
        super().__init__(name)
        self.events = events

    def fetch(self):
        events, self.events = self.events, []
        return events


class TestTriggerFlow:
    def test_tick_launches_one_job_per_file(self, tmp_path, registry, executor):
        (tmp_path / "a.txt").write_text("x\n")
        (tmp_path / "b.txt").write_text("y\n")
        flow = TriggerFlow(FileTrigger(tmp_path), FileRequestBuilder(), LaunchGateway(registry, executor))

        executions = flow.tick()

        assert [Path(e.parameters["file_path"]).name for e in executions] == ["a.txt", "b.txt"]
        for execution in executions:
            assert execution.wait(5)
            assert execution.status == ExecutionStatus.COMPLETED
        assert flow.tick() == []

    def test_malformed_event_skipped(self):
        builder = MagicMock()
        builder.build.side_effect = [MalformedEventError("bad"), "request"]
        gateway = MagicMock()
        gateway.launch.return_value = "execution"
        source = StaticSource([TriggerEvent.for_file(Path("/a.txt")), TriggerEvent.for_file(Path("/b.txt"))])

        assert TriggerFlow(source, builder, gateway).tick() == ["execution"]
        gateway.launch.assert_called_once_with("request")

    def test_launch_error_does_not_stop_batch(self):
        builder = MagicMock()
        builder.build.side_effect = lambda event: JobLaunchRequest("exampleJob", {"file_path": str(event.payload)})
        gateway = MagicMock()
        gateway.launch.side_effect = [LaunchError("pool closed"), "second"]
        source = StaticSource([TriggerEvent.for_file(Path("/a.txt")), TriggerEvent.for_file(Path("/b.txt"))])

        assert TriggerFlow(source, builder, gateway).tick() == ["second"]
        launched = [call.args[0].parameters["file_path"] for call in gateway.launch.call_args_list]
        assert launched == [str(Path("/a.txt")), str(Path("/b.txt"))]


class TestPollingScheduler:
    def _flow(self, name):
        return TriggerFlow(StaticSource([], name=name), MagicMock(), MagicMock())

    def test_flow_registered_as_non_overlapping_interval_job(self):
        backend = BackgroundScheduler(timezone="UTC")
        scheduler = PollingScheduler(backend)

        scheduler.add_flow(self._flow("file-trigger"), period_ms=5000, initial_delay_ms=2000)

        job = backend.get_job("file-trigger")
        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True
        assert job.trigger.interval.total_seconds() == 5

    def test_each_flow_has_its_own_job(self):
        backend = BackgroundScheduler(timezone="UTC")
        scheduler = PollingScheduler(backend)

        scheduler.add_flow(self._flow("file-trigger"))
        scheduler.add_flow(self._flow("record-trigger"))

        assert sorted(j.id for j in backend.get_jobs()) == ["file-trigger", "record-trigger"]
        assert len(scheduler.flows) == 2

    @pytest.mark.parametrize("period, delay", [(0, 0), (100, -1)])
    def test_invalid_timing_rejected(self, period, delay):
        with pytest.raises(ValueError):
            PollingScheduler().add_flow(self._flow("x"), period_ms=period, initial_delay_ms=delay)

    def test_start_and_shutdown(self):
        scheduler = PollingScheduler()
        scheduler.add_flow(self._flow("x"), period_ms=50, initial_delay_ms=0)

        scheduler.start()
        assert scheduler.running
        scheduler.shutdown()
        assert not scheduler.running

    def test_initial_delay_counts_from_start(self):
        backend = BackgroundScheduler(timezone="UTC")
        scheduler = PollingScheduler(backend)
        scheduler.add_flow(self._flow("file-trigger"), period_ms=5000, initial_delay_ms=2000)
        time.sleep(0.05)

        before_start = datetime.now(timezone.utc)
        scheduler.start()
        try:
            job = backend.get_job("file-trigger")
            assert job.next_run_time >= before_start + timedelta(milliseconds=2000)
        finally:
            scheduler.shutdown(wait=False)
