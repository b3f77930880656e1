"""Tests for JobRegistry."""

from unittest.mock import MagicMock, patch

import pytest

from batchwire.errors import JobNotFoundError
from batchwire.jobs import register_builtin_jobs
from batchwire.registry import JobRegistry
from batchwire.schemas import ChunkStep, Job, TaskletStep


def _job(name="job"):
    return Job(name, [TaskletStep("t", lambda ctx: None)])


class TestJobRegistry:
    def test_register_and_get(self):
        registry = JobRegistry()
        job = registry.register(_job("a"))
        assert registry.get("a") is job
        assert registry.has("a")

    def test_unknown_job(self):
        registry = JobRegistry()
        registry.register(_job("a"))
        with pytest.raises(JobNotFoundError, match="Registered: \\['a'\\]"):
            registry.get("b")

    def test_duplicate_rejected_unless_replace(self):
        registry = JobRegistry()
        registry.register(_job("a"))
        with pytest.raises(ValueError, match="already registered"):
            registry.register(_job("a"))
        replacement = registry.register(_job("a"), replace=True)
        assert registry.get("a") is replacement

    def test_list_jobs_sorted(self):
        registry = JobRegistry()
        for name in ("zeta", "alpha"):
            registry.register(_job(name))
        assert registry.list_jobs() == ["alpha", "zeta"]

    def test_discover_entry_points(self):
        ep = MagicMock()
        ep.load.return_value = lambda: _job("pluginJob")
        eps = MagicMock()
        eps.select.return_value = [ep]

        registry = JobRegistry()
        with patch("batchwire.registry.entry_points", return_value=eps):
            count = registry.discover()

        assert count == 1
        assert registry.has("pluginJob")
        eps.select.assert_called_once_with(group="batchwire.jobs")


class TestBuiltinJobs:
    def test_builtin_jobs(self):
        registry = register_builtin_jobs(JobRegistry(), chunk_size=7)

        example = registry.get("exampleJob")
        dummy = registry.get("dummyJob")

        assert example.step_names == ["exampleStep"]
        assert isinstance(example.steps[0], ChunkStep)
        assert example.steps[0].chunk_size == 7
        assert dummy.step_names == ["dummyStep", "extractStep"]
