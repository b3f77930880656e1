"""
RunStore - execution history for JobExecutions.

The executor creates an execution record when a job is admitted and updates
it as steps end and when it becomes terminal. The store is an external
collaborator; only this narrow interface is relied on.

Storage backends:
- In-memory (default, and for testing)
- File-based JSON snapshots (for development)
"""

import json
import os
import random
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional

from batchwire.schemas import JobExecution


def generate_ulid() -> str:
    """
    Generate a ULID (Universally Unique Lexicographically Sortable Identifier).

    ULIDs are 26 characters, encoding:
    - 48 bits of timestamp (milliseconds since Unix epoch)
    - 80 bits of randomness
    """
    # Crockford's Base32 alphabet (excludes I, L, O, U)
    ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"

    timestamp_ms = int(time.time() * 1000)
    timestamp_chars = []
    for _ in range(10):
        timestamp_chars.append(ALPHABET[timestamp_ms & 0x1F])
        timestamp_ms >>= 5
    timestamp_part = "".join(reversed(timestamp_chars))

    random_part = "".join(random.choice(ALPHABET) for _ in range(16))

    return timestamp_part + random_part


class RunStore(ABC):
    """Abstract base class for execution history storage."""

    @abstractmethod
    def create(self, job_name: str, parameters: Mapping[str, str]) -> JobExecution:
        """
        Create a new RUNNING execution.

        Args:
            job_name: The job being launched
            parameters: Frozen parameter snapshot

        Returns:
            The created JobExecution with a new ULID
        """
        pass

    @abstractmethod
    def update(self, execution: JobExecution) -> None:
        """Persist the current state of an execution."""
        pass

    @abstractmethod
    def get(self, execution_id: str) -> Optional[JobExecution]:
        pass

    @abstractmethod
    def delete(self, execution_id: str) -> None:
        """Remove an execution that was never admitted to run."""
        pass

    @abstractmethod
    def list_executions(self, job_name: Optional[str] = None) -> list[JobExecution]:
        """
        List executions, oldest first.

        Args:
            job_name: Only return executions of this job
        """
        pass


class InMemoryRunStore(RunStore):
    """
    In-memory implementation of RunStore.

    All data is lost when the instance is garbage collected.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._executions: dict[str, JobExecution] = {}

    def create(self, job_name: str, parameters: Mapping[str, str]) -> JobExecution:
        execution = JobExecution(id=generate_ulid(), job_name=job_name, parameters=parameters)
        with self._lock:
            self._executions[execution.id] = execution
        return execution

    def update(self, execution: JobExecution) -> None:
        with self._lock:
            self._executions[execution.id] = execution

    def get(self, execution_id: str) -> Optional[JobExecution]:
        with self._lock:
            return self._executions.get(execution_id)

    def list_executions(self, job_name: Optional[str] = None) -> list[JobExecution]:
        with self._lock:
            executions = list(self._executions.values())
        if job_name is not None:
            executions = [e for e in executions if e.job_name == job_name]
        return sorted(executions, key=lambda e: (e.started_at, e.id))

    def delete(self, execution_id: str) -> None:
        with self._lock:
            self._executions.pop(execution_id, None)

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        with self._lock:
            self._executions.clear()


class FileRunStore(InMemoryRunStore):
    """
    File-backed RunStore for development.

    Keeps live executions in memory and writes a JSON snapshot per
    execution on every update:
        store_dir/
            runs/
                {execution_id}.json
    """

    def __init__(self, store_dir: Path | str):
        super().__init__()
        self._store_dir = Path(store_dir)
        (self._store_dir / "runs").mkdir(parents=True, exist_ok=True)

    def _path(self, execution_id: str) -> Path:
        return self._store_dir / "runs" / f"{execution_id}.json"

    def _write(self, execution: JobExecution) -> None:
        # Readers only ever see complete snapshots
        fd, tmp_name = tempfile.mkstemp(dir=self._store_dir / "runs", prefix=f".{execution.id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(execution.to_dict(), f, indent=2)
            os.replace(tmp_name, self._path(execution.id))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def create(self, job_name: str, parameters: Mapping[str, str]) -> JobExecution:
        execution = super().create(job_name, parameters)
        self._write(execution)
        return execution

    def update(self, execution: JobExecution) -> None:
        super().update(execution)
        self._write(execution)

    def delete(self, execution_id: str) -> None:
        super().delete(execution_id)
        self._path(execution_id).unlink(missing_ok=True)

    def read_snapshot(self, execution_id: str) -> Optional[dict]:
        """Read the last JSON snapshot written for an execution."""
        run_path = self._path(execution_id)
        if not run_path.exists():
            return None
        with open(run_path) as f:
            return json.load(f)
