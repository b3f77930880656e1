"""
Item readers and writers for chunk steps.

A reader returns one item per read() call and None once input is exhausted.
A writer receives a whole chunk per write() call; one write is one commit.
Both are opened once at step start and closed when the step ends, whether
it succeeds or fails.
"""

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Optional, TextIO

import click


class ItemReader(ABC):
    """Abstract base class for chunk step readers."""

    def open(self) -> None:
        """Acquire resources before the first read."""
        pass

    @abstractmethod
    def read(self) -> Optional[Any]:
        """
        Read the next item.

        Returns:
            The next item, or None at end of input
        """
        pass

    def close(self) -> None:
        """Release resources. Called once, also after failures."""
        pass


class ItemWriter(ABC):
    """Abstract base class for chunk step writers."""

    def open(self) -> None:
        pass

    @abstractmethod
    def write(self, items: list[Any]) -> None:
        """
        Write one chunk.

        Args:
            items: The chunk, never empty

        Raises:
            Exception: If the chunk cannot be written
        """
        pass

    def close(self) -> None:
        pass


class ListItemReader(ItemReader):
    """Reads items from an in-memory iterable."""

    def __init__(self, items: Iterable[Any]):
        self._items = iter(items)

    def read(self) -> Optional[Any]:
        return next(self._items, None)


class LineFileReader(ItemReader):
    """
    Reads a text file line by line with a pass-through line mapping.

    Each item is the line without its trailing newline. The file is
    resolved at construction and opened lazily in open().
    """

    def __init__(self, path: Path | str, encoding: str = "utf-8"):
        self.path = Path(path)
        self.encoding = encoding
        self._handle: Optional[TextIO] = None

    def open(self) -> None:
        if not self.path.is_file():
            raise FileNotFoundError(f"Input resource not found: {self.path}")
        self._handle = open(self.path, "r", encoding=self.encoding)

    def read(self) -> Optional[str]:
        if self._handle is None:
            raise RuntimeError(f"Reader for {self.path} is not open")
        line = self._handle.readline()
        if line == "":
            return None
        return line.rstrip("\r\n")

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


class ListItemWriter(ItemWriter):
    """Collects written chunks in memory. Safe to share across threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self.chunks: list[list[Any]] = []

    def write(self, items: list[Any]) -> None:
        with self._lock:
            self.chunks.append(list(items))

    @property
    def items(self) -> list[Any]:
        with self._lock:
            return [item for chunk in self.chunks for item in chunk]


class EchoItemWriter(ItemWriter):
    """Writes each item on its own line to stdout."""

    def write(self, items: list[Any]) -> None:
        for item in items:
            click.echo(item)
