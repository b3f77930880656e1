"""
FileTrigger - reports new files in a watched directory.

Each matching filename is reported at most once for the life of the
trigger. Files already present when watching starts are reported on the
first poll. Content changes, renames of known names and directories are
never reported.
"""

import fnmatch
import logging
from pathlib import Path

from batchwire.errors import TriggerPollError
from batchwire.schemas import TriggerEvent
from batchwire.triggers.base import TriggerSource

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = "*.txt"


class FileTrigger(TriggerSource):
    """
    Watches a directory for new files matching a glob.

    Usage:
        trigger = FileTrigger("dropfolder", pattern="*.txt")
        for event in trigger.poll():
            print(event.payload)
    """

    def __init__(
        self,
        directory: Path | str,
        pattern: str = DEFAULT_PATTERN,
        create_directory: bool = True,
        name: str = "file-trigger",
    ):
        """
        Initialize the trigger.

        Args:
            directory: Directory to watch
            pattern: Filename glob (matched against the name only)
            create_directory: Create the directory on first poll if missing
            name: Name used in logs
        """
        super().__init__(name)
        self.directory = Path(directory).expanduser().absolute()
        self.pattern = pattern
        self.create_directory = create_directory
        self._seen: set[str] = set()

    def fetch(self) -> list[TriggerEvent]:
        try:
            if not self.directory.exists() and self.create_directory:
                self.directory.mkdir(parents=True, exist_ok=True)
                logger.info(f"{self.name}: created watched directory {self.directory}")
            entries = sorted(self.directory.iterdir())
        except OSError as e:
            raise TriggerPollError(self.name, f"cannot list {self.directory}: {e}", cause=e) from e

        events = []
        for path in entries:
            if path.name in self._seen or not fnmatch.fnmatch(path.name, self.pattern):
                continue
            try:
                if not path.is_file():
                    continue
            except OSError:
                # Vanished between listing and stat; it may show up again
                continue
            self._seen.add(path.name)
            events.append(TriggerEvent.for_file(path))
        return events

    def seen(self) -> frozenset[str]:
        """Filenames reported so far."""
        return frozenset(self._seen)
