"""
Base trigger source protocol.

A trigger source is polled on a fixed schedule and returns the events it
observed since the previous poll. Subclasses implement fetch(); poll()
adds the guarantees every source shares:
- polls of one source never overlap (a concurrent poll returns nothing)
- TriggerPollError is logged and swallowed so the next tick can retry
"""

import logging
import threading
from abc import ABC, abstractmethod

from batchwire.errors import TriggerPollError
from batchwire.schemas import TriggerEvent

logger = logging.getLogger(__name__)


class TriggerSource(ABC):
    """Abstract base class for polling trigger sources."""

    def __init__(self, name: str):
        self.name = name
        self._poll_lock = threading.Lock()

    @abstractmethod
    def fetch(self) -> list[TriggerEvent]:
        """
        Collect new events from the external source.

        Returns:
            Events observed since the previous fetch, possibly empty

        Raises:
            TriggerPollError: On transient I/O or connectivity failures
        """
        pass

    def poll(self) -> list[TriggerEvent]:
        """
        Poll the source once.

        Returns:
            New events; empty if the poll failed or another poll is in flight
        """
        if not self._poll_lock.acquire(blocking=False):
            logger.debug(f"{self.name}: previous poll still running, skipping tick")
            return []
        try:
            events = self.fetch()
        except TriggerPollError as e:
            logger.warning(f"{e}; retrying on next tick")
            return []
        finally:
            self._poll_lock.release()

        if events:
            logger.info(f"{self.name}: {len(events)} new event(s)")
        return events
