"""
Trigger event schemas.

A TriggerEvent is what a trigger source emits for one observed occurrence:
a new file in the watched directory, or one external record that reached
the READY state. Events are immutable once produced.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Union


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class SourceKind(str, Enum):
    """Kind of trigger source that produced an event."""
    FILE = "file"
    RECORD = "record"


class RecordStatus(str, Enum):
    """Lifecycle of a row in the external record store."""
    PENDING = "PENDING"
    READY = "READY"
    CONSUMED = "CONSUMED"


@dataclass(frozen=True)
class ExternalRecord:
    """
    Snapshot of a row owned by the external record store.

    Attributes:
        id: Primary key of the row
        end_date: When the external batch finished
        status: Row status at the time the snapshot was taken
    """
    id: Any
    end_date: datetime
    status: RecordStatus = RecordStatus.CONSUMED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "id": self.id,
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
        }


Payload = Union[Path, ExternalRecord]


@dataclass(frozen=True)
class TriggerEvent:
    """
    A notification that some external condition occurred.

    Attributes:
        source_kind: FILE or RECORD
        payload: Absolute file path (FILE) or record snapshot (RECORD)
        observed_at: When the trigger source observed the occurrence
    """
    source_kind: SourceKind
    payload: Payload
    observed_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if self.source_kind == SourceKind.FILE and not isinstance(self.payload, Path):
            raise TypeError("FILE events must carry a pathlib.Path payload")
        if self.source_kind == SourceKind.RECORD and not isinstance(self.payload, ExternalRecord):
            raise TypeError("RECORD events must carry an ExternalRecord payload")

    @classmethod
    def for_file(cls, path: Path) -> "TriggerEvent":
        return cls(source_kind=SourceKind.FILE, payload=Path(path))

    @classmethod
    def for_record(cls, record: ExternalRecord) -> "TriggerEvent":
        return cls(source_kind=SourceKind.RECORD, payload=record)
