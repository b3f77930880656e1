"""
Request builders - TriggerEvent -> JobLaunchRequest.

Builders are pure: no I/O and no state beyond the job name and parameter
name they are bound to at construction. One builder per trigger variant.
"""

from datetime import date
from pathlib import Path

from batchwire.errors import MalformedEventError
from batchwire.schemas import ExternalRecord, JobLaunchRequest, SourceKind, TriggerEvent

FILE_PATH_PARAMETER = "file_path"
END_DATE_PARAMETER = "end_date"


def format_end_date(value: date) -> str:
    """Format a record end date as an ISO-8601 string."""
    # datetime is a date subclass
    if isinstance(value, date):
        return value.isoformat()
    raise MalformedEventError(f"end_date must be a date or datetime, got {type(value).__name__}")


class FileRequestBuilder:
    """Builds a launch request carrying the absolute path of a new file."""

    def __init__(self, job_name: str = "exampleJob", parameter_name: str = FILE_PATH_PARAMETER):
        self.job_name = job_name
        self.parameter_name = parameter_name

    def build(self, event: TriggerEvent) -> JobLaunchRequest:
        """
        Build the launch request for a file event.

        Raises:
            MalformedEventError: If the event is not a FILE event
        """
        if event.source_kind != SourceKind.FILE or not isinstance(event.payload, Path):
            raise MalformedEventError(f"FileRequestBuilder cannot build from {event.source_kind.value} event")
        return JobLaunchRequest(
            job_name=self.job_name,
            parameters={self.parameter_name: str(event.payload)},
        )


class RecordRequestBuilder:
    """Builds a launch request carrying the end date of a claimed record."""

    def __init__(self, job_name: str = "dummyJob", parameter_name: str = END_DATE_PARAMETER):
        self.job_name = job_name
        self.parameter_name = parameter_name

    def build(self, event: TriggerEvent) -> JobLaunchRequest:
        """
        Build the launch request for a record event.

        Raises:
            MalformedEventError: If the event is not a RECORD event
        """
        if event.source_kind != SourceKind.RECORD or not isinstance(event.payload, ExternalRecord):
            raise MalformedEventError(f"RecordRequestBuilder cannot build from {event.source_kind.value} event")
        return JobLaunchRequest(
            job_name=self.job_name,
            parameters={self.parameter_name: format_end_date(event.payload.end_date)},
        )
