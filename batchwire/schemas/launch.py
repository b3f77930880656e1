"""
JobLaunchRequest schema - the only channel from trigger data into a job.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class JobLaunchRequest:
    """
    A request to launch a registered job with string parameters.

    The parameters mapping is copied and wrapped read-only at construction,
    so a request can be handed between threads without further copying.

    Attributes:
        job_name: Name of a job in the JobRegistry
        parameters: Ordered string-keyed, string-valued parameters
    """
    job_name: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.job_name:
            raise ValueError("job_name is required")
        for key, value in self.parameters.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise TypeError(
                    f"Launch parameters must be str -> str, got {key!r}: {type(value).__name__}"
                )
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {"job_name": self.job_name, "parameters": dict(self.parameters)}
