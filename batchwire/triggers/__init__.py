"""
Trigger sources - polled producers of TriggerEvents.

- FileTrigger: new files in a watched directory
- RecordTrigger: READY rows in an external table, claimed atomically
"""

from .base import TriggerSource
from .file_trigger import FileTrigger
from .record_trigger import RecordTrigger, record_table, parse_end_date

__all__ = [
    "TriggerSource",
    "FileTrigger",
    "RecordTrigger",
    "record_table",
    "parse_end_date",
]
