"""
Performance logs: record types, the session recorder and log streams.
"""

from .models import (
    LiftLog,
    LogRecord,
    ThrowLog,
    WellnessLog,
    parse_log_record,
    parse_log_records,
)
from .recorder import SessionLogRecorder
from .stream import LogStream, list_logs

__all__ = [
    "LiftLog",
    "LogRecord",
    "LogStream",
    "SessionLogRecorder",
    "ThrowLog",
    "WellnessLog",
    "list_logs",
    "parse_log_record",
    "parse_log_records",
]
