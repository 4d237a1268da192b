"""
Snowflake persistence for program documents and log records.

Documents are stored as JSON rows keyed by path; see documents.py.
"""

from .client import SnowflakeConfig, SnowflakeConnectionError, get_snowflake_connection
from .documents import PollingSubscription, SnowflakeDocumentStore

__all__ = [
    "PollingSubscription",
    "SnowflakeConfig",
    "SnowflakeConnectionError",
    "SnowflakeDocumentStore",
    "get_snowflake_connection",
]
