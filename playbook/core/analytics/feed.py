"""
Live analytics: re-derive the series on every log snapshot.
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator

from ..logs.stream import LogStream
from ..store import DocumentStore
from .series import Dashboard, Reports, derive_dashboard, derive_reports


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerAnalytics:
    """Everything the dashboard and reports views chart for one player."""
    dashboard: Dashboard
    reports: Reports
    record_count: int


async def watch_analytics(store: DocumentStore, player_id: str) -> AsyncIterator[PlayerAnalytics]:
    """
    Yield fresh analytics each time the player's logs change.

    The underlying subscription is closed when the consumer stops
    iterating (break, cancellation or aclose()).
    """
    stream = LogStream(store, player_id)
    try:
        async for records in stream:
            logger.debug(
                "Re-deriving analytics",
                extra={"player_id": player_id, "records": len(records)},
            )
            yield PlayerAnalytics(
                dashboard=derive_dashboard(records),
                reports=derive_reports(records),
                record_count=len(records),
            )
    finally:
        stream.close()
