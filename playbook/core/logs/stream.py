"""
Reading a player's log records, once or live.
"""

from ..store import CollectionSnapshot, DocumentStore, Subscription, logs_path
from .models import LogRecord, parse_log_records


async def list_logs(store: DocumentStore, player_id: str) -> list[LogRecord]:
    """Every readable record for a player, in store order."""
    snapshot = await store.list_documents(logs_path(player_id))
    return parse_log_records(list(snapshot.documents))


class LogStream:
    """Live stream of a player's parsed log records, one list per snapshot."""

    def __init__(self, store: DocumentStore, player_id: str) -> None:
        self._subscription: Subscription[CollectionSnapshot] = store.subscribe_collection(
            logs_path(player_id)
        )

    def __aiter__(self) -> "LogStream":
        return self

    async def __anext__(self) -> list[LogRecord]:
        snapshot = await self._subscription.__anext__()
        return parse_log_records(list(snapshot.documents))

    def close(self) -> None:
        self._subscription.close()

    async def __aenter__(self) -> "LogStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
