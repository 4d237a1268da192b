"""
Persistent store interface.

The core never talks to a database directly. It receives a DocumentStore
at construction time and addresses documents by hierarchical path:

    players/{player_id}
    players/{player_id}/programs/{throwing|lifting}
    players/{player_id}/logs/{log_id}

A path with an even number of segments names a document; a path with an
odd number names a collection. Document data is a plain JSON-compatible
dict, which is also the record format on disk.

Using a Protocol here means the core doesn't know whether it's backed by
Snowflake or by the in-memory store used in tests and local development.
"""

from dataclasses import dataclass
from typing import Any, AsyncIterator, Generic, Optional, Protocol, TypeVar


T = TypeVar("T", covariant=True)

Document = dict[str, Any]


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

PLAYERS = "players"
PROGRAMS = "programs"
LOGS = "logs"


def player_path(player_id: str) -> str:
    return f"{PLAYERS}/{player_id}"


def program_path(player_id: str, discipline: str) -> str:
    return f"{player_path(player_id)}/{PROGRAMS}/{discipline}"


def logs_path(player_id: str) -> str:
    return f"{player_path(player_id)}/{LOGS}"


def log_path(player_id: str, log_id: str) -> str:
    return f"{logs_path(player_id)}/{log_id}"


def split_path(path: str) -> tuple[str, str]:
    """Split a document path into (collection path, document id)."""
    collection, _, doc_id = path.rpartition("/")
    if not collection or not doc_id:
        raise ValueError(f"Not a document path: {path!r}")
    return collection, doc_id


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time value of one document. data is None when absent."""
    path: str
    data: Optional[Document]

    @property
    def exists(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class CollectionSnapshot:
    """
    Point-in-time value of a collection.

    Documents are (id, data) pairs in store insertion order. Consumers
    that need a deterministic order for equal keys rely on this.
    """
    path: str
    documents: tuple[tuple[str, Document], ...]

    def __len__(self) -> int:
        return len(self.documents)


@dataclass(frozen=True)
class BatchWrite:
    """One whole-document write inside an atomic batch."""
    path: str
    data: Document


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

class Subscription(Protocol, Generic[T]):
    """
    A live stream of snapshots.

    The first snapshot is delivered as soon as the current value is
    known. The stream never ends on its own; the subscriber closes it.
    Snapshots are consumed one at a time, in order.
    """

    def __aiter__(self) -> AsyncIterator[T]: ...

    async def __anext__(self) -> T: ...

    def close(self) -> None: ...


class DocumentStore(Protocol):
    """Interface for the persistent document store."""

    async def get(self, path: str) -> Optional[Document]:
        """Read one document. Returns None if it doesn't exist."""
        ...

    async def list_documents(self, collection_path: str) -> CollectionSnapshot:
        """Read every document in a collection, in insertion order."""
        ...

    def subscribe(self, path: str) -> Subscription[DocumentSnapshot]:
        """Subscribe to changes of one document."""
        ...

    def subscribe_collection(self, collection_path: str) -> Subscription[CollectionSnapshot]:
        """Subscribe to changes of a collection."""
        ...

    async def set(self, path: str, data: Document) -> None:
        """Replace a whole document, creating it if absent."""
        ...

    async def add(self, collection_path: str, data: Document) -> str:
        """Create a document with a store-assigned id and return the id."""
        ...

    async def batch_write(self, writes: list[BatchWrite]) -> None:
        """Apply every write or none of them."""
        ...

    def new_id(self) -> str:
        """Allocate a fresh document id for use inside a batch."""
        ...
