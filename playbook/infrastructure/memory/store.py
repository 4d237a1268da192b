"""
In-memory document store.

Implements the DocumentStore protocol with plain dicts so the whole
application runs without a database: local development ("mock mode")
and every unit test use it.

Semantics match what the core relies on from the real store:
- set() replaces the whole document
- batch_write() applies every write or none (writes are staged on a copy
  and swapped in only when all of them succeeded)
- subscribers get the current value immediately, then one snapshot per
  committed change, in commit order

Not suitable for production: nothing is persisted across restarts.
"""

import asyncio
import copy
import logging
from typing import Generic, Optional, TypeVar, Union
from uuid import uuid4

from ...core.errors import StoreWriteError
from ...core.store import (
    BatchWrite,
    CollectionSnapshot,
    Document,
    DocumentSnapshot,
    split_path,
)


logger = logging.getLogger(__name__)

S = TypeVar("S")

_CLOSED = object()


class InMemorySubscription(Generic[S]):
    """Queue-backed subscription. Snapshots are consumed one at a time."""

    def __init__(self, on_close) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, item: Union[S, Exception]) -> None:
        if not self._closed:
            self._queue.put_nowait(item)

    def __aiter__(self) -> "InMemorySubscription[S]":
        return self

    async def __anext__(self) -> S:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._on_close(self)
        self._queue.put_nowait(_CLOSED)

    async def __aenter__(self) -> "InMemorySubscription[S]":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class InMemoryDocumentStore:
    """Dict-backed DocumentStore."""

    def __init__(self) -> None:
        # {document_path: data}, insertion ordered
        self._documents: dict[str, Document] = {}
        self._document_subscribers: dict[str, list[InMemorySubscription]] = {}
        self._collection_subscribers: dict[str, list[InMemorySubscription]] = {}

        logger.info("Initialized in-memory document store")

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def get(self, path: str) -> Optional[Document]:
        split_path(path)
        return copy.deepcopy(self._documents.get(path))

    async def list_documents(self, collection_path: str) -> CollectionSnapshot:
        return self._collection_snapshot(collection_path)

    def subscribe(self, path: str) -> InMemorySubscription[DocumentSnapshot]:
        split_path(path)
        subscription: InMemorySubscription[DocumentSnapshot] = InMemorySubscription(
            lambda sub: self._remove_subscriber(self._document_subscribers, path, sub)
        )
        self._document_subscribers.setdefault(path, []).append(subscription)
        subscription.push(self._document_snapshot(path))
        return subscription

    def subscribe_collection(self, collection_path: str) -> InMemorySubscription[CollectionSnapshot]:
        subscription: InMemorySubscription[CollectionSnapshot] = InMemorySubscription(
            lambda sub: self._remove_subscriber(self._collection_subscribers, collection_path, sub)
        )
        self._collection_subscribers.setdefault(collection_path, []).append(subscription)
        subscription.push(self._collection_snapshot(collection_path))
        return subscription

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    async def set(self, path: str, data: Document) -> None:
        self._commit([BatchWrite(path=path, data=data)])

    async def add(self, collection_path: str, data: Document) -> str:
        doc_id = self.new_id()
        self._commit([BatchWrite(path=f"{collection_path}/{doc_id}", data=data)])
        return doc_id

    async def batch_write(self, writes: list[BatchWrite]) -> None:
        if not writes:
            return
        self._commit(list(writes))

    def new_id(self) -> str:
        return uuid4().hex[:20]

    # -----------------------------------------------------------------------
    # Helpers for tests
    # -----------------------------------------------------------------------

    def fail_subscribers(self, path: str, error: Exception) -> None:
        """Deliver an error to every subscriber of a document or collection."""
        for subscription in list(self._document_subscribers.get(path, [])):
            subscription.push(error)
        for subscription in list(self._collection_subscribers.get(path, [])):
            subscription.push(error)

    def subscriber_count(self, path: str) -> int:
        return len(self._document_subscribers.get(path, [])) + len(
            self._collection_subscribers.get(path, [])
        )

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _commit(self, writes: list[BatchWrite]) -> None:
        staged = dict(self._documents)
        for write in writes:
            self._apply(staged, write)
        self._documents = staged

        logger.debug("Committed writes", extra={"paths": [w.path for w in writes]})
        self._notify([w.path for w in writes])

    def _apply(self, documents: dict[str, Document], write: BatchWrite) -> None:
        """Apply one write to a staged copy. Subclasses may raise StoreWriteError."""
        split_path(write.path)
        if not isinstance(write.data, dict):
            raise StoreWriteError(f"Document data must be an object: {write.path}")
        documents[write.path] = copy.deepcopy(write.data)

    def _notify(self, paths: list[str]) -> None:
        collections = []
        for path in dict.fromkeys(paths):
            for subscription in list(self._document_subscribers.get(path, [])):
                subscription.push(self._document_snapshot(path))
            collection, _ = split_path(path)
            if collection not in collections:
                collections.append(collection)

        for collection in collections:
            for subscription in list(self._collection_subscribers.get(collection, [])):
                subscription.push(self._collection_snapshot(collection))

    def _document_snapshot(self, path: str) -> DocumentSnapshot:
        return DocumentSnapshot(path=path, data=copy.deepcopy(self._documents.get(path)))

    def _collection_snapshot(self, collection_path: str) -> CollectionSnapshot:
        documents = []
        for path, data in self._documents.items():
            collection, doc_id = split_path(path)
            if collection == collection_path:
                documents.append((doc_id, copy.deepcopy(data)))
        return CollectionSnapshot(path=collection_path, documents=tuple(documents))

    @staticmethod
    def _remove_subscriber(
        registry: dict[str, list[InMemorySubscription]],
        key: str,
        subscription: InMemorySubscription,
    ) -> None:
        subscribers = registry.get(key, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            registry.pop(key, None)
