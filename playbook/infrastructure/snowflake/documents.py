"""
Snowflake-backed document store.

Implements the DocumentStore protocol on top of a single table. Each
document is one row keyed by its full path, with the document body in a
VARIANT column:

    path             players/p1/programs/throwing
    collection_path  players/p1/programs
    doc_id           throwing
    data             {"days": [...]}
    version          bumped on every replace
    seq              insertion order within the table

A batch write runs inside one Snowflake transaction, which gives the
all-or-nothing guarantee the lifting logger relies on. Snowflake has no
change feed we can push to clients, so subscriptions poll: the current
value is read immediately, then re-read every poll interval and emitted
only when it changed.

Each operation opens its own connection. Human-scale traffic doesn't
justify pooling, and it keeps long-lived subscriptions independent of
request lifecycles.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar
from uuid import uuid4

from snowflake.connector.errors import Error as SnowflakeError

from ...core.errors import StoreReadError, StoreWriteError
from ...core.store import (
    BatchWrite,
    CollectionSnapshot,
    Document,
    DocumentSnapshot,
    split_path,
)
from .client import SnowflakeConfig, SnowflakeConnectionError, get_snowflake_connection


logger = logging.getLogger(__name__)

S = TypeVar("S")

_CLOSED = object()
_UNSET = object()

DEFAULT_TABLE = "DOCUMENTS"
DEFAULT_POLL_INTERVAL_SECONDS = 2.0


class PollingSubscription(Generic[S]):
    """
    Subscription that re-reads a value on an interval.

    Polling starts on first iteration (it needs a running event loop).
    A read failure is delivered once as StoreReadError and polling stops;
    the subscriber re-subscribes to re-establish the stream.
    """

    def __init__(self, fetch: Callable[[], Awaitable[S]], interval: float) -> None:
        self._fetch = fetch
        self._interval = interval
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    def __aiter__(self) -> "PollingSubscription[S]":
        return self

    async def __anext__(self) -> S:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        if self._task is None and not self._closed:
            self._task = asyncio.get_running_loop().create_task(self._poll())
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
        if self._task is not None:
            self._task.cancel()
        self._queue.put_nowait(_CLOSED)

    async def __aenter__(self) -> "PollingSubscription[S]":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    async def _poll(self) -> None:
        last = _UNSET
        while not self._closed:
            try:
                snapshot = await self._fetch()
            except StoreReadError as e:
                logger.warning("Subscription poll failed", extra={"error": str(e)})
                self._queue.put_nowait(e)
                return
            if snapshot != last:
                self._queue.put_nowait(snapshot)
                last = snapshot
            await asyncio.sleep(self._interval)


class SnowflakeDocumentStore:
    """
    DocumentStore backed by a Snowflake table.

    The Snowflake connector is synchronous, so every async method runs
    its connect and query in a worker thread. Open subscriptions poll
    without stalling request handling on the event loop.
    """

    def __init__(
        self,
        config: SnowflakeConfig,
        table: str = DEFAULT_TABLE,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        if not table.replace("_", "").isalnum():
            raise ValueError(f"Invalid table name: {table!r}")
        self._config = config
        self._table = table
        self._poll_interval = poll_interval

    # -----------------------------------------------------------------------
    # Schema
    # -----------------------------------------------------------------------

    def ensure_schema(self) -> None:
        """Create the documents table if it doesn't exist."""
        def work(conn) -> None:
            cursor = conn.cursor()
            try:
                cursor.execute(f"""
                    CREATE TABLE IF NOT EXISTS {self._table} (
                        seq NUMBER AUTOINCREMENT,
                        path STRING NOT NULL PRIMARY KEY,
                        collection_path STRING NOT NULL,
                        doc_id STRING NOT NULL,
                        data VARIANT NOT NULL,
                        version NUMBER NOT NULL DEFAULT 1,
                        created_at TIMESTAMP_NTZ DEFAULT CURRENT_TIMESTAMP(),
                        updated_at TIMESTAMP_NTZ DEFAULT CURRENT_TIMESTAMP()
                    )
                """)
            finally:
                cursor.close()

        self._run(work, StoreWriteError)
        logger.info("Ensured documents table", extra={"table": self._table})

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def get(self, path: str) -> Optional[Document]:
        split_path(path)
        return await self._run_in_thread(
            lambda conn: self._select_document(conn, path), StoreReadError
        )

    async def list_documents(self, collection_path: str) -> CollectionSnapshot:
        return await self._run_in_thread(
            lambda conn: self._select_collection(conn, collection_path), StoreReadError
        )

    def subscribe(self, path: str) -> PollingSubscription[DocumentSnapshot]:
        split_path(path)

        async def fetch() -> DocumentSnapshot:
            return DocumentSnapshot(path=path, data=await self.get(path))

        return PollingSubscription(fetch, self._poll_interval)

    def subscribe_collection(self, collection_path: str) -> PollingSubscription[CollectionSnapshot]:
        return PollingSubscription(
            lambda: self.list_documents(collection_path), self._poll_interval
        )

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    async def set(self, path: str, data: Document) -> None:
        await self.batch_write([BatchWrite(path=path, data=data)])

    async def add(self, collection_path: str, data: Document) -> str:
        doc_id = self.new_id()
        await self.batch_write([BatchWrite(path=f"{collection_path}/{doc_id}", data=data)])
        return doc_id

    async def batch_write(self, writes: list[BatchWrite]) -> None:
        if not writes:
            return

        # Serialize everything before opening the transaction
        rows = [self._row_params(write) for write in writes]

        def work(conn) -> None:
            cursor = conn.cursor()
            try:
                cursor.execute("BEGIN")
                for params in rows:
                    self._upsert(cursor, params)
                conn.commit()
            except SnowflakeError:
                conn.rollback()
                raise
            finally:
                cursor.close()

        await self._run_in_thread(work, StoreWriteError)
        logger.debug(
            "Committed document batch",
            extra={"table": self._table, "paths": [w.path for w in writes]},
        )

    def new_id(self) -> str:
        return uuid4().hex[:20]

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    async def _run_in_thread(self, work: Callable, error_cls: type):
        """Run blocking connector work off the event loop."""
        return await asyncio.to_thread(self._run, work, error_cls)

    def _run(self, work: Callable, error_cls: type):
        """Run work(conn) and translate database failures into store errors."""
        try:
            with get_snowflake_connection(self._config) as conn:
                return work(conn)
        except (SnowflakeConnectionError, SnowflakeError) as e:
            logger.error(
                "Snowflake document store operation failed",
                extra={"table": self._table, "error": str(e)},
            )
            raise error_cls(str(e)) from e

    def _select_document(self, conn, path: str) -> Optional[Document]:
        cursor = conn.cursor()
        try:
            cursor.execute(
                f"SELECT data FROM {self._table} WHERE path = %s",
                (path,),
            )
            row = cursor.fetchone()
        finally:
            cursor.close()
        if not row:
            return None
        return self._parse_variant(row[0])

    def _select_collection(self, conn, collection_path: str) -> CollectionSnapshot:
        cursor = conn.cursor()
        try:
            cursor.execute(
                f"""
                SELECT doc_id, data
                FROM {self._table}
                WHERE collection_path = %s
                ORDER BY seq
                """,
                (collection_path,),
            )
            rows = cursor.fetchall()
        finally:
            cursor.close()
        return CollectionSnapshot(
            path=collection_path,
            documents=tuple((doc_id, self._parse_variant(data)) for doc_id, data in rows),
        )

    @staticmethod
    def _row_params(write: BatchWrite) -> tuple[str, str, str, str]:
        collection_path, doc_id = split_path(write.path)
        try:
            payload = json.dumps(write.data)
        except (TypeError, ValueError) as e:
            raise StoreWriteError(f"Document is not JSON serializable: {write.path}") from e
        return write.path, collection_path, doc_id, payload

    def _upsert(self, cursor, params: tuple[str, str, str, str]) -> None:
        cursor.execute(f"""
            MERGE INTO {self._table} AS target
            USING (
                SELECT %s AS path, %s AS collection_path, %s AS doc_id, PARSE_JSON(%s) AS data
            ) AS source
            ON target.path = source.path
            WHEN MATCHED THEN UPDATE SET
                data = source.data,
                version = target.version + 1,
                updated_at = CURRENT_TIMESTAMP()
            WHEN NOT MATCHED THEN INSERT (
                path, collection_path, doc_id, data, version
            ) VALUES (
                source.path, source.collection_path, source.doc_id, source.data, 1
            )
        """, params)

    @staticmethod
    def _parse_variant(value) -> Document:
        # The connector returns VARIANT columns as JSON text
        if isinstance(value, str):
            return json.loads(value)
        return value
