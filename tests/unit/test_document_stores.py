"""
Unit tests for the document store implementations.

The in-memory store is tested directly. The Snowflake store is tested
with a fake connection in place of the connector, so these tests check
the SQL sequencing and error translation, not Snowflake itself.
"""

import asyncio
import json
import threading
from contextlib import contextmanager

import pytest
from snowflake.connector.errors import ProgrammingError

from playbook.core.errors import StoreReadError, StoreWriteError
from playbook.core.store import BatchWrite, DocumentSnapshot, split_path
from playbook.infrastructure.snowflake import (
    PollingSubscription,
    SnowflakeConfig,
    SnowflakeConnectionError,
    SnowflakeDocumentStore,
)
from playbook.infrastructure.snowflake import documents as snowflake_documents


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

class TestPaths:
    def test_split_document_path(self):
        assert split_path("players/p1/logs/abc") == ("players/p1/logs", "abc")

    def test_rejects_collection_root(self):
        with pytest.raises(ValueError):
            split_path("players")


# ---------------------------------------------------------------------------
# In-memory Store
# ---------------------------------------------------------------------------

class TestInMemoryDocumentStore:
    """Tests for the dict-backed store."""

    def test_get_returns_a_copy(self, store):
        async def scenario():
            await store.set("players/p1", {"name": "Sam", "tags": ["rhp"]})
            doc = await store.get("players/p1")
            doc["tags"].append("changed")
            return await store.get("players/p1")

        assert asyncio.run(scenario()) == {"name": "Sam", "tags": ["rhp"]}

    def test_subscriber_gets_current_value_then_changes(self, store):
        async def scenario():
            async with store.subscribe("players/p1") as subscription:
                first = await subscription.__anext__()
                await store.set("players/p1", {"name": "Sam"})
                second = await subscription.__anext__()
            return first, second

        first, second = asyncio.run(scenario())

        assert first == DocumentSnapshot("players/p1", None)
        assert not first.exists
        assert second.data == {"name": "Sam"}

    def test_batch_is_all_or_nothing(self, store):
        async def scenario():
            with pytest.raises(StoreWriteError):
                await store.batch_write([
                    BatchWrite("players/p1/logs/a", {"n": 1}),
                    BatchWrite("players/p1/logs/b", "not an object"),
                ])
            return await store.list_documents("players/p1/logs")

        assert len(asyncio.run(scenario())) == 0

    def test_batch_notifies_collection_once(self, store):
        async def scenario():
            async with store.subscribe_collection("players/p1/logs") as subscription:
                await subscription.__anext__()
                await store.batch_write([
                    BatchWrite("players/p1/logs/a", {"n": 1}),
                    BatchWrite("players/p1/logs/b", {"n": 2}),
                ])
                snapshot = await subscription.__anext__()
            return snapshot

        snapshot = asyncio.run(scenario())

        assert [doc_id for doc_id, _ in snapshot.documents] == ["a", "b"]

    def test_errors_are_delivered_to_subscribers(self, store):
        async def scenario():
            subscription = store.subscribe("players/p1")
            await subscription.__anext__()
            store.fail_subscribers("players/p1", StoreReadError("lost connection"))
            with pytest.raises(StoreReadError):
                await subscription.__anext__()
            subscription.close()

        asyncio.run(scenario())

    def test_closed_subscription_stops_iteration(self, store):
        async def scenario():
            subscription = store.subscribe("players/p1")
            subscription.close()
            return [snapshot async for snapshot in subscription]

        # Already-queued snapshot is still delivered, then iteration ends
        assert len(asyncio.run(scenario())) == 1


# ---------------------------------------------------------------------------
# Snowflake Store
# ---------------------------------------------------------------------------

class FakeCursor:
    def __init__(self, connection):
        self.connection = connection
        self.closed = False

    def execute(self, sql, params=None):
        statement = " ".join(sql.split())
        self.connection.statements.append((statement, params))
        if self.connection.fail_on and self.connection.fail_on in statement:
            raise ProgrammingError(msg="statement failed")

    def fetchone(self):
        return self.connection.rows[0] if self.connection.rows else None

    def fetchall(self):
        return list(self.connection.rows)

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, rows=(), fail_on=None):
        self.rows = list(rows)
        self.fail_on = fail_on
        self.statements = []
        self.committed = False
        self.rolled_back = False
        self.threads = []

    def cursor(self):
        self.threads.append(threading.get_ident())
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True


@pytest.fixture
def fake_connection(monkeypatch):
    connection = FakeConnection()

    @contextmanager
    def connect(config):
        yield connection

    monkeypatch.setattr(snowflake_documents, "get_snowflake_connection", connect)
    return connection


@pytest.fixture
def snowflake_store() -> SnowflakeDocumentStore:
    return SnowflakeDocumentStore(SnowflakeConfig(account="acct", user="svc", password="pw"))


class TestSnowflakeDocumentStore:
    """Tests for SQL sequencing and error translation."""

    def test_rejects_unsafe_table_name(self):
        with pytest.raises(ValueError, match="Invalid table name"):
            SnowflakeDocumentStore(SnowflakeConfig(account="a", user="u"), table="docs; DROP")

    def test_get_parses_variant_json(self, snowflake_store, fake_connection):
        fake_connection.rows = [(json.dumps({"days": []}),)]

        doc = asyncio.run(snowflake_store.get("players/p1/programs/throwing"))

        assert doc == {"days": []}
        statement, params = fake_connection.statements[0]
        assert statement.startswith("SELECT data FROM DOCUMENTS")
        assert params == ("players/p1/programs/throwing",)

    def test_get_missing_document(self, snowflake_store, fake_connection):
        assert asyncio.run(snowflake_store.get("players/p1")) is None

    def test_list_orders_by_insertion(self, snowflake_store, fake_connection):
        fake_connection.rows = [("a", '{"n": 1}'), ("b", '{"n": 2}')]

        snapshot = asyncio.run(snowflake_store.list_documents("players/p1/logs"))

        assert snapshot.documents == (("a", {"n": 1}), ("b", {"n": 2}))
        assert "ORDER BY seq" in fake_connection.statements[0][0]

    def test_queries_run_off_the_event_loop_thread(self, snowflake_store, fake_connection):
        """A slow connect or query must not stall other requests."""
        async def scenario():
            loop_thread = threading.get_ident()
            await snowflake_store.get("players/p1")
            await snowflake_store.list_documents("players/p1/logs")
            await snowflake_store.batch_write([BatchWrite("players/p1/logs/a", {"n": 1})])
            return loop_thread

        loop_thread = asyncio.run(scenario())

        assert len(fake_connection.threads) == 3
        assert loop_thread not in fake_connection.threads

    def test_batch_runs_in_one_transaction(self, snowflake_store, fake_connection):
        asyncio.run(snowflake_store.batch_write([
            BatchWrite("players/p1/logs/a", {"n": 1}),
            BatchWrite("players/p1/logs/b", {"n": 2}),
        ]))

        statements = [s for s, _ in fake_connection.statements]
        assert statements[0] == "BEGIN"
        assert sum(s.startswith("MERGE INTO DOCUMENTS") for s in statements) == 2
        assert fake_connection.committed
        assert fake_connection.statements[1][1] == (
            "players/p1/logs/a", "players/p1/logs", "a", '{"n": 1}',
        )

    def test_failed_statement_rolls_back(self, snowflake_store, fake_connection):
        fake_connection.fail_on = "MERGE"

        with pytest.raises(StoreWriteError, match="statement failed"):
            asyncio.run(snowflake_store.set("players/p1", {"name": "Sam"}))

        assert fake_connection.rolled_back
        assert not fake_connection.committed

    def test_unserializable_data_fails_before_the_transaction(self, snowflake_store, fake_connection):
        with pytest.raises(StoreWriteError, match="not JSON serializable"):
            asyncio.run(snowflake_store.set("players/p1", {"when": object()}))

        assert fake_connection.statements == []

    def test_connection_failure_is_a_read_error(self, snowflake_store, monkeypatch):
        @contextmanager
        def connect(config):
            raise SnowflakeConnectionError("Database connection failed")
            yield

        monkeypatch.setattr(snowflake_documents, "get_snowflake_connection", connect)

        with pytest.raises(StoreReadError, match="Database connection failed"):
            asyncio.run(snowflake_store.get("players/p1"))

    def test_add_returns_generated_id(self, snowflake_store, fake_connection):
        doc_id = asyncio.run(snowflake_store.add("players/p1/logs", {"n": 1}))

        _, params = fake_connection.statements[1]
        assert params[0] == f"players/p1/logs/{doc_id}"
        assert params[2] == doc_id


class TestPollingSubscription:
    """Tests for change detection in polled subscriptions."""

    def test_emits_only_when_value_changes(self):
        values = iter(["a", "a", "b", "b", "b"])
        seen = []

        async def fetch():
            try:
                return next(values)
            except StopIteration:
                return "b"

        async def scenario():
            async with PollingSubscription(fetch, interval=0) as subscription:
                seen.append(await subscription.__anext__())
                seen.append(await subscription.__anext__())

        asyncio.run(scenario())

        assert seen == ["a", "b"]

    def test_read_failure_is_delivered_once(self):
        async def fetch():
            raise StoreReadError("warehouse suspended")

        async def scenario():
            subscription = PollingSubscription(fetch, interval=0)
            with pytest.raises(StoreReadError, match="warehouse suspended"):
                await subscription.__anext__()
            subscription.close()

        asyncio.run(scenario())
