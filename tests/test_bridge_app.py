"""End-to-end: facades -> HttpxFetch -> Starlette bridge app -> local live bindings."""
import asyncio
import threading
import time

import pytest
from starlette.requests import Request

from conftest import ORIGIN, bridge
from wrangler_bridge.bindings.database import DatabaseBinding
from wrangler_bridge.bindings.kinds import NAME_HEADER, BindingKind
from wrangler_bridge.bindings.queue import QueueBinding
from wrangler_bridge.core.errors import FailureKind, RemoteOperationError, RoutingError
from wrangler_bridge.remote.app import LiveBinding, _resolve_binding
from wrangler_bridge.remote.local import InMemoryQueue, SqliteDatabase
from wrangler_bridge.rpc.channel import BindingConfig, DispatchChannel


@pytest.fixture
def sqlite_db():
    db = SqliteDatabase()
    yield db
    db.close()


@pytest.fixture
def live_bindings(sqlite_db):
    return [
        LiveBinding("DB", BindingKind.DATABASE, sqlite_db),
        LiveBinding("JOBS", BindingKind.QUEUE, InMemoryQueue()),
    ]


def test_database_roundtrip_through_bridge(live_bindings):
    async def scenario():
        async with bridge(live_bindings) as fetch:
            db = DatabaseBinding(ORIGIN, "DB", fetch)
            created = await db.exec(
                "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, avatar BLOB);\n"
                "CREATE INDEX users_name ON users (name);"
            )
            insert = db.prepare("INSERT INTO users (id, name, avatar) VALUES (?, ?, ?)")
            batch = await db.batch([
                insert.bind(1, "alpha", b"\x89PNG\x00"),
                insert.bind(2, "beta", None),
                db.prepare("SELECT COUNT(*) AS n FROM users"),
            ])
            rows = await db.prepare("SELECT * FROM users ORDER BY id").all()
            name = await db.prepare("SELECT name FROM users WHERE id = ?").bind(2).first("name")
            missing = await db.prepare("SELECT * FROM users WHERE id = ?").bind(99).first()
            raw = await db.prepare("SELECT id, name FROM users ORDER BY id").raw()
            run = await db.prepare("UPDATE users SET name = ? WHERE id = ?").bind("gamma", 2).run()
            return created, batch, rows, name, missing, raw, run

    created, batch, rows, name, missing, raw, run = asyncio.run(scenario())

    assert created["count"] == 2
    assert [r["success"] for r in batch] == [True, True, True]
    assert batch[2]["results"] == [{"n": 2}]
    assert rows["results"] == [
        {"id": 1, "name": "alpha", "avatar": b"\x89PNG\x00"},
        {"id": 2, "name": "beta", "avatar": None},
    ]
    assert name == "beta"
    assert missing is None
    assert raw == [[1, "alpha"], [2, "beta"]]
    assert run["meta"]["changes"] == 1


def test_dump_returns_database_file(live_bindings):
    async def scenario():
        async with bridge(live_bindings) as fetch:
            db = DatabaseBinding(ORIGIN, "DB", fetch)
            await db.exec("CREATE TABLE t (x);")
            return await db.dump()

    data = asyncio.run(scenario())

    assert data.startswith(b"SQLite format 3\x00")


def test_failed_batch_is_all_or_nothing(live_bindings):
    async def scenario():
        async with bridge(live_bindings) as fetch:
            db = DatabaseBinding(ORIGIN, "DB", fetch)
            await db.exec("CREATE TABLE t (x INTEGER UNIQUE);")
            insert = db.prepare("INSERT INTO t VALUES (?)")
            with pytest.raises(RemoteOperationError, match="UNIQUE constraint failed"):
                await db.batch([insert.bind(1), insert.bind(1)])
            return await db.prepare("SELECT COUNT(*) AS n FROM t").first("n")

    assert asyncio.run(scenario()) == 0


def test_queue_messages_reach_live_queue(live_bindings):
    queue_binding = live_bindings[1].binding

    async def scenario():
        async with bridge(live_bindings) as fetch:
            queue = QueueBinding(ORIGIN, "JOBS", fetch)
            await queue.send({"id": 1}, {"contentType": "json"})
            await queue.send_batch([{"body": "a"}, {"body": "b", "delaySeconds": 30}])

    asyncio.run(scenario())

    assert [(m.body, m.content_type, m.delay_seconds) for m in queue_binding.messages] == [
        ({"id": 1}, "json", None),
        ("a", None, None),
        ("b", None, 30),
    ]


def test_unsupported_operation_surfaces_as_remote_error(live_bindings):
    async def scenario():
        async with bridge(live_bindings) as fetch:
            channel = DispatchChannel(BindingConfig(ORIGIN, BindingKind.DATABASE, "DB"), fetch)
            await channel.dispatch("Database.drop", [])

    with pytest.raises(RemoteOperationError) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.message == "Database.drop() is not supported."
    assert exc_info.value.status_code == 500


def test_unknown_binding_name_is_404(live_bindings):
    async def scenario():
        async with bridge(live_bindings) as fetch:
            await DatabaseBinding(ORIGIN, "NOPE", fetch).exec("SELECT 1")

    with pytest.raises(RemoteOperationError) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Binding 'NOPE' is not available"


def test_kind_header_must_match_declared_kind(live_bindings):
    async def scenario():
        async with bridge(live_bindings) as fetch:
            await QueueBinding(ORIGIN, "DB", fetch).send("oops")

    with pytest.raises(RemoteOperationError, match="is a D1 binding, not QUEUE") as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.status_code == 400


def test_sql_errors_come_back_as_text(live_bindings):
    async def scenario():
        async with bridge(live_bindings) as fetch:
            await DatabaseBinding(ORIGIN, "DB", fetch).prepare("SELECT * FROM missing").all()

    with pytest.raises(RemoteOperationError, match="no such table: missing"):
        asyncio.run(scenario())


def test_several_statements_on_one_line_reach_sqlite(live_bindings):
    async def scenario():
        async with bridge(live_bindings) as fetch:
            db = DatabaseBinding(ORIGIN, "DB", fetch)
            created = await db.exec("CREATE TABLE a (x); CREATE TABLE b (y); INSERT INTO a VALUES (1);")
            rows = await db.prepare("SELECT x FROM a").raw()
            return created, rows

    created, rows = asyncio.run(scenario())

    assert created["count"] == 3
    assert rows == [[1]]


class SlowDatabase:
    """Blocking live binding: every exec holds its thread for a while."""

    def __init__(self, delay):
        self.delay = delay
        self.threads = set()

    def prepare(self, query):
        raise NotImplementedError

    def dump(self):
        return b""

    def exec(self, query):
        self.threads.add(threading.get_ident())
        time.sleep(self.delay)
        return {"count": 1, "duration": self.delay * 1000}

    def batch(self, statements):
        return []


def test_blocking_bindings_do_not_serialize_requests():
    slow = SlowDatabase(delay=0.3)

    async def scenario():
        async with bridge([LiveBinding("DB", BindingKind.DATABASE, slow)]) as fetch:
            db = DatabaseBinding(ORIGIN, "DB", fetch)
            started = time.perf_counter()
            results = await asyncio.gather(*(db.exec(f"SELECT {i}") for i in range(4)))
            return results, time.perf_counter() - started

    results, elapsed = asyncio.run(scenario())

    assert [r["count"] for r in results] == [1, 1, 1, 1]
    assert elapsed < 0.9
    assert threading.get_ident() not in slow.threads


def test_missing_routing_headers_are_a_routing_failure(live_bindings):
    request = Request({"type": "http", "method": "POST", "headers": [(NAME_HEADER.lower().encode(), b"DB")]})

    with pytest.raises(RoutingError, match="headers are required") as exc_info:
        _resolve_binding(request, {b.name: b for b in live_bindings})

    assert exc_info.value.failure.kind is FailureKind.ROUTING


def test_missing_routing_headers_are_400(live_bindings):
    async def scenario():
        async with bridge(live_bindings) as fetch:
            channel = DispatchChannel(BindingConfig(ORIGIN, BindingKind.DATABASE, ""), fetch)
            await channel.dispatch("Database.dump", [])

    with pytest.raises(RemoteOperationError, match="headers are required") as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.status_code == 400
