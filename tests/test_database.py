"""PostgresStore tests against a fake connection pool."""

import threading
from contextlib import ExitStack
from datetime import datetime, timezone

import pytest
from psycopg2.extensions import TransactionRollbackError
from psycopg2.pool import PoolError

from moderation_core.lib.config import Settings
from moderation_core.lib.database import PostgresStore, _row_to_content, _row_to_event
from moderation_core.lib.errors import ContentNotFoundError, StoreConflictError, ValidationError
from moderation_core.models.content import StatusAssignment
from moderation_core.models.enums import EventType, MediaType, Status
from moderation_core.services.wiring import build_services

CREATED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeCursor:
    def __init__(self, rows):
        self.rows = list(rows)
        self.executed = []
        self.closed = False

    def execute(self, query, params=None):
        self.executed.append((" ".join(query.split()), params))

    def fetchone(self):
        return self.rows.pop(0) if self.rows else None

    def fetchall(self):
        rows, self.rows = self.rows, []
        return rows

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, rows):
        self.cursor_obj = FakeCursor(rows)
        self.committed = False
        self.rolled_back = False

    def cursor(self, cursor_factory=None):
        return self.cursor_obj

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True


class FakePool:
    """Hands out one shared connection; raises like psycopg2 when exhausted."""

    def __init__(self, rows=(), maxconn=20):
        self.conn = FakeConnection(rows)
        self.maxconn = maxconn
        self.checked_out = 0
        self.returned = False
        self._lock = threading.Lock()

    def getconn(self):
        with self._lock:
            if self.checked_out >= self.maxconn:
                raise PoolError("connection pool exhausted")
            self.checked_out += 1
        return self.conn

    def putconn(self, conn):
        with self._lock:
            self.checked_out -= 1
        self.returned = True


def _store(rows=(), max_connections=20):
    store = PostgresStore(
        database_url="postgresql://u:p@db:5432/moderation", max_connections=max_connections
    )
    store.connection_pool = FakePool(rows, maxconn=max_connections)
    return store


def _content_row(**overrides):
    row = {
        "id": "c1", "text": "hello", "image": None, "video": None,
        "text_status": "PENDING", "image_status": "PENDING",
        "video_status": "PENDING", "final_status": "PENDING",
        "created_at": CREATED, "updated_at": CREATED,
    }
    row.update(overrides)
    return row


def test_cursor_commits_and_returns_connection():
    store = _store()
    with store.get_cursor() as cursor:
        cursor.execute("SELECT 1")

    pool = store.connection_pool
    assert pool.conn.committed
    assert pool.conn.cursor_obj.closed
    assert pool.returned


def test_serialization_failure_becomes_conflict():
    store = _store()
    with pytest.raises(StoreConflictError):
        with store.get_cursor():
            raise TransactionRollbackError("could not serialize access")

    pool = store.connection_pool
    assert pool.conn.rolled_back
    assert not pool.conn.committed
    assert pool.returned


def test_requests_wait_for_a_free_connection():
    store = _store(max_connections=2)
    entered = threading.Event()

    def extra_request():
        with store.get_cursor() as cursor:
            cursor.execute("SELECT 1")
            entered.set()

    with ExitStack() as held:
        for _ in range(2):
            held.enter_context(store.get_cursor())
        waiter = threading.Thread(target=extra_request)
        waiter.start()
        assert not entered.wait(0.1)

    waiter.join(timeout=5)
    assert entered.is_set()
    assert store.connection_pool.checked_out == 0


def test_content_transaction_locks_row_and_saves():
    store = _store([_content_row()])
    with store.content_transaction("c1") as unit:
        unit.content.text_status = Status.APPROVED
        unit.content.final_status = Status.APPROVED
        unit.save()

    executed = store.connection_pool.conn.cursor_obj.executed
    assert executed[0] == ("SELECT * FROM content WHERE id = %s FOR UPDATE", ("c1",))
    assert executed[1][0].startswith("UPDATE content SET")
    assert executed[1][1]["final_status"] == "APPROVED"
    assert store.connection_pool.conn.committed


def test_content_transaction_unknown_id_rolls_back():
    store = _store([])
    with pytest.raises(ContentNotFoundError):
        with store.content_transaction("missing"):
            pass
    assert store.connection_pool.conn.rolled_back


def test_row_mappers():
    content = _row_to_content(_content_row(image="https://cdn.example/a.png", image_status="FLAGGED"))
    assert content.has_facet(MediaType.IMG)
    assert content.image_status == Status.FLAGGED

    event = _row_to_event({
        "id": "e1", "content_id": "c1", "event_type": "UPDATED",
        "payload": {
            "oldStatuses": {"textStatus": "REJECTED", "imageStatus": "PENDING",
                            "videoStatus": "PENDING", "finalStatus": "REJECTED"},
            "newStatuses": {"textStatus": "REJECTED", "imageStatus": "PENDING",
                            "videoStatus": "PENDING", "finalStatus": "APPROVED"},
        },
        "created_at": CREATED,
    })
    assert event.event_type == EventType.UPDATED
    assert event.transition() == (Status.REJECTED, Status.APPROVED)


def test_facet_status_counts():
    store = _store([
        {"media_type": "TXT", "status": "APPROVED", "cnt": 3},
        {"media_type": "IMG", "status": "FLAGGED", "cnt": 1},
    ])
    counts = store.count_facet_statuses()
    assert counts[MediaType.TXT] == {Status.APPROVED: 3}
    assert counts[MediaType.IMG] == {Status.FLAGGED: 1}
    assert counts[MediaType.VIDEO] == {}


def _result_row(**overrides):
    row = {
        "id": "r-latest", "content_id": "c1", "media_type": "TXT", "status": "REJECTED",
        "risk_score": 0.91, "explanation": None, "created_at": CREATED,
    }
    row.update(overrides)
    return row


def test_recorder_inserts_then_takes_latest_result():
    store = _store([_content_row(), _result_row()])
    services = build_services(store=store, settings=Settings())

    result = services.recorder.record_result("c1", MediaType.TXT, Status.APPROVED, 0.05)

    executed = store.connection_pool.conn.cursor_obj.executed
    queries = [query for query, _ in executed]
    assert queries[0] == "SELECT * FROM content WHERE id = %s FOR UPDATE"
    assert queries[1].startswith("INSERT INTO moderation_results")
    assert executed[1][1]["id"] == result.id
    assert queries[2].endswith("ORDER BY created_at DESC, id DESC LIMIT 1")
    assert executed[2][1] == ("c1", "TXT")
    assert queries[3].startswith("UPDATE content SET")
    # The stored latest row decides the facet, not the result just handed in
    assert executed[3][1]["text_status"] == "REJECTED"
    assert executed[3][1]["final_status"] == "REJECTED"
    assert queries[4].startswith("INSERT INTO moderation_events")
    assert executed[4][1][3].adapted["finalStatus"] == "REJECTED"
    assert store.connection_pool.conn.committed
    assert not store.connection_pool.conn.rolled_back


def test_rejected_override_rolls_back():
    store = _store([_content_row()])
    services = build_services(store=store, settings=Settings())
    statuses = StatusAssignment(
        text_status=Status.PENDING, image_status=Status.APPROVED,
        video_status=Status.PENDING, final_status=Status.APPROVED,
    )

    with pytest.raises(ValidationError):
        services.content.override_statuses("c1", statuses, "image looks fine")

    conn = store.connection_pool.conn
    assert conn.rolled_back
    assert not conn.committed
    assert [query for query, _ in conn.cursor_obj.executed] == [
        "SELECT * FROM content WHERE id = %s FOR UPDATE"
    ]
    assert store.connection_pool.checked_out == 0
