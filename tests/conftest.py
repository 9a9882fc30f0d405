"""
Pytest configuration and shared fixtures.

PyMySQL is replaced by an in-memory fake connection so the connection
manager can be exercised without a running MySQL server.
"""

import time

import pymysql
import pytest

from core.mysql_connector import ConnectionManager


class FakeCursor:
    """Minimal stand-in for pymysql.cursors.DictCursor."""

    def __init__(self, conn: "FakeConnection") -> None:
        self.conn = conn
        self.rowcount = 0
        self.lastrowid = 0
        self.closed = False
        self._rows: list = []

    def execute(self, sql, args=None):
        if args is not None:
            # Same formatting step PyMySQL performs client-side
            sql % tuple("?" for _ in args)
        self.conn.executed.append((sql, args))
        if self.conn.delay:
            time.sleep(self.conn.delay)

        if self.conn.fail_with is not None:
            error, self.conn.fail_with = self.conn.fail_with, None
            raise error

        statement = sql.lstrip().upper()
        self.lastrowid = 0
        self._rows = []
        if statement.startswith("INSERT"):
            self.conn.next_id += 1
            self.lastrowid = self.conn.next_id
            self.rowcount = 1
        elif statement.startswith("SELECT"):
            self._rows = list(self.conn.result_rows)
            self.rowcount = len(self._rows)
        else:
            self.rowcount = 0
        self.conn.last_id = self.lastrowid
        return self.rowcount

    def fetchall(self):
        rows, self._rows = self._rows, []
        return tuple(rows)

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def close(self):
        self.closed = True


class FakeConnection:
    """Records everything the manager asks of a PyMySQL connection."""

    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.open = True
        self.calls: list = []
        self.executed: list = []
        self.result_rows: list = []
        self.fail_with = None
        self.next_id = 0
        self.last_id = 0
        self.delay = 0.0
        self.cursors: list = []

    def cursor(self, cursorclass=None):
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def insert_id(self):
        return self.last_id

    def begin(self):
        self.calls.append("begin")

    def commit(self):
        self.calls.append("commit")

    def rollback(self):
        self.calls.append("rollback")

    def close(self):
        if not self.open:
            raise pymysql.err.Error("Already closed")
        self.open = False
        self.calls.append("close")


@pytest.fixture(autouse=True)
def reset_singleton():
    """Each test starts without a live ConnectionManager."""
    ConnectionManager._instance = None
    yield
    ConnectionManager._instance = None


@pytest.fixture
def connections(monkeypatch) -> list:
    """Patch pymysql.connect; returns every FakeConnection created."""
    created: list = []

    def fake_connect(**kwargs):
        conn = FakeConnection(**kwargs)
        created.append(conn)
        return conn

    monkeypatch.setattr(pymysql, "connect", fake_connect)
    return created


@pytest.fixture
def db(connections) -> ConnectionManager:
    """A connected manager backed by a FakeConnection."""
    return ConnectionManager.get_instance("localhost", "root", "secret", "demo", "utf8mb4")


@pytest.fixture
def conn(db, connections) -> FakeConnection:
    return connections[-1]
