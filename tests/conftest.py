"""Shared pytest fixtures for all tests."""

from collections.abc import Callable
from contextlib import contextmanager
from typing import Any

import duckdb
import pytest

from dbsource.pipeline.host import CollectingSink, InMemoryLineage, ValidationCollector
from dbsource.sources.config import DatabaseSourceConfig


# === Fake DB-API driver ===


class DatabaseError(Exception):
    """Stand-in for a driver's DB-API DatabaseError."""


class PostgresDriverError(DatabaseError):
    """psycopg-style error carrying ``sqlstate``."""

    def __init__(self, message: str, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


class MySQLDriverError(DatabaseError):
    """PyMySQL-style error: ``args = (code, message)``."""


class FakeCursor:
    def __init__(self, connection: "FakeConnection"):
        self.connection = connection
        self.description: list[tuple] | None = None
        self.arraysize = 1
        self.closed = False
        self._rows: list[tuple] = []

    def execute(self, sql: str, parameters: Any = None) -> None:
        self.connection.source.executed.append((sql, parameters))
        response = self.connection.source.response_for(sql)
        if response.error is not None:
            raise response.error
        self.description = response.description
        self._rows = list(response.rows)

    def fetchone(self) -> tuple | None:
        return self._rows.pop(0) if self._rows else None

    def fetchmany(self, size: int | None = None) -> list[tuple]:
        size = size or self.arraysize
        batch, self._rows = self._rows[:size], self._rows[size:]
        self.connection.source.fetch_sizes.append(size)
        return batch

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    def __init__(self, source: "FakeRowSource"):
        self.source = source
        self.cursors: list[FakeCursor] = []
        self.closed = False

    def cursor(self) -> FakeCursor:
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        self.closed = True


class FakeResponse:
    def __init__(
        self,
        description: list[tuple] | None = None,
        rows: list[tuple] | None = None,
        error: BaseException | None = None,
    ):
        self.description = description
        self.rows = rows or []
        self.error = error


class FakeRowSource:
    """Row source answering queries from canned responses.

    Responses are matched by substring in registration order.
    """

    def __init__(self, connect_error: BaseException | None = None):
        self.connect_error = connect_error
        self.responses: list[tuple[str, FakeResponse]] = []
        self.connections: list[FakeConnection] = []
        self.executed: list[tuple[str, Any]] = []
        self.fetch_sizes: list[int] = []

    def on(
        self,
        fragment: str,
        description: list[tuple] | None = None,
        rows: list[tuple] | None = None,
        error: BaseException | None = None,
    ) -> "FakeRowSource":
        self.responses.append((fragment, FakeResponse(description, rows, error)))
        return self

    def response_for(self, sql: str) -> FakeResponse:
        for fragment, response in self.responses:
            if fragment in sql:
                return response
        return FakeResponse()

    @contextmanager
    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeConnection(self)
        self.connections.append(conn)
        try:
            yield conn
        finally:
            conn.close()

    def describe(self) -> str:
        return "fake://reader@db/shop"

    @property
    def statements(self) -> list[str]:
        return [sql for sql, _ in self.executed]


def column(name: str, type_code: Any, precision: int | None = None, scale: int | None = None):
    """A DB-API ``cursor.description`` entry."""
    return (name, type_code, None, None, precision, scale, True)


# === Fixtures ===


@pytest.fixture
def fake_row_source() -> type[FakeRowSource]:
    """Factory for fake row sources."""
    return FakeRowSource


@pytest.fixture
def describe_column() -> Callable[..., tuple]:
    return column


@pytest.fixture
def postgres_error() -> type[PostgresDriverError]:
    return PostgresDriverError


@pytest.fixture
def mysql_error() -> type[MySQLDriverError]:
    return MySQLDriverError


@pytest.fixture
def make_config() -> Callable[..., DatabaseSourceConfig]:
    """Build a source config from host property names."""

    def _make(**properties: Any) -> DatabaseSourceConfig:
        properties.setdefault("dialect", "postgres")
        properties.setdefault("referenceName", "orders")
        return DatabaseSourceConfig.model_validate(properties)

    return _make


@pytest.fixture
def collector() -> ValidationCollector:
    return ValidationCollector()


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def lineage() -> InMemoryLineage:
    return InMemoryLineage()


@pytest.fixture
def duckdb_conn():
    """Create an in-memory DuckDB connection for testing."""
    conn = duckdb.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def orders_db(duckdb_conn):
    """In-memory DuckDB database with an orders table of 100 rows."""
    duckdb_conn.execute(
        """
        CREATE TABLE orders (
            id INTEGER,
            customer VARCHAR,
            amount DECIMAL(10, 2),
            created DATE
        )
        """
    )
    duckdb_conn.execute(
        """
        INSERT INTO orders
        SELECT
            i,
            'customer_' || (i % 7),
            CAST(i * 1.5 AS DECIMAL(10, 2)),
            DATE '2024-01-01' + CAST(i AS INTEGER)
        FROM range(100) t(i)
        """
    )
    return duckdb_conn
