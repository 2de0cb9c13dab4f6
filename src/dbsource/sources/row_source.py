"""Connections to the source database.

A row source hands out DB-API connections. The orchestrator and the
split reader only talk DB-API (cursor, execute, description, fetchmany),
so any driver that follows PEP 249 can sit behind it.

Usage:
    source = row_source_for(config)
    with source.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT 1")
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import ExitStack, contextmanager
from typing import Any, Protocol, runtime_checkable

import duckdb
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError
from sqlalchemy.pool import NullPool

from dbsource.core.config import get_settings
from dbsource.core.exceptions import ConfigurationError, DriverUnavailableError, SourceConnectionError
from dbsource.core.logging import get_logger
from dbsource.sources.config import DatabaseSourceConfig
from dbsource.sources.dialects import DUCKDB, Dialect, get_dialect
from dbsource.sources.errors import PHASE_CONNECT, ErrorClassifier, classified_errors

logger = get_logger(__name__)

MEMORY_DATABASE = ":memory:"

# Driver keyword for the connect timeout
_CONNECT_TIMEOUT_ARGS = {
    "mysql+pymysql": "connect_timeout",
    "mariadb+pymysql": "connect_timeout",
    "postgresql+psycopg": "connect_timeout",
    "oracle+oracledb": "tcp_connect_timeout",
}


@runtime_checkable
class RowSource(Protocol):
    """Hands out DB-API connections."""

    def connect(self) -> Any:
        """Context manager yielding an open DB-API connection.

        The connection is closed when the block exits.
        """
        ...

    def describe(self) -> str:
        """Connection target with credentials removed."""
        ...


class SQLAlchemyRowSource:
    """Row source backed by a SQLAlchemy engine.

    Only the engine's dialect and DBAPI loading are used; every connection
    is a fresh raw DB-API connection (NullPool), closed after use.
    """

    def __init__(
        self,
        url: URL,
        *,
        isolation_level: str | None = None,
        connect_args: dict[str, Any] | None = None,
    ):
        self.url = url
        self.isolation_level = isolation_level
        self.connect_args = connect_args or {}
        self._engine: Engine | None = None

    @classmethod
    def from_config(
        cls, config: DatabaseSourceConfig, dialect: Dialect | None = None
    ) -> SQLAlchemyRowSource:
        dialect = dialect or get_dialect(config.dialect)
        connect_args: dict[str, Any] = {}
        timeout_arg = _CONNECT_TIMEOUT_ARGS.get(dialect.drivername)
        if timeout_arg and timeout_arg not in config.connection_arguments:
            connect_args[timeout_arg] = get_settings().connect_timeout_seconds
        return cls(
            connection_url(config, dialect),
            isolation_level=config.isolation_level,
            connect_args=connect_args,
        )

    @property
    def engine(self) -> Engine:
        """Lazily created engine.

        Raises:
            DriverUnavailableError: If the SQLAlchemy dialect or the DB-API
                module cannot be loaded
        """
        if self._engine is None:
            kwargs: dict[str, Any] = {"poolclass": NullPool, "connect_args": self.connect_args}
            if self.isolation_level:
                kwargs["isolation_level"] = self.isolation_level
            try:
                self._engine = create_engine(self.url, **kwargs)
            except (NoSuchModuleError, ImportError) as e:
                raise DriverUnavailableError(
                    f"Unable to load driver '{self.url.drivername}': {e}"
                ) from e
        return self._engine

    @contextmanager
    def connect(self) -> Iterator[Any]:
        conn = self.engine.raw_connection()
        try:
            yield conn
        finally:
            conn.close()

    def describe(self) -> str:
        return self.url.render_as_string(hide_password=True)


class DuckDBRowSource:
    """Row source for an embedded DuckDB database.

    With ``connection`` set, each ``connect()`` opens a cursor on that
    connection, which shares its database. This is how an in-memory
    database is read more than once.
    """

    def __init__(
        self,
        database: str = MEMORY_DATABASE,
        *,
        read_only: bool = False,
        connection: duckdb.DuckDBPyConnection | None = None,
    ):
        self.database = database
        self.read_only = read_only
        self.connection = connection

    @contextmanager
    def connect(self) -> Iterator[Any]:
        if self.connection is not None:
            conn = self.connection.cursor()
        else:
            conn = duckdb.connect(self.database, read_only=self.read_only)
        try:
            yield conn
        finally:
            conn.close()

    def describe(self) -> str:
        return f"duckdb:///{self.database}"


def connection_url(config: DatabaseSourceConfig, dialect: Dialect) -> URL:
    """SQLAlchemy URL for a source.

    Raises:
        ConfigurationError: If ``connectionString`` is not a valid URL
    """
    if config.connection_string:
        try:
            url = make_url(config.connection_string)
        except ArgumentError as e:
            raise ConfigurationError(f"Invalid connection string: {e}") from e
        if config.connection_arguments:
            url = url.update_query_dict(config.connection_arguments)
        return url

    return URL.create(
        dialect.drivername,
        username=config.user,
        password=config.password.get_secret_value() if config.password else None,
        host=config.host,
        port=config.port or dialect.default_port,
        database=config.database,
        query=config.connection_arguments,
    )


def row_source_for(config: DatabaseSourceConfig) -> RowSource:
    """Default row source for a configuration."""
    dialect = get_dialect(config.dialect)
    if dialect is DUCKDB:
        return DuckDBRowSource(config.database or MEMORY_DATABASE)
    return SQLAlchemyRowSource.from_config(config, dialect)


@contextmanager
def open_cursor(
    row_source: RowSource,
    classifier: ErrorClassifier,
    phase: str,
    init_queries: Sequence[str] = (),
) -> Iterator[Any]:
    """Connect, run init queries in order, and yield a cursor.

    Connect failures are classified in the ``connect`` phase; everything
    after that in ``phase``. Cursor and connection are closed on exit.
    """
    with ExitStack() as stack:
        with classified_errors(classifier, PHASE_CONNECT, SourceConnectionError):
            conn = stack.enter_context(row_source.connect())
        with classified_errors(classifier, phase):
            cursor = conn.cursor()
            stack.callback(cursor.close)
            for query in init_queries:
                logger.debug("init_query", phase=phase, query=query)
                cursor.execute(query)
            yield cursor


def set_arraysize(cursor: Any, size: int) -> None:
    """Set the DB-API fetch size hint where the driver allows it."""
    try:
        cursor.arraysize = size
    except AttributeError:
        logger.debug("arraysize_not_settable", cursor=type(cursor).__name__)
