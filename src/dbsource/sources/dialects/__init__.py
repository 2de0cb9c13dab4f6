"""Supported database dialects.

Usage:
    from dbsource.sources.dialects import get_dialect

    dialect = get_dialect("postgres")
    dialect.error_classifier.classify(None, "23505")  # ErrorType.USER
"""

from dbsource.core.exceptions import ConfigurationError
from dbsource.sources.dialects.base import NOT_HANDLED, ColumnType, Dialect, to_field_schema
from dbsource.sources.dialects.embedded import DUCKDB
from dbsource.sources.dialects.mariadb import MARIADB
from dbsource.sources.dialects.mysql import CLOUDSQL_MYSQL, MYSQL
from dbsource.sources.dialects.oracle import ORACLE
from dbsource.sources.dialects.postgres import CLOUDSQL_POSTGRES, POSTGRES

DIALECTS: dict[str, Dialect] = {}
for _dialect in (MYSQL, CLOUDSQL_MYSQL, MARIADB, POSTGRES, CLOUDSQL_POSTGRES, ORACLE, DUCKDB):
    DIALECTS[_dialect.name] = _dialect
    for _alias in _dialect.aliases:
        DIALECTS[_alias] = _dialect


def get_dialect(name: str) -> Dialect:
    """Look up a dialect by name or alias (case-insensitive).

    Raises:
        ConfigurationError: If the dialect is not supported
    """
    dialect = DIALECTS.get(name.strip().lower())
    if dialect is None:
        supported = ", ".join(sorted({d.name for d in DIALECTS.values()}))
        raise ConfigurationError(f"Unsupported database dialect '{name}'. Supported: {supported}")
    return dialect


__all__ = [
    "CLOUDSQL_MYSQL",
    "CLOUDSQL_POSTGRES",
    "DIALECTS",
    "DUCKDB",
    "MARIADB",
    "MYSQL",
    "NOT_HANDLED",
    "ORACLE",
    "POSTGRES",
    "ColumnType",
    "Dialect",
    "get_dialect",
    "to_field_schema",
]
