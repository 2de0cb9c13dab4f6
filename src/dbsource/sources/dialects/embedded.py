"""Embedded DuckDB, for local runs against files or in-memory data.

DuckDB reports logical type names (``INTEGER``, ``DECIMAL(18,3)``) as the
description type code.
"""

from __future__ import annotations

from typing import Any

from dbsource.core.models.base import SqlType
from dbsource.sources.dialects.base import Dialect
from dbsource.sources.errors import ErrorClassifier

DUCKDB_TYPE_CODES: dict[str, tuple[SqlType, str]] = {
    "BOOLEAN": (SqlType.BOOLEAN, "BOOLEAN"),
    "BOOL": (SqlType.BOOLEAN, "BOOLEAN"),
    "TINYINT": (SqlType.TINYINT, "TINYINT"),
    "SMALLINT": (SqlType.SMALLINT, "SMALLINT"),
    "INTEGER": (SqlType.INTEGER, "INTEGER"),
    "BIGINT": (SqlType.BIGINT, "BIGINT"),
    "HUGEINT": (SqlType.BIGINT, "HUGEINT"),
    "UTINYINT": (SqlType.SMALLINT, "UTINYINT"),
    "USMALLINT": (SqlType.INTEGER, "USMALLINT"),
    "UINTEGER": (SqlType.BIGINT, "UINTEGER"),
    "UBIGINT": (SqlType.BIGINT, "UBIGINT"),
    "FLOAT": (SqlType.REAL, "FLOAT"),
    "DOUBLE": (SqlType.DOUBLE, "DOUBLE"),
    "DECIMAL": (SqlType.DECIMAL, "DECIMAL"),
    "VARCHAR": (SqlType.VARCHAR, "VARCHAR"),
    "DATE": (SqlType.DATE, "DATE"),
    "TIME": (SqlType.TIME, "TIME"),
    "TIMESTAMP": (SqlType.TIMESTAMP, "TIMESTAMP"),
    "TIMESTAMP_S": (SqlType.TIMESTAMP, "TIMESTAMP_S"),
    "TIMESTAMP_MS": (SqlType.TIMESTAMP, "TIMESTAMP_MS"),
    "TIMESTAMP_NS": (SqlType.TIMESTAMP, "TIMESTAMP_NS"),
    "TIMESTAMP WITH TIME ZONE": (SqlType.TIMESTAMPTZ, "TIMESTAMPTZ"),
    "BLOB": (SqlType.BLOB, "BLOB"),
    "UUID": (SqlType.OTHER, "UUID"),
    "JSON": (SqlType.JSON, "JSON"),
    # Names used by older DuckDB releases
    "STRING": (SqlType.VARCHAR, "VARCHAR"),
    "NUMBER": (SqlType.DOUBLE, "NUMBER"),
    "DATETIME": (SqlType.TIMESTAMP, "TIMESTAMP"),
    "BINARY": (SqlType.BLOB, "BLOB"),
}


def duckdb_type_key(type_code: Any) -> str:
    return str(type_code).split("(", 1)[0].strip().upper()


DUCKDB = Dialect(
    name="duckdb",
    drivername="duckdb",
    paramstyle="qmark",
    error_classifier=ErrorClassifier(name="duckdb"),
    type_codes=DUCKDB_TYPE_CODES,
    type_code_key=duckdb_type_key,
)
