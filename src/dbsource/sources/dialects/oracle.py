"""Oracle.

Type codes are python-oracledb ``DbType`` objects, looked up by name.
Oracle does not use SQL-state classes for its ORA- codes, so the
classifier carries only a documentation link.
"""

from __future__ import annotations

from typing import Any

from dbsource.core.models.base import SqlType
from dbsource.sources.dialects.base import Dialect
from dbsource.sources.errors import ErrorClassifier

ORACLE_DOC_URL = "https://docs.oracle.com/en/error-help/db/"

ORACLE_TYPE_CODES: dict[str, tuple[SqlType, str]] = {
    "DB_TYPE_NUMBER": (SqlType.NUMERIC, "NUMBER"),
    "DB_TYPE_BINARY_INTEGER": (SqlType.INTEGER, "BINARY_INTEGER"),
    "DB_TYPE_BINARY_FLOAT": (SqlType.REAL, "BINARY_FLOAT"),
    "DB_TYPE_BINARY_DOUBLE": (SqlType.DOUBLE, "BINARY_DOUBLE"),
    "DB_TYPE_BOOLEAN": (SqlType.BOOLEAN, "BOOLEAN"),
    "DB_TYPE_CHAR": (SqlType.CHAR, "CHAR"),
    "DB_TYPE_NCHAR": (SqlType.CHAR, "NCHAR"),
    "DB_TYPE_VARCHAR": (SqlType.VARCHAR, "VARCHAR2"),
    "DB_TYPE_NVARCHAR": (SqlType.VARCHAR, "NVARCHAR2"),
    "DB_TYPE_LONG": (SqlType.LONGVARCHAR, "LONG"),
    "DB_TYPE_CLOB": (SqlType.CLOB, "CLOB"),
    "DB_TYPE_NCLOB": (SqlType.CLOB, "NCLOB"),
    "DB_TYPE_ROWID": (SqlType.VARCHAR, "ROWID"),
    # Oracle DATE carries a time of day
    "DB_TYPE_DATE": (SqlType.TIMESTAMP, "DATE"),
    "DB_TYPE_TIMESTAMP": (SqlType.TIMESTAMP, "TIMESTAMP"),
    "DB_TYPE_TIMESTAMP_TZ": (SqlType.TIMESTAMPTZ, "TIMESTAMP WITH TIME ZONE"),
    "DB_TYPE_TIMESTAMP_LTZ": (SqlType.TIMESTAMPTZ, "TIMESTAMP WITH LOCAL TIME ZONE"),
    "DB_TYPE_RAW": (SqlType.VARBINARY, "RAW"),
    "DB_TYPE_LONG_RAW": (SqlType.VARBINARY, "LONG RAW"),
    "DB_TYPE_BLOB": (SqlType.BLOB, "BLOB"),
    "DB_TYPE_JSON": (SqlType.JSON, "JSON"),
}


def oracle_type_key(type_code: Any) -> str:
    return getattr(type_code, "name", str(type_code))


ORACLE = Dialect(
    name="oracle",
    drivername="oracle+oracledb",
    paramstyle="numeric",
    error_classifier=ErrorClassifier(name="oracle", documentation_link=ORACLE_DOC_URL),
    type_codes=ORACLE_TYPE_CODES,
    default_port=1521,
    type_code_key=oracle_type_key,
)
