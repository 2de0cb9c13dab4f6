"""PostgreSQL and CloudSQL PostgreSQL.

Type codes are PostgreSQL type OIDs as reported by psycopg. Error types
are keyed by SQL-state class:
https://www.postgresql.org/docs/current/errcodes-appendix.html
"""

from __future__ import annotations

from dbsource.core.models.base import ErrorType, SqlType
from dbsource.sources.dialects.base import Dialect
from dbsource.sources.errors import ErrorClassifier, ErrorCodeRules

POSTGRES_DOC_URL = "https://www.postgresql.org/docs/current/errcodes-appendix.html"
CLOUDSQL_POSTGRES_DOC_URL = "https://cloud.google.com/sql/docs/postgres/error-messages"

POSTGRES_ERROR_RULES = ErrorCodeRules(
    sql_state_types={
        "01": ErrorType.USER,
        "02": ErrorType.USER,
        "08": ErrorType.SYSTEM,
        "0A": ErrorType.USER,
        "22": ErrorType.USER,
        "23": ErrorType.USER,
        "28": ErrorType.USER,
        "40": ErrorType.SYSTEM,
        "42": ErrorType.USER,
        "53": ErrorType.SYSTEM,
        "54": ErrorType.SYSTEM,
        "55": ErrorType.USER,
        "57": ErrorType.SYSTEM,
        "58": ErrorType.SYSTEM,
        "P0": ErrorType.SYSTEM,
        "XX": ErrorType.SYSTEM,
    },
    sql_state_categories={
        "01": "Warning",
        "02": "No Data",
        "08": "Postgres Server Connection Exception",
        "0A": "Postgres Server Feature Not Supported",
        "22": "Postgres Server Data Exception",
        "23": "Postgres Integrity Constraint Violation",
        "28": "Postgres Invalid Authorization Specification",
        "40": "Transaction Rollback",
        "42": "Syntax Error or Access Rule Violation",
        "53": "Postgres Server Insufficient Resources",
        "54": "Postgres Program Limit Exceeded",
        "55": "Object Not in Prerequisite State",
        "57": "Operator Intervention",
        "58": "Postgres Server System Error",
        "P0": "PL/pgSQL Error",
        "XX": "Postgres Server Internal Error",
    },
)

POSTGRES_TYPE_CODES: dict[int, tuple[SqlType, str]] = {
    16: (SqlType.BOOLEAN, "bool"),
    17: (SqlType.BINARY, "bytea"),
    18: (SqlType.CHAR, "char"),
    19: (SqlType.VARCHAR, "name"),
    20: (SqlType.BIGINT, "int8"),
    21: (SqlType.SMALLINT, "int2"),
    23: (SqlType.INTEGER, "int4"),
    25: (SqlType.VARCHAR, "text"),
    26: (SqlType.BIGINT, "oid"),
    114: (SqlType.JSON, "json"),
    700: (SqlType.REAL, "float4"),
    701: (SqlType.DOUBLE, "float8"),
    1042: (SqlType.CHAR, "bpchar"),
    1043: (SqlType.VARCHAR, "varchar"),
    1082: (SqlType.DATE, "date"),
    1083: (SqlType.TIME, "time"),
    1114: (SqlType.TIMESTAMP, "timestamp"),
    1184: (SqlType.TIMESTAMPTZ, "timestamptz"),
    1266: (SqlType.TIME, "timetz"),
    1560: (SqlType.BIT, "bit"),
    1700: (SqlType.NUMERIC, "numeric"),
    2950: (SqlType.OTHER, "uuid"),
    3802: (SqlType.JSON, "jsonb"),
}

POSTGRES = Dialect(
    name="postgres",
    drivername="postgresql+psycopg",
    paramstyle="format",
    error_classifier=ErrorClassifier(
        name="postgres", rules=POSTGRES_ERROR_RULES, documentation_link=POSTGRES_DOC_URL
    ),
    type_codes=POSTGRES_TYPE_CODES,
    default_port=5432,
    aliases=("postgresql",),
)

CLOUDSQL_POSTGRES = Dialect(
    name="cloudsql-postgres",
    drivername=POSTGRES.drivername,
    paramstyle=POSTGRES.paramstyle,
    error_classifier=POSTGRES.error_classifier.with_overrides(
        name="cloudsql-postgres", documentation_link=CLOUDSQL_POSTGRES_DOC_URL
    ),
    type_codes=POSTGRES_TYPE_CODES,
    default_port=POSTGRES.default_port,
    aliases=("cloudsql-postgresql", "cloudsql_postgres"),
)
