"""MySQL and CloudSQL MySQL.

Type codes are PyMySQL's ``FIELD_TYPE`` constants. Error types follow the
MySQL error-code ranges:
https://dev.mysql.com/doc/refman/9.0/en/error-message-elements.html#error-code-ranges
"""

from __future__ import annotations

from datetime import date
from typing import Any

from dbsource.core.models.base import ErrorType, FieldType, LogicalType, SqlType
from dbsource.sources.dialects.base import NOT_HANDLED, ColumnType, Dialect
from dbsource.sources.errors import ErrorClassifier, ErrorCodeRules
from dbsource.sources.schema import FieldSchema

MYSQL_DOC_URL = "https://dev.mysql.com/doc/connector-j/en/connector-j-reference-error-sqlstates.html"
CLOUDSQL_MYSQL_DOC_URL = "https://cloud.google.com/sql/docs/mysql/error-messages"

YEAR_TYPE_NAME = "YEAR"

MYSQL_ERROR_RULES = ErrorCodeRules(
    code_ranges=(
        (1000, 5999, ErrorType.USER),
        # Enterprise and user-defined custom error messages
        (10000, 51999, ErrorType.SYSTEM),
    ),
)

MYSQL_TYPE_CODES: dict[int, tuple[SqlType, str]] = {
    0: (SqlType.DECIMAL, "DECIMAL"),
    1: (SqlType.TINYINT, "TINYINT"),
    2: (SqlType.SMALLINT, "SMALLINT"),
    3: (SqlType.INTEGER, "INT"),
    4: (SqlType.REAL, "FLOAT"),
    5: (SqlType.DOUBLE, "DOUBLE"),
    6: (SqlType.OTHER, "NULL"),
    7: (SqlType.TIMESTAMP, "TIMESTAMP"),
    8: (SqlType.BIGINT, "BIGINT"),
    9: (SqlType.INTEGER, "MEDIUMINT"),
    10: (SqlType.DATE, "DATE"),
    11: (SqlType.TIME, "TIME"),
    12: (SqlType.TIMESTAMP, "DATETIME"),
    13: (SqlType.DATE, YEAR_TYPE_NAME),
    14: (SqlType.DATE, "NEWDATE"),
    15: (SqlType.VARCHAR, "VARCHAR"),
    16: (SqlType.BIT, "BIT"),
    245: (SqlType.JSON, "JSON"),
    246: (SqlType.DECIMAL, "DECIMAL"),
    247: (SqlType.CHAR, "ENUM"),
    248: (SqlType.CHAR, "SET"),
    249: (SqlType.BLOB, "TINYBLOB"),
    250: (SqlType.BLOB, "MEDIUMBLOB"),
    251: (SqlType.BLOB, "LONGBLOB"),
    252: (SqlType.BLOB, "BLOB"),
    253: (SqlType.VARCHAR, "VARCHAR"),
    254: (SqlType.CHAR, "CHAR"),
    255: (SqlType.BINARY, "GEOMETRY"),
}


def mysql_field_handler(field: FieldSchema, column: ColumnType, value: Any) -> Any:
    """MySQL read quirks.

    - YEAR reads as int when the output field is a plain int; the older
      YEAR-as-date mapping is still honored.
    - TINYINT reads as boolean when the output field is boolean.
    """
    if value is None:
        return NOT_HANDLED

    if column.type_name == YEAR_TYPE_NAME:
        if field.type == FieldType.INT and field.logical_type != LogicalType.DATE:
            return value.year if isinstance(value, date) else int(value)
        if field.logical_type == LogicalType.DATE and isinstance(value, int):
            return date(value, 1, 1)

    if column.sql_type == SqlType.TINYINT and field.type == FieldType.BOOLEAN:
        return bool(value)

    return NOT_HANDLED


MYSQL = Dialect(
    name="mysql",
    drivername="mysql+pymysql",
    paramstyle="format",
    error_classifier=ErrorClassifier(
        name="mysql", rules=MYSQL_ERROR_RULES, documentation_link=MYSQL_DOC_URL
    ),
    type_codes=MYSQL_TYPE_CODES,
    default_port=3306,
    field_handler=mysql_field_handler,
)

CLOUDSQL_MYSQL = Dialect(
    name="cloudsql-mysql",
    drivername=MYSQL.drivername,
    paramstyle=MYSQL.paramstyle,
    error_classifier=MYSQL.error_classifier.with_overrides(
        name="cloudsql-mysql", documentation_link=CLOUDSQL_MYSQL_DOC_URL
    ),
    type_codes=MYSQL_TYPE_CODES,
    default_port=MYSQL.default_port,
    field_handler=mysql_field_handler,
    aliases=("cloudsql_mysql",),
)
