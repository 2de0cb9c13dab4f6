"""Dialect definition shared by all databases.

A dialect bundles everything that differs per database: the SQLAlchemy
driver used to connect, the DB-API placeholder style, how driver type
codes map to column types, the error classifier, and optional per-field
read quirks.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from dbsource.core.models.base import FieldType, LogicalType, SqlType
from dbsource.sources.errors import ErrorClassifier
from dbsource.sources.schema import FieldSchema

# Returned by a field handler that leaves the value to the generic mapping
NOT_HANDLED = object()

FieldHandler = Callable[["FieldSchema", "ColumnType", Any], Any]

_PRECISION_SCALE = re.compile(r"\((\d+)\s*,\s*(\d+)\)")


class ColumnType(BaseModel):
    """Database column type of one output field.

    Attributes:
        name: Column label from the result metadata
        sql_type: Common column type
        type_name: Vendor type name (e.g. YEAR, jsonb)
        precision: Numeric precision, when reported
        scale: Numeric scale, when reported
        nullable: Whether the driver reports the column as nullable
    """

    name: str
    sql_type: SqlType
    type_name: str
    precision: int | None = None
    scale: int | None = None
    nullable: bool = True


def _identity(code: Any) -> Any:
    return code


@dataclass(frozen=True)
class Dialect:
    """Per-database behavior."""

    name: str
    drivername: str
    paramstyle: str
    error_classifier: ErrorClassifier
    type_codes: Mapping[Any, tuple[SqlType, str]]
    default_port: int | None = None
    type_code_key: Callable[[Any], Any] = _identity
    field_handler: FieldHandler | None = None
    aliases: tuple[str, ...] = field(default_factory=tuple)

    def column_type(self, entry: Sequence[Any]) -> ColumnType:
        """Build a ColumnType from one ``cursor.description`` entry.

        DB-API entries are 7-item sequences:
        (name, type_code, display_size, internal_size, precision, scale, null_ok).
        """
        name, type_code = entry[0], entry[1]
        precision = entry[4] if len(entry) > 4 else None
        scale = entry[5] if len(entry) > 5 else None
        null_ok = entry[6] if len(entry) > 6 else None

        key = self.type_code_key(type_code)
        sql_type, type_name = self.type_codes.get(key, (SqlType.OTHER, str(key)))

        if precision is None:
            # Some drivers only report "DECIMAL(p,s)" in the type itself
            match = _PRECISION_SCALE.search(str(type_code))
            if match:
                precision, scale = int(match.group(1)), int(match.group(2))

        return ColumnType(
            name=str(name),
            sql_type=sql_type,
            type_name=type_name,
            precision=precision if isinstance(precision, int) else None,
            scale=scale if isinstance(scale, int) else None,
            # Drivers that cannot tell report None; treat as nullable
            nullable=null_ok is not False,
        )

    def field_schema(self, column: ColumnType) -> FieldSchema:
        """Map a column type to an output field."""
        return to_field_schema(column)


def to_field_schema(column: ColumnType) -> FieldSchema:
    """Common column type -> record field mapping."""
    base, logical = _FIELD_TYPES.get(column.sql_type, (FieldType.STRING, None))
    precision = scale = None

    if column.sql_type in (SqlType.NUMERIC, SqlType.DECIMAL):
        if column.precision and column.precision > 0:
            precision = column.precision
            scale = max(column.scale or 0, 0)
        else:
            # Unconstrained numeric: no fixed precision to carry
            base, logical = FieldType.STRING, None

    return FieldSchema(
        name=column.name,
        type=base,
        logical_type=logical,
        nullable=column.nullable,
        precision=precision,
        scale=scale,
    )


_FIELD_TYPES: dict[SqlType, tuple[FieldType, LogicalType | None]] = {
    SqlType.BIT: (FieldType.BOOLEAN, None),
    SqlType.BOOLEAN: (FieldType.BOOLEAN, None),
    SqlType.TINYINT: (FieldType.INT, None),
    SqlType.SMALLINT: (FieldType.INT, None),
    SqlType.INTEGER: (FieldType.INT, None),
    SqlType.BIGINT: (FieldType.LONG, None),
    SqlType.REAL: (FieldType.FLOAT, None),
    SqlType.FLOAT: (FieldType.FLOAT, None),
    SqlType.DOUBLE: (FieldType.DOUBLE, None),
    SqlType.NUMERIC: (FieldType.BYTES, LogicalType.DECIMAL),
    SqlType.DECIMAL: (FieldType.BYTES, LogicalType.DECIMAL),
    SqlType.CHAR: (FieldType.STRING, None),
    SqlType.VARCHAR: (FieldType.STRING, None),
    SqlType.LONGVARCHAR: (FieldType.STRING, None),
    SqlType.CLOB: (FieldType.STRING, None),
    SqlType.JSON: (FieldType.STRING, None),
    SqlType.DATE: (FieldType.INT, LogicalType.DATE),
    SqlType.TIME: (FieldType.LONG, LogicalType.TIME_MICROS),
    SqlType.TIMESTAMP: (FieldType.LONG, LogicalType.TIMESTAMP_MICROS),
    SqlType.TIMESTAMPTZ: (FieldType.LONG, LogicalType.TIMESTAMP_MICROS),
    SqlType.BINARY: (FieldType.BYTES, None),
    SqlType.VARBINARY: (FieldType.BYTES, None),
    SqlType.BLOB: (FieldType.BYTES, None),
    SqlType.OTHER: (FieldType.STRING, None),
}
