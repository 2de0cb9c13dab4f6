"""Base models and types used across all modules.

This module contains the fundamental types that don't belong to any specific
module (query rewriting, splitting, schema handling, error classification).
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class Result(BaseModel, Generic[T]):
    """Result type for operations that can fail.

    Use this instead of exceptions for expected failures.
    Exceptions are reserved for unexpected/programming errors.
    """

    success: bool
    value: T | None = None
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, value: T, warnings: list[str] | None = None) -> Result[T]:
        """Create a successful result."""
        return cls(success=True, value=value, warnings=warnings or [])

    @classmethod
    def fail(cls, error: str) -> Result[T]:
        """Create a failed result."""
        return cls(success=False, error=error)


# === Enums ===


class SqlType(str, Enum):
    """Database-side column types, as reported by a driver.

    Drivers report their own type codes; dialect type mappers translate
    them into this common vocabulary.
    """

    BIT = "BIT"
    BOOLEAN = "BOOLEAN"
    TINYINT = "TINYINT"
    SMALLINT = "SMALLINT"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    REAL = "REAL"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    NUMERIC = "NUMERIC"
    DECIMAL = "DECIMAL"
    CHAR = "CHAR"
    VARCHAR = "VARCHAR"
    LONGVARCHAR = "LONGVARCHAR"
    CLOB = "CLOB"
    DATE = "DATE"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"
    TIMESTAMPTZ = "TIMESTAMPTZ"
    BINARY = "BINARY"
    VARBINARY = "VARBINARY"
    BLOB = "BLOB"
    JSON = "JSON"
    OTHER = "OTHER"

    @property
    def is_integral(self) -> bool:
        return self in _INTEGRAL_SQL_TYPES

    @property
    def is_numeric(self) -> bool:
        return self in _INTEGRAL_SQL_TYPES or self in _FRACTIONAL_SQL_TYPES

    @property
    def is_temporal(self) -> bool:
        return self in (SqlType.DATE, SqlType.TIME, SqlType.TIMESTAMP, SqlType.TIMESTAMPTZ)


_INTEGRAL_SQL_TYPES = frozenset(
    {SqlType.TINYINT, SqlType.SMALLINT, SqlType.INTEGER, SqlType.BIGINT}
)
_FRACTIONAL_SQL_TYPES = frozenset(
    {SqlType.REAL, SqlType.FLOAT, SqlType.DOUBLE, SqlType.NUMERIC, SqlType.DECIMAL}
)


class FieldType(str, Enum):
    """Record field base types (Avro primitive names)."""

    BOOLEAN = "boolean"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BYTES = "bytes"
    STRING = "string"


class LogicalType(str, Enum):
    """Logical types layered on top of a base field type."""

    DATE = "date"  # int
    TIME_MICROS = "time-micros"  # long
    TIMESTAMP_MICROS = "timestamp-micros"  # long
    DECIMAL = "decimal"  # bytes
    DATETIME = "datetime"  # string

    @property
    def base_type(self) -> FieldType:
        return _LOGICAL_BASE_TYPES[self]


_LOGICAL_BASE_TYPES = {
    LogicalType.DATE: FieldType.INT,
    LogicalType.TIME_MICROS: FieldType.LONG,
    LogicalType.TIMESTAMP_MICROS: FieldType.LONG,
    LogicalType.DECIMAL: FieldType.BYTES,
    LogicalType.DATETIME: FieldType.STRING,
}


class ErrorType(str, Enum):
    """Who is expected to act on a failure."""

    USER = "USER"
    SYSTEM = "SYSTEM"
    UNKNOWN = "UNKNOWN"


# === Validation ===


class ValidationFailure(BaseModel):
    """A single validation failure reported to the host.

    Attributes:
        message: What is wrong
        corrective_action: How to fix it, when known
        config_properties: Configuration properties the failure is tied to
        output_field: Output schema field the failure is tied to
    """

    message: str
    corrective_action: str | None = None
    config_properties: list[str] = Field(default_factory=list)
    output_field: str | None = None

    def __str__(self) -> str:
        if self.corrective_action:
            return f"{self.message} {self.corrective_action}"
        return self.message
