"""Shared models."""

from dbsource.core.models.base import (
    ErrorType,
    FieldType,
    LogicalType,
    Result,
    SqlType,
    ValidationFailure,
)

__all__ = [
    "ErrorType",
    "FieldType",
    "LogicalType",
    "Result",
    "SqlType",
    "ValidationFailure",
]
